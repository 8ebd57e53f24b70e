"""Shared pytest fixtures.

Every test runs against its own data directory with no API key in the
environment, so nothing reaches a real AI service or the user's store.
"""

from unittest.mock import MagicMock

import pytest

from studyreview.config.app_config import clear_config_cache
from studyreview.config.personas import clear_personas_cache
from studyreview.content.lessons import clear_lessons_cache, require_lesson
from studyreview.core.history import ExamHistoryRepository
from studyreview.storage.kv_store import KeyValueStore


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point the data directory at tmp_path and reset module caches."""
    monkeypatch.setenv("STUDYREVIEW_DATA_DIR", str(tmp_path))
    for var in ("GEMINI_API_KEY", "API_KEY", "OPENAI_API_KEY", "STUDYREVIEW_PROXY_URL"):
        monkeypatch.delenv(var, raising=False)

    clear_config_cache()
    clear_personas_cache()
    clear_lessons_cache()
    yield tmp_path
    clear_config_cache()
    clear_personas_cache()
    clear_lessons_cache()


@pytest.fixture
def store(tmp_path) -> KeyValueStore:
    return KeyValueStore(tmp_path / "state" / "local_storage.json")


@pytest.fixture
def history_repo(store) -> ExamHistoryRepository:
    return ExamHistoryRepository(store)


@pytest.fixture
def lesson():
    """Lesson 1: four questions; answers split into 1, 3, 4 and 2 points."""
    return require_lesson(1)


@pytest.fixture
def mock_llm_client():
    """Mock LLM client with credentials that grades everything 90."""
    client = MagicMock()
    client.has_credentials = True
    client.config = MagicMock()
    client.config.provider = "gemini"
    client.config.model = "grading-model"
    client.config.chat_model = "chat-model"

    client.simple_json.return_value = {"score": 90, "feedback": "答得不错！", "isCorrect": True}
    client.simple_chat.return_value = "鸦片战争是中国近代史的开端。"
    return client


@pytest.fixture
def keyless_client():
    """Mock LLM client with no API key configured."""
    client = MagicMock()
    client.has_credentials = False
    return client


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
