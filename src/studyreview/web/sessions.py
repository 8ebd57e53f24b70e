"""Session management for Web API.

Keeps per-client state in memory: navigation, quiz sessions and chat
sessions. Grading and chat calls block on the AI service, so they run
in a worker thread while the event loop keeps serving.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from studyreview.content.lessons import require_lesson
from studyreview.core.grader import GradingResult
from studyreview.core.history import ExamHistoryRepository
from studyreview.core.navigation import Navigator
from studyreview.core.quiz import QuizSession
from studyreview.core.tutor import ChatMessage, ChatSession
from studyreview.llm.client import LLMClient
from studyreview.storage.kv_store import KeyValueStore, get_default_store

logger = structlog.get_logger(__name__)


def _new_session_id() -> str:
    return str(uuid.uuid4())[:8]  # Short UUID for convenience


@dataclass
class QuizEntry:
    session_id: str
    quiz: QuizSession
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class ChatEntry:
    session_id: str
    chat: ChatSession
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class SessionManager:
    """Holds every client's navigation, quiz and chat state."""

    def __init__(self, client: LLMClient | None = None, store: KeyValueStore | None = None):
        self._client = client
        self._store = store
        self._navigators: dict[str, Navigator] = {}
        self._quizzes: dict[str, QuizEntry] = {}
        self._chats: dict[str, ChatEntry] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Shared resources
    # -------------------------------------------------------------------------

    @property
    def client(self) -> LLMClient:
        """LLM client shared by all sessions, created on first use."""
        if self._client is None:
            self._client = LLMClient()
        return self._client

    @client.setter
    def client(self, value: LLMClient) -> None:
        self._client = value

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            self._store = get_default_store()
        return self._store

    @store.setter
    def store(self, value: KeyValueStore) -> None:
        self._store = value

    def history(self) -> ExamHistoryRepository:
        return ExamHistoryRepository(self.store)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    async def get_navigator(self, client_id: str) -> Navigator:
        """Navigation state for a client, created on first access."""
        async with self._lock:
            navigator = self._navigators.get(client_id)
            if navigator is None:
                navigator = Navigator()
                self._navigators[client_id] = navigator
                logger.debug("navigator_created", client_id=client_id)
            return navigator

    # -------------------------------------------------------------------------
    # Quiz sessions
    # -------------------------------------------------------------------------

    async def create_quiz(self, lesson_id: int) -> QuizEntry:
        """Start a quiz session on a lesson.

        Raises:
            LessonNotFoundError: If the lesson does not exist
        """
        lesson = require_lesson(lesson_id)
        entry = QuizEntry(
            session_id=_new_session_id(),
            quiz=QuizSession(lesson=lesson, history=self.history(), client=self.client),
        )

        async with self._lock:
            self._quizzes[entry.session_id] = entry

        logger.info("quiz_session_created", session_id=entry.session_id, lesson_id=lesson_id)
        return entry

    async def get_quiz(self, session_id: str) -> QuizEntry | None:
        async with self._lock:
            return self._quizzes.get(session_id)

    async def end_quiz(self, session_id: str) -> bool:
        async with self._lock:
            entry = self._quizzes.pop(session_id, None)
        if entry is None:
            return False
        logger.info("quiz_session_ended", session_id=session_id)
        return True

    async def submit_answer(self, entry: QuizEntry, parts: list[str]) -> GradingResult | None:
        """Grade an answer without blocking the event loop."""
        return await asyncio.to_thread(entry.quiz.submit, parts)

    # -------------------------------------------------------------------------
    # Chat sessions
    # -------------------------------------------------------------------------

    async def create_chat(self, lesson_id: int, full_context: bool = False) -> ChatEntry:
        """Start a chat session on a lesson.

        Raises:
            LessonNotFoundError: If the lesson does not exist
        """
        lesson = require_lesson(lesson_id)
        entry = ChatEntry(
            session_id=_new_session_id(),
            chat=ChatSession(lesson=lesson, client=self.client, use_full_context=full_context),
        )

        async with self._lock:
            self._chats[entry.session_id] = entry

        logger.info(
            "chat_session_created",
            session_id=entry.session_id,
            lesson_id=lesson_id,
            full_context=full_context,
        )
        return entry

    async def get_chat(self, session_id: str) -> ChatEntry | None:
        async with self._lock:
            return self._chats.get(session_id)

    async def end_chat(self, session_id: str) -> bool:
        async with self._lock:
            entry = self._chats.pop(session_id, None)
        if entry is None:
            return False
        logger.info("chat_session_ended", session_id=session_id)
        return True

    async def send_chat(self, entry: ChatEntry, text: str) -> ChatMessage | None:
        """Ask the tutor without blocking the event loop."""
        return await asyncio.to_thread(entry.chat.send, text)

    async def counts(self) -> dict[str, Any]:
        async with self._lock:
            return {
                "navigators": len(self._navigators),
                "quizzes": len(self._quizzes),
                "chats": len(self._chats),
            }


# Global session manager instance
_session_manager: SessionManager | None = None


def get_session_manager() -> SessionManager:
    """Get the global session manager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager()
    return _session_manager


def reset_session_manager(
    client: LLMClient | None = None,
    store: KeyValueStore | None = None,
) -> SessionManager:
    """Replace the session manager (for testing)."""
    global _session_manager
    _session_manager = SessionManager(client=client, store=store)
    return _session_manager
