"""Tests for CLI commands."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from studyreview.cli.commands import app
from studyreview.core.history import ExamHistoryRepository
from studyreview.storage.kv_store import get_default_store

runner = CliRunner()


@pytest.fixture
def patched_llm(mock_llm_client):
    with patch("studyreview.cli.commands.LLMClient") as MockLLMClient:
        MockLLMClient.return_value = mock_llm_client
        yield mock_llm_client


class TestBrowseCommands:
    """Tests for lessons and review."""

    def test_lessons_lists_all(self):
        result = runner.invoke(app, ["lessons"])
        assert result.exit_code == 0
        assert "第1课 鸦片战争" in result.output
        assert "第10课" in result.output

    def test_review_shows_answers(self):
        result = runner.invoke(app, ["review", "1"])
        assert result.exit_code == 0
        assert "《南京条约》的主要内容有哪些？" in result.output
        assert "①割香港岛给英国；" in result.output

    def test_review_unknown_lesson(self):
        result = runner.invoke(app, ["review", "99"])
        assert result.exit_code == 1
        assert "99" in result.output


class TestPracticeCommand:
    """Tests for studyreview practice."""

    def test_practice_one_question(self, patched_llm):
        result = runner.invoke(app, ["practice", "1", "-q", "2"], input="1839年\n胜利\n第一人\nn\n")

        assert result.exit_code == 0
        assert "90" in result.output
        assert "练习结束" in result.output
        patched_llm.simple_json.assert_called_once()

    def test_practice_bad_question_number(self, patched_llm):
        result = runner.invoke(app, ["practice", "1", "-q", "9"])
        assert result.exit_code == 1

    def test_practice_warns_without_key(self, keyless_client):
        with patch("studyreview.cli.commands.LLMClient") as MockLLMClient:
            MockLLMClient.return_value = keyless_client
            result = runner.invoke(app, ["practice", "1"], input="答案\nn\n")

        assert result.exit_code == 0
        assert "GEMINI_API_KEY" in result.output


class TestExamCommand:
    """Tests for studyreview exam."""

    def test_exam_saves_record(self, patched_llm):
        result = runner.invoke(app, ["exam", "9"], input="武昌起义\n甲\n乙\n丙\n")

        assert result.exit_code == 0
        assert "成绩已保存" in result.output

        records = ExamHistoryRepository(get_default_store()).load()
        assert len(records) == 1
        assert records[0].lesson_title == "第9课 辛亥革命"
        assert records[0].total_score == 180


class TestHistoryCommand:
    """Tests for studyreview history."""

    def test_empty(self):
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "暂无考试记录" in result.output

    def test_list_detail_and_clear(self, patched_llm):
        runner.invoke(app, ["exam", "9"], input="武昌起义\n甲\n乙\n丙\n")
        record_id = ExamHistoryRepository(get_default_store()).load()[0].id

        listing = runner.invoke(app, ["history"])
        assert record_id in listing.output

        detail = runner.invoke(app, ["history", record_id])
        assert detail.exit_code == 0
        assert "辛亥革命爆发的标志是什么？" in detail.output

        cleared = runner.invoke(app, ["history", "--clear"])
        assert cleared.exit_code == 0
        assert ExamHistoryRepository(get_default_store()).load() == []

    def test_unknown_record(self):
        result = runner.invoke(app, ["history", "nope"])
        assert result.exit_code == 1


class TestAskCommand:
    """Tests for studyreview ask."""

    def test_single_question(self, patched_llm):
        result = runner.invoke(app, ["ask", "1", "什么是虎门销烟？"])

        assert result.exit_code == 0
        assert "鸦片战争是中国近代史的开端" in result.output
        assert patched_llm.simple_chat.call_count == 1

    def test_interactive_until_quit(self, patched_llm):
        result = runner.invoke(app, ["ask", "1", "--full"], input="问题一\n/q\n")

        assert result.exit_code == 0
        assert patched_llm.simple_chat.call_count == 1
        prompt = patched_llm.simple_chat.call_args.kwargs["user_message"]
        assert "Lesson: 第10课" in prompt


class TestThemeCommand:
    """Tests for studyreview theme."""

    def test_show_default(self):
        result = runner.invoke(app, ["theme"])
        assert "light" in result.output

    def test_toggle_persists(self):
        runner.invoke(app, ["theme", "--toggle"])
        assert "dark" in runner.invoke(app, ["theme"]).output

    def test_set_invalid(self):
        result = runner.invoke(app, ["theme", "--set", "blue"])
        assert result.exit_code == 1
