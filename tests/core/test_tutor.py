"""Tests for the deep-dive tutor chat."""

from studyreview.config.personas import get_default_persona
from studyreview.content.lessons import require_lesson
from studyreview.core.tutor import ChatMessage, ChatSession, ask_question, format_history
from studyreview.llm.client import LLMError


def _messages(n: int) -> list[ChatMessage]:
    return [
        ChatMessage(role="user" if i % 2 else "model", text=f"msg{i}", timestamp=i)
        for i in range(n)
    ]


class TestFormatHistory:
    """Tests for transcript rendering."""

    def test_labels(self):
        persona = get_default_persona()
        history = [
            ChatMessage(role="model", text="你好", timestamp=1),
            ChatMessage(role="user", text="请问", timestamp=2),
        ]
        assert format_history(history, persona, 10) == "纲哥: 你好\n同学: 请问"

    def test_window_keeps_most_recent(self):
        transcript = format_history(_messages(15), get_default_persona(), 10)
        lines = transcript.split("\n")
        assert len(lines) == 10
        assert lines[0].endswith("msg5")
        assert lines[-1].endswith("msg14")


class TestAskQuestion:
    """Tests for ask_question."""

    def test_uses_chat_model_and_context(self, mock_llm_client):
        reply = ask_question("Q: 问\nA: 答", [], "什么是鸦片战争？", client=mock_llm_client)

        assert reply == "鸦片战争是中国近代史的开端。"
        kwargs = mock_llm_client.simple_chat.call_args.kwargs
        assert kwargs["model"] == "chat-model"
        assert "Q: 问\nA: 答" in kwargs["user_message"]
        assert "同学: 什么是鸦片战争？" in kwargs["user_message"]

    def test_missing_key(self, keyless_client):
        reply = ask_question("ctx", [], "问", client=keyless_client)
        assert reply == get_default_persona().replies.missing_key_chat
        keyless_client.simple_chat.assert_not_called()

    def test_failure_apologizes(self, mock_llm_client):
        mock_llm_client.simple_chat.side_effect = LLMError("boom")
        reply = ask_question("ctx", [], "问", client=mock_llm_client)
        assert reply == get_default_persona().replies.chat_failed

    def test_empty_reply_placeholder(self, mock_llm_client):
        mock_llm_client.simple_chat.return_value = "<think>...</think>  "
        reply = ask_question("ctx", [], "问", client=mock_llm_client)
        assert reply == get_default_persona().replies.chat_empty

    def test_speaker_prefix_removed(self, mock_llm_client):
        mock_llm_client.simple_chat.return_value = "纲哥：记住1842年。"
        assert ask_question("ctx", [], "问", client=mock_llm_client) == "记住1842年。"


class TestChatSession:
    """Tests for ChatSession."""

    def test_starts_with_lesson_greeting(self, lesson, mock_llm_client):
        chat = ChatSession(lesson=lesson, client=mock_llm_client)
        assert len(chat.messages) == 1
        assert chat.messages[0].role == "model"
        assert lesson.title in chat.messages[0].text

    def test_full_context_greeting(self, lesson, mock_llm_client):
        chat = ChatSession(lesson=lesson, client=mock_llm_client, use_full_context=True)
        assert chat.messages[0].text == get_default_persona().replies.greeting_full_book

    def test_send_appends_turn(self, lesson, mock_llm_client):
        chat = ChatSession(lesson=lesson, client=mock_llm_client)

        reply = chat.send("为什么虎门销烟？")

        assert reply.role == "model"
        assert [m.role for m in chat.messages] == ["model", "user", "model"]
        assert chat.pending is False

    def test_history_excludes_new_message(self, lesson, mock_llm_client):
        """The new question appears once, after the transcript."""
        chat = ChatSession(lesson=lesson, client=mock_llm_client)
        chat.send("独特的问题")

        prompt = mock_llm_client.simple_chat.call_args.kwargs["user_message"]
        assert prompt.count("独特的问题") == 1

    def test_blank_input_ignored(self, lesson, mock_llm_client):
        chat = ChatSession(lesson=lesson, client=mock_llm_client)
        assert chat.send("   ") is None
        assert len(chat.messages) == 1
        mock_llm_client.simple_chat.assert_not_called()

    def test_pending_input_ignored(self, lesson, mock_llm_client):
        chat = ChatSession(lesson=lesson, client=mock_llm_client)
        chat.pending = True
        assert chat.send("问") is None

    def test_lesson_context_vs_full_context(self, lesson, mock_llm_client):
        chat = ChatSession(lesson=lesson, client=mock_llm_client)
        assert "Lesson:" not in chat.build_context()

        chat.set_full_context(True)
        assert "Lesson: 第10课" in chat.build_context()

    def test_scope_change_resets_conversation(self, lesson, mock_llm_client):
        chat = ChatSession(lesson=lesson, client=mock_llm_client)
        chat.send("问")

        assert chat.toggle_full_context() is True
        assert len(chat.messages) == 1

        chat.set_full_context(False)
        chat.send("问")
        chat.set_lesson(require_lesson(2))
        assert "第2课" in chat.messages[0].text
        assert len(chat.messages) == 1

    def test_lesson_change_in_full_context_keeps_book_greeting(self, lesson, mock_llm_client):
        """The greeting follows the scope, not the lesson."""
        chat = ChatSession(lesson=lesson, client=mock_llm_client, use_full_context=True)
        chat.send("问")

        chat.set_lesson(require_lesson(2))

        assert chat.lesson.id == 2
        assert chat.messages[0].text == get_default_persona().replies.greeting_full_book
        assert len(chat.messages) == 1

    def test_failure_keeps_session_usable(self, lesson, mock_llm_client):
        mock_llm_client.simple_chat.side_effect = LLMError("boom")
        chat = ChatSession(lesson=lesson, client=mock_llm_client)

        reply = chat.send("问")

        assert reply.text == get_default_persona().replies.chat_failed
        assert chat.pending is False
