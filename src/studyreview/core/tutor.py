"""Deep-dive tutor chat.

Responsibilities:
- Answer free-form questions about a lesson (or the whole book) in the
  tutor persona's voice
- Keep a per-lesson conversation that starts with the persona's greeting
- Send only the most recent messages of the conversation to the model

The model sees one prompt: lesson context, a transcript of the recent
conversation with speaker labels, then the new question.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from studyreview.config.app_config import load_app_config
from studyreview.config.personas import Persona, get_default_persona
from studyreview.content.lessons import (
    Lesson,
    build_full_context,
    build_lesson_context,
    load_lessons,
)
from studyreview.llm.client import LLMClient, LLMError
from studyreview.utils.text_utils import strip_speaker_prefix, strip_think

logger = structlog.get_logger(__name__)

ChatRole = Literal["user", "model"]

USER_PROMPT_QA = """复习内容 (Context):
{context}

--- 聊天记录 ---
{history}

--- {student_label}最新提问 ---
{student_label}: {message}
{tutor_label}:

指令:
1. 基于复习内容，用班级第一名同学的身份回答。
2. 极其耐心，温柔，把对方当成好朋友。"""


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class ChatMessage:
    """One line of the deep-dive conversation."""

    role: ChatRole
    text: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"role": self.role, "text": self.text, "timestamp": self.timestamp}


def format_history(history: list[ChatMessage], persona: Persona, window: int) -> str:
    """Render the last `window` messages as a labelled transcript."""
    recent = history[-window:] if window > 0 else []
    lines = []
    for msg in recent:
        label = persona.replies.student_label if msg.role == "user" else persona.replies.tutor_label
        lines.append(f"{label}: {msg.text}")
    return "\n".join(lines)


def ask_question(
    context: str,
    history: list[ChatMessage],
    new_message: str,
    client: LLMClient | None = None,
    persona: Persona | None = None,
) -> str:
    """Ask the tutor a question about the given review content.

    Args:
        context: Lesson (or whole-book) Q/A outline
        history: Conversation so far, not including new_message
        new_message: The student's question
        client: Pre-configured LLM client (for testing)
        persona: Tutor persona (default persona if not provided)

    Returns:
        Reply text; a canned persona reply if the model is unavailable
    """
    if persona is None:
        persona = get_default_persona()
    if client is None:
        client = LLMClient()

    review_config = load_app_config().review

    if not client.has_credentials:
        logger.warning("chat_skipped_no_api_key")
        return persona.replies.missing_key_chat

    prompt = USER_PROMPT_QA.format(
        context=context,
        history=format_history(history, persona, review_config.chat_history_window),
        message=new_message,
        student_label=persona.replies.student_label,
        tutor_label=persona.replies.tutor_label,
    )

    try:
        reply = client.simple_chat(
            system_prompt=persona.system_prompt,
            user_message=prompt,
            temperature=review_config.chat_temperature,
            model=client.config.chat_model,
        )
    except LLMError as e:
        logger.error("chat_failed", error=str(e))
        return persona.replies.chat_failed

    reply = strip_speaker_prefix(strip_think(reply), persona.replies.tutor_label).strip()
    return reply or persona.replies.chat_empty


@dataclass
class ChatSession:
    """Conversation with the tutor about one lesson.

    The conversation restarts with a fresh greeting whenever the lesson
    or the context scope changes.
    """

    lesson: Lesson
    persona: Persona = field(default_factory=get_default_persona)
    client: LLMClient | None = None
    use_full_context: bool = False
    messages: list[ChatMessage] = field(default_factory=list)
    pending: bool = False

    def __post_init__(self):
        if not self.messages:
            self.reset()

    def reset(self, now: int | None = None) -> None:
        """Start over with the greeting for the current scope."""
        title = None if self.use_full_context else self.lesson.title
        self.messages = [
            ChatMessage(role="model", text=self.persona.greeting(title), timestamp=now or now_ms())
        ]

    def set_lesson(self, lesson: Lesson) -> None:
        self.lesson = lesson
        self.reset()

    def set_full_context(self, enabled: bool) -> None:
        """Switch between lesson and whole-book scope."""
        self.use_full_context = enabled
        self.reset()

    def toggle_full_context(self) -> bool:
        self.set_full_context(not self.use_full_context)
        return self.use_full_context

    def build_context(self) -> str:
        """Review content the model answers from."""
        if self.use_full_context:
            return build_full_context(load_lessons())
        return build_lesson_context(self.lesson)

    def send(self, text: str, now: int | None = None) -> ChatMessage | None:
        """Send a question and record the reply.

        Blank input, or input while a reply is pending, is ignored.

        Returns:
            The tutor's reply message, or None if the input was ignored
        """
        if not text.strip() or self.pending:
            return None

        history = list(self.messages)
        self.messages.append(ChatMessage(role="user", text=text, timestamp=now or now_ms()))
        self.pending = True

        try:
            reply = ask_question(
                self.build_context(),
                history,
                text,
                client=self.client,
                persona=self.persona,
            )
        finally:
            self.pending = False

        message = ChatMessage(role="model", text=reply, timestamp=now_ms())
        self.messages.append(message)

        logger.info(
            "chat_turn",
            lesson_id=self.lesson.id,
            full_context=self.use_full_context,
            messages=len(self.messages),
        )
        return message
