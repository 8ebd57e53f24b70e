"""Pydantic schemas for Web API.

Serialization models for lessons, navigation, quiz, chat, history and
preferences. Exam records and grading results keep the camelCase keys
they are stored with.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


# =============================================================================
# LESSON SCHEMAS
# =============================================================================


class QAPairResponse(BaseModel):
    """A question with its reference answer, pre-split for display."""

    id: int
    question: str
    answer: str
    points: list[str]
    lines: list[str]


class LessonSummary(BaseModel):
    """Lesson entry in a listing."""

    id: int
    title: str
    unit: str
    question_count: int


class UnitResponse(BaseModel):
    """A unit with its lessons, in table order."""

    unit: str
    lessons: list[LessonSummary]


class LessonListResponse(BaseModel):
    """All lessons grouped by unit."""

    units: list[UnitResponse]
    count: int


class LessonResponse(BaseModel):
    """Full lesson for the review view."""

    id: int
    title: str
    unit: str
    qa: list[QAPairResponse]


# =============================================================================
# NAVIGATION SCHEMAS
# =============================================================================


class SidebarLesson(BaseModel):
    id: int
    title: str
    active: bool


class SidebarUnit(BaseModel):
    unit: str
    expanded: bool
    lessons: list[SidebarLesson]


class NavigationResponse(BaseModel):
    """Navigation state of one client."""

    client_id: str
    view_mode: str
    active_lesson_id: int | None
    active_lesson_title: str | None
    sidebar_open: bool
    expanded_units: list[str]
    sidebar: list[SidebarUnit]


class SelectLessonRequest(BaseModel):
    lesson_id: int


class ToggleUnitRequest(BaseModel):
    unit: str = Field(..., min_length=1)


class ViewRequest(BaseModel):
    view_mode: Literal["home", "review", "quiz", "deep-dive"]


class SidebarRequest(BaseModel):
    open: bool


# =============================================================================
# QUIZ SCHEMAS
# =============================================================================


class GradingResponse(BaseModel):
    """Grading verdict (stored key names)."""

    score: int
    feedback: str
    isCorrect: bool


class ExamSummaryResponse(BaseModel):
    totalScore: int
    totalQuestions: int
    correctCount: int
    averageScore: int
    accuracy: int
    results: list[dict[str, Any]]


class QuizStateResponse(BaseModel):
    """Snapshot of a quiz session."""

    lesson_id: int
    mode: str
    current_index: int
    question_count: int
    grading: bool = False
    question: str | None = None
    expected_parts: int | None = None
    answers: list[str] | None = None
    practice_result: GradingResponse | None = None
    reference_points: list[str] | None = None
    remaining_seconds: int | None = None
    time_limit: int | None = None
    answered: int | None = None
    summary: ExamSummaryResponse | None = None
    record_id: str | None = None


class QuizSessionResponse(BaseModel):
    session_id: str
    state: QuizStateResponse


class QuizStartRequest(BaseModel):
    lesson_id: int


class PracticeStartRequest(BaseModel):
    index: int = Field(..., ge=0)


class AnswerRequest(BaseModel):
    """One string per answer input box."""

    parts: list[str] = Field(..., min_length=1, max_length=10)


class SubmitResponse(BaseModel):
    """Outcome of submitting an answer.

    graded is False when every input was blank and nothing was sent.
    """

    graded: bool
    result: GradingResponse | None = None
    state: QuizStateResponse


# =============================================================================
# HISTORY SCHEMAS
# =============================================================================


class ExamRecordSummary(BaseModel):
    """Exam record in a listing."""

    id: str
    timestamp: int
    date: str
    lessonTitle: str
    totalScore: int
    totalQuestions: int
    averageScore: int


class HistoryListResponse(BaseModel):
    records: list[ExamRecordSummary]
    count: int


class ExamRecordResponse(BaseModel):
    """Full exam record as stored."""

    id: str
    timestamp: int
    lessonTitle: str
    totalScore: int
    totalQuestions: int
    results: list[dict[str, Any]]


# =============================================================================
# CHAT SCHEMAS
# =============================================================================


class ChatStartRequest(BaseModel):
    lesson_id: int
    full_context: bool = False


class ChatLessonRequest(BaseModel):
    lesson_id: int


class ChatInputRequest(BaseModel):
    text: str = Field(..., max_length=2000)


class FullContextRequest(BaseModel):
    enabled: bool


class ChatMessageResponse(BaseModel):
    role: Literal["user", "model"]
    text: str
    timestamp: int


class ChatSessionResponse(BaseModel):
    session_id: str
    lesson_id: int
    full_context: bool
    pending: bool
    messages: list[ChatMessageResponse]


class ChatReplyResponse(BaseModel):
    """Reply is None when the input was ignored (blank or reply pending)."""

    reply: ChatMessageResponse | None = None
    session: ChatSessionResponse


# =============================================================================
# PREFERENCES / PERSONA SCHEMAS
# =============================================================================


class ThemeResponse(BaseModel):
    theme: Literal["dark", "light"]
    saved: bool


class ThemeRequest(BaseModel):
    theme: Literal["dark", "light"]


class PersonaResponse(BaseModel):
    id: str
    name: str
    short_title: str
    default: bool = False


class PersonaListResponse(BaseModel):
    personas: list[PersonaResponse]
    count: int


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    llm_configured: bool = False
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
