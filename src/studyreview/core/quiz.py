"""Practice and timed-exam state machine.

A QuizSession drives one lesson's self-test flow:

    select ─┬─> practice-list ─> practice ─(next wraps around)
            ├─> exam ─(last answer or time up)─> exam-result
            └─> history ─> history-detail

Practice grades one question at a time and locks the inputs until the
student moves on. An exam walks the questions in order under a deadline
of two minutes per question; finishing it saves an ExamRecord, unless
time ran out before anything was graded.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

import structlog

from studyreview.config.app_config import load_app_config
from studyreview.config.personas import Persona
from studyreview.content.formatting import (
    combine_answers,
    count_answer_points,
    is_blank,
    split_answer_points,
)
from studyreview.content.lessons import Lesson, QAPair
from studyreview.core.grader import GradingResult, grade_answer
from studyreview.core.history import (
    ExamHistoryRepository,
    ExamQuestionResult,
    ExamRecord,
    RecordNotFoundError,
    build_exam_record,
)
from studyreview.llm.client import LLMClient

logger = structlog.get_logger(__name__)


class QuizMode(str, Enum):
    """Screens of the quiz view."""

    SELECT = "select"
    PRACTICE_LIST = "practice-list"
    PRACTICE = "practice"
    EXAM = "exam"
    EXAM_RESULT = "exam-result"
    HISTORY = "history"
    HISTORY_DETAIL = "history-detail"


class QuizStateError(Exception):
    """Action not allowed in the current quiz mode."""

    pass


@dataclass
class ExamSummary:
    """Score overview shown after an exam or for a saved record."""

    total_score: int
    total_questions: int
    correct_count: int
    results: list[ExamQuestionResult]

    @property
    def average_score(self) -> int:
        if self.total_questions <= 0:
            return 0
        return round(self.total_score / self.total_questions)

    @property
    def accuracy(self) -> int:
        """Percentage of questions judged correct."""
        if self.total_questions <= 0:
            return 0
        return round(self.correct_count / self.total_questions * 100)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "totalScore": self.total_score,
            "totalQuestions": self.total_questions,
            "correctCount": self.correct_count,
            "averageScore": self.average_score,
            "accuracy": self.accuracy,
            "results": [r.to_dict() for r in self.results],
        }


def format_time(seconds: int) -> str:
    """Countdown display, e.g. 125 -> "2:05"."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_timestamp(timestamp_ms: int) -> str:
    """Record date display, e.g. "03-14 09:05" (local time)."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%m-%d %H:%M")


@dataclass
class QuizSession:
    """Self-test flow for one lesson."""

    lesson: Lesson
    history: ExamHistoryRepository
    client: LLMClient | None = None
    persona: Persona | None = None
    clock: Callable[[], float] = time.time

    mode: QuizMode = QuizMode.SELECT
    current_index: int = 0
    answers: list[str] = field(default_factory=lambda: [""])
    practice_result: GradingResult | None = None
    exam_results: list[ExamQuestionResult] = field(default_factory=list)
    time_limit: int = 0
    deadline: float | None = None
    selected_record: ExamRecord | None = None
    last_saved_record: ExamRecord | None = None
    _grade_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )
    # Bumped whenever the inputs are reset; a grade for an older round is stale
    _round: int = field(default=0, init=False, repr=False, compare=False)

    # -------------------------------------------------------------------------
    # Current question
    # -------------------------------------------------------------------------

    @property
    def current_question(self) -> QAPair:
        return self.lesson.get_question(self.current_index)

    @property
    def expected_parts(self) -> int:
        """Number of input boxes for the current question."""
        return count_answer_points(self.current_question.answer)

    @property
    def is_multi_part(self) -> bool:
        return self.expected_parts > 1

    @property
    def is_last_question(self) -> bool:
        return self.current_index >= self.lesson.question_count - 1

    @property
    def grading(self) -> bool:
        """True while an answer is out for grading; submit is locked meanwhile."""
        return self._grade_lock.locked()

    def _prepare_inputs(self) -> None:
        """Fresh, empty inputs sized for the current question."""
        self.answers = [""] * self.expected_parts
        self.practice_result = None
        self._round += 1

    def _reset_quiz_state(self) -> None:
        self._round += 1
        self.current_index = 0
        self.answers = [""]
        self.practice_result = None
        self.exam_results = []
        self.deadline = None
        self.last_saved_record = None

    def _require_mode(self, *modes: QuizMode) -> None:
        if self.mode not in modes:
            allowed = ", ".join(m.value for m in modes)
            raise QuizStateError(f"Not allowed in mode '{self.mode.value}' (needs: {allowed})")

    # -------------------------------------------------------------------------
    # Navigation between screens
    # -------------------------------------------------------------------------

    def set_lesson(self, lesson: Lesson) -> None:
        """Switch lesson; the flow starts over at the mode selection."""
        self.lesson = lesson
        self.mode = QuizMode.SELECT
        self._reset_quiz_state()

    def open_practice_list(self) -> None:
        if self.mode == QuizMode.EXAM:
            raise QuizStateError("Question list is not available during an exam")
        self.mode = QuizMode.PRACTICE_LIST

    def start_practice_at(self, index: int) -> None:
        """Practice a single question (0-based index)."""
        if not 0 <= index < self.lesson.question_count:
            raise QuizStateError(
                f"Question index {index} out of range (0..{self.lesson.question_count - 1})"
            )
        if self.mode == QuizMode.EXAM:
            raise QuizStateError("Cannot start practice during an exam")
        self.current_index = index
        self.mode = QuizMode.PRACTICE
        self._prepare_inputs()

    def start_exam(self) -> None:
        """Start a timed exam over every question of the lesson."""
        seconds_per_question = load_app_config().review.seconds_per_question

        self.mode = QuizMode.EXAM
        self._reset_quiz_state()
        self.time_limit = self.lesson.question_count * seconds_per_question
        self.deadline = self.clock() + self.time_limit
        self._prepare_inputs()

        logger.info(
            "exam_started",
            lesson_id=self.lesson.id,
            questions=self.lesson.question_count,
            time_limit=self.time_limit,
        )

    def open_history(self) -> list[ExamRecord]:
        """Show the saved exam records, newest first."""
        if self.mode == QuizMode.EXAM:
            raise QuizStateError("Finish or leave the exam first")
        self.mode = QuizMode.HISTORY
        self.selected_record = None
        return self.history.load()

    def open_record(self, record_id: str) -> ExamRecord:
        if self.mode == QuizMode.EXAM:
            raise QuizStateError("Finish or leave the exam first")
        record = self.history.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Exam record '{record_id}' not found")
        self.selected_record = record
        self.mode = QuizMode.HISTORY_DETAIL
        return record

    def back(self) -> None:
        """Leave the current screen.

        A record detail returns to the record list; anything else returns
        to the mode selection. Leaving an exam abandons it unsaved.
        """
        if self.mode == QuizMode.HISTORY_DETAIL:
            self.mode = QuizMode.HISTORY
            self.selected_record = None
            return
        if self.mode == QuizMode.EXAM:
            logger.info("exam_abandoned", lesson_id=self.lesson.id, answered=len(self.exam_results))
            self.deadline = None
        self.mode = QuizMode.SELECT

    def restart(self) -> None:
        """Back to the mode selection with a clean slate."""
        self.mode = QuizMode.SELECT
        self._reset_quiz_state()

    # -------------------------------------------------------------------------
    # Answering
    # -------------------------------------------------------------------------

    def submit(self, parts: list[str]) -> GradingResult | None:
        """Grade the current question.

        Only one answer can be out for grading at a time; a second submit
        meanwhile is rejected. A grade that comes back after the student
        left the question (back, restart, lesson change) is discarded.

        Args:
            parts: One string per input box

        Returns:
            The grading result, or None if every input was blank
            (nothing is sent for grading)

        Raises:
            QuizStateError: Not answering, grading already in progress,
                inputs locked, time is up, or the wrong number of inputs
        """
        if not self._grade_lock.acquire(blocking=False):
            raise QuizStateError("Grading in progress; wait for the result")
        try:
            return self._submit_locked(parts)
        finally:
            self._grade_lock.release()

    def _submit_locked(self, parts: list[str]) -> GradingResult | None:
        if self.mode == QuizMode.EXAM and self._expire_if_due():
            raise QuizStateError("Time is up; the exam has ended")

        self._require_mode(QuizMode.PRACTICE, QuizMode.EXAM)

        if self.mode == QuizMode.PRACTICE and self.practice_result is not None:
            raise QuizStateError("Already graded; move to the next question first")

        if len(parts) != self.expected_parts:
            raise QuizStateError(
                f"Expected {self.expected_parts} answer part(s), got {len(parts)}"
            )

        self.answers = list(parts)
        if is_blank(parts):
            return None

        question = self.current_question
        combined = combine_answers(parts)
        started = (self.mode, self._round)

        result = grade_answer(
            question.question,
            combined,
            question.answer,
            client=self.client,
            persona=self.persona,
        )

        if (self.mode, self._round) != started:
            logger.info("grade_discarded", lesson_id=self.lesson.id, question_id=question.id)
            return result

        if self.mode == QuizMode.PRACTICE:
            self.practice_result = result
            return result

        # The deadline may pass while grading is in flight; the answer still counts
        self.exam_results.append(
            ExamQuestionResult(
                question_id=question.id,
                question_text=question.question,
                user_answer=combined,
                correct_answer=question.answer,
                grading=result,
            )
        )

        if self.is_last_question:
            self.finish_exam()
        else:
            self.current_index += 1
            self._prepare_inputs()

        return result

    def next_practice(self) -> None:
        """Move to the next question, wrapping to the first."""
        self._require_mode(QuizMode.PRACTICE)
        self.current_index = (self.current_index + 1) % self.lesson.question_count
        self._prepare_inputs()

    # -------------------------------------------------------------------------
    # Timer & completion
    # -------------------------------------------------------------------------

    def remaining_seconds(self) -> int:
        """Seconds left on the exam clock (0 outside an exam)."""
        if self.mode != QuizMode.EXAM or self.deadline is None:
            return 0
        return max(0, math.ceil(self.deadline - self.clock()))

    def tick(self) -> bool:
        """Check the exam clock; end the exam if time is up.

        While an answer is out for grading the check is deferred, so the
        late answer still lands in the saved record.

        Returns:
            True if this call ended the exam
        """
        if not self._grade_lock.acquire(blocking=False):
            return False
        try:
            return self._expire_if_due()
        finally:
            self._grade_lock.release()

    def _expire_if_due(self) -> bool:
        if self.mode != QuizMode.EXAM or self.deadline is None:
            return False
        if self.clock() < self.deadline:
            return False

        logger.info("exam_timed_out", lesson_id=self.lesson.id, answered=len(self.exam_results))
        self.finish_exam()
        return True

    def finish_exam(self) -> ExamRecord | None:
        """End the exam and save it if anything was graded.

        Returns:
            The saved record, or None if nothing was answered
        """
        self._require_mode(QuizMode.EXAM)
        self.mode = QuizMode.EXAM_RESULT
        self.deadline = None

        if not self.exam_results:
            logger.info("exam_finished_empty", lesson_id=self.lesson.id)
            return None

        record = build_exam_record(
            self.exam_results,
            lesson_title=self.lesson.title,
            total_questions=self.lesson.question_count,
            now_ms=int(self.clock() * 1000),
        )
        self.history.add(record)
        self.last_saved_record = record

        logger.info(
            "exam_finished",
            lesson_id=self.lesson.id,
            answered=len(self.exam_results),
            total_score=record.total_score,
        )
        return record

    def summary(self) -> ExamSummary:
        """Scores for the finished exam or the selected history record."""
        if self.mode == QuizMode.HISTORY_DETAIL and self.selected_record is not None:
            results = self.selected_record.results
            total_questions = self.selected_record.total_questions
        elif self.mode == QuizMode.EXAM_RESULT:
            results = self.exam_results
            total_questions = self.lesson.question_count
        else:
            raise QuizStateError(f"No exam summary in mode '{self.mode.value}'")

        return ExamSummary(
            total_score=sum(r.grading.score for r in results),
            total_questions=total_questions,
            correct_count=sum(1 for r in results if r.grading.is_correct),
            results=list(results),
        )

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of the quiz view for clients."""
        data: dict[str, Any] = {
            "lesson_id": self.lesson.id,
            "mode": self.mode.value,
            "current_index": self.current_index,
            "question_count": self.lesson.question_count,
            "grading": self.grading,
        }
        if self.mode in (QuizMode.PRACTICE, QuizMode.EXAM):
            data.update(
                {
                    "question": self.current_question.question,
                    "expected_parts": self.expected_parts,
                    "answers": list(self.answers),
                    "practice_result": self.practice_result.to_dict() if self.practice_result else None,
                }
            )
            if self.mode == QuizMode.PRACTICE and self.practice_result is not None:
                data["reference_points"] = split_answer_points(self.current_question.answer)
        if self.mode == QuizMode.EXAM:
            data["remaining_seconds"] = self.remaining_seconds()
            data["time_limit"] = self.time_limit
            data["answered"] = len(self.exam_results)
        if self.mode in (QuizMode.EXAM_RESULT, QuizMode.HISTORY_DETAIL):
            data["summary"] = self.summary().to_dict()
        if self.mode == QuizMode.HISTORY_DETAIL and self.selected_record is not None:
            data["record_id"] = self.selected_record.id
        return data
