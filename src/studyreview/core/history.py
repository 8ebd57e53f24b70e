"""Exam history repository.

Responsibilities:
- Keep completed exam records under one key of the key-value store
- Newest record first; every save rewrites the whole array
- Read records back verbatim

Output structure (JSON array under "hm8_exam_history"):
- [{id, timestamp, lessonTitle, totalScore, totalQuestions, results[]}]
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from studyreview.core.grader import GradingResult
from studyreview.storage.kv_store import KeyValueStore

logger = structlog.get_logger(__name__)

HISTORY_KEY = "hm8_exam_history"


@dataclass
class ExamQuestionResult:
    """One graded exam answer."""

    question_id: int
    question_text: str
    user_answer: str
    correct_answer: str
    grading: GradingResult

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "questionId": self.question_id,
            "questionText": self.question_text,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "grading": self.grading.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamQuestionResult:
        return cls(
            question_id=data["questionId"],
            question_text=data.get("questionText", ""),
            user_answer=data.get("userAnswer", ""),
            correct_answer=data.get("correctAnswer", ""),
            grading=GradingResult.from_dict(data.get("grading", {})),
        )


@dataclass
class ExamRecord:
    """Summary of one completed timed exam."""

    id: str
    timestamp: int
    lesson_title: str
    total_score: int
    total_questions: int
    results: list[ExamQuestionResult] = field(default_factory=list)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.results if r.grading.is_correct)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "lessonTitle": self.lesson_title,
            "totalScore": self.total_score,
            "totalQuestions": self.total_questions,
            "results": [r.to_dict() for r in self.results],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamRecord:
        return cls(
            id=str(data["id"]),
            timestamp=int(data["timestamp"]),
            lesson_title=data.get("lessonTitle", ""),
            total_score=int(data.get("totalScore", 0)),
            total_questions=int(data.get("totalQuestions", 0)),
            results=[ExamQuestionResult.from_dict(r) for r in data.get("results", [])],
        )


class RecordNotFoundError(LookupError):
    """No exam record with the requested ID."""

    pass


def build_exam_record(
    results: list[ExamQuestionResult],
    lesson_title: str,
    total_questions: int,
    now_ms: int,
) -> ExamRecord:
    """Create a record for a finished exam; the id is its timestamp."""
    return ExamRecord(
        id=str(now_ms),
        timestamp=now_ms,
        lesson_title=lesson_title,
        total_score=sum(r.grading.score for r in results),
        total_questions=total_questions,
        results=list(results),
    )


class ExamHistoryRepository:
    """Exam records persisted as a JSON array in a key-value store."""

    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY):
        self.store = store
        self.key = key

    def load_raw(self) -> list[dict[str, Any]]:
        """Stored array exactly as saved. Missing or corrupt reads as []."""
        stored = self.store.get_item(self.key)
        if not stored:
            return []

        try:
            data = json.loads(stored)
        except json.JSONDecodeError as e:
            logger.error("exam_history_load_failed", error=str(e))
            return []

        if not isinstance(data, list):
            logger.error("exam_history_not_a_list")
            return []

        return data

    def load(self) -> list[ExamRecord]:
        """All records, newest first."""
        records = []
        for item in self.load_raw():
            try:
                records.append(ExamRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("exam_record_skipped", error=str(e))
        return records

    def add(self, record: ExamRecord) -> list[dict[str, Any]]:
        """Prepend a record and persist the whole array.

        Earlier entries are written back exactly as they were read.

        Returns:
            The stored array after the write
        """
        records = [record.to_dict()] + self.load_raw()
        self.store.set_item(self.key, json.dumps(records, ensure_ascii=False))
        logger.info(
            "exam_record_saved",
            record_id=record.id,
            lesson_title=record.lesson_title,
            total_score=record.total_score,
            history_size=len(records),
        )
        return records

    def get(self, record_id: str) -> ExamRecord | None:
        """Find a record by ID."""
        for record in self.load():
            if record.id == record_id:
                return record
        return None

    def clear(self) -> None:
        """Delete all records."""
        self.store.remove_item(self.key)
        logger.info("exam_history_cleared")
