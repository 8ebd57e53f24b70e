"""Lesson table loader.

Loads the bundled course outline from lessons_v1.yaml. The table is
static: lessons are read once, cached, and never written back.

Usage:
    from studyreview.content.lessons import get_lesson, group_by_unit

    lesson = get_lesson(1)
    units = group_by_unit(load_lessons())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Bundled with the package
LESSONS_FILE = Path(__file__).parent / "lessons_v1.yaml"


@dataclass
class QAPair:
    """A single question with its reference answer."""

    id: int
    question: str
    answer: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "question": self.question, "answer": self.answer}


@dataclass
class Lesson:
    """A lesson of the course: a titled list of question/answer pairs."""

    id: int
    title: str
    unit: str
    qa: list[QAPair] = field(default_factory=list)

    def get_question(self, index: int) -> QAPair:
        """Get question by position (0-based)."""
        return self.qa[index]

    @property
    def question_count(self) -> int:
        return len(self.qa)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "unit": self.unit,
            "qa": [q.to_dict() for q in self.qa],
        }


class LessonNotFoundError(Exception):
    """Requested lesson does not exist."""

    pass


class LessonTableError(Exception):
    """The bundled lesson table is malformed."""

    pass


# Module-level cache
_cached_lessons: list[Lesson] | None = None


def _parse_lessons(data: dict[str, Any]) -> list[Lesson]:
    """Parse YAML data into Lesson objects, validating ids."""
    lessons: list[Lesson] = []
    seen_ids: set[int] = set()

    for raw in data.get("lessons", []):
        lesson_id = int(raw["id"])
        if lesson_id in seen_ids:
            raise LessonTableError(f"Duplicate lesson id: {lesson_id}")
        seen_ids.add(lesson_id)

        qa = [
            QAPair(id=int(q["id"]), question=q["question"], answer=q["answer"])
            for q in raw.get("qa", [])
        ]
        if not qa:
            raise LessonTableError(f"Lesson {lesson_id} has no questions")

        lessons.append(
            Lesson(
                id=lesson_id,
                title=raw["title"],
                unit=raw.get("unit", ""),
                qa=qa,
            )
        )

    if not lessons:
        raise LessonTableError("Lesson table is empty")

    return lessons


def load_lessons(force_reload: bool = False, path: Path | None = None) -> list[Lesson]:
    """Load all lessons, in table order.

    Args:
        force_reload: If True, ignore cache and reload from file.
        path: Alternative lesson table (tests)

    Returns:
        List of Lesson objects.
    """
    global _cached_lessons

    if _cached_lessons is not None and not force_reload and path is None:
        return _cached_lessons

    source = path or LESSONS_FILE
    data = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    lessons = _parse_lessons(data)

    logger.debug("loaded_lessons", count=len(lessons), source=str(source))

    if path is None:
        _cached_lessons = lessons
    return lessons


def get_lesson(lesson_id: int) -> Lesson | None:
    """Get a lesson by ID, or None if not found."""
    for lesson in load_lessons():
        if lesson.id == lesson_id:
            return lesson
    return None


def require_lesson(lesson_id: int) -> Lesson:
    """Get a lesson by ID.

    Raises:
        LessonNotFoundError: If no lesson has this ID
    """
    lesson = get_lesson(lesson_id)
    if lesson is None:
        raise LessonNotFoundError(f"Lesson {lesson_id} not found")
    return lesson


def first_lesson() -> Lesson:
    """The lesson the home screen starts with."""
    return load_lessons()[0]


def group_by_unit(lessons: list[Lesson]) -> dict[str, list[Lesson]]:
    """Group lessons by unit, keeping the order units first appear in."""
    groups: dict[str, list[Lesson]] = {}
    for lesson in lessons:
        groups.setdefault(lesson.unit, []).append(lesson)
    return groups


def build_lesson_context(lesson: Lesson) -> str:
    """Render one lesson's outline as Q/A blocks for an LLM prompt."""
    return "\n\n".join(f"Q: {q.question}\nA: {q.answer}" for q in lesson.qa)


def build_full_context(lessons: list[Lesson]) -> str:
    """Render the whole book as lesson-headed Q/A blocks for an LLM prompt."""
    blocks = []
    for lesson in lessons:
        qa_lines = "\n".join(f"Q: {q.question}\nA: {q.answer}" for q in lesson.qa)
        blocks.append(f"Lesson: {lesson.title}\n{qa_lines}")
    return "\n\n".join(blocks)


def clear_lessons_cache() -> None:
    """Clear the lesson cache."""
    global _cached_lessons
    _cached_lessons = None
