"""Bundled course content: the lesson table and answer formatting."""

from studyreview.content.formatting import (
    combine_answers,
    count_answer_points,
    format_answer_lines,
    is_blank,
    split_answer_points,
)
from studyreview.content.lessons import (
    Lesson,
    LessonNotFoundError,
    QAPair,
    build_full_context,
    build_lesson_context,
    first_lesson,
    get_lesson,
    group_by_unit,
    load_lessons,
    require_lesson,
)

__all__ = [
    "combine_answers",
    "count_answer_points",
    "format_answer_lines",
    "is_blank",
    "split_answer_points",
    "Lesson",
    "LessonNotFoundError",
    "QAPair",
    "build_full_context",
    "build_lesson_context",
    "first_lesson",
    "get_lesson",
    "group_by_unit",
    "load_lessons",
    "require_lesson",
]
