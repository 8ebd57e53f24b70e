"""Lesson endpoints."""

from fastapi import APIRouter, HTTPException, status

from studyreview.content.formatting import format_answer_lines, split_answer_points
from studyreview.content.lessons import Lesson, get_lesson, group_by_unit, load_lessons
from studyreview.web.schemas import (
    LessonListResponse,
    LessonResponse,
    LessonSummary,
    QAPairResponse,
    UnitResponse,
)

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


def _lesson_to_summary(lesson: Lesson) -> LessonSummary:
    return LessonSummary(
        id=lesson.id,
        title=lesson.title,
        unit=lesson.unit,
        question_count=lesson.question_count,
    )


@router.get("", response_model=LessonListResponse)
async def list_lessons() -> LessonListResponse:
    """List all lessons grouped by unit."""
    lessons = load_lessons()
    units = [
        UnitResponse(unit=unit, lessons=[_lesson_to_summary(l) for l in unit_lessons])
        for unit, unit_lessons in group_by_unit(lessons).items()
    ]
    return LessonListResponse(units=units, count=len(lessons))


@router.get("/{lesson_id}", response_model=LessonResponse)
async def get_lesson_by_id(lesson_id: int) -> LessonResponse:
    """Get a lesson with its Q/A pairs split for display."""
    lesson = get_lesson(lesson_id)

    if lesson is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Lesson {lesson_id} not found",
        )

    return LessonResponse(
        id=lesson.id,
        title=lesson.title,
        unit=lesson.unit,
        qa=[
            QAPairResponse(
                id=qa.id,
                question=qa.question,
                answer=qa.answer,
                points=split_answer_points(qa.answer),
                lines=format_answer_lines(qa.answer),
            )
            for qa in lesson.qa
        ],
    )
