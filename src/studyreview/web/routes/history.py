"""Exam history endpoints."""

from fastapi import APIRouter, HTTPException, status

from studyreview.core.history import ExamRecord
from studyreview.core.quiz import format_timestamp
from studyreview.web.schemas import ExamRecordResponse, ExamRecordSummary, HistoryListResponse
from studyreview.web.sessions import get_session_manager

router = APIRouter(prefix="/api/history", tags=["history"])


def _record_to_summary(record: ExamRecord) -> ExamRecordSummary:
    average = round(record.total_score / record.total_questions) if record.total_questions else 0
    return ExamRecordSummary(
        id=record.id,
        timestamp=record.timestamp,
        date=format_timestamp(record.timestamp),
        lessonTitle=record.lesson_title,
        totalScore=record.total_score,
        totalQuestions=record.total_questions,
        averageScore=average,
    )


@router.get("", response_model=HistoryListResponse)
async def list_records() -> HistoryListResponse:
    """List saved exam records, newest first."""
    records = get_session_manager().history().load()
    return HistoryListResponse(
        records=[_record_to_summary(r) for r in records],
        count=len(records),
    )


@router.get("/{record_id}", response_model=ExamRecordResponse)
async def get_record(record_id: str) -> ExamRecordResponse:
    record = get_session_manager().history().get(record_id)

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Exam record '{record_id}' not found",
        )

    return ExamRecordResponse(**record.to_dict())


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_records() -> None:
    """Delete every saved exam record."""
    get_session_manager().history().clear()
