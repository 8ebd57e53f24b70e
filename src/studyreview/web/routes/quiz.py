"""Quiz endpoints: practice, timed exam and exam history screens."""

from fastapi import APIRouter, HTTPException, status

from studyreview.content.lessons import LessonNotFoundError, require_lesson
from studyreview.core.history import RecordNotFoundError
from studyreview.core.quiz import QuizStateError
from studyreview.web.schemas import (
    AnswerRequest,
    GradingResponse,
    PracticeStartRequest,
    QuizSessionResponse,
    QuizStartRequest,
    QuizStateResponse,
    SubmitResponse,
)
from studyreview.web.sessions import QuizEntry, get_session_manager

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


async def _get_entry(session_id: str) -> QuizEntry:
    entry = await get_session_manager().get_quiz(session_id)

    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Quiz session '{session_id}' not found",
        )

    # Time may have run out since the last request
    entry.quiz.tick()
    return entry


def _to_response(entry: QuizEntry) -> QuizSessionResponse:
    return QuizSessionResponse(
        session_id=entry.session_id,
        state=QuizStateResponse(**entry.quiz.to_dict()),
    )


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("", response_model=QuizSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_quiz(request: QuizStartRequest) -> QuizSessionResponse:
    """Open the quiz view on a lesson."""
    try:
        entry = await get_session_manager().create_quiz(request.lesson_id)
    except LessonNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _to_response(entry)


@router.get("/{session_id}", response_model=QuizSessionResponse)
async def get_quiz(session_id: str) -> QuizSessionResponse:
    """Get quiz state, including the exam countdown."""
    return _to_response(await _get_entry(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_quiz(session_id: str) -> None:
    if not await get_session_manager().end_quiz(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Quiz session '{session_id}' not found",
        )


@router.post("/{session_id}/lesson", response_model=QuizSessionResponse)
async def change_lesson(session_id: str, request: QuizStartRequest) -> QuizSessionResponse:
    """Switch lesson; the quiz starts over at the mode selection."""
    entry = await _get_entry(session_id)

    try:
        entry.quiz.set_lesson(require_lesson(request.lesson_id))
    except LessonNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _to_response(entry)


@router.post("/{session_id}/practice-list", response_model=QuizSessionResponse)
async def open_practice_list(session_id: str) -> QuizSessionResponse:
    entry = await _get_entry(session_id)

    try:
        entry.quiz.open_practice_list()
    except QuizStateError as e:
        raise _conflict(e)

    return _to_response(entry)


@router.post("/{session_id}/practice", response_model=QuizSessionResponse)
async def start_practice(session_id: str, request: PracticeStartRequest) -> QuizSessionResponse:
    """Practice a single question."""
    entry = await _get_entry(session_id)

    try:
        entry.quiz.start_practice_at(request.index)
    except QuizStateError as e:
        raise _conflict(e)

    return _to_response(entry)


@router.post("/{session_id}/exam", response_model=QuizSessionResponse)
async def start_exam(session_id: str) -> QuizSessionResponse:
    """Start a timed exam over the whole lesson."""
    entry = await _get_entry(session_id)
    entry.quiz.start_exam()
    return _to_response(entry)


@router.post("/{session_id}/answer", response_model=SubmitResponse)
async def submit_answer(session_id: str, request: AnswerRequest) -> SubmitResponse:
    """Submit the answer inputs for the current question.

    Blank answers are not graded; the response then has graded=False.
    """
    manager = get_session_manager()
    entry = await _get_entry(session_id)

    try:
        result = await manager.submit_answer(entry, request.parts)
    except QuizStateError as e:
        raise _conflict(e)

    return SubmitResponse(
        graded=result is not None,
        result=GradingResponse(**result.to_dict()) if result else None,
        state=QuizStateResponse(**entry.quiz.to_dict()),
    )


@router.post("/{session_id}/next", response_model=QuizSessionResponse)
async def next_practice(session_id: str) -> QuizSessionResponse:
    entry = await _get_entry(session_id)

    try:
        entry.quiz.next_practice()
    except QuizStateError as e:
        raise _conflict(e)

    return _to_response(entry)


@router.post("/{session_id}/back", response_model=QuizSessionResponse)
async def go_back(session_id: str) -> QuizSessionResponse:
    """Leave the current screen (abandons a running exam)."""
    entry = await _get_entry(session_id)
    entry.quiz.back()
    return _to_response(entry)


@router.post("/{session_id}/restart", response_model=QuizSessionResponse)
async def restart(session_id: str) -> QuizSessionResponse:
    entry = await _get_entry(session_id)
    entry.quiz.restart()
    return _to_response(entry)


@router.post("/{session_id}/history", response_model=QuizSessionResponse)
async def open_history(session_id: str) -> QuizSessionResponse:
    """Show the exam history screen."""
    entry = await _get_entry(session_id)

    try:
        entry.quiz.open_history()
    except QuizStateError as e:
        raise _conflict(e)

    return _to_response(entry)


@router.post("/{session_id}/history/{record_id}", response_model=QuizSessionResponse)
async def open_record(session_id: str, record_id: str) -> QuizSessionResponse:
    """Show a saved exam record with its per-question results."""
    entry = await _get_entry(session_id)

    try:
        entry.quiz.open_record(record_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except QuizStateError as e:
        raise _conflict(e)

    return _to_response(entry)
