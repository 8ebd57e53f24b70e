"""Deep-dive chat endpoints."""

from fastapi import APIRouter, HTTPException, status

from studyreview.content.lessons import LessonNotFoundError, require_lesson
from studyreview.web.schemas import (
    ChatInputRequest,
    ChatLessonRequest,
    ChatMessageResponse,
    ChatReplyResponse,
    ChatSessionResponse,
    ChatStartRequest,
    FullContextRequest,
)
from studyreview.web.sessions import ChatEntry, get_session_manager

router = APIRouter(prefix="/api/chat", tags=["chat"])


async def _get_entry(session_id: str) -> ChatEntry:
    entry = await get_session_manager().get_chat(session_id)

    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat session '{session_id}' not found",
        )

    return entry


def _to_response(entry: ChatEntry) -> ChatSessionResponse:
    chat = entry.chat
    return ChatSessionResponse(
        session_id=entry.session_id,
        lesson_id=chat.lesson.id,
        full_context=chat.use_full_context,
        pending=chat.pending,
        messages=[ChatMessageResponse(**m.to_dict()) for m in chat.messages],
    )


@router.post("", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_chat(request: ChatStartRequest) -> ChatSessionResponse:
    """Start a conversation; it opens with the tutor's greeting."""
    try:
        entry = await get_session_manager().create_chat(request.lesson_id, request.full_context)
    except LessonNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _to_response(entry)


@router.get("/{session_id}", response_model=ChatSessionResponse)
async def get_chat(session_id: str) -> ChatSessionResponse:
    return _to_response(await _get_entry(session_id))


@router.post("/{session_id}/messages", response_model=ChatReplyResponse)
async def send_message(session_id: str, request: ChatInputRequest) -> ChatReplyResponse:
    """Ask the tutor a question.

    Blank input, or input while a reply is pending, is ignored and
    the reply is null.
    """
    manager = get_session_manager()
    entry = await _get_entry(session_id)

    reply = await manager.send_chat(entry, request.text)

    return ChatReplyResponse(
        reply=ChatMessageResponse(**reply.to_dict()) if reply else None,
        session=_to_response(entry),
    )


@router.post("/{session_id}/lesson", response_model=ChatSessionResponse)
async def change_lesson(session_id: str, request: ChatLessonRequest) -> ChatSessionResponse:
    """Switch lesson; the conversation restarts with a fresh greeting."""
    entry = await _get_entry(session_id)

    try:
        entry.chat.set_lesson(require_lesson(request.lesson_id))
    except LessonNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _to_response(entry)


@router.post("/{session_id}/full-context", response_model=ChatSessionResponse)
async def set_full_context(session_id: str, request: FullContextRequest) -> ChatSessionResponse:
    """Switch between lesson and whole-book scope (restarts the conversation)."""
    entry = await _get_entry(session_id)
    entry.chat.set_full_context(request.enabled)
    return _to_response(entry)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_chat(session_id: str) -> None:
    if not await get_session_manager().end_chat(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Chat session '{session_id}' not found",
        )
