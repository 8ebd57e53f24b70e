"""Preference endpoints (theme)."""

from fastapi import APIRouter

from studyreview.core.preferences import get_saved_theme, resolve_theme, set_theme, toggle_theme
from studyreview.web.schemas import ThemeRequest, ThemeResponse
from studyreview.web.sessions import get_session_manager

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@router.get("/theme", response_model=ThemeResponse)
async def get_theme(prefers_dark: bool = False) -> ThemeResponse:
    """Current theme; the system preference applies until one is saved."""
    store = get_session_manager().store
    return ThemeResponse(
        theme=resolve_theme(store, prefers_dark),
        saved=get_saved_theme(store) is not None,
    )


@router.post("/theme/toggle", response_model=ThemeResponse)
async def toggle(prefers_dark: bool = False) -> ThemeResponse:
    store = get_session_manager().store
    return ThemeResponse(theme=toggle_theme(store, prefers_dark), saved=True)


@router.put("/theme", response_model=ThemeResponse)
async def put_theme(request: ThemeRequest) -> ThemeResponse:
    store = get_session_manager().store
    return ThemeResponse(theme=set_theme(store, request.theme), saved=True)
