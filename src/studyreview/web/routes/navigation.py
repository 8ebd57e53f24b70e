"""Navigation endpoints.

Each client (browser tab, CLI) keeps its own view and sidebar state
under a client ID of its choosing.
"""

from fastapi import APIRouter, HTTPException, status

from studyreview.content.lessons import LessonNotFoundError
from studyreview.core.navigation import NavigationError, Navigator, ViewMode
from studyreview.web.schemas import (
    NavigationResponse,
    SelectLessonRequest,
    SidebarRequest,
    ToggleUnitRequest,
    ViewRequest,
)
from studyreview.web.sessions import get_session_manager

router = APIRouter(prefix="/api/navigation", tags=["navigation"])


def _to_response(client_id: str, navigator: Navigator) -> NavigationResponse:
    return NavigationResponse(client_id=client_id, sidebar=navigator.sidebar(), **navigator.to_dict())


@router.get("/{client_id}", response_model=NavigationResponse)
async def get_navigation(client_id: str) -> NavigationResponse:
    """Get a client's navigation state (created on first access)."""
    navigator = await get_session_manager().get_navigator(client_id)
    return _to_response(client_id, navigator)


@router.post("/{client_id}/start", response_model=NavigationResponse)
async def start(client_id: str) -> NavigationResponse:
    """Leave the home screen for the first lesson."""
    navigator = await get_session_manager().get_navigator(client_id)
    navigator.start()
    return _to_response(client_id, navigator)


@router.post("/{client_id}/select", response_model=NavigationResponse)
async def select_lesson(client_id: str, request: SelectLessonRequest) -> NavigationResponse:
    """Open a lesson in the review view."""
    navigator = await get_session_manager().get_navigator(client_id)

    try:
        navigator.select_lesson(request.lesson_id)
    except LessonNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _to_response(client_id, navigator)


@router.post("/{client_id}/toggle-unit", response_model=NavigationResponse)
async def toggle_unit(client_id: str, request: ToggleUnitRequest) -> NavigationResponse:
    """Expand or collapse a unit in the sidebar."""
    navigator = await get_session_manager().get_navigator(client_id)
    navigator.toggle_unit(request.unit)
    return _to_response(client_id, navigator)


@router.post("/{client_id}/home", response_model=NavigationResponse)
async def go_home(client_id: str) -> NavigationResponse:
    navigator = await get_session_manager().get_navigator(client_id)
    navigator.go_home()
    return _to_response(client_id, navigator)


@router.post("/{client_id}/view", response_model=NavigationResponse)
async def set_view(client_id: str, request: ViewRequest) -> NavigationResponse:
    """Switch between review, quiz and deep-dive."""
    navigator = await get_session_manager().get_navigator(client_id)

    try:
        navigator.set_view(ViewMode(request.view_mode))
    except NavigationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return _to_response(client_id, navigator)


@router.post("/{client_id}/sidebar", response_model=NavigationResponse)
async def set_sidebar(client_id: str, request: SidebarRequest) -> NavigationResponse:
    """Open or close the sidebar drawer."""
    navigator = await get_session_manager().get_navigator(client_id)
    if request.open:
        navigator.open_sidebar()
    else:
        navigator.close_sidebar()
    return _to_response(client_id, navigator)
