"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from studyreview.web.schemas import HealthResponse
from studyreview.web.sessions import get_session_manager

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check API health status and whether an AI key is configured."""
    return HealthResponse(
        status="ok",
        version="0.1.0",
        llm_configured=get_session_manager().client.has_credentials,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
