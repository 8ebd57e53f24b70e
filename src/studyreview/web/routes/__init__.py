"""Route handlers for Web API."""

from studyreview.web.routes.health import router as health_router
from studyreview.web.routes.lessons import router as lessons_router
from studyreview.web.routes.navigation import router as navigation_router
from studyreview.web.routes.quiz import router as quiz_router
from studyreview.web.routes.chat import router as chat_router
from studyreview.web.routes.history import router as history_router
from studyreview.web.routes.preferences import router as preferences_router
from studyreview.web.routes.personas import router as personas_router

__all__ = [
    "health_router",
    "lessons_router",
    "navigation_router",
    "quiz_router",
    "chat_router",
    "history_router",
    "preferences_router",
    "personas_router",
]
