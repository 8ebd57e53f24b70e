"""FastAPI application for the history review tutor.

Run with `studyreview serve` or `uvicorn studyreview.web.api:app`.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyreview.config.app_config import get_data_dir
from studyreview.content.lessons import group_by_unit, load_lessons
from studyreview.web.routes import (
    chat_router,
    health_router,
    history_router,
    lessons_router,
    navigation_router,
    personas_router,
    preferences_router,
    quiz_router,
)

logger = structlog.get_logger(__name__)

ROUTERS = (
    health_router,
    lessons_router,
    navigation_router,
    quiz_router,
    chat_router,
    history_router,
    preferences_router,
    personas_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # A malformed lesson table stops the server here rather than on first request
    lessons = load_lessons()
    logger.info(
        "api_startup",
        lessons_found=len(lessons),
        units_found=len(group_by_unit(lessons)),
        data_dir=str(get_data_dir().absolute()),
    )
    yield
    logger.info("api_shutdown")


def create_app() -> FastAPI:
    """Build the app with every router mounted.

    The browser front end may be served from anywhere, so CORS is open.
    """
    app = FastAPI(
        title="Study Review API",
        description="八年级中国历史复习：课文问答、AI 批改、限时考试与纲哥答疑",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in ROUTERS:
        app.include_router(router)

    return app


app = create_app()
