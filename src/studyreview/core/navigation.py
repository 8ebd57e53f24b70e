"""View switching and the unit accordion.

The app shows one of four views. Home has no active lesson; the other
three work on the lesson picked from the sidebar, where lessons are
grouped by unit and at most one unit is expanded at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from studyreview.content.lessons import Lesson, first_lesson, group_by_unit, load_lessons, require_lesson

logger = structlog.get_logger(__name__)


class ViewMode(str, Enum):
    """Top-level views."""

    HOME = "home"
    REVIEW = "review"
    QUIZ = "quiz"
    DEEP_DIVE = "deep-dive"


class NavigationError(Exception):
    """View change not possible in the current state."""

    pass


def _initial_expanded_units() -> list[str]:
    unit = first_lesson().unit
    return [unit] if unit else []


@dataclass
class Navigator:
    """Navigation state of one client."""

    view_mode: ViewMode = ViewMode.HOME
    active_lesson_id: int | None = None
    sidebar_open: bool = False
    expanded_units: list[str] = field(default_factory=_initial_expanded_units)

    @property
    def active_lesson(self) -> Lesson | None:
        if self.active_lesson_id is None:
            return None
        return require_lesson(self.active_lesson_id)

    def select_lesson(self, lesson_id: int) -> Lesson:
        """Open a lesson in review, collapsing every other unit.

        Raises:
            LessonNotFoundError: If no lesson has this ID
        """
        lesson = require_lesson(lesson_id)
        self.active_lesson_id = lesson.id
        self.view_mode = ViewMode.REVIEW
        self.sidebar_open = False
        self.expanded_units = [lesson.unit]
        logger.debug("lesson_selected", lesson_id=lesson.id)
        return lesson

    def start(self) -> Lesson:
        """Home screen "start": open the first lesson."""
        return self.select_lesson(first_lesson().id)

    def toggle_unit(self, unit: str) -> list[str]:
        """Collapse the unit if open, otherwise expand only this unit."""
        self.expanded_units = [] if unit in self.expanded_units else [unit]
        return self.expanded_units

    def go_home(self) -> None:
        self.view_mode = ViewMode.HOME
        self.active_lesson_id = None
        self.sidebar_open = False

    def set_view(self, mode: ViewMode) -> None:
        """Switch view; lesson views need an active lesson."""
        if mode == ViewMode.HOME:
            self.go_home()
            return
        if self.active_lesson_id is None:
            raise NavigationError(f"View '{mode.value}' needs an active lesson")
        self.view_mode = mode

    def open_sidebar(self) -> None:
        self.sidebar_open = True

    def close_sidebar(self) -> None:
        self.sidebar_open = False

    def sidebar(self) -> list[dict[str, Any]]:
        """Units with their lessons, as the sidebar lists them."""
        return [
            {
                "unit": unit,
                "expanded": unit in self.expanded_units,
                "lessons": [
                    {
                        "id": lesson.id,
                        "title": lesson.title,
                        "active": lesson.id == self.active_lesson_id,
                    }
                    for lesson in lessons
                ],
            }
            for unit, lessons in group_by_unit(load_lessons()).items()
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        lesson = self.active_lesson
        return {
            "view_mode": self.view_mode.value,
            "active_lesson_id": self.active_lesson_id,
            "active_lesson_title": lesson.title if lesson else None,
            "sidebar_open": self.sidebar_open,
            "expanded_units": list(self.expanded_units),
        }
