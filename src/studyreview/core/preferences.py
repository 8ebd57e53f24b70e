"""UI theme preference.

The theme flag lives under the "theme" key of the key-value store as
"dark" or "light". Until the user picks one, the system preference
decides.
"""

from __future__ import annotations

from typing import Literal

import structlog

from studyreview.storage.kv_store import KeyValueStore

logger = structlog.get_logger(__name__)

THEME_KEY = "theme"

Theme = Literal["dark", "light"]


def get_saved_theme(store: KeyValueStore) -> Theme | None:
    """Theme the user picked, or None if never set (or unrecognized)."""
    saved = store.get_item(THEME_KEY)
    if saved in ("dark", "light"):
        return saved  # type: ignore[return-value]
    return None


def resolve_theme(store: KeyValueStore, prefers_dark: bool = False) -> Theme:
    """Theme to render with: the saved choice, else the system preference."""
    saved = get_saved_theme(store)
    if saved is not None:
        return saved
    return "dark" if prefers_dark else "light"


def set_theme(store: KeyValueStore, theme: Theme) -> Theme:
    store.set_item(THEME_KEY, theme)
    logger.debug("theme_saved", theme=theme)
    return theme


def toggle_theme(store: KeyValueStore, prefers_dark: bool = False) -> Theme:
    """Flip the current theme and save the new choice."""
    current = resolve_theme(store, prefers_dark)
    return set_theme(store, "light" if current == "dark" else "dark")
