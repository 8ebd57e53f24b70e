"""JSON-file key-value store.

Plays the role browser local storage plays for a web front-end: string
keys mapped to string values, every write rewriting the whole file.
Callers JSON-encode structured values themselves.

Usage:
    from studyreview.storage.kv_store import KeyValueStore

    store = KeyValueStore(Path("data/state/local_storage.json"))
    store.set_item("theme", "dark")
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from studyreview.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

STORE_FILENAME = "local_storage.json"


class KeyValueStore:
    """String-to-string store persisted as one JSON object."""

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> dict[str, str]:
        """Read the whole store. Missing or corrupt file reads as empty."""
        if not self.path.exists():
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("kv_store_read_failed", path=str(self.path), error=str(e))
            return {}

        if not isinstance(data, dict):
            logger.error("kv_store_not_an_object", path=str(self.path))
            return {}

        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def get_item(self, key: str) -> str | None:
        """Get the value stored under key, or None."""
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        data = self._read()
        data[key] = value
        self._write(data)
        logger.debug("kv_store_set", key=key, size=len(value))

    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read().keys())

    def clear(self) -> None:
        """Remove every key."""
        self._write({})


def get_default_store() -> KeyValueStore:
    """Store under the configured state directory."""
    return KeyValueStore(load_app_config().state_dir() / STORE_FILENAME)
