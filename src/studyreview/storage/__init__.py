"""Persistence for the study review app.

Provides:
- KeyValueStore: a JSON-file stand-in for browser local storage
"""

from studyreview.storage.kv_store import KeyValueStore, get_default_store

__all__ = ["KeyValueStore", "get_default_store"]
