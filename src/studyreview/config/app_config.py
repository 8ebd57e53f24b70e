"""Application settings.

Read from <data_dir>/config/app_config_v1.yaml; every key is optional
and anything left out keeps its built-in value. The data directory is
./data unless STUDYREVIEW_DATA_DIR points elsewhere.

Usage:
    from studyreview.config.app_config import load_app_config, get_provider_config

    seconds = load_app_config().review.seconds_per_question
    gemini = get_provider_config("gemini")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

DATA_DIR_ENV = "STUDYREVIEW_DATA_DIR"
PROXY_URL_ENV = "STUDYREVIEW_PROXY_URL"

# Host of the hosted generative-language API; a proxy mirror replaces it
GEMINI_HOST = "https://generativelanguage.googleapis.com"

CONFIG_FILE = Path("config/app_config_v1.yaml")


def get_data_dir() -> Path:
    """Base directory for config and state (env override, default ./data)."""
    return Path(os.environ.get(DATA_DIR_ENV, "data"))


def _known_keys(cls: type, data: dict[str, Any], section: str) -> dict[str, Any]:
    """Keep only keys that are fields of a config dataclass."""
    names = {f.name for f in fields(cls)}
    extra = sorted(set(data) - names)
    if extra:
        logger.warning("unknown_config_keys", section=section, keys=extra)
    return {k: v for k, v in data.items() if k in names}


@dataclass
class ProviderConfig:
    """One OpenAI-compatible endpoint and where its keys come from."""

    base_url: str | None
    default_model: str
    chat_model: str | None = None
    api_key_env: str | None = None
    fallback_key_env: str | None = None
    supports_json_object: bool = False

    @classmethod
    def from_mapping(cls, name: str, data: dict[str, Any]) -> ProviderConfig:
        values = _known_keys(cls, data, f"providers.{name}")
        values.setdefault("base_url", None)
        values.setdefault("default_model", "default")
        return cls(**values)

    def get_api_keys(self) -> list[str]:
        """Keys from the environment; one variable may hold several, comma-separated."""
        raw = os.environ.get(self.api_key_env, "") if self.api_key_env else ""
        if not raw and self.fallback_key_env:
            raw = os.environ.get(self.fallback_key_env, "")
        return [k.strip() for k in raw.split(",") if k.strip()]

    def model_for(self, purpose: str) -> str:
        """Model used for "grading" or "chat"."""
        if purpose == "chat" and self.chat_model:
            return self.chat_model
        return self.default_model


@dataclass
class ReviewConfig:
    """Defaults for grading, exams and chat."""

    default_provider: str = "gemini"
    default_persona: str = "gang_ge"
    seconds_per_question: int = 120
    pass_score: int = 80
    chat_history_window: int = 10
    grading_temperature: float = 0.3
    chat_temperature: float = 0.7
    proxy_url: str | None = None


# Grading runs on the light model, the deep-dive chat on the stronger one
BUILTIN_PROVIDERS: dict[str, dict[str, Any]] = {
    "gemini": {
        "base_url": f"{GEMINI_HOST}/v1beta/openai/",
        "default_model": "gemini-2.5-flash-lite",
        "chat_model": "gemini-3-flash-preview",
        "api_key_env": "GEMINI_API_KEY",
        "fallback_key_env": "API_KEY",
        "supports_json_object": True,
    },
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "default_model": "gpt-4o-mini",
        "api_key_env": "OPENAI_API_KEY",
        "supports_json_object": True,
    },
    "lmstudio": {
        "base_url": "http://localhost:1234/v1",
        "default_model": "llama-3.2-3b-instruct",
    },
}


@dataclass
class AppConfig:
    """Everything read from app_config_v1.yaml."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    paths: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> AppConfig:
        """Build settings from parsed YAML.

        A file without a providers section keeps the built-in providers.
        The proxy environment variable wins over review.proxy_url.
        """
        provider_data = data.get("providers") or BUILTIN_PROVIDERS
        review = ReviewConfig(**_known_keys(ReviewConfig, data.get("review") or {}, "review"))
        review.proxy_url = os.environ.get(PROXY_URL_ENV) or review.proxy_url

        return cls(
            providers={
                name: ProviderConfig.from_mapping(name, entry or {})
                for name, entry in provider_data.items()
            },
            review=review,
            paths=data.get("paths") or {},
        )

    def state_dir(self) -> Path:
        """Directory holding the key-value store."""
        return Path(self.paths.get("state_dir") or get_data_dir() / "state")


_config: AppConfig | None = None


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Settings, read from disk on first call and cached afterwards."""
    global _config
    if _config is not None and not force_reload:
        return _config

    path = get_data_dir() / CONFIG_FILE
    if path.exists():
        logger.debug("app_config_loading", source=str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("app_config_defaults")
        data = {}

    _config = AppConfig.from_mapping(data)
    return _config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Settings for one provider ("gemini", "openai", "lmstudio"), or None."""
    return load_app_config().providers.get(provider)


def clear_config_cache() -> None:
    global _config
    _config = None
