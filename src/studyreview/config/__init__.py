"""Configuration package for the study review app."""

from studyreview.config.app_config import (
    AppConfig,
    ProviderConfig,
    ReviewConfig,
    get_data_dir,
    get_provider_config,
    load_app_config,
)
from studyreview.config.personas import (
    Persona,
    PersonaReplies,
    get_default_persona,
    get_persona,
    list_personas,
    load_personas,
)

__all__ = [
    "AppConfig",
    "ProviderConfig",
    "ReviewConfig",
    "get_data_dir",
    "get_provider_config",
    "load_app_config",
    "Persona",
    "PersonaReplies",
    "get_default_persona",
    "get_persona",
    "list_personas",
    "load_personas",
]
