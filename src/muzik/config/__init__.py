"""Configuration module for muzik."""

from .settings import (
    DatabaseSettings,
    LibrarySettings,
    NamingSettings,
    ObservabilitySettings,
    Settings,
    TaggingSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "LibrarySettings",
    "DatabaseSettings",
    "NamingSettings",
    "TaggingSettings",
    "ObservabilitySettings",
    "get_settings",
]
