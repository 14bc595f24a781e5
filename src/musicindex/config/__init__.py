"""Configuration module for musicindex."""

from .settings import (
    ApiSettings,
    DatabaseSettings,
    LibrarySettings,
    ObservabilitySettings,
    ScannerSettings,
    Settings,
    WatcherSettings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "DatabaseSettings",
    "LibrarySettings",
    "ObservabilitySettings",
    "ScannerSettings",
    "Settings",
    "WatcherSettings",
    "get_settings",
]
