"""Configuration package."""

from walletwise.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
