"""Configuration package."""

from ledger.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    HttpBackendSettings,
    LedgerSettings,
    Settings,
    SQLiteSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "HttpBackendSettings",
    "LedgerSettings",
    "Settings",
    "SQLiteSettings",
    "get_settings",
    "validate_all_settings",
]
