"""Configuration package."""

from tripsync.config.settings import (
    AppSettings,
    LedgerSettings,
    Settings,
    VotingSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "LedgerSettings",
    "Settings",
    "VotingSettings",
    "get_settings",
    "validate_all_settings",
]
