"""
Configuration Management for TripSync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger and voting reducers never read settings on their own;
the orchestrator reads them once and passes values in explicitly.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Expense ledger and settlement configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPSYNC_LEDGER_",
        extra="ignore"
    )

    epsilon: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Tolerance for monetary equality checks"
    )
    currency_places: int = Field(
        default=2,
        ge=0,
        le=4,
        description="Decimal places money amounts are rounded to"
    )
    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency recorded on settlements when none is given"
    )

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        return v.upper()


class VotingSettings(BaseSettings):
    """Proposal voting configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPSYNC_VOTING_",
        extra="ignore"
    )

    # Borda points are only defined for ranks 1-3
    max_ranked_choices: int = Field(
        default=3,
        ge=1,
        le=3,
        description="Maximum number of proposals a voter may rank"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False = human-readable console)"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {sorted(allowed)}")
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def voting(self) -> VotingSettings:
        return VotingSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for anything that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "voting", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
