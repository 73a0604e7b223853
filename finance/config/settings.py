"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The only external dependency is the Supabase project; everything
else is an application default that can be overridden from `.env`.
"""

from functools import lru_cache
from typing import Callable

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Supabase project configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Supabase project URL"
    )
    anon_key: str = Field(
        ...,
        description="Supabase anonymous (public) API key"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """The SDK refuses anything that is not an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Supabase URL must start with http:// or https://, got {v!r}")
        return v.rstrip("/")


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

    # Environment
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

    # Display
    default_currency: str = Field(
        default="BRL",
        pattern="^(BRL|USD|EUR)$",
        description="Currency used until the user saves preferences"
    )
    transactions_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Rows per page on the transactions page"
    )

    # Monthly settings defaults (created on first visit to a month)
    default_initial_income: float = Field(
        default=2000.00,
        ge=0,
        description="Base monthly income for new months"
    )
    default_needs_percentage: float = Field(default=0.50, ge=0.0, le=1.0)
    default_wants_percentage: float = Field(default=0.20, ge=0.0, le=1.0)
    default_savings_percentage: float = Field(default=0.30, ge=0.0, le=1.0)
    default_investment_percentage: float = Field(default=0.00, ge=0.0, le=1.0)

    # Balance rule status
    over_budget_tolerance: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="How far above the ideal amount still counts as a warning"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1000000.0,
        description="Maximum reasonable amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=31,
        description="How many days in the future a transaction date can be"
    )

    @model_validator(mode='after')
    def validate_default_percentages(self) -> 'AppSettings':
        """Default balance rule must itself be valid."""
        total = round(
            (
                self.default_needs_percentage
                + self.default_wants_percentage
                + self.default_savings_percentage
                + self.default_investment_percentage
            ) * 100,
            6,
        )
        if total != 100:
            raise ValueError(f"Default balance rule percentages must total 100%, got {total}%")
        return self

    @property
    def default_percentages(self) -> dict[str, float]:
        """Default balance rule as stored fractions."""
        return {
            "needs_percentage": self.default_needs_percentage,
            "wants_percentage": self.default_wants_percentage,
            "savings_percentage": self.default_savings_percentage,
            "investment_percentage": self.default_investment_percentage,
        }


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

    # Loaded lazily so the app can start (in offline mode) without Supabase.

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

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


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus `<name>_error`
    entries for the ones that failed. Useful for startup checks.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    checks: dict[str, Callable[[], object]] = {
        "supabase": lambda: settings.supabase,
        "app": lambda: settings.app,
    }
    for name, load in checks.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
