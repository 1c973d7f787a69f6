"""
Configuration Management for Pocketbook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per entity
    categories_sheet_name: str = Field(default="Categories")
    accounts_sheet_name: str = Field(default="Accounts")
    transactions_sheet_name: str = Field(default="Transactions")
    budgets_sheet_name: str = Field(default="Budgets")
    budget_categories_sheet_name: str = Field(default="BudgetCategories")
    plans_sheet_name: str = Field(default="SubscriptionPlans")
    subscriptions_sheet_name: str = Field(default="Subscriptions")
    seats_sheet_name: str = Field(default="SubscriptionSeats")
    invitations_sheet_name: str = Field(default="Invitations")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Where rows are persisted"
    )

    # Budgets
    default_currency: str = Field(
        default="MXN",
        min_length=3,
        max_length=3,
        description="Currency for lazily created budgets"
    )
    max_planned_amount: Decimal = Field(
        default=Decimal("10000000.00"),
        ge=0,
        description="Planned amounts above this are flagged for review"
    )

    # Sharing
    invitation_ttl_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="How long an invitation stays acceptable"
    )

    @field_validator('default_currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Google Sheets is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    try:
        app = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)
        return results

    if app.storage_backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
