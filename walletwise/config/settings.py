"""
Configuration Management for WalletWise

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so every external dependency
is visible in one place and validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    
    # Sheet names within the spreadsheet
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet holding one row per account"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet holding the transaction log"
    )
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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    timeout_seconds: float = Field(
        default=20.0,
        ge=1.0,
        le=120.0,
        description="Upper bound on a single reasoning call"
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
    
    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    
    # Context windows handed to the reasoning service
    forecast_window: int = Field(
        default=15,
        ge=1,
        le=200,
        description="Transactions used to establish the recent trend"
    )
    chat_window: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Transactions used to ground chat answers"
    )
    
    # Forecast
    forecast_periods: int = Field(
        default=6,
        ge=1,
        le=36,
        description="Number of monthly forecast points"
    )
    max_growth_rate: float = Field(
        default=1.0,
        gt=0.0,
        description="Largest absolute monthly growth rate accepted from the AI"
    )
    
    reasoning_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Caller-side bound on any call to the reasoning service"
    )
    
    # Ledger
    commit_retry_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Attempts before a version conflict is surfaced"
    )
    
    # UI
    submission_reset_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="How long the 'expense added' state is shown"
    )
    deposit_amount: int = Field(
        default=5000,
        gt=0,
        description="Amount credited by the quick deposit button"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Symbol used in prompts and the UI"
    )


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
    
    # Note: These are loaded lazily to allow partial configuration
    
    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()
    
    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()
    
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
    
    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed.
    """
    results = {}
    
    settings = get_settings()
    
    for name in ("google_sheets", "gemini", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results
