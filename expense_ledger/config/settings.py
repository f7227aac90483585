"""
Settings for the expense ledger.

Everything is read from the environment (or a local .env file) through
pydantic-settings, so a misconfigured backend fails loudly at startup
instead of on the first write.

Sections:
- storage: which key-value backend holds the ledger
- google_sheets: credentials for the Sheets backend (only read when selected)
- app: logging, audit history and display options
"""

import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class StorageSettings(BaseSettings):
    """Which key-value backend holds the ledger."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "json_file", "google_sheets"] = Field(
        default="json_file",
        description="Key-value backend used by the ledger"
    )
    json_path: str = Field(
        default="data/ledger.json",
        description="Path of the JSON file for the json_file backend"
    )

    @property
    def json_file(self) -> Path:
        return Path(self.json_path).expanduser()


class GoogleSheetsSettings(BaseSettings):
    """Service account and spreadsheet for the google_sheets backend."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file (JSON)"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Spreadsheet that holds the ledger worksheet"
    )
    worksheet_name: str = Field(
        default="Ledger",
        description="Worksheet with one key | value_json row per key"
    )

    @field_validator('credentials_path')
    @classmethod
    def check_credentials_file(cls, v: str) -> str:
        # Only a warning: the key file is often mounted after config is read
        if not Path(v).expanduser().exists():
            warnings.warn(
                f"Service account key file {v} does not exist yet; "
                "the google_sheets backend will fail to connect without it."
            )
        return v


class AppSettings(BaseSettings):
    """Logging, audit history and display options (no env prefix)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Deployment name, e.g. development or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Extra diagnostics for local runs"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level for ledger logs"
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON (False = console renderer)"
    )
    audit_history_size: int = Field(
        default=500,
        ge=0,
        le=100_000,
        description="How many audit events to keep in memory"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        min_length=1,
        max_length=5,
        description="Currency symbol used when formatting amounts"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Entry point for all settings sections.

    Each section is built on access, so a memory or json_file deployment
    never needs Google credentials in its environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings; tests call get_settings.cache_clear() after changing env."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load every section the configured backend needs.

    Returns:
        {section: loaded_ok}, plus "<section>_error" messages for failures.
        The google_sheets section is only checked for that backend.
    """
    settings = get_settings()
    report: dict = {}

    def check(section: str) -> bool:
        try:
            getattr(settings, section)
        except Exception as e:
            report[section] = False
            report[f"{section}_error"] = str(e)
            return False
        report[section] = True
        return True

    check("app")
    if not check("storage"):
        return report

    if settings.storage.backend == "google_sheets":
        check("google_sheets")

    return report
