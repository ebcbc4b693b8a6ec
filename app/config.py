"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_APP_MODES = {"cloud", "local"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _require_app_mode() -> str:
    """
    Read and validate APP_MODE from the environment.
    """

    _load_env_once()
    raw = os.getenv("APP_MODE")
    if raw is None:
        raise RuntimeError("APP_MODE must be explicitly set to 'cloud' or 'local'.")
    mode = raw.strip().lower()
    if mode not in _ALLOWED_APP_MODES:
        raise RuntimeError(
            f"APP_MODE '{raw.strip()}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_APP_MODES)}."
        )
    return mode


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application mode settings.
    """

    mode: str


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings(mode=_require_app_mode())


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class CSVUploadSettings:
    """
    Limits applied to uploaded contact CSV files.
    """

    max_file_bytes: int = 10 * 1024 * 1024
    max_rows: int = 10_000
    allowed_extensions: tuple[str, ...] = (".csv", ".tsv", ".txt")


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for the staged contact import.
    """

    default_business_type: str = "general"
    reminder_lead_minutes: int = 24 * 60
    phase_delay_seconds: float = 0.5
    max_validation_errors: int = 500
    log_validation_errors: bool = False
    session_ttl_seconds: float = 60 * 60
    max_sessions: int = 100


@dataclass(frozen=True)
class BackendAPISettings:
    """
    HTTP settings for the contacts backend used during import.
    """

    base_url: str = "http://localhost:5000"
    api_token: str | None = None
    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@lru_cache(maxsize=1)
def get_csv_upload_settings() -> CSVUploadSettings:
    """
    Return cached CSV upload limits from environment variables.
    """

    return CSVUploadSettings(
        max_file_bytes=max(1, _get_int_env("CSV_UPLOAD_MAX_BYTES", 10 * 1024 * 1024)),
        max_rows=max(1, _get_int_env("CSV_UPLOAD_MAX_ROWS", 10_000)),
    )


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import orchestration settings from environment variables.
    """

    return ImportSettings(
        default_business_type=_get_str_env("IMPORT_DEFAULT_BUSINESS_TYPE", "general").lower(),
        reminder_lead_minutes=max(0, _get_int_env("IMPORT_REMINDER_LEAD_MINUTES", 24 * 60)),
        phase_delay_seconds=max(0.0, _get_float_env("IMPORT_PHASE_DELAY_SECONDS", 0.5)),
        max_validation_errors=max(1, _get_int_env("IMPORT_MAX_VALIDATION_ERRORS", 500)),
        log_validation_errors=_get_bool_env("IMPORT_LOG_VALIDATION_ERRORS", False),
        session_ttl_seconds=max(1.0, _get_float_env("IMPORT_SESSION_TTL_SECONDS", 60 * 60)),
        max_sessions=max(1, _get_int_env("IMPORT_MAX_SESSIONS", 100)),
    )


@lru_cache(maxsize=1)
def get_backend_api_settings() -> BackendAPISettings:
    """
    Return cached contacts backend HTTP settings from environment variables.
    """

    return BackendAPISettings(
        base_url=_get_str_env("CONTACTS_API_BASE_URL", "http://localhost:5000").rstrip("/"),
        api_token=_get_optional_str_env("CONTACTS_API_TOKEN"),
        timeout_seconds=max(1.0, _get_float_env("CONTACTS_API_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("CONTACTS_API_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("CONTACTS_API_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("CONTACTS_API_BACKOFF_MULTIPLIER", 2.0)),
    )
