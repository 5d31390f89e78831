"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_APP_ENVS = {"development", "staging", "production"}
_ALLOWED_STRATEGIES = {"mock", "remote"}

DEFAULT_METALS: tuple[str, ...] = (
    "arsenic",
    "cadmium",
    "chromium",
    "lead",
    "mercury",
    "zinc",
    "copper",
    "iron",
    "manganese",
    "nickel",
)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _require_app_env() -> str:
    """
    Read and validate APP_ENV from the environment.

    Defaults to 'production' so that stack traces stay hidden unless a
    deployment opts into development mode explicitly.
    """

    _load_env_once()
    raw = os.getenv("APP_ENV", "production")
    env = raw.strip().lower() or "production"
    if env not in _ALLOWED_APP_ENVS:
        raise RuntimeError(
            f"APP_ENV '{raw.strip()}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_APP_ENVS)}."
        )
    return env


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application environment settings.
    """

    env: str

    @property
    def is_development(self) -> bool:
        return self.env == "development"


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.

    Raises RuntimeError if APP_ENV holds an unknown value.
    """

    return AppSettings(env=_require_app_env())


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
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_csv_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class ScoringSettings:
    """
    Index calculator strategy selection and remote endpoint behaviour.
    """

    strategy: str = "remote"
    api_url: str | None = None
    timeout_seconds: float = 30.0
    health_timeout_seconds: float = 5.0
    mock_latency_seconds: float = 1.0


@dataclass(frozen=True)
class UploadSettings:
    """
    Runtime settings for CSV sample uploads.
    """

    max_file_bytes: int = 10 * 1024 * 1024
    max_reported_errors: int = 10
    log_validation_errors: bool = True
    default_metals: tuple[str, ...] = DEFAULT_METALS


@dataclass(frozen=True)
class ReportSettings:
    """
    Report generation and preview settings.
    """

    preview_limit: int = 100
    download_base_path: str = "/api/reports"


def _resolve_strategy_name() -> str:
    explicit = _get_optional_str_env("HMPI_SCORING_STRATEGY")
    if explicit is None:
        return "mock" if get_app_settings().is_development else "remote"
    name = explicit.lower()
    if name not in _ALLOWED_STRATEGIES:
        raise RuntimeError(
            f"HMPI_SCORING_STRATEGY '{explicit}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_STRATEGIES)}."
        )
    return name


@lru_cache(maxsize=1)
def get_scoring_settings() -> ScoringSettings:
    """
    Return cached scoring settings from environment variables.
    """

    return ScoringSettings(
        strategy=_resolve_strategy_name(),
        api_url=_get_optional_str_env("HMPI_SCORING_API_URL"),
        timeout_seconds=max(1.0, _get_float_env("HMPI_SCORING_TIMEOUT_SECONDS", 30.0)),
        health_timeout_seconds=max(0.5, _get_float_env("HMPI_HEALTH_TIMEOUT_SECONDS", 5.0)),
        mock_latency_seconds=max(0.0, _get_float_env("HMPI_MOCK_LATENCY_SECONDS", 1.0)),
    )


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached upload settings from environment variables.
    """

    return UploadSettings(
        max_file_bytes=max(1, _get_int_env("HMPI_UPLOAD_MAX_BYTES", 10 * 1024 * 1024)),
        max_reported_errors=max(1, _get_int_env("HMPI_UPLOAD_MAX_REPORTED_ERRORS", 10)),
        log_validation_errors=_get_bool_env("HMPI_UPLOAD_LOG_VALIDATION_ERRORS", True),
        default_metals=_get_csv_env("HMPI_DEFAULT_METALS", DEFAULT_METALS),
    )


@lru_cache(maxsize=1)
def get_report_settings() -> ReportSettings:
    """
    Return cached report settings from environment variables.
    """

    return ReportSettings(
        preview_limit=max(1, _get_int_env("HMPI_REPORT_PREVIEW_LIMIT", 100)),
        download_base_path=_get_str_env("HMPI_REPORT_DOWNLOAD_BASE", "/api/reports").rstrip("/"),
    )
