"""
app/config.py

Application-level configuration helpers.

Settings are read from the process environment once (after loading
optional `.env` files) and passed explicitly to the components that
need them. No component reads the environment on its own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from llm_synthesis.adapter import GEMINI_OPENAI_BASE_URL
from llm_synthesis.prompt_builder import DEFAULT_LANGUAGE

_ALLOWED_ADAPTERS = {"openai", "mock"}
_API_KEY_ENV_VARS = ("LLM_API_KEY", "GEMINI_API_KEY", "API_KEY")

DEFAULT_MODEL = "gemini-2.5-flash"


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


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


def _resolve_api_key() -> str | None:
    for name in _API_KEY_ENV_VARS:
        value = _get_optional_str_env(name)
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class AnalysisSettings:
    """
    Settings for the external LLM analysis call.
    """

    adapter: str = "openai"
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    base_url: str | None = GEMINI_OPENAI_BASE_URL
    temperature: float = 0.3
    max_tokens: int = 8192
    language: str = DEFAULT_LANGUAGE
    cluster_count: int = 3
    enforce_member_coverage: bool = False


@dataclass(frozen=True)
class CSVAggregationSettings:
    """
    Runtime settings for CSV aggregation.
    """

    strict_mode: bool = False


@lru_cache(maxsize=1)
def get_analysis_settings() -> AnalysisSettings:
    """
    Return cached analysis settings from environment variables.

    Raises RuntimeError if LLM_ADAPTER names an unknown adapter.
    """

    adapter = _get_str_env("LLM_ADAPTER", "openai").lower()
    if adapter not in _ALLOWED_ADAPTERS:
        raise RuntimeError(
            f"LLM_ADAPTER '{adapter}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_ADAPTERS)}."
        )

    return AnalysisSettings(
        adapter=adapter,
        api_key=_resolve_api_key(),
        model=_get_str_env("LLM_MODEL", DEFAULT_MODEL),
        base_url=_get_optional_str_env("LLM_BASE_URL") or GEMINI_OPENAI_BASE_URL,
        temperature=min(2.0, max(0.0, _get_float_env("LLM_TEMPERATURE", 0.3))),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 8192)),
        language=_get_str_env("ANALYSIS_LANGUAGE", DEFAULT_LANGUAGE),
        cluster_count=max(1, _get_int_env("ANALYSIS_CLUSTER_COUNT", 3)),
        enforce_member_coverage=_get_bool_env("LLM_ENFORCE_MEMBER_COVERAGE", False),
    )


@lru_cache(maxsize=1)
def get_csv_aggregation_settings() -> CSVAggregationSettings:
    """
    Return cached CSV aggregation settings from environment variables.
    """

    return CSVAggregationSettings(
        strict_mode=_get_bool_env("CSV_STRICT_MODE", False),
    )
