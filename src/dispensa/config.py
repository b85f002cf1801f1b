"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/dispensa.db"),
        description="SQLite database holding the key-value store.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Static bearer token required for data endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by the CORS middleware.",
    )
    recipe_llm_provider: str = Field(
        default="gemini",
        description="Recipe LLM provider (gemini, openai or ollama).",
    )
    recipe_llm_base_url: Optional[str] = Field(
        default=None,
        description="Recipe LLM base URL (defaults to the public Gemini API for gemini).",
    )
    recipe_llm_model: str = Field(
        default="gemini-2.5-flash",
        description="Model identifier passed to the recipe LLM endpoint.",
    )
    recipe_llm_api_key: Optional[str] = Field(
        default=None,
        description="API key for the recipe LLM provider.",
    )
    recipe_llm_temperature: float = Field(
        default=0.7,
        description="Sampling temperature for recipe suggestions.",
    )
    recipe_llm_max_tokens: int = Field(
        default=1024,
        description="Maximum tokens to request from the recipe LLM.",
    )
    recipe_llm_max_retries: int = Field(
        default=3,
        description="Retries allowed when the recipe model reports overload.",
    )
    recipe_llm_retry_delay: float = Field(
        default=1.0,
        description="Initial backoff delay in seconds; doubled on each retry.",
    )
    openfoodfacts_base_url: str = Field(
        default="https://world.openfoodfacts.org",
        description="Open Food Facts instance used for barcode lookups.",
    )
    lookup_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for outbound product lookups.",
    )
    barcode_max_upload_bytes: int = Field(
        default=8 * 1024 * 1024,
        description="Largest image accepted by the barcode decode endpoint.",
    )
    scanner_backends: list[str] = Field(
        default_factory=lambda: ["camera", "upload", "manual"],
        description="Capture backends offered by the add-product dialog.",
    )
    scanner_lookup_enabled: bool = Field(
        default=True,
        description="Look scanned barcodes up on Open Food Facts when true.",
    )
    client_server_url: str = Field(
        default="http://127.0.0.1:8000",
        description="API base URL used by the command line client.",
    )
    client_username: Optional[str] = Field(
        default=None,
        description="Default username for command line client sessions.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _split_list(value: str) -> list[str]:
    return [entry.strip() for entry in value.split(",") if entry.strip()]


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("DISPENSA_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (api_token := _env("DISPENSA_API_TOKEN")):
        payload["api_token"] = api_token
    if (log_level := _env("DISPENSA_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("DISPENSA_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (log_requests := _env("DISPENSA_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    if (cors_origins := _env("DISPENSA_CORS_ORIGINS")):
        payload["cors_origins"] = _split_list(cors_origins)
    if (provider := _env("DISPENSA_RECIPE_LLM_PROVIDER")):
        payload["recipe_llm_provider"] = provider
    if (base_url := _env("DISPENSA_RECIPE_LLM_BASE_URL")):
        payload["recipe_llm_base_url"] = base_url
    if (model := _env("DISPENSA_RECIPE_LLM_MODEL")):
        payload["recipe_llm_model"] = model
    if (api_key := _env("DISPENSA_RECIPE_LLM_API_KEY") or _env("GEMINI_API_KEY")):
        payload["recipe_llm_api_key"] = api_key
    if (temperature := _env("DISPENSA_RECIPE_LLM_TEMPERATURE")):
        try:
            payload["recipe_llm_temperature"] = float(temperature)
        except ValueError:
            pass
    if (max_tokens := _env("DISPENSA_RECIPE_LLM_MAX_TOKENS")):
        try:
            payload["recipe_llm_max_tokens"] = int(max_tokens)
        except ValueError:
            pass
    if (max_retries := _env("DISPENSA_RECIPE_LLM_MAX_RETRIES")):
        try:
            payload["recipe_llm_max_retries"] = int(max_retries)
        except ValueError:
            pass
    if (retry_delay := _env("DISPENSA_RECIPE_LLM_RETRY_DELAY")):
        try:
            payload["recipe_llm_retry_delay"] = float(retry_delay)
        except ValueError:
            pass
    if (off_url := _env("DISPENSA_OPENFOODFACTS_BASE_URL")):
        payload["openfoodfacts_base_url"] = off_url
    if (lookup_timeout := _env("DISPENSA_LOOKUP_TIMEOUT")):
        try:
            payload["lookup_timeout"] = float(lookup_timeout)
        except ValueError:
            pass
    if (max_upload := _env("DISPENSA_BARCODE_MAX_UPLOAD_BYTES")):
        try:
            payload["barcode_max_upload_bytes"] = int(max_upload)
        except ValueError:
            pass
    if (backends := _env("DISPENSA_SCANNER_BACKENDS")):
        payload["scanner_backends"] = _split_list(backends)
    if (lookup_enabled := _env("DISPENSA_SCANNER_LOOKUP_ENABLED")):
        payload["scanner_lookup_enabled"] = _coerce_bool(lookup_enabled)
    if (server_url := _env("DISPENSA_SERVER_URL")):
        payload["client_server_url"] = server_url
    if (username := _env("DISPENSA_USER")):
        payload["client_username"] = username
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
