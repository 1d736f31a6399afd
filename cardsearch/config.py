"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_env_list(name: str, default: str) -> tuple[str, ...]:
    raw = _get_env(name, default)
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "product_cards")
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "300"))
    search_result_size: int = int(_get_env("SEARCH_RESULT_SIZE", "100"))
    category_facet_size: int = int(_get_env("CATEGORY_FACET_SIZE", "100"))
    backend_timeout_seconds: float = float(_get_env("BACKEND_TIMEOUT_SECONDS", "5.0"))
    default_language: str = _get_env("DEFAULT_LANGUAGE", "ru").lower()
    supported_languages: tuple[str, ...] = _get_env_list("SUPPORTED_LANGUAGES", "ru,en,cn")
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
