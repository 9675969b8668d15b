"""Centralised settings for the AetherScribe backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Content fetcher
    # ------------------------------------------------------------------
    fetch_strategy: str = field(
        default_factory=lambda: os.environ.get("FETCH_STRATEGY", "browser")
    )
    navigation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("NAVIGATION_TIMEOUT", "40.0"))
    )
    content_wait_timeout: float = field(
        default_factory=lambda: float(os.environ.get("CONTENT_WAIT_TIMEOUT", "5.0"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    fetch_retries: int = field(
        default_factory=lambda: int(os.environ.get("FETCH_RETRIES", "1"))
    )
    fetch_retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("FETCH_RETRY_BASE_DELAY", "1.0"))
    )
    browser_ws_endpoint: str = field(
        default_factory=lambda: os.environ.get("BROWSER_WS_ENDPOINT", "")
    )
    remote_scraper_url: str = field(
        default_factory=lambda: os.environ.get(
            "REMOTE_SCRAPER_URL", "https://api.firecrawl.dev/v1/scrape"
        )
    )
    remote_scraper_api_key: str = field(
        default_factory=lambda: os.environ.get("REMOTE_SCRAPER_API_KEY", "")
    )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------
    min_content_length: int = field(
        default_factory=lambda: int(os.environ.get("MIN_CONTENT_LENGTH", "100"))
    )
    max_links: int = field(
        default_factory=lambda: int(os.environ.get("MAX_LINKS", "5"))
    )
    on_extraction_failure: str = field(
        default_factory=lambda: os.environ.get("ON_EXTRACTION_FAILURE", "error")
    )

    # ------------------------------------------------------------------
    # Key-value store (cache + rate limiter)
    # ------------------------------------------------------------------
    redis_url: str = field(
        default_factory=lambda: os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    )
    cache_ttl: int = field(
        default_factory=lambda: int(os.environ.get("CACHE_TTL", "86400"))
    )
    cache_key_prefix: str = field(
        default_factory=lambda: os.environ.get("CACHE_KEY_PREFIX", "scraped_content:")
    )

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------
    rate_limit_enabled: bool = field(
        default_factory=lambda: _env_bool("RATE_LIMIT_ENABLED", "true")
    )
    rate_limit_requests: int = field(
        default_factory=lambda: int(os.environ.get("RATE_LIMIT_REQUESTS", "10"))
    )
    rate_limit_window: int = field(
        default_factory=lambda: int(os.environ.get("RATE_LIMIT_WINDOW", "60"))
    )
    rate_limit_identity: str = field(
        default_factory=lambda: os.environ.get("RATE_LIMIT_IDENTITY", "user")
    )
    rate_limit_prefix: str = field(
        default_factory=lambda: os.environ.get("RATE_LIMIT_PREFIX", "ratelimit")
    )
    # Set by the authenticating proxy in front of the API.
    user_id_header: str = field(
        default_factory=lambda: os.environ.get("USER_ID_HEADER", "X-User-Id")
    )

    # ------------------------------------------------------------------
    # Completion model
    # ------------------------------------------------------------------
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "groq")
    )
    groq_api_key: str = field(
        default_factory=lambda: os.environ.get("GROQ_API_KEY", "")
    )
    groq_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "GROQ_BASE_URL", "https://api.groq.com/openai/v1"
        )
    )
    groq_chat_model: str = field(
        default_factory=lambda: os.environ.get("GROQ_CHAT_MODEL", "llama-3.1-8b-instant")
    )
    openai_api_key: str = field(
        default_factory=lambda: os.environ.get("OPENAI_API_KEY", "")
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    ollama_chat_model: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_CHAT_MODEL", "ministral-3:8b")
    )
    llm_temperature: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.5"))
    )
    llm_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "3500"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )


def configure_logging(level: str | None = None) -> None:
    """Install the process-wide log format.  Safe to call more than once."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


# Module-level singleton — import this everywhere:
#   from aetherscribe.config import settings
settings = Settings()
