"""
Configuration loader for the landing page pipeline.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


class Config:
    """
    Centralized configuration for all pipeline components.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== LLM APIs =====
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "")

    # Anthropic is used when enabled and a key is present, OpenAI otherwise
    USE_ANTHROPIC: bool = os.getenv("USE_ANTHROPIC", "false").lower() == "true"

    # ===== LLM Model Configuration =====
    DEFAULT_MODEL: str = os.getenv("LANDING_PAGE_MODEL", "gpt-4o")
    ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5-20250929")

    # Temperature settings
    CREATIVE_TEMPERATURE: float = 0.7  # Segment generation
    EDITORIAL_TEMPERATURE: float = 0.4  # Content improvement
    ANALYTICAL_TEMPERATURE: float = 0.1  # Quality assessment

    # Per-call timeout and retry budget for the text generation service
    LLM_TIMEOUT_SECONDS: int = _env_int("LLM_TIMEOUT_SECONDS", 120)
    LLM_MAX_RETRIES: int = _env_int("LLM_MAX_RETRIES", 2)

    # ===== Segment Cache =====
    # Empty = in-memory only
    SEGMENT_CACHE_DIR: str = os.getenv("SEGMENT_CACHE_DIR", "")

    # ===== Quality Gate =====
    MIN_COMBINED_SCORE: int = _env_int("MIN_COMBINED_SCORE", 7)
    MIN_QUALITY_SCORE: int = _env_int("MIN_QUALITY_SCORE", 1)
    MIN_CONFIDENCE_SCORE: int = _env_int("MIN_CONFIDENCE_SCORE", 1)

    # ===== Concurrency =====
    GENERATION_MAX_CONCURRENCY: int = _env_int("GENERATION_MAX_CONCURRENCY", 4)

    # ===== Observability =====
    # JSON-lines stage events on stdout
    STRUCTURED_EVENTS: bool = os.getenv("STRUCTURED_EVENTS", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "simple")  # "simple" or "json"

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises ValueError if critical settings are missing or out of range.
        """
        if cls.get_llm_provider() == "anthropic":
            if not cls.ANTHROPIC_API_KEY:
                raise ValueError("USE_ANTHROPIC is enabled but ANTHROPIC_API_KEY is missing.")
        elif not cls.OPENAI_API_KEY:
            raise ValueError(
                "Missing required configuration: OPENAI_API_KEY. Please check your .env file."
            )

        for name in ("MIN_COMBINED_SCORE", "MIN_QUALITY_SCORE", "MIN_CONFIDENCE_SCORE"):
            value = getattr(cls, name)
            if not 1 <= value <= 10:
                raise ValueError(f"{name} must be between 1 and 10, got {value}")

        if cls.GENERATION_MAX_CONCURRENCY < 1:
            raise ValueError("GENERATION_MAX_CONCURRENCY must be at least 1")

    @classmethod
    def get_llm_provider(cls) -> str:
        """Return "anthropic" or "openai"."""
        if cls.USE_ANTHROPIC and cls.ANTHROPIC_API_KEY:
            return "anthropic"
        return "openai"

    @classmethod
    def get_llm_api_key(cls) -> str:
        if cls.get_llm_provider() == "anthropic":
            return cls.ANTHROPIC_API_KEY
        return cls.OPENAI_API_KEY

    @classmethod
    def get_llm_base_url(cls) -> Optional[str]:
        """OpenAI-compatible base URL, None to use OpenAI directly."""
        return cls.OPENAI_BASE_URL or None

    @classmethod
    def get_default_model(cls) -> str:
        if cls.get_llm_provider() == "anthropic":
            return cls.ANTHROPIC_MODEL
        return cls.DEFAULT_MODEL

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  LLM provider: {cls.get_llm_provider()} {'✓' if cls.get_llm_api_key() else '✗ Missing'}
  Default Model: {cls.get_default_model()}
  Timeout/Retries: {cls.LLM_TIMEOUT_SECONDS}s / {cls.LLM_MAX_RETRIES}
  Segment cache: {cls.SEGMENT_CACHE_DIR or 'in-memory'}
  Quality gate: combined>={cls.MIN_COMBINED_SCORE}, quality>={cls.MIN_QUALITY_SCORE}, confidence>={cls.MIN_CONFIDENCE_SCORE}
  Max concurrency: {cls.GENERATION_MAX_CONCURRENCY}
        """.strip()
