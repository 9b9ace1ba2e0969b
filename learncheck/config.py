# learncheck/config.py
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}")


@dataclass
class Settings:
    """
    Runtime configuration, read from the environment.

    Defaults match the docker-compose setup (redis and the content API reachable
    by service name).
    """
    redis_url: str = "redis://redis:6379"
    content_api_url: str = "http://mock-dicoding:3002"
    content_api_timeout: float = 5.0

    llm_provider: str = "ollama"  # "ollama" or "gemini"
    ollama_url: str = "http://host.docker.internal:11434"
    ollama_model_name: str = "mistral:7b"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_timeout: float = 30.0

    questions_cache_ttl: int = 3600
    tutorial_cache_ttl: int = 900
    tutorials_list_cache_ttl: int = 300
    preferences_cache_ttl: int = 600

    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    rate_limit_enabled: bool = True
    rate_limit_general_max: int = 100
    rate_limit_general_window: int = 15 * 60
    rate_limit_ai_max: int = 5
    rate_limit_ai_window: int = 60

    port: int = 8080
    log_level: str = "INFO"
    version: str = "1.0.0"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables, loading a .env file first if present."""
        if dotenv:
            load_dotenv()
        defaults = cls()
        origins = os.environ.get("CORS_ORIGIN")
        return cls(
            redis_url=os.environ.get("REDIS_URL", defaults.redis_url),
            content_api_url=os.environ.get("CONTENT_API_URL", defaults.content_api_url),
            content_api_timeout=_env_float("CONTENT_API_TIMEOUT", defaults.content_api_timeout),
            llm_provider=os.environ.get("LLM_PROVIDER", defaults.llm_provider).lower(),
            ollama_url=os.environ.get("OLLAMA_URL", defaults.ollama_url),
            ollama_model_name=os.environ.get("OLLAMA_MODEL_NAME", defaults.ollama_model_name),
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            gemini_model=os.environ.get("GEMINI_MODEL", defaults.gemini_model),
            gemini_api_url=os.environ.get("GEMINI_API_URL", defaults.gemini_api_url),
            llm_timeout=_env_float("LLM_TIMEOUT", defaults.llm_timeout),
            questions_cache_ttl=_env_int("QUESTIONS_CACHE_TTL", defaults.questions_cache_ttl),
            tutorial_cache_ttl=_env_int("TUTORIAL_CACHE_TTL", defaults.tutorial_cache_ttl),
            tutorials_list_cache_ttl=_env_int("TUTORIALS_LIST_CACHE_TTL", defaults.tutorials_list_cache_ttl),
            preferences_cache_ttl=_env_int("PREFERENCES_CACHE_TTL", defaults.preferences_cache_ttl),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
            rate_limit_enabled=os.environ.get("RATE_LIMIT_ENABLED", "true").lower() not in ("0", "false", "no"),
            rate_limit_general_max=_env_int("RATE_LIMIT_GENERAL_MAX", defaults.rate_limit_general_max),
            rate_limit_general_window=_env_int("RATE_LIMIT_GENERAL_WINDOW", defaults.rate_limit_general_window),
            rate_limit_ai_max=_env_int("RATE_LIMIT_AI_MAX", defaults.rate_limit_ai_max),
            rate_limit_ai_window=_env_int("RATE_LIMIT_AI_WINDOW", defaults.rate_limit_ai_window),
            port=_env_int("PORT", defaults.port),
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level).upper(),
            version=os.environ.get("APP_VERSION", defaults.version),
        )
