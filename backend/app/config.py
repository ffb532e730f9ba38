from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PROJECT_NAME: str = "Stitch"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    # Allow any localhost/127.0.0.1 port (useful for dev tools/proxies)
    CORS_ORIGIN_REGEX: str = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    # Database
    DATABASE_URL: str = "sqlite:///./stitch.db"

    # OpenAI (moderation + speech-to-text)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    MODERATION_MODEL: str = "omni-moderation-latest"
    TRANSCRIPTION_MODEL: str = "whisper-1"
    TRANSCRIPTION_LANGUAGE: str = "en"
    TRANSCRIPTION_TIMEOUT_S: float = 30.0
    CLASSIFIER_TIMEOUT_S: float = 10.0

    # Daily prompts
    PROMPT_TTL_HOURS: int = 24
    DEFAULT_DURATION_S: float = 5.0
    QUESTIONS_PATH: Optional[str] = None

    # Moderation word/phrase lists; bundled rules/lexicon.json when unset
    LEXICON_PATH: Optional[str] = None

    # Escalation delivery
    ESCALATION_MAX_ATTEMPTS: int = 3

    # Background jobs (daily prompt + expiry sweep)
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_INTERVAL_S: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()

    # Only validate OpenAI API key in production
    if settings.ENVIRONMENT == "production" and not settings.OPENAI_API_KEY:
        raise ValueError("OPENAI_API_KEY is required in production environment")

    return settings
