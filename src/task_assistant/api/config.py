"""Configuration for the FastAPI service."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    # Storage
    DATABASE_URL: str
    DATABASE_REQUIRE_SSL: bool = False

    # OpenAI (optional: without a key the assistant runs rules only)
    OPENAI_API_KEY: str | None = None
    OPENAI_CHAT_MODEL: str = "gpt-4.1-mini"

    # Chat platform
    SLACK_BOT_TOKEN: str
    ASSISTANT_USER_ID: str

    # Behaviour
    TIMEZONE: str = "Asia/Tokyo"
    SCHEDULER_ENABLED: bool = True
    JSON_LOGS: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Auth
    WORKER_API_KEY: str


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
