"""
Configuration management for the chat task assistant.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Configuration settings loaded from environment."""

    # OpenAI
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')
    OPENAI_CHAT_MODEL: str = os.getenv('OPENAI_CHAT_MODEL', 'gpt-4.1-mini')

    # Storage
    DATABASE_URL: str = os.getenv('DATABASE_URL', '')

    # Chat platform
    SLACK_BOT_TOKEN: str = os.getenv('SLACK_BOT_TOKEN', '')
    ASSISTANT_USER_ID: str = os.getenv('ASSISTANT_USER_ID', '')

    # Behaviour
    TIMEZONE: str = os.getenv('TIMEZONE', 'Asia/Tokyo')
    AI_ENABLED: bool = _env_bool('AI_ENABLED', True)
    AI_AUTO_TASK_ENABLED: bool = _env_bool('AI_AUTO_TASK_ENABLED', False)
    AI_SUMMARIZE_ENABLED: bool = _env_bool('AI_SUMMARIZE_ENABLED', False)
    THREAD_CONTEXT_LIMIT: int = int(os.getenv('THREAD_CONTEXT_LIMIT', '10'))
    INTENT_CONFIDENCE_THRESHOLD: int = int(os.getenv('INTENT_CONFIDENCE_THRESHOLD', '70'))
    TASK_REQUEST_CONFIDENCE_THRESHOLD: int = int(
        os.getenv('TASK_REQUEST_CONFIDENCE_THRESHOLD', '70')
    )

    # Reminders
    REMINDER_COOLDOWN_MINUTES: int = int(os.getenv('REMINDER_COOLDOWN_MINUTES', '60'))
    ESCALATION_THRESHOLD_HOURS: int = int(os.getenv('ESCALATION_THRESHOLD_HOURS', '24'))
    MORNING_UPCOMING_HOURS: int = int(os.getenv('MORNING_UPCOMING_HOURS', '24'))
    HOURLY_UPCOMING_HOURS: int = int(os.getenv('HOURLY_UPCOMING_HOURS', '3'))
    REMINDER_DEFAULT_DELAY_MINUTES: int = int(os.getenv('REMINDER_DEFAULT_DELAY_MINUTES', '30'))

    # Schedules (five-field cron, evaluated in TIMEZONE)
    MORNING_UPCOMING_SCHEDULE: str = os.getenv('MORNING_UPCOMING_SCHEDULE', '0 9 * * *')
    HOURLY_UPCOMING_SCHEDULE: str = os.getenv('HOURLY_UPCOMING_SCHEDULE', '0 * * * *')
    DAILY_OVERDUE_SCHEDULE: str = os.getenv('DAILY_OVERDUE_SCHEDULE', '0 18 * * *')
    DAILY_ESCALATION_SCHEDULE: str = os.getenv('DAILY_ESCALATION_SCHEDULE', '0 10 * * *')
    DUE_REMINDERS_SCHEDULE: str = os.getenv('DUE_REMINDERS_SCHEDULE', '* * * * *')

    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_TEXT_PREVIEW_CHARS: int = int(os.getenv('LOG_TEXT_PREVIEW_CHARS', '80'))

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate that required configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if cls.AI_ENABLED and not cls.OPENAI_API_KEY:
            missing.append('OPENAI_API_KEY')
        if not cls.DATABASE_URL:
            missing.append('DATABASE_URL')
        if not cls.SLACK_BOT_TOKEN:
            missing.append('SLACK_BOT_TOKEN')
        if not cls.ASSISTANT_USER_ID:
            missing.append('ASSISTANT_USER_ID')
        return missing


# Singleton config instance
config = Config()
