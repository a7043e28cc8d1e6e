"""
Client wrappers for external services.
"""

from .openai_client import OpenAIClient
from .postgres_client import (
    PostgresClient,
    PostgresMentionStore,
    PostgresReminderStore,
    PostgresWorkItemStore,
)
from .slack_client import SlackNotificationSink

__all__ = [
    'OpenAIClient',
    'PostgresClient',
    'PostgresMentionStore',
    'PostgresReminderStore',
    'PostgresWorkItemStore',
    'SlackNotificationSink',
]
