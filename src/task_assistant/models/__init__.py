"""
Domain models for the chat task assistant.
"""

from .intent import Intent, IntentResult
from .mention import (
    LineAnalysis,
    Mention,
    MentionAnalysis,
    MentionObservation,
    MentionState,
    MentionStats,
)
from .message import InboundMessage, ThreadMessage
from .reminder import Reminder, ReminderDraft, ReminderStatus
from .work_item import (
    Priority,
    WorkItem,
    WorkItemDraft,
    WorkItemFilter,
    WorkItemStatus,
    manual_origin_id,
)

__all__ = [
    # Intent
    'Intent',
    'IntentResult',
    # Mentions
    'LineAnalysis',
    'Mention',
    'MentionAnalysis',
    'MentionObservation',
    'MentionState',
    'MentionStats',
    # Messages
    'InboundMessage',
    'ThreadMessage',
    # Reminders
    'Reminder',
    'ReminderDraft',
    'ReminderStatus',
    # Work items
    'Priority',
    'WorkItem',
    'WorkItemDraft',
    'WorkItemFilter',
    'WorkItemStatus',
    'manual_origin_id',
]
