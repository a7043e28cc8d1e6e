"""
Collaborator contracts for the chat task assistant.

The pipeline and scheduler depend on these protocols rather than on concrete
clients, so storage, inference and the chat platform can be swapped (and
faked in tests). Concrete implementations live in ``clients/``:

- TextInferenceClient: ``clients.openai_client.OpenAIClient``
- NotificationSink / ThreadReader: ``clients.slack_client.SlackNotificationSink``
- WorkItemStore / MentionStore / ReminderStore: ``clients.postgres_client``

Store correctness under interleaving relies on two store-side guarantees:
- mention uniqueness on (conversation, anchor_message_id, addressed_user)
- conditional state transitions (``update_reply_state`` and
  ``mark_escalated`` only touch mentions that are still unresolved, and
  ``cancel`` / ``mark_fired`` only touch reminders that are still active)
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

from .models.mention import Mention, MentionObservation, MentionState
from .models.message import ThreadMessage
from .models.reminder import Reminder, ReminderDraft
from .models.work_item import WorkItem, WorkItemDraft, WorkItemFilter

T = TypeVar('T', bound=BaseModel)


@runtime_checkable
class TextInferenceClient(Protocol):
    """Free-text and schema-constrained completions."""

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> str: ...

    async def chat_completion_structured(
        self,
        messages: list[dict[str, str]],
        response_model: type[T],
        model: str | None = None,
        temperature: float = 0.0,
    ) -> T: ...


@runtime_checkable
class NotificationSink(Protocol):
    """Posts a message to a conversation, optionally threaded under an anchor."""

    async def post(
        self,
        conversation_id: str,
        text: str,
        thread_anchor_id: str | None = None,
    ) -> bool: ...


@runtime_checkable
class ThreadReader(Protocol):
    """Reads back the messages of a thread, oldest first."""

    async def fetch_thread(
        self, conversation_id: str, thread_anchor_id: str, limit: int = 50
    ) -> list[ThreadMessage]: ...


@runtime_checkable
class WorkItemStore(Protocol):

    async def create(self, draft: WorkItemDraft, now: datetime | None = None) -> WorkItem:
        """Create an item; an existing item with the same idempotency key is returned as-is."""
        ...

    async def get_by_id(self, item_id: str) -> WorkItem | None: ...

    async def list(self, criteria: WorkItemFilter | None = None) -> list[WorkItem]: ...

    async def update(
        self,
        item_id: str,
        *,
        text: str | None = None,
        due_at: datetime | None = None,
        priority: int | None = None,
        assignee: str | None = None,
    ) -> WorkItem | None: ...

    async def complete(
        self, item_id: str, completed_by: str, now: datetime | None = None
    ) -> WorkItem | None:
        """Complete an open item. Completing twice leaves the first completion intact."""
        ...

    async def delete(self, item_id: str) -> bool: ...

    async def list_upcoming(self, hours_ahead: float, now: datetime) -> list[WorkItem]:
        """Open items with due_at in [now, now + hours_ahead]."""
        ...

    async def list_overdue(self, now: datetime) -> list[WorkItem]:
        """Open items with due_at < now."""
        ...


@runtime_checkable
class MentionStore(Protocol):

    async def insert(
        self, observation: MentionObservation, now: datetime | None = None
    ) -> Mention:
        """Insert a mention; raises DuplicateMentionError for an existing triple."""
        ...

    async def get_by_id(self, mention_id: str) -> Mention | None: ...

    async def update_reply_state(
        self,
        conversation: str,
        anchor_message_id: str,
        addressed_user: str,
        replied_at: datetime,
    ) -> list[Mention]:
        """Mark matching unresolved mentions replied; returns the rows changed."""
        ...

    async def mark_escalated(self, mention_id: str, work_item_id: str) -> bool:
        """Mark an unresolved mention escalated; False if it was no longer unresolved."""
        ...

    async def list_unresolved(self, older_than: datetime | None = None) -> list[Mention]: ...

    async def count_by(self, state: MentionState) -> int: ...


@runtime_checkable
class ReminderStore(Protocol):

    async def create(self, draft: ReminderDraft, now: datetime | None = None) -> Reminder: ...

    async def get_by_id(self, reminder_id: str) -> Reminder | None: ...

    async def list_active(self, conversation: str, created_by: str) -> list[Reminder]:
        """Active reminders a user set up in a conversation, oldest first."""
        ...

    async def list_due(self, now: datetime) -> list[Reminder]:
        """Active reminders with fire_at <= now, earliest first."""
        ...

    async def cancel(self, reminder_id: str) -> bool:
        """Cancel an active reminder; False if it was no longer active."""
        ...

    async def mark_fired(
        self, reminder_id: str, fired_at: datetime, next_fire_at: datetime | None
    ) -> bool:
        """
        Record a delivery. ``next_fire_at`` None marks the reminder done,
        otherwise it stays active and moves to ``next_fire_at``. False if the
        reminder was no longer active.
        """
        ...
