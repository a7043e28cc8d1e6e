"""
Pytest configuration and shared fixtures.

Key fixtures:
- work_item_store / mention_store / reminder_store: in-memory stores with the
  same conditional-update semantics as the Postgres stores
- sink: records every notification instead of posting it, and serves
  canned threads for fetch_thread
- inference: AsyncMock implementing the TextInferenceClient protocol
- now: fixed reference time used across scheduler and pipeline tests
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)

from task_assistant.errors import DuplicateMentionError, StoreQueryError
from task_assistant.models.mention import Mention, MentionObservation, MentionState
from task_assistant.models.message import ThreadMessage
from task_assistant.models.reminder import Reminder, ReminderDraft, ReminderStatus
from task_assistant.models.work_item import (
    WorkItem,
    WorkItemDraft,
    WorkItemFilter,
    WorkItemStatus,
    utcnow,
)

ASSISTANT_ID = 'UBOT'


class InMemoryWorkItemStore:
    """WorkItemStore kept in a dict. ``fail_on`` names methods that raise StoreQueryError."""

    def __init__(self):
        self.items: dict[str, WorkItem] = {}
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreQueryError(f'{operation} failed')

    async def create(self, draft: WorkItemDraft, now: datetime | None = None) -> WorkItem:
        self._check('create')
        if draft.idempotency_key is not None:
            for item in self.items.values():
                if item.idempotency_key == draft.idempotency_key:
                    return item
        item = draft.build(now)
        self.items[item.id] = item
        return item

    async def get_by_id(self, item_id: str) -> WorkItem | None:
        self._check('get_by_id')
        return self.items.get(item_id)

    async def list(self, criteria: WorkItemFilter | None = None) -> list[WorkItem]:
        self._check('list')
        criteria = criteria or WorkItemFilter()
        return [item for item in self.items.values() if criteria.matches(item)]

    async def update(self, item_id, *, text=None, due_at=None, priority=None, assignee=None):
        self._check('update')
        item = self.items.get(item_id)
        if item is None:
            return None
        changes = {
            k: v
            for k, v in {
                'text': text,
                'due_at': due_at,
                'priority': priority,
                'assignee': assignee,
            }.items()
            if v is not None
        }
        updated = item.model_copy(update={**changes, 'updated_at': utcnow()})
        self.items[item_id] = updated
        return updated

    async def complete(self, item_id, completed_by, now=None):
        self._check('complete')
        item = self.items.get(item_id)
        if item is None or item.is_completed:
            return item
        moment = now or utcnow()
        completed = item.model_copy(
            update={
                'status': WorkItemStatus.COMPLETED,
                'completed_by': completed_by,
                'completed_at': moment,
                'updated_at': moment,
            }
        )
        self.items[item_id] = completed
        return completed

    async def delete(self, item_id: str) -> bool:
        self._check('delete')
        return self.items.pop(item_id, None) is not None

    async def list_upcoming(self, hours_ahead, now):
        self._check('list_upcoming')
        until = now + timedelta(hours=hours_ahead)
        return sorted(
            (
                item
                for item in self.items.values()
                if not item.is_completed and item.due_at is not None and now <= item.due_at <= until
            ),
            key=lambda item: item.due_at,
        )

    async def list_overdue(self, now):
        self._check('list_overdue')
        return sorted(
            (
                item
                for item in self.items.values()
                if not item.is_completed and item.due_at is not None and item.due_at < now
            ),
            key=lambda item: item.due_at,
        )


class InMemoryMentionStore:
    """MentionStore kept in a dict, unique on (conversation, anchor, addressed user)."""

    def __init__(self):
        self.mentions: dict[str, Mention] = {}
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreQueryError(f'{operation} failed')

    async def insert(self, observation: MentionObservation, now=None) -> Mention:
        self._check('insert')
        for m in self.mentions.values():
            if (m.conversation, m.anchor_message_id, m.addressed_user) == (
                observation.conversation,
                observation.anchor_message_id,
                observation.addressed_user,
            ):
                raise DuplicateMentionError('Mention already recorded')
        mention = observation.build(now)
        self.mentions[mention.id] = mention
        return mention

    async def get_by_id(self, mention_id: str) -> Mention | None:
        self._check('get_by_id')
        return self.mentions.get(mention_id)

    async def update_reply_state(self, conversation, anchor_message_id, addressed_user, replied_at):
        self._check('update_reply_state')
        resolved = []
        for m in list(self.mentions.values()):
            if (
                m.conversation == conversation
                and m.anchor_message_id == anchor_message_id
                and m.addressed_user == addressed_user
                and m.is_unresolved
            ):
                updated = m.model_copy(update={'replied_at': replied_at})
                self.mentions[m.id] = updated
                resolved.append(updated)
        return resolved

    async def mark_escalated(self, mention_id: str, work_item_id: str) -> bool:
        self._check('mark_escalated')
        m = self.mentions.get(mention_id)
        if m is None or not m.is_unresolved:
            return False
        self.mentions[mention_id] = m.model_copy(
            update={'escalated_to_work_item': True, 'work_item_id': work_item_id}
        )
        return True

    async def list_unresolved(self, older_than=None):
        self._check('list_unresolved')
        return sorted(
            (
                m
                for m in self.mentions.values()
                if m.is_unresolved and (older_than is None or m.recorded_at < older_than)
            ),
            key=lambda m: m.recorded_at,
        )

    async def count_by(self, state: MentionState) -> int:
        self._check(f'count_by:{state.value}')
        return sum(1 for m in self.mentions.values() if m.state == state)


class InMemoryReminderStore:
    """ReminderStore kept in a dict; cancel and mark_fired only touch active reminders."""

    def __init__(self):
        self.reminders: dict[str, Reminder] = {}
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreQueryError(f'{operation} failed')

    async def create(self, draft: ReminderDraft, now=None) -> Reminder:
        self._check('create')
        reminder = draft.build(now)
        self.reminders[reminder.id] = reminder
        return reminder

    async def get_by_id(self, reminder_id: str) -> Reminder | None:
        self._check('get_by_id')
        return self.reminders.get(reminder_id)

    async def list_active(self, conversation, created_by):
        self._check('list_active')
        return sorted(
            (
                r
                for r in self.reminders.values()
                if r.status == ReminderStatus.ACTIVE
                and r.conversation == conversation
                and r.created_by == created_by
            ),
            key=lambda r: r.created_at,
        )

    async def list_due(self, now):
        self._check('list_due')
        return sorted(
            (
                r
                for r in self.reminders.values()
                if r.status == ReminderStatus.ACTIVE and r.fire_at <= now
            ),
            key=lambda r: r.fire_at,
        )

    async def cancel(self, reminder_id: str) -> bool:
        self._check('cancel')
        r = self.reminders.get(reminder_id)
        if r is None or r.status != ReminderStatus.ACTIVE:
            return False
        self.reminders[reminder_id] = r.model_copy(update={'status': ReminderStatus.CANCELLED})
        return True

    async def mark_fired(self, reminder_id, fired_at, next_fire_at):
        self._check('mark_fired')
        r = self.reminders.get(reminder_id)
        if r is None or r.status != ReminderStatus.ACTIVE:
            return False
        update = {'last_fired_at': fired_at}
        if next_fire_at is None:
            update['status'] = ReminderStatus.DONE
        else:
            update['fire_at'] = next_fire_at
        self.reminders[reminder_id] = r.model_copy(update=update)
        return True


class RecordingSink:
    """
    NotificationSink and ThreadReader for tests.

    Records posts (set ``deliver = False`` to simulate failures) and returns
    ``threads[(conversation, anchor)]`` from fetch_thread.
    """

    def __init__(self):
        self.posts: list[tuple[str, str, str | None]] = []
        self.deliver = True
        self.threads: dict[tuple[str, str], list[ThreadMessage]] = {}
        self.fetched: list[tuple[str, str]] = []

    async def post(self, conversation_id, text, thread_anchor_id=None) -> bool:
        self.posts.append((conversation_id, text, thread_anchor_id))
        return self.deliver

    async def fetch_thread(self, conversation_id, thread_anchor_id, limit=50):
        self.fetched.append((conversation_id, thread_anchor_id))
        return self.threads.get((conversation_id, thread_anchor_id), [])[:limit]

    def texts(self) -> list[str]:
        return [text for _, text, _ in self.posts]


@pytest.fixture
def now() -> datetime:
    """Fixed reference time: 2026-03-02 01:00 UTC (10:00 in Asia/Tokyo)."""
    return datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc)


@pytest.fixture
def work_item_store() -> InMemoryWorkItemStore:
    return InMemoryWorkItemStore()


@pytest.fixture
def mention_store() -> InMemoryMentionStore:
    return InMemoryMentionStore()


@pytest.fixture
def reminder_store() -> InMemoryReminderStore:
    return InMemoryReminderStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def inference() -> AsyncMock:
    """Inference client whose calls fail unless a test configures them."""
    client = AsyncMock()
    client.chat_completion = AsyncMock(side_effect=RuntimeError('inference not configured'))
    client.chat_completion_structured = AsyncMock(
        side_effect=RuntimeError('inference not configured')
    )
    return client


@pytest.fixture
def assistant_id() -> str:
    return ASSISTANT_ID
