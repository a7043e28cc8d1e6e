"""
WorkItem model and its lifecycle types.

A WorkItem is a tracked task with an assignee, optional deadline and a
priority. It is created from a chat request, from an escalated mention or
manually, and moves OPEN -> COMPLETED exactly once.
"""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

MANUAL_ORIGIN_PREFIX = 'manual_'


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def new_work_item_id() -> str:
    return f"task_{uuid4().hex[:12]}"


def manual_origin_id(now: datetime | None = None) -> str:
    """Synthetic origin message id for items created outside a conversation thread."""
    moment = now or utcnow()
    return f"{MANUAL_ORIGIN_PREFIX}{int(moment.timestamp() * 1000)}"


class Priority(IntEnum):
    """Work item priority. Lower value is more urgent."""

    HIGH = 1
    MEDIUM = 2
    LOW = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def emoji(self) -> str:
        return _PRIORITY_EMOJI[self]

    @classmethod
    def from_label(cls, label: str) -> 'Priority | None':
        """Parse 'High' / 'Medium' / 'Low' (case-insensitive); None for anything else."""
        cleaned = label.strip().strip('.!"\'`*').strip().upper()
        return cls.__members__.get(cleaned)


_PRIORITY_EMOJI = {
    Priority.HIGH: '🔴',
    Priority.MEDIUM: '🟡',
    Priority.LOW: '🟢',
}


class WorkItemStatus(str, Enum):
    """Status lifecycle for work items."""

    OPEN = 'open'
    COMPLETED = 'completed'


class WorkItem(BaseModel):
    """
    A tracked task.

    Invariants:
    - status COMPLETED implies completed_at and completed_by are set
    - priority is always one of HIGH / MEDIUM / LOW
    - origin_message_id starting with ``manual_`` marks an item without a
      conversation thread; notifications go to the channel instead
    """

    id: str = Field(default_factory=new_work_item_id, description='Opaque work item id')
    text: str = Field(..., description='What needs to be done')
    summary: str | None = Field(default=None, description='Optional short summary')

    origin_conversation: str = Field(..., description='Conversation the item came from')
    origin_message_id: str = Field(
        ..., description='Message the item came from (manual_<ms> when created manually)'
    )
    created_by: str = Field(..., description='User id of the creator, or auto_system')
    assignee: str = Field(..., description='User id responsible for the item')

    due_at: datetime | None = Field(default=None, description='Deadline, if any')
    priority: Priority = Field(default=Priority.MEDIUM, description='1=High, 2=Medium, 3=Low')
    status: WorkItemStatus = Field(default=WorkItemStatus.OPEN)

    completed_by: str | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    idempotency_key: str | None = Field(
        default=None,
        description='Externally unique anchor; creating twice with the same key yields one item',
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def _completion_recorded(self) -> 'WorkItem':
        if self.status == WorkItemStatus.COMPLETED and (
            self.completed_at is None or self.completed_by is None
        ):
            raise ValueError('completed work items need completed_at and completed_by')
        return self

    @property
    def is_manual(self) -> bool:
        return self.origin_message_id.startswith(MANUAL_ORIGIN_PREFIX)

    @property
    def thread_anchor(self) -> str | None:
        """Message id to thread notifications under, or None to post to the channel."""
        if self.is_manual:
            return None
        return self.origin_message_id

    @property
    def is_completed(self) -> bool:
        return self.status == WorkItemStatus.COMPLETED


class WorkItemDraft(BaseModel):
    """Input for creating a WorkItem."""

    text: str
    origin_conversation: str
    origin_message_id: str
    created_by: str
    assignee: str
    due_at: datetime | None = None
    priority: Priority = Priority.MEDIUM
    summary: str | None = None
    idempotency_key: str | None = None

    def build(self, now: datetime | None = None) -> WorkItem:
        """Materialize a new open WorkItem from this draft."""
        moment = now or utcnow()
        return WorkItem(
            text=self.text,
            summary=self.summary,
            origin_conversation=self.origin_conversation,
            origin_message_id=self.origin_message_id,
            created_by=self.created_by,
            assignee=self.assignee,
            due_at=self.due_at,
            priority=self.priority,
            idempotency_key=self.idempotency_key,
            created_at=moment,
            updated_at=moment,
        )


class WorkItemFilter(BaseModel):
    """Criteria for listing work items. ``status=None`` matches every status."""

    status: WorkItemStatus | None = WorkItemStatus.OPEN
    assignee: str | None = None
    created_by: str | None = None
    conversation: str | None = None

    def matches(self, item: WorkItem) -> bool:
        if self.status is not None and item.status != self.status:
            return False
        if self.assignee is not None and item.assignee != self.assignee:
            return False
        if self.created_by is not None and item.created_by != self.created_by:
            return False
        if self.conversation is not None and item.origin_conversation != self.conversation:
            return False
        return True
