"""
Reminder model.

A reminder is a message the assistant posts at a requested time on behalf of
a user. One-shot reminders move ACTIVE -> DONE when they fire; recurring ones
stay ACTIVE and advance ``fire_at`` by their interval. Either can be
CANCELLED while still active.
"""

from datetime import datetime, timedelta
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from .work_item import utcnow


def new_reminder_id() -> str:
    return f"reminder_{uuid4().hex[:12]}"


class ReminderStatus(str, Enum):
    ACTIVE = 'active'
    DONE = 'done'
    CANCELLED = 'cancelled'


class Reminder(BaseModel):
    """A scheduled reminder."""

    id: str = Field(default_factory=new_reminder_id)
    conversation: str = Field(..., description='Conversation the reminder is posted to')
    thread_anchor_id: str | None = Field(
        default=None, description='Thread to post under; None posts to the channel'
    )
    created_by: str = Field(..., description='User who asked for the reminder')
    target_user: str = Field(..., description='User the reminder addresses')
    message: str = Field(..., description='What to remind about')

    fire_at: datetime = Field(..., description='Next time the reminder is due')
    interval_minutes: int | None = Field(
        default=None, ge=1, description='Repeat interval; None for a one-shot reminder'
    )
    status: ReminderStatus = Field(default=ReminderStatus.ACTIVE)
    last_fired_at: datetime | None = None

    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_recurring(self) -> bool:
        return self.interval_minutes is not None

    def next_fire_after(self, now: datetime) -> datetime | None:
        """
        Next fire time strictly after ``now`` for a recurring reminder.

        Missed occurrences are skipped rather than replayed. None for a
        one-shot reminder.
        """
        if self.interval_minutes is None:
            return None
        interval = timedelta(minutes=self.interval_minutes)
        if self.fire_at > now:
            return self.fire_at
        missed = (now - self.fire_at) // interval + 1
        return self.fire_at + missed * interval


class ReminderDraft(BaseModel):
    """Input for creating a Reminder."""

    conversation: str
    thread_anchor_id: str | None = None
    created_by: str
    target_user: str
    message: str
    fire_at: datetime
    interval_minutes: int | None = Field(default=None, ge=1)

    def build(self, now: datetime | None = None) -> Reminder:
        return Reminder(
            conversation=self.conversation,
            thread_anchor_id=self.thread_anchor_id,
            created_by=self.created_by,
            target_user=self.target_user,
            message=self.message,
            fire_at=self.fire_at,
            interval_minutes=self.interval_minutes,
            created_at=now or utcnow(),
        )
