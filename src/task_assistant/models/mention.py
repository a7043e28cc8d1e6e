"""
Mention records: who was asked what, and whether they answered.

A mention is unique per (conversation, anchor message, addressed user) and
moves UNRESOLVED -> REPLIED or UNRESOLVED -> ESCALATED, never both.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from .work_item import Priority, utcnow


class MentionState(str, Enum):
    UNRESOLVED = 'unresolved'
    REPLIED = 'replied'
    ESCALATED = 'escalated'


class Mention(BaseModel):
    """A recorded request addressed to a user."""

    id: str = Field(default_factory=lambda: f"mention_{uuid4().hex[:12]}")
    conversation: str = Field(..., description='Conversation the mention was posted in')
    anchor_message_id: str = Field(
        ..., description='Thread root (or the message itself when not threaded)'
    )
    addressed_user: str = Field(..., description='User who was asked')
    asking_user: str = Field(..., description='User who asked')
    text: str = Field(..., description='The request, with addresses and markers stripped')
    detected_priority: Priority = Field(default=Priority.MEDIUM)

    recorded_at: datetime = Field(default_factory=utcnow)
    replied_at: datetime | None = None
    escalated_to_work_item: bool = False
    work_item_id: str | None = None

    @property
    def state(self) -> MentionState:
        if self.escalated_to_work_item:
            return MentionState.ESCALATED
        if self.replied_at is not None:
            return MentionState.REPLIED
        return MentionState.UNRESOLVED

    @property
    def is_unresolved(self) -> bool:
        return self.state == MentionState.UNRESOLVED


class MentionObservation(BaseModel):
    """Input for recording a mention."""

    conversation: str
    anchor_message_id: str
    addressed_user: str
    asking_user: str
    text: str
    detected_priority: Priority = Priority.MEDIUM

    def build(self, now: datetime | None = None) -> Mention:
        return Mention(
            conversation=self.conversation,
            anchor_message_id=self.anchor_message_id,
            addressed_user=self.addressed_user,
            asking_user=self.asking_user,
            text=self.text,
            detected_priority=self.detected_priority,
            recorded_at=now or utcnow(),
        )


class MentionStats(BaseModel):
    """Counts of mentions by lifecycle state."""

    unresolved: int = 0
    escalated: int = 0
    replied: int = 0

    @property
    def total(self) -> int:
        return self.unresolved + self.escalated + self.replied


class LineAnalysis(BaseModel):
    """How one line of a multi-subject message was interpreted."""

    line: str
    text: str
    addressed_users: list[str] = Field(default_factory=list)
    priority: Priority = Priority.MEDIUM
    is_task: bool = False
    confidence: int = 0
    reason: str | None = None
    recorded_ids: list[str] = Field(default_factory=list)


class MentionAnalysis(BaseModel):
    """Result of splitting, classifying and recording a message's mentions."""

    is_task: bool = False
    recorded_count: int = 0
    analyses: list[LineAnalysis] = Field(default_factory=list)
