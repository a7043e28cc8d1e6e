"""
Reminder sweeps over work items, mentions and requested reminders.

Each sweep reads candidates from the stores, runs every candidate through
``run_isolated`` so one failure never aborts the rest, and gates every
notification through the shared NotificationThrottle. A notification is
recorded in the throttle only after the sink reports success.

Requested reminders are not throttled: the conditional ``mark_fired`` moves a
reminder out of the due set once it has been posted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from ..config import config
from ..errors import (
    EscalationError,
    NotificationError,
    PartialSuccessResult,
    StoreError,
    run_isolated,
)
from ..logging import get_logger
from ..messages import (
    ESCALATION_FAILURE_NOTICE,
    format_escalation,
    format_overdue,
    format_reminder,
    format_unreplied_reminder,
    format_upcoming,
)
from ..models.mention import Mention
from ..models.reminder import Reminder
from ..models.work_item import WorkItem, utcnow
from ..pipeline.mention_tracker import MentionTracker
from ..repository import NotificationSink, ReminderStore, WorkItemStore
from .throttle import NotificationThrottle

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep run."""

    name: str
    candidates: int = 0
    sent: int = 0
    skipped: int = 0
    escalated: int = 0
    items: PartialSuccessResult = field(default_factory=PartialSuccessResult)
    error: str | None = None
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def failed(self) -> int:
        return self.items.failure_count

    @property
    def success(self) -> bool:
        return self.error is None and self.items.all_succeeded

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'candidates': self.candidates,
            'sent': self.sent,
            'skipped': self.skipped,
            'escalated': self.escalated,
            'failed': self.failed,
            'error': self.error,
            'success': self.success,
            'items': self.items.to_dict(),
        }


class ReminderScheduler:
    """
    Sweep engine for deadline reminders, mention escalation and requested
    reminders.

    All sweeps on one instance share one throttle, so the hourly and the
    daily sweep never notify about the same work item twice in a window.
    """

    def __init__(
        self,
        work_items: WorkItemStore,
        sink: NotificationSink,
        mention_tracker: MentionTracker,
        throttle: NotificationThrottle | None = None,
        escalation_threshold_hours: float | None = None,
        timezone: str | None = None,
        clock: Callable[[], datetime] = utcnow,
        reminders: ReminderStore | None = None,
    ):
        self.work_items = work_items
        self.reminders = reminders
        self.sink = sink
        self.mention_tracker = mention_tracker
        self.throttle = throttle or NotificationThrottle(
            cooldown=timedelta(minutes=config.REMINDER_COOLDOWN_MINUTES), clock=clock
        )
        self.escalation_threshold_hours = (
            escalation_threshold_hours
            if escalation_threshold_hours is not None
            else config.ESCALATION_THRESHOLD_HOURS
        )
        self.timezone = timezone or config.TIMEZONE
        self._clock = clock

    # =========================================================================
    # Work item sweeps
    # =========================================================================

    async def run_upcoming_sweep(
        self,
        hours_ahead: float,
        now: datetime | None = None,
        name: str = 'upcoming',
    ) -> SweepResult:
        """Remind assignees about open items due within ``hours_ahead``."""
        now = now or self._clock()
        result = SweepResult(name=name, started_at=now)
        try:
            items = await self.work_items.list_upcoming(hours_ahead, now)
        except StoreError as e:
            return self._abort(result, e)

        return await self._notify_items(
            result, items, lambda item: format_upcoming(item, now, self.timezone), now
        )

    async def run_overdue_sweep(
        self,
        now: datetime | None = None,
        name: str = 'overdue',
    ) -> SweepResult:
        """Remind assignees about open items past their deadline."""
        now = now or self._clock()
        result = SweepResult(name=name, started_at=now)
        try:
            items = await self.work_items.list_overdue(now)
        except StoreError as e:
            return self._abort(result, e)

        return await self._notify_items(
            result, items, lambda item: format_overdue(item, now, self.timezone), now
        )

    async def _notify_items(
        self,
        result: SweepResult,
        items: list[WorkItem],
        render: Callable[[WorkItem], str],
        now: datetime,
    ) -> SweepResult:
        result.candidates = len(items)

        async def notify(item: WorkItem) -> dict[str, Any]:
            if not self.throttle.can_notify(item.id, now):
                result.skipped += 1
                return {'skipped': 'cooldown'}
            await self._post(item.origin_conversation, render(item), item.thread_anchor, item.id)
            self.throttle.record_notified(item.id, now)
            result.sent += 1
            return {'sent': True}

        result.items = await run_isolated(
            items, notify, key=lambda item: item.id, operation=f'reminders.{result.name}'
        )
        return self._finish(result)

    # =========================================================================
    # Mention sweeps
    # =========================================================================

    async def run_escalation_sweep(
        self,
        age_threshold_hours: float | None = None,
        now: datetime | None = None,
        name: str = 'escalation',
    ) -> SweepResult:
        """
        Escalate mentions nobody answered within the threshold and notify the thread.

        When escalation fails the addressed user gets a plain-language notice
        in the thread, and the mention stays unresolved for the next sweep.
        """
        now = now or self._clock()
        threshold = (
            age_threshold_hours
            if age_threshold_hours is not None
            else self.escalation_threshold_hours
        )
        result = SweepResult(name=name, started_at=now)
        try:
            mentions = await self.mention_tracker.get_unresolved_mentions(threshold, now)
        except StoreError as e:
            return self._abort(result, e)
        result.candidates = len(mentions)

        async def escalate(mention: Mention) -> dict[str, Any]:
            try:
                item = await self.mention_tracker.escalate(mention, now)
            except EscalationError:
                await self.sink.post(
                    mention.conversation,
                    ESCALATION_FAILURE_NOTICE.format(user=mention.addressed_user),
                    mention.anchor_message_id,
                )
                raise

            if item is None:
                result.skipped += 1
                return {'skipped': 'replied'}

            result.escalated += 1
            if not self.throttle.can_notify(item.id, now):
                result.skipped += 1
                return {'work_item_id': item.id, 'skipped': 'cooldown'}

            hours_elapsed = int((now - mention.recorded_at).total_seconds() // 3600)
            await self._post(
                mention.conversation,
                format_escalation(item, hours_elapsed),
                mention.anchor_message_id,
                item.id,
            )
            self.throttle.record_notified(item.id, now)
            result.sent += 1
            return {'work_item_id': item.id}

        result.items = await run_isolated(
            mentions, escalate, key=lambda m: m.id, operation=f'reminders.{name}'
        )
        return self._finish(result)

    async def run_unreplied_reminder_sweep(
        self,
        age_threshold_hours: float,
        now: datetime | None = None,
        name: str = 'unreplied_reminder',
    ) -> SweepResult:
        """Nudge addressed users about unanswered mentions without escalating them."""
        now = now or self._clock()
        result = SweepResult(name=name, started_at=now)
        try:
            mentions = await self.mention_tracker.get_unresolved_mentions(age_threshold_hours, now)
        except StoreError as e:
            return self._abort(result, e)
        result.candidates = len(mentions)

        async def remind(mention: Mention) -> dict[str, Any]:
            key = f'mention:{mention.id}'
            if not self.throttle.can_notify(key, now):
                result.skipped += 1
                return {'skipped': 'cooldown'}
            hours_elapsed = int((now - mention.recorded_at).total_seconds() // 3600)
            await self._post(
                mention.conversation,
                format_unreplied_reminder(mention, hours_elapsed),
                mention.anchor_message_id,
                key,
            )
            self.throttle.record_notified(key, now)
            result.sent += 1
            return {'sent': True}

        result.items = await run_isolated(
            mentions, remind, key=lambda m: m.id, operation=f'reminders.{name}'
        )
        return self._finish(result)

    # =========================================================================
    # Requested reminders
    # =========================================================================

    async def run_due_reminders_sweep(
        self,
        now: datetime | None = None,
        name: str = 'due_reminders',
    ) -> SweepResult:
        """
        Post every active reminder whose fire time has passed.

        One-shot reminders are marked done and recurring ones move to their
        next fire time after ``now``. A failed post leaves the reminder due,
        so the next sweep retries it.
        """
        now = now or self._clock()
        result = SweepResult(name=name, started_at=now)
        if self.reminders is None:
            logger.warning('reminders.store_not_configured', sweep=name)
            return self._finish(result)
        try:
            due = await self.reminders.list_due(now)
        except StoreError as e:
            return self._abort(result, e)
        result.candidates = len(due)

        async def fire(reminder: Reminder) -> dict[str, Any]:
            await self._post(
                reminder.conversation,
                format_reminder(reminder),
                reminder.thread_anchor_id,
                reminder.id,
            )
            result.sent += 1
            next_fire_at = reminder.next_fire_after(now)
            if not await self.reminders.mark_fired(reminder.id, now, next_fire_at):
                logger.warning('reminders.reminder_no_longer_active', reminder_id=reminder.id)
            return {'next_fire_at': next_fire_at.isoformat() if next_fire_at else None}

        result.items = await run_isolated(
            due, fire, key=lambda r: r.id, operation=f'reminders.{name}'
        )
        return self._finish(result)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _post(
        self,
        conversation: str,
        text: str,
        thread_anchor_id: str | None,
        key: str,
    ) -> None:
        if not await self.sink.post(conversation, text, thread_anchor_id):
            raise NotificationError(
                'Notification was not delivered',
                context={'key': key, 'conversation': conversation},
            )

    def _abort(self, result: SweepResult, error: StoreError) -> SweepResult:
        logger.error('reminders.sweep_query_failed', sweep=result.name, error=str(error))
        result.error = str(error)
        return self._finish(result)

    def _finish(self, result: SweepResult) -> SweepResult:
        result.completed_at = self._clock()
        pruned = self.throttle.prune(result.started_at)
        logger.info(
            'reminders.sweep_complete',
            sweep=result.name,
            candidates=result.candidates,
            sent=result.sent,
            skipped=result.skipped,
            escalated=result.escalated,
            failed=result.failed,
            throttle_pruned=pruned,
            throttle_size=len(self.throttle),
        )
        return result
