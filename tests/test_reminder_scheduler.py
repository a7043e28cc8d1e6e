"""
Tests for the reminder sweeps.
"""

from datetime import timedelta

import pytest
from tenacity import wait_none

from task_assistant.models import (
    MentionObservation,
    MentionState,
    ReminderDraft,
    ReminderStatus,
    WorkItemDraft,
)
from task_assistant.pipeline.mention_tracker import MentionTracker
from task_assistant.scheduler.reminders import ReminderScheduler
from task_assistant.scheduler.throttle import NotificationThrottle


def _draft(**overrides) -> WorkItemDraft:
    fields = dict(
        text="Send the report",
        origin_conversation="C1",
        origin_message_id="100.1",
        created_by="U1",
        assignee="U2",
    )
    fields.update(overrides)
    return WorkItemDraft(**fields)


def _reminder(now, **overrides) -> ReminderDraft:
    fields = dict(
        conversation="C1",
        thread_anchor_id="700.1",
        created_by="U1",
        target_user="U2",
        message="submit the expense report",
        fire_at=now - timedelta(minutes=1),
    )
    fields.update(overrides)
    return ReminderDraft(**fields)


def _observation(**overrides) -> MentionObservation:
    fields = dict(
        conversation="C1",
        anchor_message_id="500.1",
        addressed_user="U2",
        asking_user="U1",
        text="review the PR",
    )
    fields.update(overrides)
    return MentionObservation(**fields)


@pytest.fixture
def tracker(mention_store, work_item_store) -> MentionTracker:
    return MentionTracker(
        mention_store, work_item_store, classification_enabled=False, mark_wait=wait_none()
    )


@pytest.fixture
def scheduler(work_item_store, reminder_store, sink, tracker, now) -> ReminderScheduler:
    return ReminderScheduler(
        work_items=work_item_store,
        sink=sink,
        mention_tracker=tracker,
        throttle=NotificationThrottle(timedelta(hours=1)),
        escalation_threshold_hours=24,
        timezone="Asia/Tokyo",
        clock=lambda: now,
        reminders=reminder_store,
    )


class TestUpcomingSweep:
    @pytest.mark.asyncio
    async def test_notifies_items_in_window(self, scheduler, work_item_store, sink, now):
        soon = await work_item_store.create(_draft(due_at=now + timedelta(hours=2)), now)
        await work_item_store.create(_draft(due_at=now + timedelta(hours=30)), now)
        await work_item_store.create(_draft(due_at=None), now)

        result = await scheduler.run_upcoming_sweep(24, now)

        assert result.candidates == 1
        assert result.sent == 1
        assert result.success
        assert sink.posts[0][0] == "C1"
        assert sink.posts[0][2] == "100.1"
        assert soon.id in sink.posts[0][1]

    @pytest.mark.asyncio
    async def test_overlapping_sweeps_share_cooldown(self, scheduler, work_item_store, sink, now):
        await work_item_store.create(_draft(due_at=now + timedelta(hours=2)), now)

        morning = await scheduler.run_upcoming_sweep(24, now, name="morning_upcoming")
        hourly = await scheduler.run_upcoming_sweep(3, now + timedelta(minutes=5))
        later = await scheduler.run_upcoming_sweep(3, now + timedelta(hours=1))

        assert morning.sent == 1
        assert hourly.sent == 0
        assert hourly.skipped == 1
        assert later.sent == 1
        assert len(sink.posts) == 2

    @pytest.mark.asyncio
    async def test_completed_items_are_not_reminded(self, scheduler, work_item_store, sink, now):
        item = await work_item_store.create(_draft(due_at=now + timedelta(hours=2)), now)
        await work_item_store.complete(item.id, "U2", now)

        result = await scheduler.run_upcoming_sweep(24, now)

        assert result.candidates == 0
        assert sink.posts == []

    @pytest.mark.asyncio
    async def test_manual_item_posts_to_channel(self, scheduler, work_item_store, sink, now):
        await work_item_store.create(
            _draft(origin_message_id="manual_1700000000000", due_at=now + timedelta(hours=1)),
            now,
        )

        await scheduler.run_upcoming_sweep(24, now)

        assert sink.posts[0][2] is None

    @pytest.mark.asyncio
    async def test_failed_delivery_is_not_throttled(self, scheduler, work_item_store, sink, now):
        item = await work_item_store.create(_draft(due_at=now + timedelta(hours=2)), now)
        sink.deliver = False

        failed = await scheduler.run_upcoming_sweep(24, now)

        assert failed.failed == 1
        assert failed.sent == 0
        assert scheduler.throttle.can_notify(item.id, now)

        sink.deliver = True
        retried = await scheduler.run_upcoming_sweep(24, now + timedelta(minutes=1))
        assert retried.sent == 1

    @pytest.mark.asyncio
    async def test_store_failure_aborts_sweep(self, scheduler, work_item_store, sink, now):
        work_item_store.fail_on.add("list_upcoming")

        result = await scheduler.run_upcoming_sweep(24, now)

        assert result.error is not None
        assert not result.success
        assert sink.posts == []


class TestOverdueSweep:
    @pytest.mark.asyncio
    async def test_notifies_overdue_items(self, scheduler, work_item_store, sink, now):
        await work_item_store.create(_draft(due_at=now - timedelta(days=2)), now)
        await work_item_store.create(_draft(due_at=now + timedelta(hours=1)), now)

        result = await scheduler.run_overdue_sweep(now)

        assert result.sent == 1
        assert "overdue" in sink.posts[0][1]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_others(self, scheduler, work_item_store, sink, now):
        await work_item_store.create(_draft(due_at=now - timedelta(days=2)), now)
        await work_item_store.create(_draft(due_at=now - timedelta(days=1)), now)
        outcomes = iter([False, True])

        async def flaky_post(conversation_id, text, thread_anchor_id=None):
            sink.posts.append((conversation_id, text, thread_anchor_id))
            return next(outcomes)

        sink.post = flaky_post

        result = await scheduler.run_overdue_sweep(now)

        assert result.candidates == 2
        assert result.failed == 1
        assert result.sent == 1
        assert result.items.partial_success


class TestEscalationSweep:
    @pytest.mark.asyncio
    async def test_escalates_old_unresolved_mentions(
        self, scheduler, tracker, mention_store, work_item_store, sink, now
    ):
        old = await tracker.record_mention(_observation(), now - timedelta(hours=26))
        await tracker.record_mention(_observation(addressed_user="U3"), now - timedelta(hours=2))

        result = await scheduler.run_escalation_sweep(now=now)

        assert result.candidates == 1
        assert result.escalated == 1
        assert result.sent == 1
        stored = mention_store.mentions[old.id]
        assert stored.state == MentionState.ESCALATED
        item = work_item_store.items[stored.work_item_id]
        assert sink.posts == [("C1", sink.posts[0][1], "500.1")]
        assert item.id in sink.posts[0][1]
        assert "26+ hours" in sink.posts[0][1]

    @pytest.mark.asyncio
    async def test_second_sweep_does_not_escalate_again(
        self, scheduler, tracker, work_item_store, now
    ):
        await tracker.record_mention(_observation(), now - timedelta(hours=26))

        await scheduler.run_escalation_sweep(now=now)
        second = await scheduler.run_escalation_sweep(now=now + timedelta(days=1))

        assert second.candidates == 0
        assert len(work_item_store.items) == 1

    @pytest.mark.asyncio
    async def test_escalation_failure_notifies_thread(
        self, scheduler, tracker, work_item_store, mention_store, sink, now
    ):
        mention = await tracker.record_mention(_observation(), now - timedelta(hours=26))
        work_item_store.fail_on.add("create")

        result = await scheduler.run_escalation_sweep(now=now)

        assert result.failed == 1
        assert result.escalated == 0
        assert sink.posts[0][2] == "500.1"
        assert "<@U2>" in sink.posts[0][1]
        assert mention_store.mentions[mention.id].state == MentionState.UNRESOLVED

    @pytest.mark.asyncio
    async def test_list_failure_aborts(self, scheduler, mention_store, now):
        mention_store.fail_on.add("list_unresolved")

        result = await scheduler.run_escalation_sweep(now=now)

        assert result.error is not None


class TestUnrepliedReminderSweep:
    @pytest.mark.asyncio
    async def test_nudges_without_escalating(self, scheduler, tracker, mention_store, sink, now):
        mention = await tracker.record_mention(_observation(), now - timedelta(hours=5))

        first = await scheduler.run_unreplied_reminder_sweep(4, now)
        second = await scheduler.run_unreplied_reminder_sweep(4, now + timedelta(minutes=10))

        assert first.sent == 1
        assert second.skipped == 1
        assert sink.posts[0][1].startswith("<@U2>")
        assert mention_store.mentions[mention.id].state == MentionState.UNRESOLVED
        assert f"mention:{mention.id}" in scheduler.throttle


class TestDueReminderSweep:
    @pytest.mark.asyncio
    async def test_one_shot_reminder_fires_once(self, scheduler, reminder_store, sink, now):
        reminder = await reminder_store.create(_reminder(now), now)
        await reminder_store.create(_reminder(now, fire_at=now + timedelta(minutes=5)), now)

        result = await scheduler.run_due_reminders_sweep(now)

        assert result.candidates == 1
        assert result.sent == 1
        assert result.success
        assert sink.posts == [
            ("C1", "<@U2> 🔔 *Reminder:* submit the expense report", "700.1")
        ]
        stored = reminder_store.reminders[reminder.id]
        assert stored.status == ReminderStatus.DONE
        assert stored.last_fired_at == now

        again = await scheduler.run_due_reminders_sweep(now + timedelta(minutes=1))
        assert again.candidates == 0
        assert len(sink.posts) == 1

    @pytest.mark.asyncio
    async def test_recurring_reminder_skips_missed_occurrences(
        self, scheduler, reminder_store, sink, now
    ):
        reminder = await reminder_store.create(
            _reminder(now, fire_at=now - timedelta(minutes=150), interval_minutes=60), now
        )

        result = await scheduler.run_due_reminders_sweep(now)

        assert result.sent == 1
        stored = reminder_store.reminders[reminder.id]
        assert stored.status == ReminderStatus.ACTIVE
        assert stored.fire_at == now + timedelta(minutes=30)
        assert len(sink.posts) == 1

    @pytest.mark.asyncio
    async def test_reminders_bypass_work_item_cooldown(self, scheduler, reminder_store, sink, now):
        reminder = await reminder_store.create(_reminder(now, interval_minutes=5), now)

        await scheduler.run_due_reminders_sweep(now)
        await scheduler.run_due_reminders_sweep(now + timedelta(minutes=5))

        assert len(sink.posts) == 2
        assert reminder_store.reminders[reminder.id].fire_at == now + timedelta(minutes=9)

    @pytest.mark.asyncio
    async def test_failed_post_leaves_reminder_due(self, scheduler, reminder_store, sink, now):
        reminder = await reminder_store.create(_reminder(now), now)
        sink.deliver = False

        result = await scheduler.run_due_reminders_sweep(now)

        assert result.failed == 1
        assert reminder_store.reminders[reminder.id].status == ReminderStatus.ACTIVE

        sink.deliver = True
        retried = await scheduler.run_due_reminders_sweep(now + timedelta(minutes=1))
        assert retried.sent == 1
        assert reminder_store.reminders[reminder.id].status == ReminderStatus.DONE

    @pytest.mark.asyncio
    async def test_cancelled_reminder_does_not_fire(self, scheduler, reminder_store, sink, now):
        reminder = await reminder_store.create(_reminder(now), now)
        await reminder_store.cancel(reminder.id)

        result = await scheduler.run_due_reminders_sweep(now)

        assert result.candidates == 0
        assert sink.posts == []

    @pytest.mark.asyncio
    async def test_store_failure_aborts(self, scheduler, reminder_store, now):
        reminder_store.fail_on.add("list_due")

        result = await scheduler.run_due_reminders_sweep(now)

        assert result.error == "list_due failed"
        assert not result.success

    @pytest.mark.asyncio
    async def test_without_reminder_store(self, work_item_store, sink, tracker, now):
        scheduler = ReminderScheduler(work_item_store, sink, tracker, clock=lambda: now)

        result = await scheduler.run_due_reminders_sweep()

        assert result.candidates == 0
        assert result.success
