"""
End-to-end tests for AssistantPipeline with in-memory stores.

Covers the request route (create / confirm / help / answer / reminders),
thread summaries, mention recording, thread replies, manual work items and
completion.
"""

from datetime import timedelta

import pytest
from unittest.mock import AsyncMock
from tenacity import wait_none

from task_assistant.logging import current_context
from task_assistant.messages import (
    ANSWER_UNAVAILABLE,
    CONFIRMATION_PROMPT,
    FAILURE_NOTICE,
    HELP_TEXT,
    NO_REMINDER_TO_CANCEL,
    REMINDER_FAILURE_NOTICE,
)
from task_assistant.models import (
    InboundMessage,
    MentionState,
    Priority,
    ReminderDraft,
    ReminderStatus,
    ThreadMessage,
    WorkItemStatus,
)
from task_assistant.pipeline.mention_tracker import MentionTracker
from task_assistant.pipeline.pipeline import AssistantPipeline
from task_assistant.prompts.classify_intent import IntentClassification
from task_assistant.prompts.extract_task import ExtractedTaskInfo
from task_assistant.prompts.reminder_request import ParsedReminderRequest
from task_assistant.prompts.thread import SUMMARY_SYSTEM_PROMPT
from task_assistant.scheduler.reminders import ReminderScheduler
from task_assistant.scheduler.throttle import NotificationThrottle

ASSISTANT_ID = "UBOT"


def _inference(intent=None, extracted=None, completion="Low", reminder=None) -> AsyncMock:
    """Inference mock answering by response model."""
    client = AsyncMock()

    async def structured(messages, response_model, **kwargs):
        if response_model is IntentClassification:
            if intent is None:
                raise RuntimeError("no intent configured")
            return intent
        if response_model is ExtractedTaskInfo:
            if extracted is None:
                raise RuntimeError("no extraction configured")
            return extracted
        if response_model is ParsedReminderRequest:
            if reminder is None:
                raise RuntimeError("no reminder configured")
            return reminder
        raise RuntimeError(f"unexpected model {response_model}")

    client.chat_completion_structured.side_effect = structured
    client.chat_completion.return_value = completion
    return client


def _message(text: str, **overrides) -> InboundMessage:
    fields = dict(conversation_id="C1", message_id="100.1", author_id="U1", text=text)
    fields.update(overrides)
    return InboundMessage(**fields)


@pytest.fixture
def make_pipeline(work_item_store, mention_store, sink):
    def build(inference=None, **kwargs) -> AssistantPipeline:
        tracker = MentionTracker(
            mention_store, work_item_store, classification_enabled=False, mark_wait=wait_none()
        )
        return AssistantPipeline(
            work_items=work_item_store,
            mentions=mention_store,
            sink=sink,
            inference=inference,
            assistant_user_id=ASSISTANT_ID,
            confidence_threshold=70,
            timezone="Asia/Tokyo",
            mention_tracker=tracker,
            **kwargs,
        )

    return build


class TestTaskRequests:
    @pytest.mark.asyncio
    async def test_confident_request_creates_work_item(self, make_pipeline, work_item_store, sink):
        inference = _inference(extracted=ExtractedTaskInfo(title="Send the sales report"))
        pipeline = make_pipeline(inference)

        result = await pipeline.handle_message(
            _message(f"<@{ASSISTANT_ID}> 🔴 please send the sales report")
        )

        assert result.route == "request"
        assert result.intent == "task_request"
        assert result.confidence == 80
        assert result.success
        item = work_item_store.items[result.work_item_id]
        assert item.text == "Send the sales report"
        assert item.priority == Priority.HIGH
        assert item.assignee == "U1"
        assert item.created_by == "U1"
        assert item.origin_message_id == "100.1"
        assert item.idempotency_key == "C1:100.1"
        assert sink.posts[0][2] == "100.1"
        assert item.id in sink.posts[0][1]
        # Rule-matched intent and explicit marker need no inference beyond extraction
        inference.chat_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_assignee_is_first_other_addressed_user(
        self, make_pipeline, work_item_store, mention_store
    ):
        pipeline = make_pipeline(_inference(extracted=ExtractedTaskInfo(title="Review the PR")))

        result = await pipeline.handle_message(
            _message(f"<@{ASSISTANT_ID}> <@U2> please review the PR")
        )

        assert work_item_store.items[result.work_item_id].assignee == "U2"
        assert mention_store.mentions == {}

    @pytest.mark.asyncio
    async def test_priority_from_inference_when_no_marker(self, make_pipeline, work_item_store):
        pipeline = make_pipeline(
            _inference(extracted=ExtractedTaskInfo(title="Tidy docs"), completion="Low")
        )

        result = await pipeline.handle_message(_message(f"<@{ASSISTANT_ID}> please tidy the docs"))

        assert work_item_store.items[result.work_item_id].priority == Priority.LOW

    @pytest.mark.asyncio
    async def test_thread_request_anchors_to_thread_root(self, make_pipeline, work_item_store, sink):
        pipeline = make_pipeline(_inference(extracted=ExtractedTaskInfo(title="Fix it")))

        result = await pipeline.handle_message(
            _message(
                f"<@{ASSISTANT_ID}> please fix it",
                message_id="100.5",
                thread_anchor_id="100.1",
            )
        )

        item = work_item_store.items[result.work_item_id]
        assert item.origin_message_id == "100.1"
        assert item.idempotency_key == "C1:100.5"
        assert sink.posts[0][2] == "100.1"

    @pytest.mark.asyncio
    async def test_redelivered_message_creates_one_item(self, make_pipeline, work_item_store):
        pipeline = make_pipeline(_inference(extracted=ExtractedTaskInfo(title="Send report")))
        message = _message(f"<@{ASSISTANT_ID}> please send the report")

        first = await pipeline.handle_message(message)
        second = await pipeline.handle_message(message)

        assert first.work_item_id == second.work_item_id
        assert len(work_item_store.items) == 1

    @pytest.mark.asyncio
    async def test_low_confidence_asks_for_confirmation(self, make_pipeline, work_item_store, sink):
        inference = _inference(
            intent=IntentClassification(intent="task_request", confidence=55, reason="unclear")
        )
        pipeline = make_pipeline(inference)

        result = await pipeline.handle_message(_message(f"<@{ASSISTANT_ID}> the slides for Monday"))

        assert result.awaiting_confirmation is True
        assert result.work_item_id is None
        assert work_item_store.items == {}
        assert sink.texts() == [CONFIRMATION_PROMPT]

    @pytest.mark.asyncio
    async def test_help(self, make_pipeline, sink):
        result = await make_pipeline().handle_message(_message(f"<@{ASSISTANT_ID}> help"))

        assert result.intent == "help"
        assert sink.texts() == [HELP_TEXT]

    @pytest.mark.asyncio
    async def test_information_without_inference_apologizes(
        self, make_pipeline, work_item_store, sink
    ):
        result = await make_pipeline().handle_message(
            _message(f"<@{ASSISTANT_ID}> when is the release?")
        )

        assert result.intent == "information"
        assert result.answered is False
        assert result.warnings == ["answer degraded: inference disabled"]
        assert sink.posts == [("C1", ANSWER_UNAVAILABLE, "100.1")]
        assert work_item_store.items == {}

    @pytest.mark.asyncio
    async def test_unclassifiable_without_inference_degrades_to_help(self, make_pipeline, sink):
        result = await make_pipeline().handle_message(
            _message(f"<@{ASSISTANT_ID}> the slides for Monday")
        )

        assert result.intent == "help"
        assert result.confidence == 50
        assert result.warnings
        assert sink.texts() == [HELP_TEXT]

    @pytest.mark.asyncio
    async def test_without_inference_still_creates_item(self, make_pipeline, work_item_store):
        result = await make_pipeline().handle_message(
            _message(f"<@{ASSISTANT_ID}> please send the deck")
        )

        item = work_item_store.items[result.work_item_id]
        assert item.text == "please send the deck"
        assert item.priority == Priority.MEDIUM
        assert item.due_at is None
        assert len(result.warnings) == 2

    @pytest.mark.asyncio
    async def test_store_failure_notifies_author(self, make_pipeline, work_item_store, sink):
        work_item_store.fail_on.add("create")

        result = await make_pipeline().handle_message(
            _message(f"<@{ASSISTANT_ID}> please send the deck")
        )

        assert not result.success
        assert result.work_item_id is None
        assert sink.texts() == [FAILURE_NOTICE]

    @pytest.mark.asyncio
    async def test_notification_failure_is_a_warning(self, make_pipeline, sink):
        sink.deliver = False

        result = await make_pipeline().handle_message(_message(f"<@{ASSISTANT_ID}> help"))

        assert result.success
        assert result.notifications_sent == 0
        assert "notification failed" in result.warnings


class TestMentionsAndReplies:
    @pytest.mark.asyncio
    async def test_mentions_recorded_for_other_users(self, make_pipeline, mention_store, sink):
        result = await make_pipeline().handle_message(_message("<@U2> please review the PR"))

        assert result.route == "mentions"
        assert result.mention_analysis.recorded_count == 1
        (mention,) = mention_store.mentions.values()
        assert mention.addressed_user == "U2"
        assert mention.asking_user == "U1"
        assert sink.posts == []

    @pytest.mark.asyncio
    async def test_self_mention_is_ignored(self, make_pipeline, mention_store):
        result = await make_pipeline().handle_message(_message("<@U1> note to self"))

        assert result.route == "ignored"
        assert mention_store.mentions == {}

    @pytest.mark.asyncio
    async def test_thread_reply_resolves_mention(self, make_pipeline, mention_store):
        pipeline = make_pipeline()
        await pipeline.handle_message(_message("<@U2> please review the PR"))

        result = await pipeline.handle_message(
            _message("done!", message_id="100.9", thread_anchor_id="100.1", author_id="U2")
        )

        assert result.route == "reply"
        (mention,) = mention_store.mentions.values()
        assert result.replied_mention_ids == [mention.id]
        assert mention.state == MentionState.REPLIED

    @pytest.mark.asyncio
    async def test_reply_from_someone_else_does_not_resolve(self, make_pipeline, mention_store):
        pipeline = make_pipeline()
        await pipeline.handle_message(_message("<@U2> please review the PR"))

        result = await pipeline.handle_message(
            _message("+1", message_id="100.9", thread_anchor_id="100.1", author_id="U3")
        )

        assert result.replied_mention_ids == []
        (mention,) = mention_store.mentions.values()
        assert mention.state == MentionState.UNRESOLVED

    @pytest.mark.asyncio
    async def test_replied_mention_is_not_escalated(
        self, make_pipeline, mention_store, work_item_store, sink, now
    ):
        pipeline = make_pipeline()
        await pipeline.handle_message(_message("<@U2> please review the PR"))
        await pipeline.handle_message(
            _message("on it", message_id="100.9", thread_anchor_id="100.1", author_id="U2")
        )
        scheduler = ReminderScheduler(
            work_items=work_item_store,
            sink=sink,
            mention_tracker=pipeline.mention_tracker,
            throttle=NotificationThrottle(),
        )

        result = await scheduler.run_escalation_sweep(0, now=now + timedelta(days=30))

        assert result.candidates == 0
        assert work_item_store.items == {}

    @pytest.mark.asyncio
    async def test_logging_context_is_reset(self, make_pipeline):
        await make_pipeline().handle_message(_message("<@U2> please review the PR"))
        assert current_context() == {}


class TestManualAndCompletion:
    @pytest.mark.asyncio
    async def test_manual_item_posts_to_channel(self, make_pipeline, sink, now):
        item = await make_pipeline().create_manual_work_item(
            "Renew the certificate",
            conversation="C9",
            created_by="U1",
            priority=Priority.HIGH,
            now=now,
        )

        assert item.is_manual
        assert item.assignee == "U1"
        assert item.priority == Priority.HIGH
        assert sink.posts[0][0] == "C9"
        assert sink.posts[0][2] is None

    @pytest.mark.asyncio
    async def test_complete_posts_in_thread(self, make_pipeline, work_item_store, sink, now):
        pipeline = make_pipeline(_inference(extracted=ExtractedTaskInfo(title="Send report")))
        created = await pipeline.handle_message(_message(f"<@{ASSISTANT_ID}> please send it"))

        completed = await pipeline.complete_work_item(created.work_item_id, "U2", now)

        assert completed.status == WorkItemStatus.COMPLETED
        assert completed.completed_by == "U2"
        assert completed.completed_at == now
        assert sink.posts[-1][2] == "100.1"
        assert "<@U2>" in sink.posts[-1][1]

    @pytest.mark.asyncio
    async def test_second_completion_keeps_first(self, make_pipeline, sink, now):
        pipeline = make_pipeline()
        item = await pipeline.create_manual_work_item("x", conversation="C1", created_by="U1")

        await pipeline.complete_work_item(item.id, "U2", now)
        posts_before = len(sink.posts)
        again = await pipeline.complete_work_item(item.id, "U3", now + timedelta(hours=1))

        assert again.completed_by == "U2"
        assert again.completed_at == now
        assert len(sink.posts) == posts_before

    @pytest.mark.asyncio
    async def test_complete_unknown_item(self, make_pipeline):
        assert await make_pipeline().complete_work_item("task_missing", "U1") is None


class TestResultSerialization:
    @pytest.mark.asyncio
    async def test_to_dict(self, make_pipeline):
        result = await make_pipeline().handle_message(_message(f"<@{ASSISTANT_ID}> help"))

        data = result.to_dict()

        assert data["route"] == "request"
        assert data["intent"] == "help"
        assert data["success"] is True
        assert data["mentions_recorded"] == 0
        assert "stage_timings" in data
        assert data["reminder_id"] is None
        assert data["cancelled_reminder_ids"] == []
        assert data["answered"] is False


def _thread(*texts, anchor="100.1") -> list[ThreadMessage]:
    """Thread messages by alternating users U1/U2, the first one being the anchor."""
    base = float(anchor)
    return [
        ThreadMessage(message_id=f"{base + i / 10:.1f}", author_id=f"U{i % 2 + 1}", text=t)
        for i, t in enumerate(texts)
    ]


class TestDirectAnswers:
    @pytest.mark.asyncio
    async def test_answer_is_posted(self, make_pipeline, sink):
        inference = _inference(completion="The release is on Friday.")
        pipeline = make_pipeline(inference, thread_reader=sink)

        result = await pipeline.handle_message(
            _message(f"<@{ASSISTANT_ID}> when is the release?")
        )

        assert result.intent == "information"
        assert result.answered is True
        assert result.warnings == []
        assert sink.posts == [("C1", "The release is on Friday.", "100.1")]

    @pytest.mark.asyncio
    async def test_thread_history_is_context(self, make_pipeline, sink):
        sink.threads[("C1", "100.1")] = _thread(
            "we moved the release",
            "to Friday, right?",
            f"<@{ASSISTANT_ID}> when is the release?",
        )
        inference = _inference(completion="Friday.")
        pipeline = make_pipeline(inference, thread_reader=sink)

        await pipeline.handle_message(
            _message(
                f"<@{ASSISTANT_ID}> when is the release?",
                message_id="100.3",
                thread_anchor_id="100.1",
            )
        )

        assert sink.fetched == [("C1", "100.1")]
        messages = inference.chat_completion.call_args.kwargs["messages"]
        assert [m["content"] for m in messages[1:]] == [
            "U1: we moved the release",
            "U2: to Friday, right?",
            "when is the release?",
        ]
        assert sink.posts == [("C1", "Friday.", "100.1")]

    @pytest.mark.asyncio
    async def test_top_level_question_skips_thread_fetch(self, make_pipeline, sink):
        pipeline = make_pipeline(_inference(completion="Friday."), thread_reader=sink)

        await pipeline.handle_message(_message(f"<@{ASSISTANT_ID}> when is the release?"))

        assert sink.fetched == []

    @pytest.mark.asyncio
    async def test_inference_failure_apologizes(self, make_pipeline, sink):
        inference = _inference()
        inference.chat_completion.side_effect = RuntimeError("timeout")

        result = await make_pipeline(inference).handle_message(
            _message(f"<@{ASSISTANT_ID}> when is the release?")
        )

        assert result.answered is False
        assert result.success
        assert len(result.warnings) == 1
        assert sink.texts() == [ANSWER_UNAVAILABLE]


class TestReminderRequests:
    @pytest.mark.asyncio
    async def test_relative_reminder_is_created(self, make_pipeline, reminder_store, sink):
        inference = _inference(
            reminder=ParsedReminderRequest(
                reminder_message="call Ken",
                schedule_type="relative",
                relative_minutes=15,
                confidence=90,
            )
        )
        pipeline = make_pipeline(inference, reminders=reminder_store)

        result = await pipeline.handle_message(
            _message(f"<@{ASSISTANT_ID}> remind me in 15 minutes to call Ken")
        )

        assert result.intent == "reminder_setup"
        assert result.success
        reminder = reminder_store.reminders[result.reminder_id]
        assert reminder.message == "call Ken"
        assert reminder.target_user == "U1"
        assert reminder.created_by == "U1"
        assert reminder.thread_anchor_id == "100.1"
        assert reminder.fire_at - reminder.created_at == timedelta(minutes=15)
        assert not reminder.is_recurring
        assert sink.texts()[0].startswith("🔔 *Reminder set*")

    @pytest.mark.asyncio
    async def test_recurring_reminder(self, make_pipeline, reminder_store):
        inference = _inference(
            reminder=ParsedReminderRequest(
                reminder_message="stand-up notes",
                schedule_type="interval",
                schedule_time="2026-03-03T09:00:00+09:00",
                interval_minutes=1440,
                reminder_type="recurring",
                confidence=85,
            )
        )
        pipeline = make_pipeline(inference, reminders=reminder_store)

        result = await pipeline.handle_message(
            _message(f"<@{ASSISTANT_ID}> remind me every day at 9 about stand-up notes")
        )

        reminder = reminder_store.reminders[result.reminder_id]
        assert reminder.interval_minutes == 1440
        assert reminder.fire_at.isoformat() == "2026-03-03T09:00:00+09:00"

    @pytest.mark.asyncio
    async def test_addressed_user_is_target(self, make_pipeline, reminder_store):
        pipeline = make_pipeline(reminders=reminder_store)

        result = await pipeline.handle_message(
            _message(f"<@{ASSISTANT_ID}> remind <@U2> to submit the timesheet")
        )

        reminder = reminder_store.reminders[result.reminder_id]
        assert reminder.target_user == "U2"
        assert reminder.created_by == "U1"

    @pytest.mark.asyncio
    async def test_unparsed_request_falls_back_to_default_delay(
        self, make_pipeline, reminder_store
    ):
        result = await make_pipeline(reminders=reminder_store).handle_message(
            _message(f"<@{ASSISTANT_ID}> remind me to water the plants")
        )

        assert result.success
        assert result.warnings == ["reminder parsing degraded: inference disabled"]
        reminder = reminder_store.reminders[result.reminder_id]
        assert reminder.message == "remind me to water the plants"
        assert reminder.fire_at - reminder.created_at == timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_store_failure_posts_notice(self, make_pipeline, reminder_store, sink):
        reminder_store.fail_on.add("create")

        result = await make_pipeline(reminders=reminder_store).handle_message(
            _message(f"<@{ASSISTANT_ID}> remind me to water the plants")
        )

        assert not result.success
        assert result.reminder_id is None
        assert sink.texts() == [REMINDER_FAILURE_NOTICE]

    @pytest.mark.asyncio
    async def test_without_reminder_store_nothing_happens(self, make_pipeline, sink):
        result = await make_pipeline().handle_message(
            _message(f"<@{ASSISTANT_ID}> remind me to water the plants")
        )

        assert result.intent == "reminder_setup"
        assert result.success
        assert result.reminder_id is None
        assert sink.posts == []


async def _add_reminder(store, now, anchor, created_by="U1", message="water the plants"):
    draft = ReminderDraft(
        conversation="C1",
        thread_anchor_id=anchor,
        created_by=created_by,
        target_user=created_by,
        message=message,
        fire_at=now + timedelta(hours=1),
    )
    return await store.create(draft, now)


class TestReminderCancel:
    @pytest.mark.asyncio
    async def test_cancel_in_thread_targets_that_thread(
        self, make_pipeline, reminder_store, sink, now
    ):
        here = await _add_reminder(reminder_store, now, "100.1")
        elsewhere = await _add_reminder(reminder_store, now, "200.1")

        result = await make_pipeline(reminders=reminder_store).handle_message(
            _message(
                f"<@{ASSISTANT_ID}> cancel the reminder",
                message_id="100.5",
                thread_anchor_id="100.1",
            )
        )

        assert result.intent == "reminder_cancel"
        assert result.cancelled_reminder_ids == [here.id]
        assert reminder_store.reminders[here.id].status == ReminderStatus.CANCELLED
        assert reminder_store.reminders[elsewhere.id].status == ReminderStatus.ACTIVE
        assert sink.texts()[0].startswith("🛑 *Cancelled 1 reminder")

    @pytest.mark.asyncio
    async def test_cancel_outside_thread_takes_latest(self, make_pipeline, reminder_store, now):
        older = await _add_reminder(reminder_store, now - timedelta(hours=2), "100.1")
        newer = await _add_reminder(reminder_store, now - timedelta(hours=1), "200.1")

        result = await make_pipeline(reminders=reminder_store).handle_message(
            _message(f"<@{ASSISTANT_ID}> cancel my reminder", message_id="300.1")
        )

        assert result.cancelled_reminder_ids == [newer.id]
        assert reminder_store.reminders[older.id].status == ReminderStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_other_users_reminders_are_untouched(
        self, make_pipeline, reminder_store, sink, now
    ):
        theirs = await _add_reminder(reminder_store, now, "100.1", created_by="U9")

        result = await make_pipeline(reminders=reminder_store).handle_message(
            _message(
                f"<@{ASSISTANT_ID}> cancel the reminder",
                message_id="100.5",
                thread_anchor_id="100.1",
            )
        )

        assert result.cancelled_reminder_ids == []
        assert reminder_store.reminders[theirs.id].status == ReminderStatus.ACTIVE
        assert sink.texts() == [NO_REMINDER_TO_CANCEL]

    @pytest.mark.asyncio
    async def test_store_failure_posts_notice(self, make_pipeline, reminder_store, sink, now):
        await _add_reminder(reminder_store, now, "100.1")
        reminder_store.fail_on.add("list_active")

        result = await make_pipeline(reminders=reminder_store).handle_message(
            _message(f"<@{ASSISTANT_ID}> cancel my reminder")
        )

        assert not result.success
        assert sink.texts() == [REMINDER_FAILURE_NOTICE]


class TestThreadSummary:
    @staticmethod
    def _summarizing_inference(summary="- Ken needs the Q3 deck\n- due Friday"):
        inference = _inference(extracted=ExtractedTaskInfo(title="Send the Q3 deck"))

        async def completion(messages, **kwargs):
            if messages[0]["content"] == SUMMARY_SYSTEM_PROMPT:
                if isinstance(summary, Exception):
                    raise summary
                return summary
            return "Low"

        inference.chat_completion.side_effect = completion
        return inference

    @staticmethod
    def _thread_request():
        return _message(
            f"<@{ASSISTANT_ID}> please send the Q3 deck by Friday",
            message_id="100.4",
            thread_anchor_id="100.1",
        )

    @pytest.mark.asyncio
    async def test_request_in_thread_gets_summary(self, make_pipeline, work_item_store, sink):
        sink.threads[("C1", "100.1")] = _thread(
            "Ken asked for the Q3 deck", "it has to be ready by Friday"
        )
        pipeline = make_pipeline(
            self._summarizing_inference(), thread_reader=sink, summarize_threads=True
        )

        result = await pipeline.handle_message(self._thread_request())

        item = work_item_store.items[result.work_item_id]
        assert item.summary == "- Ken needs the Q3 deck\n- due Friday"
        assert sink.fetched == [("C1", "100.1")]
        assert "*Thread summary:*" in sink.texts()[0]

    @pytest.mark.asyncio
    async def test_summaries_off(self, make_pipeline, work_item_store, sink):
        sink.threads[("C1", "100.1")] = _thread("a", "b")
        pipeline = make_pipeline(
            self._summarizing_inference(), thread_reader=sink, summarize_threads=False
        )

        result = await pipeline.handle_message(self._thread_request())

        assert work_item_store.items[result.work_item_id].summary is None
        assert sink.fetched == []

    @pytest.mark.asyncio
    async def test_summary_failure_still_creates_item(self, make_pipeline, work_item_store, sink):
        sink.threads[("C1", "100.1")] = _thread("a", "b")
        pipeline = make_pipeline(
            self._summarizing_inference(summary=RuntimeError("timeout")),
            thread_reader=sink,
            summarize_threads=True,
        )

        result = await pipeline.handle_message(self._thread_request())

        assert result.success
        assert work_item_store.items[result.work_item_id].summary is None
        assert any(w.startswith("summary degraded") for w in result.warnings)
