"""
Ingestion orchestrator for inbound chat messages.

Per message:
1. A reply inside a thread resolves the author's open mentions in that thread
2. A message addressing the assistant is classified and routed:
   - confident TASK_REQUEST -> extract -> priority -> create work item -> confirm
   - unconfident TASK_REQUEST -> ask the author to confirm, create nothing
   - HELP -> post help text
   - REMINDER_SETUP -> parse the schedule -> store a reminder -> confirm
   - REMINDER_CANCEL -> cancel the author's reminder(s) for this thread, or
     their latest one when asked outside a thread
   - INFORMATION -> answer in the thread, using earlier thread messages as context
   Requests made inside a thread get a summary of that thread on the work item
   when summaries are enabled.
3. A message addressing other users is split into lines and mentions recorded
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..clients.openai_client import OpenAIClient
from ..clients.postgres_client import (
    PostgresClient,
    PostgresMentionStore,
    PostgresReminderStore,
    PostgresWorkItemStore,
)
from ..clients.slack_client import SlackNotificationSink
from ..config import config
from ..errors import StoreError
from ..logging import PipelineTimer, get_logger, logging_context
from ..messages import (
    CONFIRMATION_PROMPT,
    FAILURE_NOTICE,
    HELP_TEXT,
    NO_REMINDER_TO_CANCEL,
    REMINDER_FAILURE_NOTICE,
    format_completed,
    format_created,
    format_reminder_set,
    format_reminders_cancelled,
)
from ..models.intent import Intent
from ..models.mention import MentionAnalysis
from ..models.message import InboundMessage, ThreadMessage
from ..models.reminder import ReminderDraft
from ..models.work_item import Priority, WorkItem, WorkItemDraft, manual_origin_id, utcnow
from ..repository import (
    MentionStore,
    NotificationSink,
    ReminderStore,
    TextInferenceClient,
    ThreadReader,
    WorkItemStore,
)
from . import markers
from .answerer import QuestionAnswerer
from .extractor import TaskExtractor
from .intent import IntentClassifier, is_confident
from .mention_tracker import MentionTracker
from .priority import PriorityResolver
from .reminder_request import ReminderRequestParser
from .summarizer import ThreadSummarizer
from .task_request import TaskRequestAnalyzer

logger = get_logger(__name__)


@dataclass
class IngestionResult:
    """Result of handling one inbound message."""

    conversation_id: str
    message_id: str

    # Routing: 'request', 'mentions', 'reply' or 'ignored'
    route: str = 'ignored'
    intent: str | None = None
    confidence: int | None = None
    awaiting_confirmation: bool = False

    work_item_id: str | None = None
    reminder_id: str | None = None
    cancelled_reminder_ids: list[str] = field(default_factory=list)
    answered: bool = False
    replied_mention_ids: list[str] = field(default_factory=list)
    mention_analysis: MentionAnalysis | None = None
    notifications_sent: int = 0

    # Timing
    started_at: datetime = field(default_factory=utcnow)
    processing_time_ms: int | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    # Degraded steps are warnings; failed effects are errors
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'conversation_id': self.conversation_id,
            'message_id': self.message_id,
            'route': self.route,
            'intent': self.intent,
            'confidence': self.confidence,
            'awaiting_confirmation': self.awaiting_confirmation,
            'work_item_id': self.work_item_id,
            'reminder_id': self.reminder_id,
            'cancelled_reminder_ids': self.cancelled_reminder_ids,
            'answered': self.answered,
            'replied_mention_ids': self.replied_mention_ids,
            'mentions_recorded': (
                self.mention_analysis.recorded_count if self.mention_analysis else 0
            ),
            'notifications_sent': self.notifications_sent,
            'processing_time_ms': self.processing_time_ms,
            'stage_timings': self.stage_timings,
            'success': self.success,
            'errors': self.errors,
            'warnings': self.warnings,
        }


class AssistantPipeline:
    """
    End-to-end handling of inbound chat messages.

    Usage:
        pipeline = AssistantPipeline(work_items, mentions, sink, inference, 'UBOT')
        result = await pipeline.handle_message(message)
    """

    def __init__(
        self,
        work_items: WorkItemStore,
        mentions: MentionStore,
        sink: NotificationSink,
        inference: TextInferenceClient | None = None,
        assistant_user_id: str | None = None,
        confidence_threshold: int | None = None,
        timezone: str | None = None,
        mention_tracker: MentionTracker | None = None,
        reminders: ReminderStore | None = None,
        thread_reader: ThreadReader | None = None,
        summarize_threads: bool | None = None,
    ):
        """
        Args:
            work_items: Work item persistence
            mentions: Mention persistence
            sink: Outbound chat notifications
            inference: Inference client; None runs rules only and degrades the rest
            assistant_user_id: The assistant's own user id on the chat platform
            confidence_threshold: Minimum confidence to act on a TASK_REQUEST
            timezone: Timezone for relative deadlines and rendered dates
            mention_tracker: Override the tracker built from the stores
            reminders: Reminder persistence; None leaves reminder intents unhandled
            thread_reader: Reads thread history for summaries and answers
            summarize_threads: Summarize the thread of requests made inside one
                (defaults to config.AI_SUMMARIZE_ENABLED)
        """
        self.work_items = work_items
        self.mentions = mentions
        self.sink = sink
        self.inference = inference
        self.assistant_user_id = assistant_user_id or config.ASSISTANT_USER_ID
        self.confidence_threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else config.INTENT_CONFIDENCE_THRESHOLD
        )
        self.timezone = timezone or config.TIMEZONE
        self.reminders = reminders
        self.thread_reader = thread_reader
        self.summarize_threads = (
            summarize_threads if summarize_threads is not None else config.AI_SUMMARIZE_ENABLED
        )

        self.classifier = IntentClassifier(inference)
        self.extractor = TaskExtractor(inference, self.timezone)
        self.priority_resolver = PriorityResolver(inference)
        self.mention_tracker = mention_tracker or MentionTracker(
            mentions,
            work_items,
            analyzer=TaskRequestAnalyzer(inference) if inference is not None else None,
        )
        self.summarizer = ThreadSummarizer(inference)
        self.answerer = QuestionAnswerer(inference, self.assistant_user_id)
        self.reminder_parser = ReminderRequestParser(inference, self.timezone)

    @classmethod
    async def from_env(cls) -> AssistantPipeline:
        """
        Create a pipeline from environment variables.

        Expects DATABASE_URL, SLACK_BOT_TOKEN and ASSISTANT_USER_ID; OPENAI_API_KEY
        when AI_ENABLED is true.
        """
        postgres = PostgresClient(config.DATABASE_URL)
        await postgres.connect()
        inference = OpenAIClient() if config.AI_ENABLED else None
        sink = SlackNotificationSink()
        return cls(
            work_items=PostgresWorkItemStore(postgres),
            mentions=PostgresMentionStore(postgres),
            sink=sink,
            inference=inference,
            reminders=PostgresReminderStore(postgres),
            thread_reader=sink,
        )

    async def close(self) -> None:
        """Close client connections this pipeline owns."""
        for resource in (self.inference, self.sink, getattr(self.work_items, 'client', None)):
            close = getattr(resource, 'close', None)
            if close is not None:
                await close()

    # =========================================================================
    # Inbound messages
    # =========================================================================

    async def handle_message(self, message: InboundMessage) -> IngestionResult:
        """Handle one inbound message. Failures are recorded on the result, not raised."""
        timer = PipelineTimer()
        result = IngestionResult(
            conversation_id=message.conversation_id,
            message_id=message.message_id,
        )

        with logging_context(
            trace_id=message.message_id,
            conversation_id=message.conversation_id,
            thread_anchor_id=message.thread_anchor_id,
            user_id=message.author_id,
        ):
            logger.info(
                'pipeline.message_received',
                is_thread_reply=message.is_thread_reply,
                text=message.text,
            )

            if message.is_thread_reply:
                with timer.stage('mark_replied'):
                    replied = await self.mention_tracker.mark_replied(
                        message.conversation_id,
                        message.thread_anchor_id,
                        message.author_id,
                    )
                result.replied_mention_ids = [m.id for m in replied]
                if replied:
                    result.route = 'reply'

            addressed = message.addressed_user_ids or markers.extract_addressed_users(
                message.text
            )
            others = [u for u in addressed if u not in (self.assistant_user_id, message.author_id)]

            if self.assistant_user_id and self.assistant_user_id in addressed:
                result.route = 'request'
                await self._handle_request(message, others, result, timer)
            elif others:
                result.route = 'mentions'
                with timer.stage('mentions'):
                    result.mention_analysis = (
                        await self.mention_tracker.analyze_mention_and_record(message)
                    )

            result.processing_time_ms = int(timer.total_ms)
            result.stage_timings = timer.stages.copy()
            logger.info(
                'pipeline.message_complete',
                route=result.route,
                intent=result.intent,
                work_item_id=result.work_item_id,
                **timer.summary(),
            )
        return result

    async def _handle_request(
        self,
        message: InboundMessage,
        others: list[str],
        result: IngestionResult,
        timer: PipelineTimer,
    ) -> None:
        text = markers.clean_text(message.text)
        explicit_marker = markers.detect_priority_marker(message.text)

        with timer.stage('classify'):
            classified = await self.classifier.classify(text)
        intent = classified.value
        result.intent = intent.intent.value
        result.confidence = intent.confidence
        if classified.degraded:
            result.warnings.append(f'classification degraded: {classified.reason}')

        if intent.intent == Intent.TASK_REQUEST:
            if not is_confident(intent, self.confidence_threshold):
                logger.info('pipeline.confirmation_requested', confidence=intent.confidence)
                result.awaiting_confirmation = True
                await self._notify(
                    result, message.conversation_id, CONFIRMATION_PROMPT, message.anchor
                )
                return
            await self._create_from_request(
                message,
                text,
                assignee=others[0] if others else message.author_id,
                explicit_marker=explicit_marker,
                result=result,
                timer=timer,
            )
        elif intent.intent == Intent.HELP:
            await self._notify(result, message.conversation_id, HELP_TEXT, message.anchor)
        elif intent.intent == Intent.INFORMATION:
            await self._answer(message, text, result, timer)
        elif self.reminders is None:
            logger.info('pipeline.reminders_not_configured', intent=intent.intent.value)
        elif intent.intent == Intent.REMINDER_SETUP:
            await self._set_reminder(
                message,
                text,
                target_user=others[0] if others else message.author_id,
                result=result,
                timer=timer,
            )
        else:
            await self._cancel_reminders(message, result, timer)

    async def _thread_history(self, message: InboundMessage) -> list[ThreadMessage]:
        """Earlier messages of the thread ``message`` was posted in; [] outside a thread."""
        if self.thread_reader is None or not message.is_thread_reply:
            return []
        return await self.thread_reader.fetch_thread(
            message.conversation_id, message.thread_anchor_id
        )

    async def _answer(
        self,
        message: InboundMessage,
        text: str,
        result: IngestionResult,
        timer: PipelineTimer,
    ) -> None:
        with timer.stage('answer'):
            thread = await self._thread_history(message)
            answered = await self.answerer.answer(
                text, thread, question_message_id=message.message_id
            )
        if answered.degraded:
            result.warnings.append(f'answer degraded: {answered.reason}')
        result.answered = not answered.degraded
        await self._notify(result, message.conversation_id, answered.value, message.anchor)

    async def _set_reminder(
        self,
        message: InboundMessage,
        text: str,
        target_user: str,
        result: IngestionResult,
        timer: PipelineTimer,
    ) -> None:
        now = utcnow()
        with timer.stage('parse_reminder'):
            parsed = await self.reminder_parser.parse(text, now)
        request = parsed.value
        if parsed.degraded:
            result.warnings.append(f'reminder parsing degraded: {parsed.reason}')

        draft = ReminderDraft(
            conversation=message.conversation_id,
            thread_anchor_id=message.anchor,
            created_by=message.author_id,
            target_user=target_user,
            message=request.message,
            fire_at=request.fire_at,
            interval_minutes=request.interval_minutes,
        )
        try:
            with timer.stage('create'):
                reminder = await self.reminders.create(draft, now)
        except StoreError as e:
            logger.error(
                'pipeline.reminder_create_failed', error=str(e), error_type=type(e).__name__
            )
            result.errors.append(f'reminder create failed: {e}')
            await self._notify(
                result, message.conversation_id, REMINDER_FAILURE_NOTICE, message.anchor
            )
            return

        result.reminder_id = reminder.id
        logger.info(
            'pipeline.reminder_created',
            reminder_id=reminder.id,
            fire_at=reminder.fire_at.isoformat(),
            recurring=reminder.is_recurring,
        )
        await self._notify(
            result,
            message.conversation_id,
            format_reminder_set(reminder, self.timezone),
            message.anchor,
        )

    async def _cancel_reminders(
        self,
        message: InboundMessage,
        result: IngestionResult,
        timer: PipelineTimer,
    ) -> None:
        """
        Cancel the author's active reminders in this thread, or their most
        recent one when the request was made outside a thread.
        """
        try:
            with timer.stage('cancel'):
                active = await self.reminders.list_active(
                    message.conversation_id, message.author_id
                )
                if message.is_thread_reply:
                    targets = [r for r in active if r.thread_anchor_id == message.thread_anchor_id]
                else:
                    targets = active[-1:]
                cancelled = [r for r in targets if await self.reminders.cancel(r.id)]
        except StoreError as e:
            logger.error(
                'pipeline.reminder_cancel_failed', error=str(e), error_type=type(e).__name__
            )
            result.errors.append(f'reminder cancel failed: {e}')
            await self._notify(
                result, message.conversation_id, REMINDER_FAILURE_NOTICE, message.anchor
            )
            return

        result.cancelled_reminder_ids = [r.id for r in cancelled]
        logger.info('pipeline.reminders_cancelled', count=len(cancelled))
        reply = format_reminders_cancelled(cancelled) if cancelled else NO_REMINDER_TO_CANCEL
        await self._notify(result, message.conversation_id, reply, message.anchor)

    async def _create_from_request(
        self,
        message: InboundMessage,
        text: str,
        assignee: str,
        explicit_marker: Priority | None,
        result: IngestionResult,
        timer: PipelineTimer,
    ) -> None:
        now = utcnow()

        with timer.stage('extract'):
            extracted = await self.extractor.extract_task_info(text, now)
        info = extracted.value
        if extracted.degraded:
            result.warnings.append(f'extraction degraded: {extracted.reason}')

        with timer.stage('priority'):
            resolved = await self.priority_resolver.determine_priority(
                text, due_at=info.due_at, explicit_marker=explicit_marker, now=now
            )
        if resolved.degraded:
            result.warnings.append(f'priority degraded: {resolved.reason}')

        summary = None
        if self.summarize_threads and message.is_thread_reply:
            with timer.stage('summarize'):
                thread = await self._thread_history(message)
                summarized = await self.summarizer.summarize(thread)
            summary = summarized.value
            if summarized.degraded:
                result.warnings.append(f'summary degraded: {summarized.reason}')

        draft = WorkItemDraft(
            text=info.title,
            origin_conversation=message.conversation_id,
            origin_message_id=message.anchor,
            created_by=message.author_id,
            assignee=assignee,
            due_at=info.due_at,
            priority=resolved.value,
            summary=summary,
            idempotency_key=f'{message.conversation_id}:{message.message_id}',
        )

        try:
            with timer.stage('create'):
                item = await self.work_items.create(draft, now)
        except StoreError as e:
            logger.error('pipeline.create_failed', error=str(e), error_type=type(e).__name__)
            result.errors.append(f'create failed: {e}')
            await self._notify(result, message.conversation_id, FAILURE_NOTICE, message.anchor)
            return

        result.work_item_id = item.id
        logger.info(
            'pipeline.work_item_created',
            work_item_id=item.id,
            priority=int(item.priority),
            has_due_date=item.due_at is not None,
        )
        await self._notify(
            result,
            message.conversation_id,
            format_created(item, self.timezone),
            message.anchor,
        )

    async def _notify(
        self,
        result: IngestionResult,
        conversation_id: str,
        text: str,
        thread_anchor_id: str | None,
    ) -> bool:
        sent = await self.sink.post(conversation_id, text, thread_anchor_id)
        if sent:
            result.notifications_sent += 1
        else:
            logger.warning('pipeline.notification_failed', thread_anchor_id=thread_anchor_id)
            result.warnings.append('notification failed')
        return sent

    # =========================================================================
    # Manual work items
    # =========================================================================

    async def create_manual_work_item(
        self,
        text: str,
        conversation: str,
        created_by: str,
        assignee: str | None = None,
        due_at: datetime | None = None,
        priority: Priority | None = None,
        now: datetime | None = None,
    ) -> WorkItem:
        """
        Create a work item outside any thread and announce it in the channel.

        Raises:
            StoreError: If the item could not be stored
        """
        now = now or utcnow()
        resolved = await self.priority_resolver.determine_priority(
            text, due_at=due_at, explicit_marker=priority, now=now
        )
        item = await self.work_items.create(
            WorkItemDraft(
                text=text,
                origin_conversation=conversation,
                origin_message_id=manual_origin_id(now),
                created_by=created_by,
                assignee=assignee or created_by,
                due_at=due_at,
                priority=resolved.value,
            ),
            now,
        )
        logger.info('pipeline.manual_work_item_created', work_item_id=item.id)
        sent = await self.sink.post(
            conversation, format_created(item, self.timezone), item.thread_anchor
        )
        if not sent:
            logger.warning('pipeline.notification_failed', work_item_id=item.id)
        return item

    async def complete_work_item(
        self,
        item_id: str,
        completed_by: str,
        now: datetime | None = None,
    ) -> WorkItem | None:
        """
        Complete a work item and announce it where it originated.

        Returns:
            The completed item, the unchanged item if it was already completed,
            or None if no such item exists
        """
        item = await self.work_items.get_by_id(item_id)
        if item is None:
            logger.warning('pipeline.work_item_not_found', work_item_id=item_id)
            return None
        if item.is_completed:
            logger.warning(
                'pipeline.work_item_already_completed',
                work_item_id=item_id,
                completed_by=item.completed_by,
            )
            return item

        completed = await self.work_items.complete(item_id, completed_by, now)
        if completed is None:
            return None

        sent = await self.sink.post(
            completed.origin_conversation,
            format_completed(completed),
            completed.thread_anchor,
        )
        if not sent:
            logger.warning('pipeline.notification_failed', work_item_id=item_id)
        return completed
