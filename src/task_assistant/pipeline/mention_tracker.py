"""
Mention lifecycle tracking.

Records "user A asked user B something", resolves mentions when B replies in
the thread, escalates mentions nobody answered into work items, and reports
aggregate statistics.

State transitions are enforced by the store with conditional updates:
a mention moves UNRESOLVED -> REPLIED or UNRESOLVED -> ESCALATED, never
both. Escalation is idempotent per mention: the work item is created with
the idempotency key ``mention:<mention id>``, so a retried or repeated
escalation reuses the same item instead of creating a second one.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..config import config
from ..errors import DuplicateMentionError, EscalationError, StoreError
from ..logging import get_logger
from ..models.mention import (
    LineAnalysis,
    Mention,
    MentionAnalysis,
    MentionObservation,
    MentionState,
    MentionStats,
)
from ..models.message import InboundMessage
from ..models.work_item import Priority, WorkItem, WorkItemDraft, utcnow
from ..repository import MentionStore, WorkItemStore
from . import markers
from .task_request import TaskRequestAnalyzer

logger = get_logger(__name__)

AUTO_SYSTEM_USER = 'auto_system'
UNREPLIED_PREFIX = '[Unreplied] '


def escalation_key(mention: Mention) -> str:
    return f'mention:{mention.id}'


def _log_mark_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        'mention_tracker.mark_escalated_retry',
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


class MentionTracker:
    """
    Tracks mentions between users and escalates the unanswered ones.

    Usage:
        tracker = MentionTracker(mention_store, work_item_store, analyzer)
        analysis = await tracker.analyze_mention_and_record(message)
        await tracker.mark_replied(conversation, anchor, replying_user)
    """

    def __init__(
        self,
        mentions: MentionStore,
        work_items: WorkItemStore,
        analyzer: TaskRequestAnalyzer | None = None,
        classification_enabled: bool | None = None,
        task_confidence_threshold: int | None = None,
        mark_attempts: int = 3,
        mark_wait: wait_base | None = None,
    ):
        """
        Args:
            mentions: Mention persistence
            work_items: Work item persistence (escalation target)
            analyzer: Per-line task-or-not analyzer; None disables classification
            classification_enabled: Classify lines before recording (defaults to
                config.AI_AUTO_TASK_ENABLED); when disabled every addressed line
                is recorded
            task_confidence_threshold: Minimum confidence for a line to count as a task
            mark_attempts: Attempts for the escalation bookkeeping update
            mark_wait: Wait strategy between those attempts
        """
        self.mentions = mentions
        self.work_items = work_items
        self.analyzer = analyzer
        self.classification_enabled = (
            config.AI_AUTO_TASK_ENABLED
            if classification_enabled is None
            else classification_enabled
        )
        self.task_confidence_threshold = (
            task_confidence_threshold
            if task_confidence_threshold is not None
            else config.TASK_REQUEST_CONFIDENCE_THRESHOLD
        )
        self.mark_attempts = mark_attempts
        self.mark_wait = mark_wait or wait_exponential(multiplier=1, min=1, max=10)

    # =========================================================================
    # Recording and replies
    # =========================================================================

    async def record_mention(
        self,
        observation: MentionObservation,
        now: datetime | None = None,
    ) -> Mention | None:
        """
        Record a mention.

        Returns:
            The new Mention, or None when the (conversation, anchor, addressed
            user) triple already exists or the store failed. None means
            "nothing recorded" and is not an error for the caller.
        """
        log = logger.bind(
            conversation=observation.conversation,
            anchor_message_id=observation.anchor_message_id,
            addressed_user=observation.addressed_user,
        )
        try:
            mention = await self.mentions.insert(observation, now)
        except DuplicateMentionError:
            log.debug('mention_tracker.duplicate_ignored')
            return None
        except StoreError as e:
            log.error('mention_tracker.record_failed', error=str(e))
            return None

        log.info('mention_tracker.recorded', mention_id=mention.id)
        return mention

    async def mark_replied(
        self,
        conversation: str,
        anchor_message_id: str,
        replied_user: str,
        replied_at: datetime | None = None,
    ) -> list[Mention]:
        """Resolve the replying user's unresolved mentions in this thread only."""
        try:
            resolved = await self.mentions.update_reply_state(
                conversation=conversation,
                anchor_message_id=anchor_message_id,
                addressed_user=replied_user,
                replied_at=replied_at or utcnow(),
            )
        except StoreError as e:
            logger.error(
                'mention_tracker.mark_replied_failed',
                conversation=conversation,
                anchor_message_id=anchor_message_id,
                error=str(e),
            )
            return []

        if resolved:
            logger.info(
                'mention_tracker.replied',
                conversation=conversation,
                anchor_message_id=anchor_message_id,
                replied_user=replied_user,
                count=len(resolved),
            )
        return resolved

    async def get_unresolved_mentions(
        self,
        age_threshold_hours: float,
        now: datetime | None = None,
    ) -> list[Mention]:
        """Unresolved mentions older than the threshold; 0 disables the age filter."""
        older_than = None
        if age_threshold_hours > 0:
            older_than = (now or utcnow()) - timedelta(hours=age_threshold_hours)
        return await self.mentions.list_unresolved(older_than)

    # =========================================================================
    # Escalation
    # =========================================================================

    async def escalate(self, mention: Mention, now: datetime | None = None) -> WorkItem | None:
        """
        Turn an unresolved mention into a work item assigned to the addressed user.

        Returns:
            The work item, or None when the mention was replied to before the
            escalation could be recorded (the new work item is removed again)

        Raises:
            EscalationError: The work item could not be created, or the
                mention could not be marked escalated after retrying. A later
                sweep retries and reuses the same work item.
        """
        log = logger.bind(mention_id=mention.id, addressed_user=mention.addressed_user)

        draft = WorkItemDraft(
            text=f'{UNREPLIED_PREFIX}{mention.text}',
            origin_conversation=mention.conversation,
            origin_message_id=mention.anchor_message_id,
            created_by=AUTO_SYSTEM_USER,
            assignee=mention.addressed_user,
            priority=mention.detected_priority,
            idempotency_key=escalation_key(mention),
        )
        try:
            item = await self.work_items.create(draft, now)
        except StoreError as e:
            raise EscalationError(
                'Failed to create work item for mention',
                context={'mention_id': mention.id, 'error': str(e)},
            ) from e

        try:
            escalated = await self._mark_escalated(mention, item)
        except StoreError as e:
            log.error(
                'mention_tracker.mark_escalated_failed',
                work_item_id=item.id,
                attempts=self.mark_attempts,
                error=str(e),
            )
            raise EscalationError(
                'Work item created but mention could not be marked escalated',
                context={'mention_id': mention.id, 'work_item_id': item.id},
            ) from e

        if escalated:
            log.info('mention_tracker.escalated', work_item_id=item.id)
            return item

        return await self._resolve_lost_escalation(mention, item)

    async def _mark_escalated(self, mention: Mention, item: WorkItem) -> bool:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.mark_attempts),
            wait=self.mark_wait,
            retry=retry_if_exception_type(StoreError),
            before_sleep=_log_mark_retry,
            reraise=True,
        ):
            with attempt:
                return await self.mentions.mark_escalated(mention.id, item.id)
        return False

    async def _resolve_lost_escalation(self, mention: Mention, item: WorkItem) -> WorkItem | None:
        """The conditional update matched nothing: find out why."""
        current = await self.mentions.get_by_id(mention.id)

        if current is not None and current.state == MentionState.ESCALATED:
            if current.work_item_id == item.id:
                logger.info(
                    'mention_tracker.already_escalated',
                    mention_id=mention.id,
                    work_item_id=item.id,
                )
                return item
            logger.warning(
                'mention_tracker.escalated_elsewhere',
                mention_id=mention.id,
                work_item_id=current.work_item_id,
            )
            return None

        logger.warning(
            'mention_tracker.reply_won_race',
            mention_id=mention.id,
            work_item_id=item.id,
        )
        try:
            await self.work_items.delete(item.id)
        except StoreError as e:
            raise EscalationError(
                'Mention was replied to but the escalation work item could not be removed',
                context={'mention_id': mention.id, 'work_item_id': item.id},
            ) from e
        return None

    # =========================================================================
    # Multi-subject messages
    # =========================================================================

    async def analyze_mention_and_record(
        self,
        message: InboundMessage,
        classification_enabled: bool | None = None,
    ) -> MentionAnalysis:
        """
        Split a message into lines and record one mention per addressed user
        on every line that reads as a task.

        Per line: collect ``<@ID>`` addresses (skip the line if none), detect
        the priority marker (MEDIUM if none), strip addresses and markers to
        get the stored text, classify it (every line counts as a task when
        classification is disabled; lines whose classification failed are
        skipped), then record a mention for each addressed user.
        """
        if classification_enabled is None:
            classification_enabled = self.classification_enabled
        enabled = classification_enabled and self.analyzer is not None

        analysis = MentionAnalysis()
        anchor = message.anchor

        for line in markers.split_lines(message.text):
            addressed = markers.extract_addressed_users(line)
            if not addressed:
                continue

            priority = markers.detect_priority_marker(line) or Priority.MEDIUM
            text = markers.clean_text(line)
            if not text:
                logger.debug('mention_tracker.empty_line_skipped', line=line)
                continue

            line_analysis = LineAnalysis(
                line=line, text=text, addressed_users=addressed, priority=priority
            )

            if enabled:
                outcome = await self.analyzer.analyze(text)
                if outcome.degraded:
                    line_analysis.reason = outcome.reason
                    analysis.analyses.append(line_analysis)
                    continue
                judgement = outcome.value
                line_analysis.confidence = judgement.confidence
                line_analysis.reason = judgement.reason
                line_analysis.is_task = (
                    judgement.is_task and judgement.confidence >= self.task_confidence_threshold
                )
            else:
                line_analysis.is_task = True
                line_analysis.confidence = 100
                line_analysis.reason = 'classification disabled'

            if line_analysis.is_task:
                for user_id in addressed:
                    mention = await self.record_mention(
                        MentionObservation(
                            conversation=message.conversation_id,
                            anchor_message_id=anchor,
                            addressed_user=user_id,
                            asking_user=message.author_id,
                            text=text,
                            detected_priority=priority,
                        )
                    )
                    if mention is not None:
                        line_analysis.recorded_ids.append(mention.id)
                analysis.recorded_count += len(line_analysis.recorded_ids)

            analysis.analyses.append(line_analysis)

        analysis.is_task = any(a.is_task for a in analysis.analyses)
        logger.info(
            'mention_tracker.message_analyzed',
            conversation=message.conversation_id,
            lines=len(analysis.analyses),
            is_task=analysis.is_task,
            recorded_count=analysis.recorded_count,
        )
        return analysis

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_stats(self) -> MentionStats:
        """Counts per state; a failing count degrades to 0 for that field only."""
        counts: dict[str, int] = {}
        for state in (MentionState.UNRESOLVED, MentionState.ESCALATED, MentionState.REPLIED):
            try:
                counts[state.value] = await self.mentions.count_by(state)
            except Exception as e:
                logger.warning(
                    'mention_tracker.count_failed',
                    state=state.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                counts[state.value] = 0
        return MentionStats(**counts)
