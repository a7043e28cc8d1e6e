"""
Task extraction service.

Turns a request into a title, an optional deadline and a priority using
structured inference. Extraction never raises: any failure yields a
Degraded result built from the raw text.
"""

from dataclasses import dataclass
from datetime import datetime, time
from zoneinfo import ZoneInfo

from ..config import config
from ..errors import Degraded, ExtractionError, Ok, Outcome, wrap_inference_error
from ..logging import get_logger
from ..models.work_item import Priority, utcnow
from ..prompts.extract_task import ExtractedTaskInfo, build_extraction_prompt
from ..repository import TextInferenceClient

logger = get_logger(__name__)

TITLE_FALLBACK_LENGTH = 100
EMPTY_TITLE = '(no task content)'
END_OF_DAY = time(23, 59, 59)


@dataclass
class TaskInfo:
    """Structured task details."""

    title: str
    due_at: datetime | None = None
    priority: Priority = Priority.MEDIUM


def parse_due_date(raw: str | None, tz: ZoneInfo) -> datetime | None:
    """
    Parse an ISO 8601 deadline from inference output.

    Date-only values become 23:59:59 that day; values without an offset are
    interpreted in ``tz``.

    Raises:
        ExtractionError: If the value is not a valid ISO 8601 date/datetime
    """
    if raw is None or not raw.strip():
        return None

    value = raw.strip()
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError as e:
        raise ExtractionError('Unparseable due date', context={'due_date': raw}) from e

    if 'T' not in value and ' ' not in value:
        parsed = datetime.combine(parsed.date(), END_OF_DAY)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class TaskExtractor:
    """Extracts task details from request text."""

    def __init__(
        self,
        inference: TextInferenceClient | None = None,
        timezone: str | None = None,
    ):
        """
        Args:
            inference: Inference client; None means every call degrades
            timezone: IANA timezone for relative dates (defaults to config.TIMEZONE)
        """
        self.inference = inference
        self.timezone = timezone or config.TIMEZONE
        self._tz = ZoneInfo(self.timezone)

    async def extract_task_info(
        self,
        text: str,
        now: datetime | None = None,
    ) -> Outcome[TaskInfo]:
        """
        Extract a TaskInfo from ``text``.

        Args:
            text: Request text with address tokens removed
            now: Reference time for relative dates (defaults to current time)

        Returns:
            Ok(TaskInfo) on success; Degraded(TaskInfo(text[:100], None, MEDIUM))
            on any failure
        """
        if not text or not text.strip():
            return Degraded(TaskInfo(title=EMPTY_TITLE), reason='empty text')

        if self.inference is None:
            return self._fallback(text, 'inference disabled')

        local_now = (now or utcnow()).astimezone(self._tz)

        try:
            extracted = await self.inference.chat_completion_structured(
                messages=build_extraction_prompt(text, local_now, self.timezone),
                response_model=ExtractedTaskInfo,
            )
            due_at = parse_due_date(extracted.due_date, self._tz)
        except ExtractionError as e:
            logger.warning('extractor.invalid_due_date', error=str(e))
            return self._fallback(text, str(e))
        except Exception as e:
            error = wrap_inference_error(e, {'operation': 'extract_task'})
            logger.warning(
                'extractor.inference_failed',
                error=str(error),
                error_type=type(error).__name__,
            )
            return self._fallback(text, str(error))

        info = TaskInfo(
            title=extracted.title.strip() or text[:TITLE_FALLBACK_LENGTH],
            due_at=due_at,
            priority=Priority(extracted.priority),
        )
        logger.info(
            'extractor.extracted',
            has_due_date=info.due_at is not None,
            priority=int(info.priority),
        )
        return Ok(info)

    @staticmethod
    def _fallback(text: str, reason: str) -> Degraded[TaskInfo]:
        return Degraded(
            TaskInfo(title=text.strip()[:TITLE_FALLBACK_LENGTH]),
            reason=reason,
        )
