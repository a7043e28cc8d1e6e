"""
Reminder request parsing.

Turns "remind me ..." text into what to say and when, using structured
inference for the wording and the schedule. Parsing never raises: when the
model is unavailable or its schedule is unusable, the whole text becomes a
one-shot reminder REMINDER_DEFAULT_DELAY_MINUTES from now, with confidence 0.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from ..config import config
from ..errors import Degraded, ExtractionError, Ok, Outcome, wrap_inference_error
from ..logging import get_logger
from ..models.work_item import utcnow
from ..prompts.reminder_request import ParsedReminderRequest, build_reminder_prompt
from ..repository import TextInferenceClient

logger = get_logger(__name__)

MESSAGE_FALLBACK_LENGTH = 300
EMPTY_MESSAGE = '(no reminder content)'
# Date-only reminder times fire at the start of the working day.
DATE_ONLY_TIME = time(9, 0)


@dataclass
class ReminderRequest:
    """What to remind about, and when."""

    message: str
    fire_at: datetime
    interval_minutes: int | None = None
    confidence: int = 0


def parse_reminder_time(raw: str | None, tz: ZoneInfo) -> datetime | None:
    """
    Parse an ISO 8601 reminder time from inference output.

    Date-only values become 09:00 that day; values without an offset are
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
        raise ExtractionError('Unparseable reminder time', context={'schedule_time': raw}) from e

    if 'T' not in value and ' ' not in value:
        parsed = datetime.combine(parsed.date(), DATE_ONLY_TIME)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class ReminderRequestParser:
    """Parses reminder requests into a ReminderRequest."""

    def __init__(
        self,
        inference: TextInferenceClient | None = None,
        timezone: str | None = None,
        default_delay_minutes: int | None = None,
    ):
        self.inference = inference
        self.timezone = timezone or config.TIMEZONE
        self._tz = ZoneInfo(self.timezone)
        self.default_delay = timedelta(
            minutes=(
                default_delay_minutes
                if default_delay_minutes is not None
                else config.REMINDER_DEFAULT_DELAY_MINUTES
            )
        )

    async def parse(self, text: str, now: datetime | None = None) -> Outcome[ReminderRequest]:
        """
        Parse ``text`` into a ReminderRequest.

        Args:
            text: Message text with address tokens removed
            now: Reference time for relative schedules (defaults to current time)
        """
        now = now or utcnow()
        if not text or not text.strip():
            return self._fallback(EMPTY_MESSAGE, now, 'empty text')

        if self.inference is None:
            return self._fallback(text, now, 'inference disabled')

        try:
            parsed = await self.inference.chat_completion_structured(
                messages=build_reminder_prompt(text, now.astimezone(self._tz), self.timezone),
                response_model=ParsedReminderRequest,
            )
            request = self._schedule(parsed, text, now)
        except ExtractionError as e:
            logger.warning('reminder_request.unusable_schedule', error=str(e))
            return self._fallback(text, now, str(e))
        except Exception as e:
            error = wrap_inference_error(e, {'operation': 'parse_reminder'})
            logger.warning(
                'reminder_request.inference_failed',
                error=str(error),
                error_type=type(error).__name__,
            )
            return self._fallback(text, now, str(error))

        logger.info(
            'reminder_request.parsed',
            schedule_type=parsed.schedule_type,
            recurring=request.interval_minutes is not None,
            confidence=request.confidence,
        )
        return Ok(request)

    def _schedule(self, parsed: ParsedReminderRequest, text: str, now: datetime) -> ReminderRequest:
        """
        Resolve the model's schedule into a first fire time and interval.

        Raises:
            ExtractionError: If the schedule is missing what its type needs
        """
        interval = parsed.interval_minutes
        recurring = parsed.schedule_type == 'interval' or parsed.reminder_type == 'recurring'
        if recurring and interval is None:
            raise ExtractionError(
                'Recurring reminder without an interval',
                context={'schedule_type': parsed.schedule_type},
            )

        start = parse_reminder_time(parsed.schedule_time, self._tz)
        if parsed.schedule_type == 'absolute':
            if start is None:
                raise ExtractionError('Absolute reminder without a time')
            fire_at = start
        elif parsed.schedule_type == 'interval':
            fire_at = start or now + timedelta(minutes=interval)
        else:
            minutes = parsed.relative_minutes
            fire_at = now + (timedelta(minutes=minutes) if minutes else self.default_delay)

        return ReminderRequest(
            message=parsed.reminder_message.strip() or text.strip()[:MESSAGE_FALLBACK_LENGTH],
            fire_at=fire_at,
            interval_minutes=interval if recurring else None,
            confidence=parsed.confidence,
        )

    def _fallback(self, text: str, now: datetime, reason: str) -> Degraded[ReminderRequest]:
        return Degraded(
            ReminderRequest(
                message=text.strip()[:MESSAGE_FALLBACK_LENGTH],
                fire_at=now + self.default_delay,
            ),
            reason=reason,
        )
