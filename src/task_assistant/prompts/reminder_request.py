"""
Reminder request prompt and response model.

The model reads a "remind me ..." message and returns what to remind about
and when. The schedule is returned as data, not computed: relative offsets
in minutes, absolute times as ISO 8601, repeats as an interval.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ParsedReminderRequest(BaseModel):
    """Structured reminder request returned by the model."""

    reminder_message: str = Field(
        ...,
        max_length=300,
        description='What to remind about, in the language of the message, without the '
        'scheduling words ("remind me", "in 10 minutes", "毎日").',
    )
    schedule_type: Literal['relative', 'absolute', 'interval'] = Field(
        ...,
        description='relative: "in 30 minutes"; absolute: "at 3pm", "tomorrow 9:00"; '
        'interval: "every day", "every 2 hours".',
    )
    schedule_time: str | None = Field(
        default=None,
        description='For absolute schedules, and for intervals with a stated start time: '
        'ISO 8601 with offset (e.g. "2025-03-07T15:00:00+09:00"). Null otherwise.',
    )
    relative_minutes: int | None = Field(
        default=None, ge=1, description='For relative schedules: minutes from now.'
    )
    interval_minutes: int | None = Field(
        default=None,
        ge=1,
        description='For interval schedules: minutes between reminders (daily = 1440).',
    )
    reminder_type: Literal['once', 'recurring'] = Field(
        default='once', description='recurring only for interval schedules.'
    )
    confidence: int = Field(default=0, ge=0, le=100)
    reason: str = Field(default='', max_length=200)


REMINDER_SYSTEM_PROMPT = """You turn a chat message into a reminder.

Return:
1. reminder_message: what to remind about.
2. schedule_type: relative, absolute or interval.
3. schedule_time: ISO 8601 with a UTC offset for absolute times (and the first
   occurrence of an interval when one is stated), resolved against the current
   date and time below.
4. relative_minutes: minutes from now, for relative schedules.
5. interval_minutes: minutes between repeats, for interval schedules.
6. reminder_type: once, or recurring for interval schedules.
7. confidence (0-100) and a one-line reason.

Current date and time: {now}
Timezone: {timezone}"""


def build_reminder_prompt(
    text: str,
    now: datetime,
    timezone: str,
) -> list[dict[str, str]]:
    """
    Build the messages for reminder parsing.

    Args:
        text: Message text with address tokens removed
        now: Current time, already converted to ``timezone``
        timezone: IANA timezone name used to interpret times
    """
    return [
        {
            'role': 'system',
            'content': REMINDER_SYSTEM_PROMPT.format(
                now=now.isoformat(timespec='seconds'), timezone=timezone
            ),
        },
        {'role': 'user', 'content': f'Set up a reminder from this message:\n\n{text}'},
    ]
