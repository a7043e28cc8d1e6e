"""
Task extraction prompt and response model.

The model turns a request into a title, an optional deadline and a priority.
Relative dates ("tomorrow", "明日") are resolved against the current time
passed into the prompt.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ExtractedTaskInfo(BaseModel):
    """Structured task information returned by the model."""

    title: str = Field(
        ...,
        max_length=200,
        description='Concise, actionable task title in 1-2 sentences, in the language of '
        'the message. Drop greetings and filler.',
    )
    due_date: str | None = Field(
        default=None,
        description='Deadline in ISO 8601 with offset (e.g. "2025-03-07T17:00:00+09:00"). '
        'Resolve relative expressions against the current time. If a day is given without a '
        'time, use 23:59:59 on that day. Null when no deadline is mentioned.',
    )
    priority: int = Field(
        default=2,
        ge=1,
        le=3,
        description='1 = high (urgent, blocking, security, outage), 2 = medium (normal work), '
        '3 = low (nice-to-have, someday).',
    )


EXTRACTION_SYSTEM_PROMPT = """You extract task details from a chat request.

Return:
1. title: a short, clear description of what needs to be done.
2. due_date: the deadline as ISO 8601 with a UTC offset, or null.
   - Interpret relative expressions ("today", "tomorrow", "next Friday", "今週中") using the
     current date and time given below.
   - When only a day is given, use 23:59:59 on that day.
   - Never invent a deadline that the message does not state or clearly imply.
3. priority: 1 (high), 2 (medium) or 3 (low).

Current date and time: {now}
Timezone: {timezone}"""


EXTRACTION_USER_PROMPT_TEMPLATE = """Extract the task from this message:

{text}"""


def build_extraction_prompt(
    text: str,
    now: datetime,
    timezone: str,
) -> list[dict[str, str]]:
    """
    Build the messages for task extraction.

    Args:
        text: Request text with address tokens removed
        now: Current time, already converted to ``timezone``
        timezone: IANA timezone name used to interpret dates

    Returns:
        List of message dicts for the OpenAI API
    """
    return [
        {
            'role': 'system',
            'content': EXTRACTION_SYSTEM_PROMPT.format(
                now=now.isoformat(timespec='seconds'), timezone=timezone
            ),
        },
        {'role': 'user', 'content': EXTRACTION_USER_PROMPT_TEMPLATE.format(text=text)},
    ]
