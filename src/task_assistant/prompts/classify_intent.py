"""
Intent classification prompt and response model.

Used only when no surface rule matched; the model picks one of the five
intents and scores its confidence.
"""

from typing import Literal

from pydantic import BaseModel, Field

IntentLabel = Literal[
    'task_request', 'information', 'reminder_setup', 'reminder_cancel', 'help'
]


class IntentClassification(BaseModel):
    """Structured classification returned by the model."""

    intent: IntentLabel = Field(..., description='The single best-matching intent.')
    confidence: int = Field(
        ...,
        ge=0,
        le=100,
        description='How sure you are, 0-100. Use 90+ only when the message is unambiguous; '
        'use below 70 when the message could reasonably be read as another intent.',
    )
    reason: str = Field(
        ..., max_length=300, description='One short sentence explaining the decision.'
    )


INTENT_SYSTEM_PROMPT = """You classify chat messages that were addressed to a team assistant bot.

Pick exactly ONE intent:

1. task_request: someone wants work done or recorded (for themselves or another person).
   Cues: imperatives, "please", "can you", deadlines ("by Friday", "明日までに"), to-do phrasing.
2. information: the author is asking a question about past conversations, status or facts.
   Cues: question words, a question mark, "do you know", "教えて".
3. reminder_setup: the author wants to be notified at a time or interval.
   Cues: "remind", "alert", "notify", "リマインド", "通知". This wins over task_request.
4. reminder_cancel: the author wants to stop or delete an existing reminder.
   Requires BOTH a cancel cue ("cancel", "stop", "キャンセル") and a reminder cue.
5. help: the author asks what the bot can do or how to use it.

Decision rubric:
- Reminder wording beats everything except cancel wording combined with reminder wording.
- A question that also asks for action ("could you send the deck?") is task_request.
- Status reports, absence or lateness notices, greetings and acknowledgements are information
  with LOW confidence (below 60); they are not tasks.
- If two intents are equally plausible, choose the more likely one and keep confidence below 70.

Examples:
- "please send the report by tomorrow 5pm" -> task_request, 90
- "資料を金曜までにまとめてください" -> task_request, 90
- "what did we decide in last week's sync?" -> information, 90
- "remind me every Monday at 9 to submit timesheets" -> reminder_setup, 95
- "cancel the Monday timesheet reminder" -> reminder_cancel, 95
- "what can you do?" -> help, 95
- "running 10 minutes late, train is delayed" -> information, 40
- "the deck" -> task_request, 35

Respond with the structured fields only."""


INTENT_USER_PROMPT_TEMPLATE = """Message:
{text}
{context_block}"""


def build_intent_prompt(text: str, thread_context: str | None = None) -> list[dict[str, str]]:
    """
    Build the messages for intent classification.

    Args:
        text: Message text with address tokens removed
        thread_context: Optional preceding thread messages, newest last

    Returns:
        List of message dicts for the OpenAI API
    """
    context_block = ''
    if thread_context:
        context_block = f'\nEarlier messages in the thread (for context only):\n{thread_context}'

    return [
        {'role': 'system', 'content': INTENT_SYSTEM_PROMPT},
        {
            'role': 'user',
            'content': INTENT_USER_PROMPT_TEMPLATE.format(
                text=text, context_block=context_block
            ),
        },
    ]
