"""
User-facing notification texts (Slack mrkdwn).

Deadlines are rendered in the configured timezone.
"""

import math
from datetime import datetime
from zoneinfo import ZoneInfo

from .config import config
from .models.mention import Mention
from .models.reminder import Reminder
from .models.work_item import WorkItem

DONE_HINT = 'Run `/task-done {item_id}` when it is finished.'

HELP_TEXT = """*Here is what I can do*
• Track a task: mention me with a request, e.g. `@assistant please send the report by tomorrow 5pm`
• Priority: add 🔴 (high), 🟡 (medium) or 🟢 (low) to a line
• Mentions: when you ask someone in a thread, I remind them if nobody replies
• Reminders: `@assistant remind me in 30 minutes to call Ken`, or `every day at 9:00`
• Stop a reminder: `@assistant cancel the reminder` (in its thread, or the latest one)
• Questions: ask me anything and I will answer in the thread
• Finish a task: `/task-done <task id>`"""

CONFIRMATION_PROMPT = (
    "I'm not sure this is a task request. "
    'React with :white_check_mark: to confirm and I will track it.'
)

FAILURE_NOTICE = "Sorry, I couldn't save that as a task. Please try again in a moment."

ESCALATION_FAILURE_NOTICE = (
    "<@{user}> I tried to turn this unanswered request into a task but couldn't. "
    "I'll try again later."
)

REMINDER_FAILURE_NOTICE = (
    "Sorry, something went wrong with that reminder. Please try again in a moment."
)

NO_REMINDER_TO_CANCEL = "You have no active reminder here to cancel."

ANSWER_UNAVAILABLE = "Sorry, I can't answer that right now. Please try again later."


def format_due(due_at: datetime | None, timezone: str | None = None) -> str:
    if due_at is None:
        return 'no deadline'
    local = due_at.astimezone(ZoneInfo(timezone or config.TIMEZONE))
    return local.strftime('%Y-%m-%d %H:%M')


def _item_lines(item: WorkItem, timezone: str | None = None) -> str:
    return (
        f'*Task ID:* {item.id}\n'
        f'*Task:* {item.text}\n'
        f'*Assignee:* <@{item.assignee}>\n'
        f'*Priority:* {item.priority.emoji} {item.priority.label}\n'
        f'*Due:* {format_due(item.due_at, timezone)}'
    )


def format_created(item: WorkItem, timezone: str | None = None) -> str:
    summary = f'*Thread summary:*\n{item.summary}\n\n' if item.summary else ''
    return (
        f'✅ *Task created*\n\n{_item_lines(item, timezone)}\n\n'
        f'{summary}'
        f'{DONE_HINT.format(item_id=item.id)}'
    )


def format_completed(item: WorkItem) -> str:
    return (
        f'🎉 *Task completed* by <@{item.completed_by}>\n\n'
        f'*Task ID:* {item.id}\n'
        f'*Task:* {item.text}'
    )


def hours_until(due_at: datetime, now: datetime) -> int:
    """Whole hours remaining, rounded up so "due in 30 minutes" reads as 1."""
    return max(0, math.ceil((due_at - now).total_seconds() / 3600))


def days_past(due_at: datetime, now: datetime) -> int:
    return max(0, (now - due_at).days)


def format_upcoming(item: WorkItem, now: datetime, timezone: str | None = None) -> str:
    return (
        f'⏰ *Deadline approaching*\n\n{_item_lines(item, timezone)}\n'
        f'*Time left:* about {hours_until(item.due_at, now)}h\n\n'
        f'{DONE_HINT.format(item_id=item.id)}'
    )


def format_overdue(item: WorkItem, now: datetime, timezone: str | None = None) -> str:
    return (
        f'🚨 *Task is overdue*\n\n{_item_lines(item, timezone)}\n'
        f'*Days overdue:* {days_past(item.due_at, now)}\n\n'
        f'{DONE_HINT.format(item_id=item.id)}'
    )


def format_escalation(item: WorkItem, hours_elapsed: int) -> str:
    return (
        f'⚠️ *No reply for {hours_elapsed}+ hours, so I turned this into a task*\n\n'
        f'*Task ID:* {item.id}\n'
        f'*Assignee:* <@{item.assignee}>\n'
        f'*Priority:* {item.priority.emoji} {item.priority.label}\n\n'
        f'{DONE_HINT.format(item_id=item.id)}'
    )


def format_unreplied_reminder(mention: Mention, hours_elapsed: int) -> str:
    return (
        f'<@{mention.addressed_user}>\n\n'
        f'⏰ *You were mentioned {hours_elapsed}h ago and have not replied*\n\n'
        f'> {mention.text}\n\n'
        'Please take a look and reply in this thread once it is handled.'
    )


def _repeat(reminder: Reminder) -> str:
    minutes = reminder.interval_minutes
    if minutes is None:
        return 'once'
    if minutes % 1440 == 0:
        days = minutes // 1440
        return 'every day' if days == 1 else f'every {days} days'
    if minutes % 60 == 0:
        hours = minutes // 60
        return 'every hour' if hours == 1 else f'every {hours} hours'
    return f'every {minutes} minutes'


def format_reminder_set(reminder: Reminder, timezone: str | None = None) -> str:
    return (
        f'🔔 *Reminder set*\n\n'
        f'*For:* <@{reminder.target_user}>\n'
        f'*Message:* {reminder.message}\n'
        f'*When:* {format_due(reminder.fire_at, timezone)} ({_repeat(reminder)})\n'
        f'*Reminder ID:* {reminder.id}'
    )


def format_reminder(reminder: Reminder) -> str:
    return f'<@{reminder.target_user}> 🔔 *Reminder:* {reminder.message}'


def format_reminders_cancelled(reminders: list[Reminder]) -> str:
    lines = '\n'.join(f'• {r.message} ({r.id})' for r in reminders)
    noun = 'reminder' if len(reminders) == 1 else 'reminders'
    return f'🛑 *Cancelled {len(reminders)} {noun}*\n{lines}'
