"""
LLM prompts for the chat task assistant.
"""

from .classify_intent import (
    INTENT_SYSTEM_PROMPT,
    IntentClassification,
    build_intent_prompt,
)
from .extract_task import (
    EXTRACTION_SYSTEM_PROMPT,
    ExtractedTaskInfo,
    build_extraction_prompt,
)
from .priority import PRIORITY_SYSTEM_PROMPT, build_priority_prompt
from .reminder_request import (
    REMINDER_SYSTEM_PROMPT,
    ParsedReminderRequest,
    build_reminder_prompt,
)
from .task_request import (
    TASK_REQUEST_SYSTEM_PROMPT,
    TaskRequestJudgement,
    build_task_request_prompt,
)
from .thread import (
    ANSWER_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_answer_prompt,
    build_summary_prompt,
)

__all__ = [
    # Intent
    'IntentClassification',
    'build_intent_prompt',
    'INTENT_SYSTEM_PROMPT',
    # Extraction
    'ExtractedTaskInfo',
    'build_extraction_prompt',
    'EXTRACTION_SYSTEM_PROMPT',
    # Priority
    'build_priority_prompt',
    'PRIORITY_SYSTEM_PROMPT',
    # Task-or-not
    'TaskRequestJudgement',
    'build_task_request_prompt',
    'TASK_REQUEST_SYSTEM_PROMPT',
    # Reminders
    'ParsedReminderRequest',
    'build_reminder_prompt',
    'REMINDER_SYSTEM_PROMPT',
    # Threads
    'build_summary_prompt',
    'SUMMARY_SYSTEM_PROMPT',
    'build_answer_prompt',
    'ANSWER_SYSTEM_PROMPT',
]
