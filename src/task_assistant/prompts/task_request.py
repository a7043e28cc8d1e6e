"""
Task-or-not prompt used for each line of a message that addresses other users.
"""

from pydantic import BaseModel, Field


class TaskRequestJudgement(BaseModel):
    """Whether a single line asks someone to do something."""

    is_task: bool = Field(..., description='True if the line asks for work to be done.')
    confidence: int = Field(..., ge=0, le=100, description='Confidence 0-100.')
    reason: str = Field(..., max_length=300, description='One short sentence.')


TASK_REQUEST_SYSTEM_PROMPT = """You decide whether a chat message is a task request.

Count it as a task when it contains:
- a clear request or instruction ("please ...", "can you ...", "〜してください", "〜をお願いします")
- work with a deadline ("by tomorrow", "明日までに", "this week")
- to-do phrasing ("need to ...", "〜する必要がある")
- a request to fix a bug or resolve a problem

It is NOT a task when it is:
- a plain question or consultation ("what do you think about ...?")
- information sharing or a status report ("I finished ...", "〜になりました")
- a greeting or small talk
- an absence, leave or lateness notice ("I'll be 10 minutes late", "休みます")
- an out-of-office notice or a travel delay report
- an acknowledgement ("got it", "了解しました")"""


def build_task_request_prompt(text: str) -> list[dict[str, str]]:
    """Build the messages for the task-or-not judgement."""
    return [
        {'role': 'system', 'content': TASK_REQUEST_SYSTEM_PROMPT},
        {'role': 'user', 'content': f'Analyze this message:\n\n{text}'},
    ]
