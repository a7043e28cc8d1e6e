"""Intent taxonomy for inbound requests addressed to the assistant."""

from enum import Enum

from pydantic import BaseModel, Field


class Intent(str, Enum):
    TASK_REQUEST = 'task_request'
    INFORMATION = 'information'
    REMINDER_SETUP = 'reminder_setup'
    REMINDER_CANCEL = 'reminder_cancel'
    HELP = 'help'


class IntentResult(BaseModel):
    """Classified intent with a 0-100 confidence score."""

    intent: Intent
    confidence: int = Field(..., ge=0, le=100)
    reason: str = ''
    original_text: str = ''
