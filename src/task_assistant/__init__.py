"""
Chat Task Assistant

Turns chat messages into tracked work items, follows up on unanswered
mentions and reminds people about deadlines.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .pipeline import (
    AssistantPipeline,
    IngestionResult,
    IntentClassifier,
    MentionTracker,
    PriorityResolver,
    TaskExtractor,
    is_confident,
)
from .scheduler import JobRunner, NotificationThrottle, ReminderScheduler, SweepResult
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    PipelineTimer,
)
from .errors import (
    TaskAssistantError,
    PipelineError,
    ValidationError,
    ExtractionError,
    EscalationError,
    InferenceError,
    StoreError,
    DuplicateMentionError,
    Ok,
    Degraded,
    Outcome,
    PartialSuccessResult,
    run_isolated,
)

__all__ = [
    # Version
    '__version__',
    # Pipeline
    'AssistantPipeline',
    'IngestionResult',
    'IntentClassifier',
    'MentionTracker',
    'PriorityResolver',
    'TaskExtractor',
    'is_confident',
    # Scheduler
    'JobRunner',
    'NotificationThrottle',
    'ReminderScheduler',
    'SweepResult',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'PipelineTimer',
    # Errors
    'TaskAssistantError',
    'PipelineError',
    'ValidationError',
    'ExtractionError',
    'EscalationError',
    'InferenceError',
    'StoreError',
    'DuplicateMentionError',
    'Ok',
    'Degraded',
    'Outcome',
    'PartialSuccessResult',
    'run_isolated',
]
