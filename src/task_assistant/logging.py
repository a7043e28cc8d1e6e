"""
Structured logging configuration for the chat task assistant.

Uses structlog for structured, context-aware logging with:
- JSON output for production
- Pretty console output for development
- Per-message ids (message, conversation, thread, author) and per-sweep job
  names bound through structlog's context variables
- Message bodies shortened to a preview so chat text does not flood the logs
- Stage timing for message ingestion
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Generator

import structlog
from structlog.types import Processor

from .config import config

# Keys logging_context may bind; anything else is a programming error.
CONTEXT_KEYS = frozenset(
    {'trace_id', 'conversation_id', 'thread_anchor_id', 'user_id', 'job'}
)

# Event fields that may carry raw chat text.
TEXT_FIELDS = ('text', 'answer', 'summary', 'reminder_message')


def shorten_text_fields(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor that cuts chat text fields down to LOG_TEXT_PREVIEW_CHARS."""
    limit = config.LOG_TEXT_PREVIEW_CHARS
    for key in TEXT_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > limit:
            event_dict[key] = f'{value[:limit]}… (+{len(value) - limit} chars)'
    return event_dict


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for the application.

    Args:
        json_output: If True, output JSON logs (for production).
                    If False, output pretty console logs (for development).
        log_level: Override log level (defaults to config.LOG_LEVEL)
    """
    level = log_level or config.LOG_LEVEL
    level_num = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format='%(message)s',
        stream=sys.stdout,
        level=level_num,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        shorten_text_fields,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance (typically for ``__name__``)."""
    return structlog.get_logger(name)


def current_context() -> dict[str, Any]:
    """Ids currently bound by logging_context."""
    return {
        k: v for k, v in structlog.contextvars.get_contextvars().items() if k in CONTEXT_KEYS
    }


@contextmanager
def logging_context(**ids: str | None) -> Generator[None, None, None]:
    """
    Bind message or job ids to every log entry inside the block.

    ``None`` values are skipped, so an outer binding stays visible. Values
    bound by an enclosing block are restored on exit.

    Usage:
        with logging_context(conversation_id="C123", user_id="U456"):
            logger.info("pipeline.message_received")  # carries both ids

    Raises:
        TypeError: For a key outside CONTEXT_KEYS
    """
    unknown = set(ids) - CONTEXT_KEYS
    if unknown:
        raise TypeError(f'Unknown logging context keys: {sorted(unknown)}')

    bound = {k: v for k, v in ids.items() if v is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


class PipelineTimer:
    """
    Timer for tracking ingestion stage durations.

    Usage:
        timer = PipelineTimer()
        with timer.stage("classify"):
            ...
        with timer.stage("extract"):
            ...
        logger.info("pipeline.complete", **timer.summary())
    """

    def __init__(self):
        self.stages: dict[str, float] = {}
        self.start_time: float = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        """Time a pipeline stage. A stage entered twice accumulates."""
        stage_start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - stage_start) * 1000
            self.stages[name] = self.stages.get(name, 0.0) + elapsed

    @property
    def total_ms(self) -> float:
        """Total elapsed time since timer creation in milliseconds."""
        return (time.perf_counter() - self.start_time) * 1000

    @property
    def slowest_stage(self) -> str | None:
        if not self.stages:
            return None
        return max(self.stages, key=self.stages.__getitem__)

    def summary(self) -> dict[str, Any]:
        """Get timing summary as a dictionary."""
        return {
            'total_ms': round(self.total_ms, 2),
            'slowest_stage': self.slowest_stage,
            'stages': {k: round(v, 2) for k, v in self.stages.items()},
        }


# Development mode by default; services call configure_logging(json_output=True)
configure_logging(json_output=False)
