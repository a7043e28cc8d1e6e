"""
Custom exceptions and error handling for the chat task assistant.

Provides:
- Typed exception hierarchy for different failure modes
- Error context preservation for debugging
- Ok / Degraded outcomes for operations that fall back instead of raising
- Partial success handling for per-item batch work (sweeps, mention lines)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar, Union

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar('T')
ItemT = TypeVar('ItemT')


class TaskAssistantError(Exception):
    """Base exception for all task assistant errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Client Errors
# =============================================================================


class ClientError(TaskAssistantError):
    """Base class for errors raised by external collaborators."""

    pass


class InferenceError(ClientError):
    """Error from the text inference service."""

    pass


class InferenceRateLimitError(InferenceError):
    """Rate limit exceeded on the inference service."""

    pass


class InferenceSchemaError(InferenceError):
    """Model refused the request or returned output that failed validation."""

    pass


class NotificationError(ClientError):
    """Posting a message to the chat platform failed."""

    pass


class StoreError(ClientError):
    """Error from the work item / mention store."""

    pass


class StoreConnectionError(StoreError):
    """Failed to connect to the store."""

    pass


class StoreQueryError(StoreError):
    """Error executing a store query."""

    pass


class StoreConstraintError(StoreError):
    """Constraint violation in the store (e.g., duplicate unique key)."""

    pass


class DuplicateMentionError(StoreConstraintError):
    """A mention with the same conversation, anchor and addressed user exists."""

    pass


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineError(TaskAssistantError):
    """Base class for pipeline-related errors."""

    pass


class ValidationError(PipelineError):
    """Input validation failed."""

    pass


class ExtractionError(PipelineError):
    """Error during task extraction."""

    pass


class EscalationError(PipelineError):
    """A mention could not be escalated into a work item."""

    pass


# =============================================================================
# Degradable Outcomes
# =============================================================================


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A result produced by the primary path."""

    value: T

    @property
    def degraded(self) -> bool:
        return False

    @property
    def reason(self) -> str | None:
        return None


@dataclass(frozen=True)
class Degraded(Generic[T]):
    """A fallback result, carrying why the primary path was not used."""

    value: T
    reason: str

    @property
    def degraded(self) -> bool:
        return True


Outcome = Union[Ok[T], Degraded[T]]


# =============================================================================
# Partial Success Handling
# =============================================================================


@dataclass
class ItemResult:
    """Result for a single item in a batch operation."""

    item_id: str | None
    success: bool
    error: TaskAssistantError | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class PartialSuccessResult:
    """
    Result of a batch operation that may partially succeed.

    Allows processing to continue even when some items fail,
    while preserving error context for debugging.
    """

    succeeded: list[ItemResult] = field(default_factory=list)
    failed: list[ItemResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0

    @property
    def all_failed(self) -> bool:
        return self.success_count == 0

    @property
    def partial_success(self) -> bool:
        return self.success_count > 0 and self.failure_count > 0

    def add_success(
        self,
        item_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Record a successful item."""
        self.succeeded.append(ItemResult(item_id=item_id, success=True, data=data or {}))

    def add_failure(
        self,
        error: TaskAssistantError,
        item_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Record a failed item."""
        self.failed.append(
            ItemResult(item_id=item_id, success=False, error=error, data=data or {})
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'success_count': self.success_count,
            'failure_count': self.failure_count,
            'total_count': self.total_count,
            'all_succeeded': self.all_succeeded,
            'succeeded_ids': [r.item_id for r in self.succeeded if r.item_id],
            'failed_ids': [r.item_id for r in self.failed if r.item_id],
            'errors': [
                {'item_id': r.item_id, 'error': str(r.error)}
                for r in self.failed
                if r.error
            ],
        }


async def run_isolated(
    items: Iterable[ItemT],
    handler: Callable[[ItemT], Awaitable[dict[str, Any] | None]],
    key: Callable[[ItemT], str | None] = lambda item: None,
    operation: str = 'batch',
) -> PartialSuccessResult:
    """
    Run ``handler`` over ``items`` one at a time, isolating failures.

    A failing item is logged and recorded in the result; the remaining items
    still run. The handler's return value (if any) becomes the item's data.

    Args:
        items: Items to process, in order
        handler: Async callable invoked once per item
        key: Extracts a stable identifier for logging and result bookkeeping
        operation: Name used in log events

    Returns:
        PartialSuccessResult describing every item
    """
    result = PartialSuccessResult()
    for item in items:
        item_id = key(item)
        try:
            data = await handler(item)
        except TaskAssistantError as e:
            logger.warning(
                f'{operation}.item_failed',
                item_id=item_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            result.add_failure(e, item_id=item_id)
        except Exception as e:
            logger.exception(f'{operation}.item_failed', item_id=item_id)
            result.add_failure(
                PipelineError(
                    f"{operation} failed for item: {e}",
                    context={'item_id': item_id, 'error_type': type(e).__name__},
                ),
                item_id=item_id,
            )
        else:
            result.add_success(item_id=item_id, data=data)
    return result


# =============================================================================
# Error Handling Utilities
# =============================================================================


def wrap_inference_error(
    exc: Exception, context: dict[str, Any] | None = None
) -> InferenceError:
    """
    Wrap an inference client exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed InferenceError subclass
    """
    if isinstance(exc, InferenceError):
        return exc

    error_str = str(exc).lower()
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if 'rate limit' in error_str or 'rate_limit' in error_str:
        return InferenceRateLimitError(f"Inference rate limit exceeded: {exc}", context=ctx)
    elif (
        'content policy' in error_str
        or 'refused' in error_str
        or 'failed to parse' in error_str
        or 'validation error' in error_str
    ):
        return InferenceSchemaError(f"Inference returned unusable output: {exc}", context=ctx)
    else:
        return InferenceError(f"Inference error: {exc}", context=ctx)


def wrap_store_error(exc: Exception, context: dict[str, Any] | None = None) -> StoreError:
    """
    Wrap a database exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed StoreError subclass
    """
    if isinstance(exc, StoreError):
        return exc

    error_str = str(exc).lower()
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if 'unique' in error_str or 'duplicate' in error_str or '23505' in error_str:
        return StoreConstraintError(f"Store constraint violation: {exc}", context=ctx)
    elif 'connection' in error_str or 'connect' in error_str:
        return StoreConnectionError(f"Store connection failed: {exc}", context=ctx)
    else:
        return StoreQueryError(f"Store query error: {exc}", context=ctx)
