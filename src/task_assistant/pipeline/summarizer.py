"""
Thread summaries for work items created inside a thread.

Summarizing is best effort: a short thread yields Ok(None), and any inference
failure yields Degraded(None) so the item is still created without one.
"""

from ..errors import Degraded, Ok, Outcome, wrap_inference_error
from ..logging import get_logger
from ..models.message import ThreadMessage
from ..prompts.thread import build_summary_prompt
from ..repository import TextInferenceClient

logger = get_logger(__name__)

MIN_THREAD_LENGTH = 2
SUMMARY_MAX_TOKENS = 300


class ThreadSummarizer:
    """Bullet-point summary of a thread."""

    def __init__(self, inference: TextInferenceClient | None = None):
        self.inference = inference

    async def summarize(self, thread: list[ThreadMessage]) -> Outcome[str | None]:
        substantive = [m for m in thread if m.text.strip()]
        if len(substantive) < MIN_THREAD_LENGTH:
            return Ok(None)

        if self.inference is None:
            return Degraded(None, reason='inference disabled')

        try:
            summary = await self.inference.chat_completion(
                messages=build_summary_prompt(substantive),
                temperature=0.3,
                max_tokens=SUMMARY_MAX_TOKENS,
            )
        except Exception as e:
            error = wrap_inference_error(e, {'operation': 'summarize_thread'})
            logger.warning(
                'summarizer.inference_failed',
                error=str(error),
                error_type=type(error).__name__,
            )
            return Degraded(None, reason=str(error))

        summary = summary.strip()
        if not summary:
            return Degraded(None, reason='empty summary')

        logger.info('summarizer.summarized', thread_length=len(substantive), summary=summary)
        return Ok(summary)
