"""
Priority resolution.

Override order (each earlier rule short-circuits the rest):
1. due within 24h (including overdue) -> HIGH
2. due within 72h                     -> MEDIUM
3. explicit human marker              -> used verbatim
4. single-token inference             -> High / Medium / Low, else MEDIUM
"""

from datetime import datetime, timedelta

from ..errors import Degraded, Ok, Outcome, wrap_inference_error
from ..logging import get_logger
from ..models.work_item import Priority, utcnow
from ..prompts.priority import build_priority_prompt
from ..repository import TextInferenceClient

logger = get_logger(__name__)

HIGH_WINDOW = timedelta(hours=24)
MEDIUM_WINDOW = timedelta(hours=72)


class PriorityResolver:
    def __init__(self, inference: TextInferenceClient | None = None):
        self.inference = inference

    async def determine_priority(
        self,
        text: str,
        due_at: datetime | None = None,
        explicit_marker: Priority | None = None,
        now: datetime | None = None,
    ) -> Outcome[Priority]:
        """Resolve a priority; never returns anything outside HIGH / MEDIUM / LOW."""
        if due_at is not None:
            remaining = due_at - (now or utcnow())
            if remaining <= HIGH_WINDOW:
                return Ok(Priority.HIGH)
            if remaining <= MEDIUM_WINDOW:
                return Ok(Priority.MEDIUM)

        if explicit_marker is not None:
            return Ok(Priority(explicit_marker))

        if self.inference is None:
            return Degraded(Priority.MEDIUM, reason='inference disabled')

        try:
            answer = await self.inference.chat_completion(
                messages=build_priority_prompt(text),
                max_tokens=3,
            )
        except Exception as e:
            error = wrap_inference_error(e, {'operation': 'determine_priority'})
            logger.warning('priority_resolver.inference_failed', error=str(error))
            return Degraded(Priority.MEDIUM, reason=str(error))

        priority = Priority.from_label(answer)
        if priority is None:
            logger.warning('priority_resolver.invalid_answer', answer=answer[:40])
            return Degraded(Priority.MEDIUM, reason=f'invalid priority answer: {answer!r}')
        return Ok(priority)
