"""Per-line task-or-not judgement for messages that address other users."""

from ..errors import Degraded, Ok, Outcome, wrap_inference_error
from ..logging import get_logger
from ..prompts.task_request import TaskRequestJudgement, build_task_request_prompt
from ..repository import TextInferenceClient

logger = get_logger(__name__)


class TaskRequestAnalyzer:
    """Asks the inference client whether a line is a task request."""

    def __init__(self, inference: TextInferenceClient):
        self.inference = inference

    async def analyze(self, text: str) -> Outcome[TaskRequestJudgement]:
        if not text.strip():
            return Ok(TaskRequestJudgement(is_task=False, confidence=0, reason='empty text'))

        try:
            judgement = await self.inference.chat_completion_structured(
                messages=build_task_request_prompt(text),
                response_model=TaskRequestJudgement,
            )
        except Exception as e:
            error = wrap_inference_error(e, {'operation': 'analyze_task_request'})
            logger.warning('task_request.inference_failed', error=str(error))
            return Degraded(
                TaskRequestJudgement(is_task=False, confidence=0, reason=str(error)[:300]),
                reason=str(error),
            )

        logger.debug(
            'task_request.analyzed',
            is_task=judgement.is_task,
            confidence=judgement.confidence,
        )
        return Ok(judgement)
