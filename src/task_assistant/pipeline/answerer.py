"""
Direct answers to questions addressed to the assistant.

The question is answered in context: the most recent thread messages before
it are replayed as conversation turns. Answering never raises; failures yield
Degraded with an apology the caller can post as-is.
"""

from ..config import config
from ..errors import Degraded, Ok, Outcome, wrap_inference_error
from ..logging import get_logger
from ..messages import ANSWER_UNAVAILABLE
from ..models.message import ThreadMessage
from ..prompts.thread import build_answer_prompt
from ..repository import TextInferenceClient

logger = get_logger(__name__)

ANSWER_MAX_TOKENS = 500


class QuestionAnswerer:
    """Answers INFORMATION requests with free-text inference."""

    def __init__(
        self,
        inference: TextInferenceClient | None = None,
        assistant_user_id: str | None = None,
        context_limit: int | None = None,
    ):
        """
        Args:
            inference: Inference client; None means every call degrades
            assistant_user_id: Messages by this user are replayed as assistant turns
            context_limit: How many earlier thread messages to include
        """
        self.inference = inference
        self.assistant_user_id = assistant_user_id
        self.context_limit = (
            context_limit if context_limit is not None else config.THREAD_CONTEXT_LIMIT
        )

    async def answer(
        self,
        question: str,
        thread: list[ThreadMessage] | None = None,
        question_message_id: str | None = None,
    ) -> Outcome[str]:
        """
        Answer ``question``.

        Args:
            question: Question text with address tokens removed
            thread: Thread the question was asked in, oldest first
            question_message_id: Id of the question itself, left out of the context
        """
        if not question.strip():
            return Degraded(ANSWER_UNAVAILABLE, reason='empty question')

        if self.inference is None:
            return Degraded(ANSWER_UNAVAILABLE, reason='inference disabled')

        history = [
            m for m in (thread or []) if m.text.strip() and m.message_id != question_message_id
        ]
        history = history[-self.context_limit :] if self.context_limit > 0 else []

        try:
            answer = await self.inference.chat_completion(
                messages=build_answer_prompt(question, history, self.assistant_user_id),
                temperature=0.7,
                max_tokens=ANSWER_MAX_TOKENS,
            )
        except Exception as e:
            error = wrap_inference_error(e, {'operation': 'answer_question'})
            logger.warning(
                'answerer.inference_failed',
                error=str(error),
                error_type=type(error).__name__,
            )
            return Degraded(ANSWER_UNAVAILABLE, reason=str(error))

        answer = answer.strip()
        if not answer:
            return Degraded(ANSWER_UNAVAILABLE, reason='empty answer')

        logger.info('answerer.answered', context_messages=len(history), answer=answer)
        return Ok(answer)
