"""
Intent classification for requests addressed to the assistant.

Surface rules run first in a fixed order and short-circuit; only when none
match is the inference client consulted. Inference failures never raise:
the classifier degrades to HELP with confidence 50.
"""

from ..errors import Degraded, Ok, Outcome, wrap_inference_error
from ..logging import get_logger
from ..models.intent import Intent, IntentResult
from ..prompts.classify_intent import IntentClassification, build_intent_prompt
from ..repository import TextInferenceClient
from . import markers

logger = get_logger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 70
FALLBACK_CONFIDENCE = 50


def is_confident(result: IntentResult, threshold: int = DEFAULT_CONFIDENCE_THRESHOLD) -> bool:
    """True when downstream effects may act on ``result`` without asking the user."""
    return result.confidence >= threshold


class IntentClassifier:
    """
    Rule-first intent classifier with an inference fallback.

    Rule order (first match wins):
    1. cancel cue AND reminder cue -> REMINDER_CANCEL (100)
    2. reminder cue                -> REMINDER_SETUP (100)
    3. help phrasing               -> HELP (95)
    4. question mark + question word -> INFORMATION (85)
    5. request phrasing            -> TASK_REQUEST (80)
    6. inference, or HELP (50) when inference is unavailable or fails
    """

    def __init__(self, inference: TextInferenceClient | None = None):
        """
        Args:
            inference: Inference client for the fallback step; None disables it
        """
        self.inference = inference

    def classify_by_rules(self, text: str) -> IntentResult | None:
        """Apply the surface rules only. Returns None when no rule matches."""
        stripped = text.strip()
        if not stripped:
            return IntentResult(
                intent=Intent.HELP, confidence=95, reason='empty message', original_text=text
            )

        cancel_cue = markers.find_cue(markers.CANCEL_CUES, stripped)
        reminder_cue = markers.find_cue(markers.REMINDER_CUES, stripped)

        if cancel_cue and reminder_cue:
            return IntentResult(
                intent=Intent.REMINDER_CANCEL,
                confidence=100,
                reason=f'cancel cue "{cancel_cue}" with reminder cue "{reminder_cue}"',
                original_text=text,
            )
        if reminder_cue:
            return IntentResult(
                intent=Intent.REMINDER_SETUP,
                confidence=100,
                reason=f'reminder cue "{reminder_cue}"',
                original_text=text,
            )
        if markers.is_help_request(stripped):
            return IntentResult(
                intent=Intent.HELP, confidence=95, reason='help phrasing', original_text=text
            )
        if markers.is_question(stripped):
            return IntentResult(
                intent=Intent.INFORMATION,
                confidence=85,
                reason='interrogative phrasing',
                original_text=text,
            )
        request_cue = markers.find_cue(markers.REQUEST_CUES, stripped)
        if request_cue:
            return IntentResult(
                intent=Intent.TASK_REQUEST,
                confidence=80,
                reason=f'request cue "{request_cue}"',
                original_text=text,
            )
        return None

    async def classify(
        self,
        text: str,
        thread_context: str | None = None,
    ) -> Outcome[IntentResult]:
        """
        Classify a message.

        Args:
            text: Message text with address tokens already removed
            thread_context: Optional earlier thread messages passed to inference

        Returns:
            Ok(result) from a rule or inference; Degraded(HELP, 50) when
            inference was needed but unavailable or failed
        """
        ruled = self.classify_by_rules(text)
        if ruled is not None:
            logger.debug(
                'intent_classifier.rule_matched',
                intent=ruled.intent.value,
                confidence=ruled.confidence,
            )
            return Ok(ruled)

        if self.inference is None:
            return self._fallback(text, 'inference disabled')

        try:
            classification = await self.inference.chat_completion_structured(
                messages=build_intent_prompt(text, thread_context),
                response_model=IntentClassification,
            )
        except Exception as e:
            error = wrap_inference_error(e, {'operation': 'classify_intent'})
            logger.warning(
                'intent_classifier.inference_failed',
                error=str(error),
                error_type=type(error).__name__,
            )
            return self._fallback(text, str(error))

        result = IntentResult(
            intent=Intent(classification.intent),
            confidence=classification.confidence,
            reason=classification.reason,
            original_text=text,
        )
        logger.info(
            'intent_classifier.inferred',
            intent=result.intent.value,
            confidence=result.confidence,
        )
        return Ok(result)

    @staticmethod
    def _fallback(text: str, reason: str) -> Degraded[IntentResult]:
        return Degraded(
            IntentResult(
                intent=Intent.HELP,
                confidence=FALLBACK_CONFIDENCE,
                reason=reason,
                original_text=text,
            ),
            reason=reason,
        )
