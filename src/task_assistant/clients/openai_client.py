"""
OpenAI client wrapper for the chat task assistant.

Handles:
- Free-text chat completions (single-token priority answers)
- Chat completions with structured output (Pydantic model parsing)
- Retry logic with exponential backoff
"""

import os
from typing import TypeVar

import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel
from tenacity import RetryCallState, retry, stop_after_attempt, wait_exponential

from ..config import config

logger = structlog.get_logger(__name__)

# Type variable for structured output parsing
T = TypeVar('T', bound=BaseModel)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        'openai_client.retrying',
        attempt=retry_state.attempt_number,
        error=str(exc),
        error_type=type(exc).__name__,
    )


_RETRY = dict(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    before_sleep=_log_retry,
    reraise=True,
)


class OpenAIClient:
    """
    Async OpenAI client implementing the TextInferenceClient protocol.

    Configuration via environment variables:
    - OPENAI_API_KEY: Required API key
    - OPENAI_CHAT_MODEL: Chat model (default: gpt-4.1-mini)
    """

    def __init__(
        self,
        api_key: str | None = None,
        chat_model: str | None = None,
    ):
        """
        Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            chat_model: Model for chat completions (defaults to OPENAI_CHAT_MODEL)
        """
        self.api_key = api_key or os.getenv('OPENAI_API_KEY')
        if not self.api_key:
            raise ValueError('OPENAI_API_KEY environment variable is required')

        self.chat_model = chat_model or config.OPENAI_CHAT_MODEL
        self._client = AsyncOpenAI(api_key=self.api_key)

    @retry(**_RETRY)
    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> str:
        """
        Get a chat completion response.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Override the default chat model
            temperature: Sampling temperature (0.0 for deterministic)
            max_tokens: Maximum tokens in response

        Returns:
            The assistant's response text
        """
        response = await self._client.chat.completions.create(
            model=model or self.chat_model,
            messages=messages,  # type: ignore
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ''

    @retry(**_RETRY)
    async def chat_completion_structured(
        self,
        messages: list[dict[str, str]],
        response_model: type[T],
        model: str | None = None,
        temperature: float = 0.0,
    ) -> T:
        """
        Get a chat completion with structured output (Pydantic model).

        Uses OpenAI's native structured output via response_format, so the
        returned object has already been validated against ``response_model``.

        Raises:
            ValueError: If the model refused or returned nothing parseable
        """
        response = await self._client.beta.chat.completions.parse(
            model=model or self.chat_model,
            messages=messages,  # type: ignore
            response_format=response_model,
            temperature=temperature,
        )

        message = response.choices[0].message
        if getattr(message, 'refusal', None):
            raise ValueError(f'Model refused structured response: {message.refusal}')
        if message.parsed is None:
            raise ValueError('Failed to parse structured response')
        return message.parsed

    async def health_check(self) -> dict[str, bool | str]:
        """
        Verify API connectivity by resolving the configured chat model.

        Returns:
            Dict with 'healthy' bool and optional 'error' message
        """
        try:
            await self._client.models.retrieve(self.chat_model)
            return {'healthy': True, 'chat_model': self.chat_model}
        except Exception as e:
            return {'healthy': False, 'error': str(e)}

    async def close(self):
        """Close the client connection."""
        await self._client.close()
