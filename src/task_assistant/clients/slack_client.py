"""HTTP client for posting notifications and reading threads through the Slack Web API."""

from __future__ import annotations

import os

import httpx
import structlog

from ..models.message import ThreadMessage

logger = structlog.get_logger(__name__)

SLACK_API_BASE_URL = 'https://slack.com/api'


class SlackNotificationSink:
    """
    NotificationSink backed by ``chat.postMessage`` and ThreadReader backed by
    ``conversations.replies``.

    Failures never raise: a non-2xx response, an ``ok: false`` payload or a
    network error is logged and reported as ``False`` (post) or an empty
    thread (fetch_thread), so callers decide how to degrade.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str = SLACK_API_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.token = token or os.getenv('SLACK_BOT_TOKEN')
        if not self.token:
            raise ValueError('SLACK_BOT_TOKEN environment variable is required')

        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    async def post(
        self,
        conversation_id: str,
        text: str,
        thread_anchor_id: str | None = None,
    ) -> bool:
        payload: dict[str, str] = {'channel': conversation_id, 'text': text}
        if thread_anchor_id:
            payload['thread_ts'] = thread_anchor_id

        log = logger.bind(conversation_id=conversation_id, thread_anchor_id=thread_anchor_id)

        try:
            response = await self._client.post(
                '/chat.postMessage',
                json=payload,
                headers={
                    'Authorization': f'Bearer {self.token}',
                    'Content-Type': 'application/json; charset=utf-8',
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.warning('slack_client.post_failed', status_code=e.response.status_code)
            return False
        except httpx.HTTPError as e:
            log.warning('slack_client.post_failed', error=str(e), error_type=type(e).__name__)
            return False

        try:
            body = response.json()
        except ValueError:
            log.warning('slack_client.invalid_response', body=response.text[:200])
            return False

        if not body.get('ok', False):
            log.warning('slack_client.post_rejected', error=body.get('error'))
            return False

        log.debug('slack_client.posted')
        return True

    async def fetch_thread(
        self, conversation_id: str, thread_anchor_id: str, limit: int = 50
    ) -> list[ThreadMessage]:
        log = logger.bind(conversation_id=conversation_id, thread_anchor_id=thread_anchor_id)

        try:
            response = await self._client.get(
                '/conversations.replies',
                params={'channel': conversation_id, 'ts': thread_anchor_id, 'limit': limit},
                headers={'Authorization': f'Bearer {self.token}'},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            log.warning('slack_client.fetch_failed', error=str(e), error_type=type(e).__name__)
            return []
        except ValueError:
            log.warning('slack_client.invalid_response', body=response.text[:200])
            return []

        if not body.get('ok', False):
            log.warning('slack_client.fetch_rejected', error=body.get('error'))
            return []

        thread = [
            ThreadMessage(
                message_id=m.get('ts', ''),
                author_id=m.get('user'),
                text=m.get('text', ''),
                is_bot='bot_id' in m,
            )
            for m in body.get('messages', [])
        ]
        log.debug('slack_client.thread_fetched', messages=len(thread))
        return thread

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
