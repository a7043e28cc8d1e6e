"""Bearer token authentication for the service API."""

import secrets

from fastapi import Header, HTTPException

from .config import get_settings

_BEARER_PREFIX = "Bearer "


async def verify_worker_token(authorization: str | None = Header(default=None)) -> None:
    """Require ``Authorization: Bearer <WORKER_API_KEY>`` on mutating routes."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")

    token = authorization[len(_BEARER_PREFIX):]
    if not secrets.compare_digest(token, get_settings().WORKER_API_KEY):
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")
