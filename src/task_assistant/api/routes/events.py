"""POST /events: hand one inbound chat message to the pipeline."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from task_assistant.models.message import InboundMessage

from ..auth import verify_worker_token

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/events")
async def ingest_event(
    payload: dict[str, Any],
    request: Request,
    _auth: None = Depends(verify_worker_token),
):
    """Validate an inbound message and run it through the assistant pipeline."""
    try:
        message = InboundMessage.model_validate(payload)
    except PydanticValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    log = logger.bind(
        conversation_id=message.conversation_id,
        message_id=message.message_id,
    )
    log.info("events.received")

    try:
        result = await request.app.state.pipeline.handle_message(message)
    except Exception as e:
        log.error("events.failed", error=str(e), error_type=type(e).__name__)
        return JSONResponse(
            status_code=500,
            content={"error": str(e), "success": False},
        )

    log.info("events.complete", route=result.route, success=result.success)
    return result.to_dict()
