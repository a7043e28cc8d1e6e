"""POST /work-items/{item_id}/complete."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from ..auth import verify_worker_token

logger = structlog.get_logger(__name__)

router = APIRouter()


class CompleteRequest(BaseModel):
    completed_by: str


@router.post("/work-items/{item_id}/complete")
async def complete_work_item(
    item_id: str,
    body: CompleteRequest,
    request: Request,
    _auth: None = Depends(verify_worker_token),
):
    item = await request.app.state.pipeline.complete_work_item(item_id, body.completed_by)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Work item {item_id} not found")

    logger.info("work_items.completed", work_item_id=item.id, completed_by=item.completed_by)
    return item.model_dump(mode="json")
