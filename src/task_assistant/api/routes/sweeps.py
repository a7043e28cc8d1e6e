"""POST /sweeps/{name}: run a reminder sweep on demand."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from task_assistant.config import config

from ..auth import verify_worker_token

logger = structlog.get_logger(__name__)

router = APIRouter()

UNREPLIED_REMINDERS = "unreplied_reminders"


@router.post("/sweeps/{name}")
async def run_sweep(
    name: str,
    request: Request,
    _auth: None = Depends(verify_worker_token),
):
    """
    Run one of the scheduled jobs immediately, or the unreplied-mention
    reminder sweep, which has no default schedule.
    """
    runner = request.app.state.job_runner
    if name == UNREPLIED_REMINDERS:
        result = await request.app.state.scheduler.run_unreplied_reminder_sweep(
            config.ESCALATION_THRESHOLD_HOURS, name=UNREPLIED_REMINDERS
        )
    elif name in runner.jobs:
        logger.info("sweeps.triggered", job=name)
        result = await runner.trigger(name)
    else:
        raise HTTPException(status_code=404, detail=f"Unknown sweep {name!r}")

    if result is None:
        raise HTTPException(status_code=500, detail=f"Sweep {name!r} failed")
    return result.to_dict()
