"""Health check endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Check database connectivity and report whether the job runner is alive."""
    if not await request.app.state.postgres.verify_connectivity():
        return JSONResponse(status_code=503, content={"status": "unhealthy"})

    runner = getattr(request.app.state, "job_runner", None)
    task = getattr(runner, "_task", None)
    return {
        "status": "ok",
        "scheduler_running": task is not None and not task.done(),
    }
