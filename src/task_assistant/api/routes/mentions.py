"""GET /mentions/stats."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/mentions/stats")
async def mention_stats(request: Request):
    """Counts of unresolved, escalated and replied mentions."""
    stats = await request.app.state.pipeline.mention_tracker.get_stats()
    return {
        "unresolved": stats.unresolved,
        "escalated": stats.escalated,
        "replied": stats.replied,
        "total": stats.total,
    }
