from fastapi import APIRouter, Depends

from boardsync.dependencies import get_lifecycle_router
from boardsync.schemas import MetricsResponse
from boardsync.services.lifecycle import LifecycleRouter

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(lifecycle: LifecycleRouter = Depends(get_lifecycle_router)):

    total_users = await lifecycle.primary.get_meta("users") or 0

    total_boards = await lifecycle.primary.get_meta("boards") or 0

    return MetricsResponse(
        total_users=total_users,
        total_boards=total_boards,
        events=lifecycle.stats,
    )
