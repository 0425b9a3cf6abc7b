from fastapi import APIRouter, Depends

from boardsync.dependencies import get_lifecycle_router
from boardsync.schemas import AccountEvent, ArticleChange, ArticleSnapshot, BlobObject, EventReport
from boardsync.services.lifecycle import LifecycleRouter

router = APIRouter(prefix="/events", tags=["events"])

# --- Identity provider ---

@router.post("/users/created", response_model=EventReport)
async def user_created(data: AccountEvent, lifecycle: LifecycleRouter = Depends(get_lifecycle_router)):
    return await lifecycle.account_created(data)

@router.post("/users/deleted", response_model=EventReport)
async def user_deleted(data: AccountEvent, lifecycle: LifecycleRouter = Depends(get_lifecycle_router)):
    return await lifecycle.account_deleted(data)

# --- Boards ---

@router.post("/boards/{board_id}/created", response_model=EventReport)
async def board_created(board_id: str, lifecycle: LifecycleRouter = Depends(get_lifecycle_router)):
    return await lifecycle.board_created(board_id)

@router.post("/boards/{board_id}/deleted", response_model=EventReport)
async def board_deleted(board_id: str, lifecycle: LifecycleRouter = Depends(get_lifecycle_router)):
    return await lifecycle.board_deleted(board_id)

# --- Articles ---

@router.post("/boards/{board_id}/articles/{article_id}/created", response_model=EventReport)
async def article_created(
    board_id: str,
    article_id: str,
    data: ArticleSnapshot,
    lifecycle: LifecycleRouter = Depends(get_lifecycle_router),
):
    return await lifecycle.article_created(board_id, article_id, data)

@router.post("/boards/{board_id}/articles/{article_id}/updated", response_model=EventReport)
async def article_updated(
    board_id: str,
    article_id: str,
    data: ArticleChange,
    lifecycle: LifecycleRouter = Depends(get_lifecycle_router),
):
    return await lifecycle.article_updated(board_id, article_id, data)

@router.post("/boards/{board_id}/articles/{article_id}/deleted", response_model=EventReport)
async def article_deleted(
    board_id: str,
    article_id: str,
    data: ArticleSnapshot | None = None,
    lifecycle: LifecycleRouter = Depends(get_lifecycle_router),
):
    return await lifecycle.article_deleted(board_id, article_id, data or ArticleSnapshot())

# --- Comments ---

@router.post("/boards/{board_id}/articles/{article_id}/comments/{comment_id}/created", response_model=EventReport)
async def comment_created(
    board_id: str,
    article_id: str,
    comment_id: str,
    lifecycle: LifecycleRouter = Depends(get_lifecycle_router),
):
    return await lifecycle.comment_created(board_id, article_id, comment_id)

@router.post("/boards/{board_id}/articles/{article_id}/comments/{comment_id}/deleted", response_model=EventReport)
async def comment_deleted(
    board_id: str,
    article_id: str,
    comment_id: str,
    lifecycle: LifecycleRouter = Depends(get_lifecycle_router),
):
    return await lifecycle.comment_deleted(board_id, article_id, comment_id)

# --- Blob storage ---

@router.post("/storage/finalized", response_model=EventReport)
async def blob_finalized(data: BlobObject, lifecycle: LifecycleRouter = Depends(get_lifecycle_router)):
    return await lifecycle.blob_finalized(data)
