"""
Cascade deletion coordinator.

Removes the records and blobs that depend on a deleted board or article.
Each method handles one class of dependent object so the lifecycle router
can run them as separate steps: one of them failing never prevents the
others from being attempted.
"""
import logging

from boardsync.stores.blobs import (
    BlobStore,
    article_body_path,
    article_image_prefix,
    board_body_prefix,
    board_image_prefix,
)
from boardsync.stores.primary import PrimaryStore

logger = logging.getLogger(__name__)


class CascadeCoordinator:
    def __init__(self, primary: PrimaryStore, blobs: BlobStore) -> None:
        self._primary = primary
        self._blobs = blobs

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------

    async def remove_board_children(self, board_id: str) -> tuple[int, int]:
        """
        Delete the board's articles and their comments in one batch.

        Per-article counters are not reversed: the board that owns them is
        gone.
        """
        articles, comments = await self._primary.delete_board_children(board_id)
        logger.info(
            "Board %s: removed %d article(s), %d comment(s)", board_id, articles, comments
        )
        return articles, comments

    async def remove_board_blobs(self, board_id: str) -> int:
        return await self._remove_prefixes(board_body_prefix(board_id), board_image_prefix(board_id))

    # ------------------------------------------------------------------
    # Article
    # ------------------------------------------------------------------

    async def remove_article_comments(self, article_id: str) -> int:
        removed = await self._primary.delete_article_comments(article_id)
        logger.info("Article %s: removed %d comment(s)", article_id, removed)
        return removed

    async def remove_article_body(self, board_id: str, article_id: str, uid: str) -> bool:
        # The body path embeds the owner uid; without it there is nothing safe to delete.
        if not uid:
            raise ValueError(f"article {article_id} has no owner uid, body blob path unknown")
        return await self._blobs.delete(article_body_path(board_id, article_id, uid))

    async def remove_article_images(self, board_id: str, article_id: str) -> int:
        return await self._blobs.delete_prefix(article_image_prefix(board_id, article_id))

    async def _remove_prefixes(self, *prefixes: str) -> int:
        # Try every prefix, then re-raise the first failure.
        removed = 0
        first_error: Exception | None = None
        for prefix in prefixes:
            try:
                removed += await self._blobs.delete_prefix(prefix)
            except Exception as exc:
                logger.error("Blob prefix delete failed for %s: %s", prefix, exc)
                first_error = first_error or exc
        if first_error is not None:
            raise first_error
        return removed
