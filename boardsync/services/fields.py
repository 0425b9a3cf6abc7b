"""
Aggregate field merger for a board's category and tag sets.

The sets only grow.  An article edit that drops a tag, or an article
deletion, leaves the board sets untouched.
"""
import logging

from boardsync.schemas import ArticleSnapshot
from boardsync.stores.primary import PrimaryStore

logger = logging.getLogger(__name__)


class FieldMerger:
    def __init__(self, primary: PrimaryStore) -> None:
        self._primary = primary

    async def merge_created(self, board_id: str, article: ArticleSnapshot) -> bool:
        categories = [article.category] if article.category else []
        return await self._merge(board_id, categories, article.tags)

    async def merge_updated(
        self, board_id: str, before: ArticleSnapshot, after: ArticleSnapshot
    ) -> bool:
        """
        Merge only what the update can add: the category when it changed,
        and the tags whenever the new list is non-empty.
        """
        categories = []
        if after.category and after.category != before.category:
            categories.append(after.category)
        return await self._merge(board_id, categories, after.tags)

    async def _merge(self, board_id: str, categories: list[str], tags: list[str]) -> bool:
        if not categories and not tags:
            return False
        merged = await self._primary.merge_board_fields(board_id, categories, tags)
        if not merged:
            logger.warning("Board %s not found, category/tag merge skipped", board_id)
        return merged
