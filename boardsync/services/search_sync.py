"""
Search index synchronizer.

Projects a newly created article into the hosted search index.  Only
creation is synchronized; edits and deletions do not reach the index.
"""
import logging

from boardsync.schemas import ArticleSnapshot
from boardsync.stores.search import SearchIndex

logger = logging.getLogger(__name__)


def build_projection(board_id: str, article_id: str, article: ArticleSnapshot) -> dict:
    """Flatten the public fields of *article* into one search document."""
    return {
        "boardId": board_id,
        "articleId": article_id,
        "createdAt": article.created_at.isoformat(),
        "title": article.title,
        "content": article.summary,
        "email": article.user.email,
        "displayName": article.user.display_name,
        "category": article.category,
        "tags": list(article.tags),
        "readCount": article.read_count,
        "commentCount": article.comment_count,
        "likeCount": article.like_count,
    }


class SearchIndexSynchronizer:
    def __init__(self, index: SearchIndex) -> None:
        self._index = index

    async def project(self, board_id: str, article_id: str, article: ArticleSnapshot) -> str:
        object_id = await self._index.add_object(build_projection(board_id, article_id, article))
        logger.info("Article %s/%s indexed as %s", board_id, article_id, object_id)
        return object_id
