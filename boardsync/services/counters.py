"""
Counter maintainer: applies signed deltas to aggregate counts.

Meta counters (``users``, ``boards``) are created lazily on first use.
Counters embedded on a parent row (a board's article count, an article's
comment count) are only updated; when the parent is already gone the call
is a logged no-op and the parent is not recreated.
"""
import logging
from typing import NamedTuple

from boardsync.stores.primary import PrimaryStore

logger = logging.getLogger(__name__)

META = "meta"
BOARD_ARTICLES = "board_articles"
ARTICLE_COMMENTS = "article_comments"


class CounterKey(NamedTuple):
    scope: str
    id: str

    @classmethod
    def users(cls) -> "CounterKey":
        return cls(META, "users")

    @classmethod
    def boards(cls) -> "CounterKey":
        return cls(META, "boards")

    @classmethod
    def board_articles(cls, board_id: str) -> "CounterKey":
        return cls(BOARD_ARTICLES, board_id)

    @classmethod
    def article_comments(cls, article_id: str) -> "CounterKey":
        return cls(ARTICLE_COMMENTS, article_id)

    def __str__(self) -> str:
        return f"{self.scope}/{self.id}"


class CounterMaintainer:
    def __init__(self, primary: PrimaryStore) -> None:
        self._primary = primary

    async def apply_delta(self, key: CounterKey, delta: int) -> str:
        """
        Apply *delta* to the counter identified by *key*.

        Returns ``"incremented"``, ``"created"`` (meta counter inserted with
        *delta* as its initial value) or ``"missing"`` (embedded counter whose
        parent no longer exists).  Store errors propagate.
        """
        if key.scope == META:
            outcome = await self._primary.increment_meta(key.id, delta)
        elif key.scope == BOARD_ARTICLES:
            found = await self._primary.increment_board_articles(key.id, delta)
            outcome = "incremented" if found else "missing"
        elif key.scope == ARTICLE_COMMENTS:
            found = await self._primary.increment_article_comments(key.id, delta)
            outcome = "incremented" if found else "missing"
        else:
            raise ValueError(f"unknown counter scope: {key.scope!r}")

        if outcome == "missing":
            logger.warning("Counter %s has no parent record, delta %+d skipped", key, delta)
        else:
            logger.debug("Counter %s %s by %+d", key, outcome, delta)
        return outcome
