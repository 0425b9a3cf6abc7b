"""
Lifecycle event router.

Maps every supported lifecycle event to its ordered pipeline of steps
(see ``pipeline.py`` for the failure policy).  The router is the only
component that knows about all stores; each service only receives the
adapters it needs.

The trigger source dispatches each event independently.  Nothing here
holds state across events except the delivery statistics.
"""
import logging
from collections import Counter
from datetime import datetime, timezone

from boardsync.config import settings
from boardsync.schemas import (
    AccountEvent,
    ArticleChange,
    ArticleSnapshot,
    BlobObject,
    EventReport,
)
from boardsync.services.cascade import CascadeCoordinator
from boardsync.services.counters import CounterKey, CounterMaintainer
from boardsync.services.fields import FieldMerger
from boardsync.services.pipeline import Step, advisory, critical, run_pipeline
from boardsync.services.search_sync import SearchIndexSynchronizer
from boardsync.services.temp_files import TempFileCollector
from boardsync.stores.blobs import BlobStore
from boardsync.stores.mirror import MirrorStore
from boardsync.stores.primary import PrimaryStore
from boardsync.stores.search import SearchIndex

logger = logging.getLogger(__name__)

ADMIN_LEVEL = 0
DEFAULT_LEVEL = 5


class LifecycleRouter:
    def __init__(
        self,
        primary: PrimaryStore,
        mirror: MirrorStore,
        blobs: BlobStore,
        search: SearchIndex,
        admin_email: str | None = None,
        temp_files: TempFileCollector | None = None,
    ) -> None:
        self.primary = primary
        self.mirror = mirror
        self.admin_email = admin_email if admin_email is not None else settings.ADMIN_EMAIL
        self.counters = CounterMaintainer(primary)
        self.fields = FieldMerger(primary)
        self.cascade = CascadeCoordinator(primary, blobs)
        self.temp_files = temp_files or TempFileCollector(primary, blobs)
        self.search = SearchIndexSynchronizer(search)
        self._stats: Counter = Counter()

    async def _run(self, event: str, steps: list[Step]) -> EventReport:
        try:
            report = await run_pipeline(event, steps)
        except Exception:
            self._stats["failed"] += 1
            raise
        self._stats["processed"] += 1
        if report.degraded:
            self._stats["degraded"] += 1
        return report

    @property
    def stats(self) -> dict:
        """Snapshot of delivery outcomes for the metrics endpoint."""
        return {
            "processed": self._stats["processed"],
            "degraded": self._stats["degraded"],
            "failed": self._stats["failed"],
        }

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def _account_fields(self, account: AccountEvent, now: datetime) -> dict:
        is_admin = bool(self.admin_email) and account.email == self.admin_email
        return {
            "email": account.email,
            "display_name": account.display_name,
            "photo_url": account.photo_url,
            "created_at": now,
            "level": ADMIN_LEVEL if is_admin else DEFAULT_LEVEL,
            "visited_at": now,
            "visit_count": 0,
        }

    async def account_created(self, account: AccountEvent) -> EventReport:
        fields = self._account_fields(account, datetime.now(timezone.utc))
        return await self._run("account.created", [
            critical("write primary account", lambda: self.primary.put_account(account.uid, fields)),
            critical("write mirror account", lambda: self.mirror.put_account(account.uid, fields)),
            critical("increment users", lambda: self.counters.apply_delta(CounterKey.users(), 1)),
        ])

    async def account_deleted(self, account: AccountEvent) -> EventReport:
        return await self._run("account.deleted", [
            critical("remove mirror account", lambda: self.mirror.delete_account(account.uid)),
            critical("remove primary account", lambda: self.primary.delete_account(account.uid)),
            critical("decrement users", lambda: self.counters.apply_delta(CounterKey.users(), -1)),
        ])

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    async def board_created(self, board_id: str) -> EventReport:
        return await self._run("board.created", [
            critical("increment boards", lambda: self.counters.apply_delta(CounterKey.boards(), 1)),
        ])

    async def board_deleted(self, board_id: str) -> EventReport:
        return await self._run("board.deleted", [
            # The batch delete is repeatable, the decrement is not: it goes second
            # so a redelivered event never applies it twice.
            critical("remove articles and comments", lambda: self.cascade.remove_board_children(board_id)),
            critical("decrement boards", lambda: self.counters.apply_delta(CounterKey.boards(), -1)),
            advisory("remove board blobs", lambda: self.cascade.remove_board_blobs(board_id)),
        ])

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    async def article_created(
        self, board_id: str, article_id: str, article: ArticleSnapshot
    ) -> EventReport:
        return await self._run("article.created", [
            critical(
                "increment board articles",
                lambda: self.counters.apply_delta(CounterKey.board_articles(board_id), 1),
            ),
            advisory("merge board fields", lambda: self.fields.merge_created(board_id, article)),
            advisory("promote temp files", lambda: self.temp_files.promote(article.images)),
            advisory("sweep temp files", lambda: self.temp_files.sweep()),
            advisory("project to search index", lambda: self.search.project(board_id, article_id, article)),
        ])

    async def article_updated(
        self, board_id: str, article_id: str, change: ArticleChange
    ) -> EventReport:
        before, after = change.before, change.after
        return await self._run("article.updated", [
            advisory("merge board fields", lambda: self.fields.merge_updated(board_id, before, after)),
            advisory(
                "remove detached images",
                lambda: self.temp_files.remove_detached_images(
                    board_id, article_id, before.images, after.images
                ),
            ),
            advisory("promote temp files", lambda: self.temp_files.promote(after.images)),
        ])

    async def article_deleted(
        self, board_id: str, article_id: str, article: ArticleSnapshot
    ) -> EventReport:
        return await self._run("article.deleted", [
            critical(
                "decrement board articles",
                lambda: self.counters.apply_delta(CounterKey.board_articles(board_id), -1),
            ),
            advisory("remove comments", lambda: self.cascade.remove_article_comments(article_id)),
            advisory(
                "remove article body",
                lambda: self.cascade.remove_article_body(board_id, article_id, article.uid),
            ),
            advisory("remove article images", lambda: self.cascade.remove_article_images(board_id, article_id)),
        ])

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def comment_created(self, board_id: str, article_id: str, comment_id: str) -> EventReport:
        return await self._run("comment.created", [
            critical(
                "increment article comments",
                lambda: self.counters.apply_delta(CounterKey.article_comments(article_id), 1),
            ),
        ])

    async def comment_deleted(self, board_id: str, article_id: str, comment_id: str) -> EventReport:
        return await self._run("comment.deleted", [
            critical(
                "decrement article comments",
                lambda: self.counters.apply_delta(CounterKey.article_comments(article_id), -1),
            ),
        ])

    # ------------------------------------------------------------------
    # Blob storage
    # ------------------------------------------------------------------

    async def blob_finalized(self, blob: BlobObject) -> EventReport:
        return await self._run("blob.finalized", [
            critical("stage temp file", lambda: self.temp_files.stage(blob)),
        ])
