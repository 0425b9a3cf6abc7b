"""
Primary document store adapter.

Design notes
------------
- Every public method opens its own session and commits before
  returning, so one call is one transaction.  Batch deletes are a single
  ``DELETE ... WHERE`` inside that transaction.
- Counters are only ever changed with ``UPDATE ... SET count = count +
  :delta`` or ``INSERT ... ON CONFLICT DO UPDATE``; no value is read back
  and written again, so concurrent events on the same counter commute.
- Set-valued board fields live in association tables keyed by
  ``(board_id, name)``; a merge is ``INSERT ... ON CONFLICT DO NOTHING``.
- Insert-on-conflict is dialect specific.  PostgreSQL (production) and
  SQLite (tests) are supported.
"""
import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine

from boardsync.database import create_session_factory
from boardsync.errors import UnsupportedDialectError
from boardsync.models import (
    Article,
    Board,
    BoardCategory,
    BoardTag,
    Comment,
    Meta,
    TempFile,
    User,
)
from boardsync.schemas import ArticleSnapshot

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


class PrimaryStore:
    def __init__(self, engine: AsyncEngine) -> None:
        dialect = engine.dialect.name
        if dialect not in _DIALECT_INSERTS:
            raise UnsupportedDialectError(f"unsupported primary store dialect: {dialect}")
        self._insert = _DIALECT_INSERTS[dialect]
        self._engine = engine
        self._session = create_session_factory(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def put_account(self, uid: str, fields: dict) -> None:
        """Create or overwrite the account row (safe to repeat)."""
        stmt = (
            self._insert(User)
            .values(id=uid, **fields)
            .on_conflict_do_update(index_elements=[User.id], set_=fields)
        )
        async with self._session() as session, session.begin():
            await session.execute(stmt)

    async def delete_account(self, uid: str) -> bool:
        async with self._session() as session, session.begin():
            result = await session.execute(delete(User).where(User.id == uid))
            return result.rowcount > 0

    async def get_account(self, uid: str) -> User | None:
        async with self._session() as session:
            return await session.get(User, uid)

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    async def increment_meta(self, name: str, delta: int) -> str:
        """
        Apply *delta* to the meta counter *name*.

        Returns ``"incremented"`` when an existing row was updated and
        ``"created"`` when the row had to be inserted.  The insert branch
        only runs when the update matched nothing, and it is itself an
        upsert so a racing creator cannot make either delta disappear.
        """
        async with self._session() as session, session.begin():
            result = await session.execute(
                update(Meta).where(Meta.name == name).values(count=Meta.count + delta)
            )
            if result.rowcount:
                return "incremented"
            await session.execute(
                self._insert(Meta)
                .values(name=name, count=delta)
                .on_conflict_do_update(
                    index_elements=[Meta.name],
                    set_={"count": Meta.count + delta},
                )
            )
            return "created"

    async def increment_board_articles(self, board_id: str, delta: int) -> bool:
        """Return False when the board row does not exist."""
        async with self._session() as session, session.begin():
            result = await session.execute(
                update(Board).where(Board.id == board_id).values(count=Board.count + delta)
            )
            return result.rowcount > 0

    async def increment_article_comments(self, article_id: str, delta: int) -> bool:
        """Return False when the article row does not exist."""
        async with self._session() as session, session.begin():
            result = await session.execute(
                update(Article)
                .where(Article.id == article_id)
                .values(comment_count=Article.comment_count + delta)
            )
            return result.rowcount > 0

    async def get_meta(self, name: str) -> int | None:
        async with self._session() as session:
            return await session.scalar(select(Meta.count).where(Meta.name == name))

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    async def merge_board_fields(
        self, board_id: str, categories: Iterable[str] = (), tags: Iterable[str] = ()
    ) -> bool:
        """
        Union *categories* and *tags* into the board's sets.

        Returns False (and writes nothing) when the board does not exist.
        """
        categories = _unique(categories)
        tags = _unique(tags)
        async with self._session() as session, session.begin():
            exists = await session.scalar(select(Board.id).where(Board.id == board_id))
            if exists is None:
                return False
            if categories:
                await session.execute(
                    self._insert(BoardCategory)
                    .values([{"board_id": board_id, "name": name} for name in categories])
                    .on_conflict_do_nothing()
                )
            if tags:
                await session.execute(
                    self._insert(BoardTag)
                    .values([{"board_id": board_id, "name": name} for name in tags])
                    .on_conflict_do_nothing()
                )
            return True

    async def get_board(self, board_id: str) -> dict | None:
        """Return the board with its counter and sorted category/tag sets."""
        async with self._session() as session:
            board = await session.get(Board, board_id)
            if board is None:
                return None
            categories = await session.scalars(
                select(BoardCategory.name).where(BoardCategory.board_id == board_id)
            )
            tags = await session.scalars(
                select(BoardTag.name).where(BoardTag.board_id == board_id)
            )
            return {
                "id": board.id,
                "title": board.title,
                "count": board.count,
                "categories": sorted(categories.all()),
                "tags": sorted(tags.all()),
            }

    async def delete_board_children(self, board_id: str) -> tuple[int, int]:
        """
        Delete every article of the board and every comment under those
        articles in one transaction.  Returns ``(articles, comments)``.
        """
        async with self._session() as session, session.begin():
            comments = await session.execute(delete(Comment).where(Comment.board_id == board_id))
            articles = await session.execute(delete(Article).where(Article.board_id == board_id))
            return articles.rowcount, comments.rowcount

    # ------------------------------------------------------------------
    # Articles / comments
    # ------------------------------------------------------------------

    async def delete_article_comments(self, article_id: str) -> int:
        async with self._session() as session, session.begin():
            result = await session.execute(delete(Comment).where(Comment.article_id == article_id))
            return result.rowcount

    async def get_article(self, article_id: str) -> Article | None:
        async with self._session() as session:
            return await session.get(Article, article_id)

    async def count_articles(self, board_id: str) -> int:
        async with self._session() as session:
            return await session.scalar(
                select(func.count()).select_from(Article).where(Article.board_id == board_id)
            )

    async def count_comments(self, board_id: str, article_id: str | None = None) -> int:
        q = select(func.count()).select_from(Comment).where(Comment.board_id == board_id)
        if article_id is not None:
            q = q.where(Comment.article_id == article_id)
        async with self._session() as session:
            return await session.scalar(q)

    # ------------------------------------------------------------------
    # Temp-file staging records
    # ------------------------------------------------------------------

    async def put_temp_file(self, file_id: str, fields: dict) -> None:
        stmt = (
            self._insert(TempFile)
            .values(id=file_id, **fields)
            .on_conflict_do_update(index_elements=[TempFile.id], set_=fields)
        )
        async with self._session() as session, session.begin():
            await session.execute(stmt)

    async def get_temp_file(self, file_id: str) -> TempFile | None:
        async with self._session() as session:
            return await session.get(TempFile, file_id)

    async def stale_temp_files(self, cutoff: datetime, limit: int) -> list[TempFile]:
        """Temp-file records created before *cutoff*, oldest first."""
        q = (
            select(TempFile)
            .where(TempFile.created_at < cutoff)
            .order_by(TempFile.created_at)
            .limit(limit)
        )
        async with self._session() as session:
            return list((await session.scalars(q)).all())

    async def delete_temp_files(self, file_ids: Iterable[str]) -> int:
        """Delete the matching staging records in one statement; absent ids are ignored."""
        file_ids = _unique(file_ids)
        if not file_ids:
            return 0
        async with self._session() as session, session.begin():
            result = await session.execute(delete(TempFile).where(TempFile.id.in_(file_ids)))
            return result.rowcount

    # ------------------------------------------------------------------
    # Source writes
    #
    # The client application performs these writes in production and the
    # resulting lifecycle events reach the router.  They are exposed here
    # for the seeding script and for tests.
    # ------------------------------------------------------------------

    async def put_board(self, board_id: str, title: str | None = None) -> None:
        async with self._session() as session, session.begin():
            session.add(Board(id=board_id, title=title, count=0))

    async def delete_board(self, board_id: str) -> None:
        async with self._session() as session, session.begin():
            await session.execute(delete(BoardCategory).where(BoardCategory.board_id == board_id))
            await session.execute(delete(BoardTag).where(BoardTag.board_id == board_id))
            await session.execute(delete(Board).where(Board.id == board_id))

    async def put_article(self, board_id: str, article_id: str, article: ArticleSnapshot) -> None:
        async with self._session() as session, session.begin():
            await session.merge(
                Article(
                    id=article_id,
                    board_id=board_id,
                    uid=article.uid,
                    user_email=article.user.email,
                    user_display_name=article.user.display_name,
                    title=article.title,
                    summary=article.summary,
                    category=article.category,
                    tags=list(article.tags),
                    images=[image.model_dump(by_alias=True) for image in article.images],
                    read_count=article.read_count,
                    comment_count=article.comment_count,
                    like_count=article.like_count,
                    created_at=article.created_at,
                )
            )

    async def delete_article(self, article_id: str) -> None:
        async with self._session() as session, session.begin():
            await session.execute(delete(Article).where(Article.id == article_id))

    async def put_comment(
        self, board_id: str, article_id: str, comment_id: str, content: str = ""
    ) -> None:
        async with self._session() as session, session.begin():
            session.add(
                Comment(id=comment_id, board_id=board_id, article_id=article_id, content=content)
            )

    async def delete_comment(self, comment_id: str) -> None:
        async with self._session() as session, session.begin():
            await session.execute(delete(Comment).where(Comment.id == comment_id))
