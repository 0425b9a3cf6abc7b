"""Replay a synthetic event stream through the lifecycle router.

Performs the source writes (boards, articles, comments) against the
configured primary store and delivers the matching lifecycle events, the
way the trigger source would in production.  Blob and search calls go to
the configured services; when those are unreachable the affected steps
show up as degraded.
"""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from boardsync.database import Base, create_engine
from boardsync.schemas import AccountEvent, ArticleSnapshot, ArticleAuthor
from boardsync.services.lifecycle import LifecycleRouter
from boardsync.stores.blobs import BlobStore
from boardsync.stores.mirror import MirrorStore
from boardsync.stores.primary import PrimaryStore
from boardsync.stores.search import SearchIndex

CATEGORIES = ["news", "howto", "review", "question"]
TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance"]


async def seed(small: bool = False, accounts: bool = True):
    num_users = 5 if small else 50
    num_boards = 2 if small else 10
    num_articles = 20 if small else 1000
    max_comments = 2 if small else 5

    print(f"Replaying: {num_users} users, {num_boards} boards, {num_articles} articles")
    start = time.perf_counter()

    engine = create_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    primary = PrimaryStore(engine)
    mirror = MirrorStore()
    blobs = BlobStore()
    search = SearchIndex()
    lifecycle = LifecycleRouter(primary, mirror, blobs, search)

    users = [
        AccountEvent(uid=f"uid-{i:04d}", email=f"user_{i:04d}@example.com", display_name=f"User {i}")
        for i in range(num_users)
    ]
    if accounts:
        await mirror.connect()
        for user in users:
            await lifecycle.account_created(user)
        print(f"  Created {len(users)} accounts")

    board_ids = [f"board-{i}" for i in range(num_boards)]
    for board_id in board_ids:
        await primary.put_board(board_id, title=board_id.replace("-", " ").title())
        await lifecycle.board_created(board_id)
    print(f"  Created {len(board_ids)} boards")

    degraded = 0
    total_comments = 0
    for i in range(num_articles):
        board_id = random.choice(board_ids)
        article_id = f"article-{i:05d}"
        author = random.choice(users)
        article = ArticleSnapshot(
            uid=author.uid,
            user=ArticleAuthor(email=author.email, display_name=author.display_name),
            title=f"Article {i}: notes on {random.choice(TAGS)}",
            summary=f"A short write-up about {random.choice(TAGS)} in production.",
            category=random.choice(CATEGORIES),
            tags=random.sample(TAGS, k=random.randint(1, 3)),
            created_at=datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365)),
        )
        await primary.put_article(board_id, article_id, article)
        report = await lifecycle.article_created(board_id, article_id, article)
        degraded += report.degraded

        for j in range(random.randint(0, max_comments)):
            comment_id = f"{article_id}-c{j}"
            await primary.put_comment(board_id, article_id, comment_id, "Great article!")
            await lifecycle.comment_created(board_id, article_id, comment_id)
            total_comments += 1

    await search.aclose()
    await blobs.aclose()
    await mirror.disconnect()
    await engine.dispose()

    elapsed = time.perf_counter() - start
    print(f"\nReplay complete in {elapsed:.1f}s")
    print(f"  Articles: {num_articles} ({degraded} degraded)")
    print(f"  Comments: {total_comments}")
    print(f"  Events: {lifecycle.stats}")


def main():
    parser = argparse.ArgumentParser(description="Replay synthetic lifecycle events")
    parser.add_argument("--small", action="store_true", help="Use small dataset (20 articles)")
    parser.add_argument("--no-accounts", action="store_true", help="Skip account events (no Redis needed)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small, accounts=not args.no_accounts))


if __name__ == "__main__":
    main()
