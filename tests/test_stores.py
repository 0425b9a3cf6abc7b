"""
Store adapter tests: the primary store against SQLite, the mirror store
against FakeRedis, and the HTTP adapters against MockTransport backends.
"""
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest

from boardsync.errors import BlobStoreError, SearchIndexError, UnsupportedDialectError
from boardsync.stores.blobs import BlobStore, article_body_path, article_image_prefix
from boardsync.stores.primary import PrimaryStore
from boardsync.stores.search import SearchIndex

T0 = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Primary store
# ---------------------------------------------------------------------------

def test_primary_store_rejects_unsupported_dialect():
    engine = SimpleNamespace(dialect=SimpleNamespace(name="mysql"))
    with pytest.raises(UnsupportedDialectError):
        PrimaryStore(engine)


@pytest.mark.asyncio
async def test_increment_meta_creates_then_increments(primary):
    assert await primary.get_meta("boards") is None
    assert await primary.increment_meta("boards", 1) == "created"
    assert await primary.increment_meta("boards", 1) == "incremented"
    assert await primary.increment_meta("boards", -1) == "incremented"
    assert await primary.get_meta("boards") == 1


@pytest.mark.asyncio
async def test_increment_meta_negative_first_delta(primary):
    assert await primary.increment_meta("users", -1) == "created"
    assert await primary.get_meta("users") == -1


@pytest.mark.asyncio
async def test_embedded_counters_report_missing_parent(primary):
    assert await primary.increment_board_articles("nope", 1) is False
    assert await primary.increment_article_comments("nope", 1) is False


@pytest.mark.asyncio
async def test_merge_board_fields_is_a_union(primary):
    await primary.put_board("b1")
    assert await primary.merge_board_fields("b1", ["news"], ["x", "y"]) is True
    assert await primary.merge_board_fields("b1", ["news", "review"], ["y", "y", "z"]) is True
    board = await primary.get_board("b1")
    assert board["categories"] == ["news", "review"]
    assert board["tags"] == ["x", "y", "z"]


@pytest.mark.asyncio
async def test_merge_board_fields_missing_board(primary):
    assert await primary.merge_board_fields("ghost", ["news"], ["x"]) is False
    assert await primary.get_board("ghost") is None


@pytest.mark.asyncio
async def test_put_account_is_an_upsert(primary):
    fields = {
        "email": "a@example.com",
        "display_name": "A",
        "photo_url": None,
        "created_at": T0,
        "level": 5,
        "visited_at": T0,
        "visit_count": 0,
    }
    await primary.put_account("u1", fields)
    await primary.put_account("u1", {**fields, "display_name": "A2"})
    account = await primary.get_account("u1")
    assert account.display_name == "A2"
    assert await primary.delete_account("u1") is True
    assert await primary.delete_account("u1") is False


@pytest.mark.asyncio
async def test_stale_temp_files_oldest_first_and_limited(primary):
    for i in range(7):
        await primary.put_temp_file(
            f"f{i}",
            {"name": f"images/tmp/f{i}", "content_type": "image/png", "size": 10, "crc32c": "abc",
             "created_at": T0 - timedelta(hours=2, minutes=i)},
        )
    await primary.put_temp_file(
        "fresh", {"name": "images/tmp/fresh", "size": 1, "created_at": T0}
    )
    stale = await primary.stale_temp_files(T0 - timedelta(hours=1), limit=5)
    assert [r.id for r in stale] == ["f6", "f5", "f4", "f3", "f2"]


@pytest.mark.asyncio
async def test_delete_temp_files_ignores_absent_ids(primary):
    await primary.put_temp_file("a", {"name": "images/a", "size": 1, "created_at": T0})
    assert await primary.delete_temp_files(["a", "missing"]) == 1
    assert await primary.delete_temp_files(["a"]) == 0
    assert await primary.delete_temp_files([]) == 0


# ---------------------------------------------------------------------------
# Mirror store
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_mirror_stores_datetimes_as_millis(mirror, redis_client):
    await mirror.put_account("u1", {"email": "a@example.com", "created_at": T0, "visit_count": 0})
    stored = json.loads(redis_client.data["users:u1"])
    assert stored["created_at"] == int(T0.timestamp() * 1000)
    assert (await mirror.get_account("u1"))["email"] == "a@example.com"


@pytest.mark.asyncio
async def test_mirror_delete_absent_is_noop(mirror):
    await mirror.delete_account("nobody")
    assert await mirror.get_account("nobody") is None


# ---------------------------------------------------------------------------
# Blob store
# ---------------------------------------------------------------------------

def test_blob_paths():
    assert article_body_path("b1", "a1", "u1") == "boards/b1/a1-u1.md"
    assert article_image_prefix("b1", "a1") == "images/boards/b1/a1/"


@pytest.mark.asyncio
async def test_blob_delete_absent_returns_false(blobs, bucket):
    bucket.add("boards/b1/a1-u1.md")
    assert await blobs.delete("boards/b1/a1-u1.md") is True
    assert await blobs.delete("boards/b1/a1-u1.md") is False


@pytest.mark.asyncio
async def test_blob_delete_prefix_zero_matches(blobs):
    assert await blobs.delete_prefix("images/boards/empty/") == 0


@pytest.mark.asyncio
async def test_blob_delete_prefix_attempts_every_object(blobs, bucket):
    bucket.add("images/boards/b1/a1/i1", "images/boards/b1/a1/i2", "images/boards/b1/a1/i3")
    bucket.fail.add("images/boards/b1/a1/i2")
    with pytest.raises(BlobStoreError):
        await blobs.delete_prefix("images/boards/b1/a1/")
    assert bucket.under("images/boards/b1/a1/") == {"images/boards/b1/a1/i2"}


@pytest.mark.asyncio
async def test_blob_delete_prefix_uses_bounded_batch_requests(blobs, bucket):
    prefix = "images/boards/b1/a1/"
    bucket.add(*(f"{prefix}img{i:03d}" for i in range(250)))
    bucket.add("images/boards/b1/a10/keep")

    assert await blobs.delete_prefix(prefix) == 250

    # One listing, then ceil(250 / 100) batch submissions
    assert [method for method, _ in bucket.requests] == ["GET", "POST", "POST", "POST"]
    assert {path for method, path in bucket.requests if method == "POST"} == {"/batch/storage/v1"}
    assert bucket.under(prefix) == set()
    assert bucket.objects == {"images/boards/b1/a10/keep"}


@pytest.mark.asyncio
async def test_blob_delete_many_treats_missing_parts_as_gone(blobs, bucket):
    bucket.add("boards/b1/a1-u1.md")
    deleted, failed = await blobs.delete_many(["boards/b1/a1-u1.md", "boards/b1/gone.md"])
    assert deleted == 1
    assert failed == []
    assert len(bucket.requests) == 1


@pytest.mark.asyncio
async def test_blob_delete_many_reports_rejected_batch():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="backend unavailable")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://storage.test")
    store = BlobStore(bucket="b", access_token="", client=client)
    deleted, failed = await store.delete_many(["x/1", "x/2"])
    assert deleted == 0
    assert failed == ["x/1", "x/2"]
    await store.aclose()


@pytest.mark.asyncio
async def test_blob_list_follows_page_tokens():
    pages = {
        None: {"items": [{"name": "p/1"}], "nextPageToken": "t2"},
        "t2": {"items": [{"name": "p/2"}]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=pages[request.url.params.get("pageToken")])

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://storage.test")
    store = BlobStore(bucket="b", access_token="", client=client)
    assert await store.list_objects("p/") == ["p/1", "p/2"]
    await store.aclose()


# ---------------------------------------------------------------------------
# Search index
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_add_object_returns_generated_id(search, search_backend):
    object_id = await search.add_object({"title": "hello"})
    assert object_id == "obj-1"
    request = search_backend.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/1/indexes/boards"


@pytest.mark.asyncio
async def test_search_add_object_error(search, search_backend):
    search_backend.fail = True
    with pytest.raises(SearchIndexError):
        await search.add_object({"title": "hello"})


def test_search_client_sends_credentials():
    index = SearchIndex(app_id="APP", api_key="KEY", index_name="boards")
    assert index._client.headers["X-Algolia-Application-Id"] == "APP"
    assert index._client.headers["X-Algolia-API-Key"] == "KEY"
    assert str(index._client.base_url).startswith("https://APP.algolia.net")
