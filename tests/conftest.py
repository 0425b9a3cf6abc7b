"""
Test infrastructure for boardsync.

Strategy
--------
- SQLite in-memory via aiosqlite stands in for PostgreSQL as the primary
  store.  StaticPool keeps every session on the same connection, which
  is required because an in-memory database is connection-scoped.  A
  fresh engine (and schema) is built for every test.
- The mirror store is the real ``MirrorStore`` wrapped around
  ``FakeRedis``, a dict with the handful of async commands it uses.
- Blob storage and the search index are the real httpx-based adapters
  talking to ``httpx.MockTransport`` handlers (``FakeBucket`` and
  ``FakeSearchBackend``) that keep their state in memory and can be told
  to fail.
- The endpoint tests override ``get_lifecycle_router`` so requests reach
  a router wired to the fixtures above.
"""
import json
import re
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.pool import StaticPool

from boardsync.database import Base, create_engine
from boardsync.dependencies import get_lifecycle_router
from boardsync.main import app
from boardsync.services.lifecycle import LifecycleRouter
from boardsync.stores.blobs import BlobStore
from boardsync.stores.mirror import MirrorStore
from boardsync.stores.primary import PrimaryStore
from boardsync.stores.search import SearchIndex

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_BUCKET = "test-bucket"
ADMIN_EMAIL = "admin@example.com"


# ---------------------------------------------------------------------------
# In-memory backends
# ---------------------------------------------------------------------------

class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.fail = False

    async def ping(self):
        return True

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.data[key] = value
        return True

    async def delete(self, *keys):
        if self.fail:
            raise RedisConnectionError("connection refused")
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def aclose(self):
        pass


class FakeBucket:
    """GCS JSON API subset: list by prefix, delete one object, batch delete."""

    def __init__(self, name: str = TEST_BUCKET) -> None:
        self.name = name
        self.objects: set[str] = set()
        # Object names whose DELETE answers 503
        self.fail: set[str] = set()
        self.deleted: list[str] = []
        # (method, path) of every request received
        self.requests: list[tuple[str, str]] = []

    def add(self, *names: str) -> None:
        self.objects.update(names)

    def under(self, prefix: str) -> set[str]:
        return {name for name in self.objects if name.startswith(prefix)}

    def _delete(self, name: str) -> int:
        if name in self.fail:
            return 503
        if name not in self.objects:
            return 404
        self.objects.discard(name)
        self.deleted.append(name)
        return 204

    def _batch(self, request: httpx.Request) -> httpx.Response:
        boundary = request.headers["content-type"].partition("boundary=")[2]
        object_path = f"/storage/v1/b/{self.name}/o/"
        parts = []
        for part in request.content.decode().split(f"--{boundary}"):
            content_id = re.search(r"Content-ID: <([^>]+)>", part)
            line = re.search(r"^DELETE (\S+) HTTP/1\.1", part, re.MULTILINE)
            if not (content_id and line and line.group(1).startswith(object_path)):
                continue
            status = self._delete(unquote(line.group(1)[len(object_path):]))
            parts.append(
                "--batch_reply\r\n"
                "Content-Type: application/http\r\n"
                f"Content-ID: <response-{content_id.group(1)}>\r\n"
                "\r\n"
                f"HTTP/1.1 {status} {httpx.codes.get_reason_phrase(status)}\r\n"
                "\r\n"
            )
        return httpx.Response(
            200,
            content=("".join(parts) + "--batch_reply--\r\n").encode(),
            headers={"Content-Type": "multipart/mixed; boundary=batch_reply"},
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        base = f"/storage/v1/b/{self.name}/o"
        path = request.url.path
        self.requests.append((request.method, path))
        if request.method == "GET" and path == base:
            prefix = request.url.params.get("prefix", "")
            names = sorted(self.under(prefix))
            return httpx.Response(200, json={"items": [{"name": n} for n in names]} if names else {})
        if request.method == "POST" and path == "/batch/storage/v1":
            return self._batch(request)
        if request.method == "DELETE" and path.startswith(base + "/"):
            status = self._delete(path[len(base) + 1:])
            if status == 503:
                return httpx.Response(503, json={"error": {"message": "backend unavailable"}})
            if status == 404:
                return httpx.Response(404, json={"error": {"message": "No such object"}})
            return httpx.Response(204)
        return httpx.Response(400)


class FakeSearchBackend:
    def __init__(self) -> None:
        self.documents: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(429, text="Too many requests")
        object_id = f"obj-{len(self.documents) + 1}"
        self.documents[object_id] = json.loads(request.content)
        return httpx.Response(
            201,
            json={"objectID": object_id, "taskID": len(self.documents), "createdAt": "2026-10-18T00:00:00Z"},
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with all tables for each test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def primary(engine) -> PrimaryStore:
    return PrimaryStore(engine)


@pytest.fixture
def redis_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def mirror(redis_client) -> MirrorStore:
    return MirrorStore(client=redis_client)


@pytest.fixture
def bucket() -> FakeBucket:
    return FakeBucket()


@pytest_asyncio.fixture
async def blobs(bucket) -> BlobStore:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(bucket.handler),
        base_url="https://storage.test",
    )
    store = BlobStore(bucket=TEST_BUCKET, access_token="", client=client)
    yield store
    await store.aclose()


@pytest.fixture
def search_backend() -> FakeSearchBackend:
    return FakeSearchBackend()


@pytest_asyncio.fixture
async def search(search_backend) -> SearchIndex:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(search_backend.handler),
        base_url="https://test-app.algolia.net",
    )
    index = SearchIndex(app_id="test-app", api_key="test-key", index_name="boards", client=client)
    yield index
    await index.aclose()


@pytest.fixture
def lifecycle(primary, mirror, blobs, search) -> LifecycleRouter:
    return LifecycleRouter(primary, mirror, blobs, search, admin_email=ADMIN_EMAIL)


@pytest_asyncio.fixture
async def async_client(lifecycle) -> AsyncClient:
    """httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    app.dependency_overrides[get_lifecycle_router] = lambda: lifecycle
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
