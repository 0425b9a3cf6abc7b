import json
import logging
from datetime import datetime

import redis.asyncio as redis

from boardsync.config import settings

logger = logging.getLogger(__name__)


def _to_millis(value):
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return value


class MirrorStore:
    """
    Low-latency keyed copy of account records, backed by Redis.

    Unlike a cache, a mirror write is part of the account event: errors
    propagate to the caller so the event fails and is redelivered.  The
    stored JSON is field-equivalent to the primary row except that
    datetimes are stored as epoch milliseconds.
    """

    key_prefix = "users"

    def __init__(self, url: str | None = None, client: redis.Redis | None = None) -> None:
        self._url = url or settings.REDIS_URL
        self._redis: redis.Redis | None = client

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        if self._redis is None:
            self._redis = redis.from_url(
                self._url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        try:
            await self._redis.ping()
            logger.info("Mirror store connected: %s", self._url)
        except Exception as exc:  # pragma: no cover
            logger.warning("Mirror store ping failed, account events will fail: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def client(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("mirror store is not connected")
        return self._redis

    def _key(self, uid: str) -> str:
        return f"{self.key_prefix}:{uid}"

    # ------------------------------------------------------------------
    # Account records
    # ------------------------------------------------------------------

    async def put_account(self, uid: str, fields: dict) -> None:
        record = {name: _to_millis(value) for name, value in fields.items()}
        await self.client.set(self._key(uid), json.dumps(record))

    async def delete_account(self, uid: str) -> None:
        """Deleting an absent key is a no-op."""
        await self.client.delete(self._key(uid))

    async def get_account(self, uid: str) -> dict | None:
        data = await self.client.get(self._key(uid))
        return json.loads(data) if data is not None else None
