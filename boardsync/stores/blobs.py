"""
Blob storage adapter for the Google Cloud Storage JSON API.

Deleting an object that does not exist is reported as ``False``, never
raised: cleanup paths rerun after redelivery and must stay quiet on
already-removed blobs.
"""
import logging
import re
import uuid
from urllib.parse import quote

import httpx

from boardsync.config import settings
from boardsync.errors import BlobStoreError

logger = logging.getLogger(__name__)

# The storage batch endpoint accepts at most this many parts per request.
BATCH_LIMIT = 100

_CONTENT_ID = re.compile(r"^Content-ID:\s*<response-([^>]+)>", re.IGNORECASE | re.MULTILINE)
_STATUS_LINE = re.compile(r"^HTTP/\d(?:\.\d)? (\d{3})", re.MULTILINE)


# ---------------------------------------------------------------------------
# Object layout
# ---------------------------------------------------------------------------

def article_body_path(board_id: str, article_id: str, uid: str) -> str:
    return f"boards/{board_id}/{article_id}-{uid}.md"


def article_image_prefix(board_id: str, article_id: str) -> str:
    return f"images/boards/{board_id}/{article_id}/"


def board_body_prefix(board_id: str) -> str:
    return f"boards/{board_id}/"


def board_image_prefix(board_id: str) -> str:
    return f"images/boards/{board_id}/"


class BlobStore:
    def __init__(
        self,
        bucket: str | None = None,
        base_url: str | None = None,
        access_token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.bucket = bucket or settings.BLOB_BUCKET
        token = access_token if access_token is not None else settings.BLOB_ACCESS_TOKEN
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.BLOB_API_URL,
            headers=headers,
            timeout=settings.HTTP_TIMEOUT,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _object_url(self, path: str) -> str:
        return f"/storage/v1/b/{self.bucket}/o/{quote(path, safe='')}"

    async def delete(self, path: str) -> bool:
        """Delete one object.  Returns False when it was already gone."""
        resp = await self._client.delete(self._object_url(path))
        if resp.status_code == 404:
            logger.debug("Blob already absent: %s", path)
            return False
        resp.raise_for_status()
        return True

    async def list_objects(self, prefix: str) -> list[str]:
        """Return every object name under *prefix*, following page tokens."""
        names: list[str] = []
        params = {"prefix": prefix, "fields": "items(name),nextPageToken"}
        while True:
            resp = await self._client.get(f"/storage/v1/b/{self.bucket}/o", params=params)
            resp.raise_for_status()
            body = resp.json()
            names.extend(item["name"] for item in body.get("items", []))
            token = body.get("nextPageToken")
            if not token:
                return names
            params["pageToken"] = token

    async def delete_many(self, names: list[str]) -> tuple[int, list[str]]:
        """
        Delete *names* through the batch endpoint, ``BATCH_LIMIT`` per request.

        Returns the number of objects deleted and the names that could not
        be.  Parts answering 404 were already gone and are neither.
        """
        deleted = 0
        failed: list[str] = []
        for start in range(0, len(names), BATCH_LIMIT):
            chunk = names[start:start + BATCH_LIMIT]
            try:
                statuses = await self._submit_batch(chunk)
            except (httpx.HTTPError, BlobStoreError) as exc:
                logger.error("Batch delete of %d blob(s) failed: %s", len(chunk), exc)
                failed.extend(chunk)
                continue
            for name, status in zip(chunk, statuses):
                if status in (200, 204):
                    deleted += 1
                elif status == 404:
                    logger.debug("Blob already absent: %s", name)
                else:
                    logger.error("Blob delete failed for %s: HTTP %s", name, status)
                    failed.append(name)
        return deleted, failed

    async def _submit_batch(self, names: list[str]) -> list[int]:
        """Send one multipart batch of DELETEs; returns a status per name."""
        boundary = f"batch_{uuid.uuid4().hex}"
        body = "".join(
            f"--{boundary}\r\n"
            "Content-Type: application/http\r\n"
            f"Content-ID: <{i}>\r\n"
            "\r\n"
            f"DELETE {self._object_url(name)} HTTP/1.1\r\n"
            "\r\n"
            for i, name in enumerate(names)
        ) + f"--{boundary}--\r\n"
        resp = await self._client.post(
            "/batch/storage/v1",
            content=body.encode(),
            headers={"Content-Type": f"multipart/mixed; boundary={boundary}"},
        )
        resp.raise_for_status()
        statuses = _parse_batch_statuses(resp)
        # A part missing from the reply is unconfirmed and reported as failed.
        return [statuses.get(str(i), 0) for i in range(len(names))]

    async def delete_prefix(self, prefix: str) -> int:
        """
        Delete every object under *prefix*.  Zero matches is not an error.

        The listing is deleted in batch requests rather than one request per
        object.  Every object is attempted; if any deletion failed a
        ``BlobStoreError`` listing them is raised afterwards.
        """
        deleted, failed = await self.delete_many(await self.list_objects(prefix))
        if failed:
            raise BlobStoreError(f"{len(failed)} object(s) under {prefix!r} not deleted: {failed}")
        logger.info("Deleted %d blob(s) under %s", deleted, prefix)
        return deleted


def _parse_batch_statuses(resp: httpx.Response) -> dict[str, int]:
    """Map each ``Content-ID: <response-N>`` part of a batch reply to its status."""
    _, _, boundary = resp.headers.get("content-type", "").partition("boundary=")
    boundary = boundary.split(";")[0].strip().strip('"')
    if not boundary:
        raise BlobStoreError("batch reply is not multipart")
    statuses: dict[str, int] = {}
    for part in resp.text.split(f"--{boundary}"):
        content_id = _CONTENT_ID.search(part)
        status = _STATUS_LINE.search(part)
        if content_id and status:
            statuses[content_id.group(1)] = int(status.group(1))
    return statuses
