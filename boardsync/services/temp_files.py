"""
Temp-file garbage collector.

Every non-markdown upload gets a staging record in ``temp_files``.  The
record is the only thing that marks a blob as "uploaded but not attached":

- when an article references the blob (as image or thumbnail) the record
  is retired and the blob becomes permanent;
- when nothing claims it within the retention window, ``sweep`` deletes
  the blob and then the record.

All operations can be repeated safely: absent records and blobs are
skipped.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from boardsync.config import settings
from boardsync.schemas import BlobObject, ImageRef
from boardsync.stores.blobs import BlobStore, article_image_prefix
from boardsync.stores.primary import PrimaryStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    removed: int = 0
    blob_failures: list[str] = field(default_factory=list)


class TempFileCollector:
    def __init__(
        self,
        primary: PrimaryStore,
        blobs: BlobStore,
        retention: timedelta | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._primary = primary
        self._blobs = blobs
        self.retention = retention or timedelta(seconds=settings.TEMP_FILE_RETENTION_SECONDS)
        self.batch_size = batch_size or settings.TEMP_FILE_SWEEP_BATCH

    async def stage(self, blob: BlobObject, now: datetime | None = None) -> str | None:
        """
        Record a finished upload.  Markdown bodies are never staged.

        The record is keyed by the last path segment, which is the id an
        article later uses to reference the blob.
        """
        if blob.name.rsplit(".", 1)[-1] == "md":
            return None
        file_id = blob.name.rsplit("/", 1)[-1]
        await self._primary.put_temp_file(
            file_id,
            {
                "name": blob.name,
                "content_type": blob.content_type,
                "size": blob.size,
                "crc32c": blob.crc32c,
                "created_at": now or datetime.now(timezone.utc),
            },
        )
        logger.debug("Staged temp file %s (%s)", file_id, blob.name)
        return file_id

    async def promote(self, images: list[ImageRef]) -> int:
        """Retire the staging records of every image and thumbnail in *images*."""
        ids = [image.id for image in images] + [image.thumb_id for image in images]
        if not ids:
            return 0
        removed = await self._primary.delete_temp_files(ids)
        logger.debug("Promoted %d temp file(s)", removed)
        return removed

    async def remove_detached_images(
        self,
        board_id: str,
        article_id: str,
        before: list[ImageRef],
        after: list[ImageRef],
    ) -> list[str]:
        """
        Delete the blobs of images present in *before* but not in *after*,
        both the full image and its thumbnail.  Returns the paths that
        could not be deleted; each failure is logged and the rest are still
        attempted.
        """
        kept = {image.id for image in after}
        prefix = article_image_prefix(board_id, article_id)
        failures: list[str] = []
        for image in before:
            if image.id in kept:
                continue
            for blob_id in (image.id, image.thumb_id):
                path = prefix + blob_id
                try:
                    await self._blobs.delete(path)
                except Exception as exc:
                    logger.error("Detached image delete failed for %s: %s", path, exc)
                    failures.append(path)
        return failures

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        """
        Reclaim the oldest staged uploads that outlived the retention
        window, at most ``batch_size`` per call.
        """
        cutoff = (now or datetime.now(timezone.utc)) - self.retention
        stale = await self._primary.stale_temp_files(cutoff, self.batch_size)
        result = SweepResult()
        if not stale:
            return result

        for record in stale:
            try:
                await self._blobs.delete(record.name)
            except Exception as exc:
                logger.error("Temp file blob delete failed for %s: %s", record.name, exc)
                result.blob_failures.append(record.name)

        result.removed = await self._primary.delete_temp_files(record.id for record in stale)
        logger.info(
            "Temp file sweep removed %d record(s), %d blob failure(s)",
            result.removed,
            len(result.blob_failures),
        )
        return result
