"""
Keeps product rows and their image files in step.

Invariant: a product's ``image_url`` points at exactly one file that exists
on disk, or at nothing. Every upload goes through ``stage_image``:

    async with stage_image(storage, upload) as staged:
        ...write the row using staged.public_url...
        staged.commit(previous_url=old_url)

If the block raises (validation, a store conflict, anything else), the staged
file is deleted before the exception continues. If it finishes without
calling ``commit`` the file is deleted too. Releasing the *previous* file after
a commit is best-effort: the row is the source of truth, so a failed unlink is
logged and never fails the request.
"""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Optional
from fastapi import UploadFile
from stockroom.storage.local_storage import LocalImageStorage, StoredImage

logger = logging.getLogger(__name__)


def release_path(storage: LocalImageStorage, path: Path) -> bool:
    """Best-effort delete of a file; returns True only if it was removed"""
    try:
        removed = storage.delete_file(path)
    except OSError as e:
        logger.warning(f"Could not delete image file {path}: {e}")
        return False
    if not removed:
        logger.info(f"Image file {path} was already missing")
    return removed


def release_image(storage: LocalImageStorage, public_url: Optional[str]) -> bool:
    """Best-effort delete of the file behind a stored image url"""
    path = storage.path_for_url(public_url)
    if path is None:
        if public_url:
            logger.warning(f"Image url {public_url} is outside the image directory; not deleting")
        return False
    return release_path(storage, path)


class StagedImage:
    """A freshly saved upload waiting for its row to be written"""

    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    def __init__(self, storage: LocalImageStorage, stored: Optional[StoredImage]) -> None:
        self._storage = storage
        self._stored = stored
        self.state = self.PENDING

    @property
    def present(self) -> bool:
        return self._stored is not None

    @property
    def public_url(self) -> Optional[str]:
        return self._stored.public_url if self._stored else None

    @property
    def path(self) -> Optional[Path]:
        return self._stored.path if self._stored else None

    def commit(self, previous_url: Optional[str] = None) -> None:
        """
        Mark the upload as owned by its row.

        When a new file replaced ``previous_url``, the old file is released.
        """
        if self.state != self.PENDING:
            return
        self.state = self.COMMITTED
        if self._stored is not None and previous_url and previous_url != self._stored.public_url:
            release_image(self._storage, previous_url)

    def rollback(self) -> None:
        """Delete the staged file; the row never came to point at it"""
        if self.state != self.PENDING:
            return
        self.state = self.ROLLED_BACK
        if self._stored is not None:
            logger.info(f"Discarding staged image {self._stored.path.name}")
            release_path(self._storage, self._stored.path)


@asynccontextmanager
async def stage_image(
    storage: LocalImageStorage, upload: Optional[UploadFile]
) -> AsyncIterator[StagedImage]:
    """Save ``upload`` (if any) and roll it back unless the block commits"""
    stored = await storage.save_uploaded_file(upload) if upload is not None else None
    staged = StagedImage(storage, stored)
    try:
        yield staged
    except BaseException:
        staged.rollback()
        raise
    # Leaving the block without committing means nothing claimed the file
    staged.rollback()


def find_orphaned_images(
    storage: LocalImageStorage,
    referenced_urls: Iterable[str],
    grace_seconds: float = 0,
    now: Optional[float] = None,
) -> List[Path]:
    """
    Files in the image directory no product refers to.

    Files modified within ``grace_seconds`` are skipped: they may belong to a
    request that has staged its upload but not yet written the row.
    """
    now = time.time() if now is None else now
    referenced = set()
    for url in referenced_urls:
        path = storage.path_for_url(url)
        if path is not None:
            referenced.add(path.name)

    orphaned = []
    for path in storage.iter_files():
        if path.name in referenced:
            continue
        if now - path.stat().st_mtime < grace_seconds:
            continue
        orphaned.append(path)
    return orphaned


def sweep_orphaned_images(
    storage: LocalImageStorage,
    referenced_urls: Iterable[str],
    grace_seconds: float = 0,
) -> int:
    """Delete orphaned image files; returns how many were removed"""
    deleted = 0
    for path in find_orphaned_images(storage, referenced_urls, grace_seconds):
        if release_path(storage, path):
            deleted += 1
            logger.info(f"Deleted orphaned image: {path.name}")
    return deleted
