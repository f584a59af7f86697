"""Gallery index: typed, newest-first listing derived from the blob store keys."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from photoreel.errors import GalleryIndexError, PhotoreelError
from photoreel.orchestrator import OUTPUTS_PREFIX, UPLOADS_PREFIX

if TYPE_CHECKING:
    from datetime import datetime

    from photoreel.storage import BlobStore

logger = logging.getLogger(__name__)


class ImageCategory(StrEnum):
    ORIGINAL = "original"
    TRANSFORMED = "transformed"


_PREFIX_CATEGORIES: dict[str, ImageCategory] = {
    UPLOADS_PREFIX: ImageCategory.ORIGINAL,
    OUTPUTS_PREFIX: ImageCategory.TRANSFORMED,
}


@dataclass(frozen=True)
class StoredImage:
    """A durable image in the blob store."""

    key: str
    url: str
    category: ImageCategory
    created_at: datetime


def classify_key(key: str) -> ImageCategory | None:
    """Category for a storage key, or None when the key is not a gallery image.

    Folder placeholders (empty last path segment) and keys outside the
    uploads/ and outputs/ namespaces are not gallery images.
    """
    if key.endswith("/"):
        return None
    for prefix, category in _PREFIX_CATEGORIES.items():
        if key.startswith(prefix):
            return category
    return None


class GalleryIndex:
    """Builds the reel listing from a single flat listing of the store."""

    def __init__(self, blob_store: BlobStore, max_images: int | None = None) -> None:
        self._blob_store = blob_store
        self._max_images = max_images

    async def list_images(self) -> list[StoredImage]:
        """Return all stored images, newest first (ties keep store order).

        Raises:
            GalleryIndexError: If the underlying listing fails.
        """
        try:
            entries = await self._blob_store.list_objects()
        except PhotoreelError as exc:
            raise GalleryIndexError(exc.details) from exc

        images: list[StoredImage] = []
        for entry in entries:
            category = classify_key(entry.key)
            if category is None:
                continue
            images.append(StoredImage(key=entry.key, url=entry.url, category=category, created_at=entry.created_at))

        # sorted() is stable with reverse=True, so equal timestamps keep store order.
        images = sorted(images, key=lambda image: image.created_at, reverse=True)
        if self._max_images is not None:
            images = images[: self._max_images]

        logger.info("Gallery listing: %d images (%d objects scanned)", len(images), len(entries))
        return images
