"""Blob store adapter: Google Cloud Storage (Firebase Storage buckets are GCS buckets).

Object key conventions
----------------------
- Original uploads : uploads/upload_<token>.png
- Provider outputs : outputs/transformed_<token>.png

Objects are made publicly readable right after upload and carry a long-lived
cache directive. This system never updates or deletes stored objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from photoreel.errors import StorageError

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from photoreel.config import Settings
    from photoreel.workers import WorkerPool

logger = logging.getLogger(__name__)

_GCS_ERRORS = (gcloud_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError)


@dataclass(frozen=True)
class BlobEntry:
    """One listed object: its key, public URL and creation time."""

    key: str
    url: str
    created_at: datetime


class BlobStore(Protocol):
    """Protocol for the durable object store."""

    async def put(self, local_path: Path, key: str) -> str:
        """Upload a local file under ``key`` and return its public URL."""
        ...

    async def list_objects(self, prefix: str = "") -> list[BlobEntry]:
        """Return every object whose key starts with ``prefix``, in store order."""
        ...


class GcsBlobStore:
    """Google Cloud Storage implementation; SDK calls run on the worker pool."""

    def __init__(self, settings: Settings, pool: WorkerPool, client: storage.Client | None = None) -> None:
        if not settings.storage_bucket:
            raise ValueError("PHOTOREEL_STORAGE_BUCKET must be set to use Cloud Storage")
        self._bucket_name = settings.storage_bucket
        self._public_base = settings.storage_public_base.rstrip("/")
        self._cache_control = settings.storage_cache_control
        self._pool = pool
        self._client = client if client is not None else self._make_client(settings)

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def public_url(self, key: str) -> str:
        return f"{self._public_base}/{self._bucket_name}/{key}"

    # -- Public API ---------------------------------------------------------

    async def put(self, local_path: Path, key: str) -> str:
        try:
            await self._pool.run(self._upload, local_path, key)
        except _GCS_ERRORS as exc:
            logger.error("Upload of %s to gs://%s/%s failed: %s", local_path, self._bucket_name, key, exc)
            raise StorageError(f"Failed to upload {key}: {exc}") from exc

        url = self.public_url(key)
        logger.info("Uploaded %s -> %s", local_path, url)
        return url

    async def list_objects(self, prefix: str = "") -> list[BlobEntry]:
        try:
            entries = await self._pool.run(self._list_objects, prefix)
        except _GCS_ERRORS as exc:
            logger.error("Listing gs://%s/%s failed: %s", self._bucket_name, prefix, exc)
            raise StorageError(f"Failed to list objects: {exc}") from exc

        logger.debug("Listed %d objects under gs://%s/%s", len(entries), self._bucket_name, prefix)
        return entries

    # -- Internal (runs in worker threads) ------------------------------------

    def _upload(self, local_path: Path, key: str) -> None:
        blob = self._client.bucket(self._bucket_name).blob(key)
        blob.cache_control = self._cache_control
        blob.upload_from_filename(str(local_path), content_type="image/png")
        blob.make_public()

    def _list_objects(self, prefix: str) -> list[BlobEntry]:
        # time_created comes back with the listing itself; no per-object metadata round trip.
        return [
            BlobEntry(key=blob.name, url=self.public_url(blob.name), created_at=blob.time_created)
            for blob in self._client.list_blobs(self._bucket_name, prefix=prefix or None)
        ]

    @staticmethod
    def _make_client(settings: Settings) -> storage.Client:
        if settings.storage_credentials_file:
            return storage.Client.from_service_account_json(settings.storage_credentials_file)
        return storage.Client()
