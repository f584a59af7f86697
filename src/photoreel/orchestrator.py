"""Transform orchestrator: the end-to-end request pipeline.

    validate -> ingest/convert -> write transient original -> upload original
    -> resolve prompt -> provider edit -> write transient output -> upload output
    -> result

Every transient file created for a request is removed before ``transform``
returns or raises, whatever step failed.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from photoreel.errors import MalformedInputError, StorageError
from photoreel.ingest import CANONICAL_SUBTYPE, ImagePayload, ingest

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path
    from types import TracebackType

    from photoreel.config import Settings
    from photoreel.provider import TransformProvider
    from photoreel.storage import BlobStore
    from photoreel.workers import WorkerPool

logger = logging.getLogger(__name__)

UPLOADS_PREFIX = "uploads/"
OUTPUTS_PREFIX = "outputs/"


@dataclass(frozen=True)
class TransformRequest:
    """One user-initiated transform: a data URL and an optional prompt."""

    image: str | None
    prompt: str | None = None


@dataclass(frozen=True)
class TransformResult:
    """Outcome of a successful transform; never partially populated."""

    transformed_image: ImagePayload
    original_url: str
    transformed_url: str

    @property
    def transformed_data_url(self) -> str:
        return self.transformed_image.to_data_url()


def resolve_prompt(prompt: str | None, default: str) -> str:
    """Return the trimmed user prompt, or ``default`` when it is absent or blank."""
    if prompt is not None and prompt.strip():
        return prompt.strip()
    return default


def ensure_transient_dirs(settings: Settings) -> None:
    """Create the transient uploads/outputs directories (idempotent)."""
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    settings.outputs_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Transient directories ready: %s, %s", settings.uploads_dir, settings.outputs_dir)


class TokenSource:
    """Strictly increasing millisecond tokens, unique within the process."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_token(self) -> str:
        with self._lock:
            token = max(int(self._clock() * 1000), self._last + 1)
            self._last = token
            return str(token)


class TransientFiles:
    """Tracks transient files and deletes all of them on exit.

    Deletions run on the worker pool. Failures are logged and swallowed so
    they never replace the outcome of the block.
    """

    def __init__(self, pool: WorkerPool) -> None:
        self._pool = pool
        self._paths: list[Path] = []

    def track(self, path: Path) -> Path:
        self._paths.append(path)
        return path

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    async def cleanup(self) -> None:
        while self._paths:
            path = self._paths.pop()
            try:
                await self._pool.run(_delete_file, path)
                logger.info("Deleted transient file %s", path)
            except OSError as exc:
                logger.error("Error deleting transient file %s: %s", path, exc)

    async def __aenter__(self) -> TransientFiles:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.cleanup()


def _write_file(path: Path, data: bytes) -> None:
    path.write_bytes(data)


def _read_file(path: Path) -> bytes:
    return path.read_bytes()


def _delete_file(path: Path) -> None:
    path.unlink(missing_ok=True)


class TransformOrchestrator:
    """Drives one transform request through storage and the provider."""

    def __init__(
        self,
        settings: Settings,
        blob_store: BlobStore,
        provider: TransformProvider,
        pool: WorkerPool,
        tokens: TokenSource | None = None,
    ) -> None:
        self._uploads_dir = settings.uploads_dir
        self._outputs_dir = settings.outputs_dir
        self._default_prompt = settings.default_prompt
        self._size = settings.provider_size
        self._blob_store = blob_store
        self._provider = provider
        self._pool = pool
        self._tokens = tokens if tokens is not None else TokenSource()

    async def transform(self, request: TransformRequest) -> TransformResult:
        """Run the full pipeline for one request.

        Raises:
            MalformedInputError: Image missing or not a base64 image data URL.
            ConversionError: The image could not be re-encoded as PNG.
            StorageError: Writing a transient file or uploading failed.
            ProviderError: The provider failed (ProviderTimeoutError on timeout).
        """
        if not request.image:
            raise MalformedInputError("No image data provided")

        logger.info("Decoding and converting image to PNG")
        original = await self._pool.run(ingest, request.image)

        token = self._tokens.next_token()
        upload_name = f"upload_{token}.{CANONICAL_SUBTYPE}"
        output_name = f"transformed_{token}.{CANONICAL_SUBTYPE}"

        async with TransientFiles(self._pool) as transient:
            upload_path = transient.track(self._uploads_dir / upload_name)
            await self._write(upload_path, original.data)

            original_url = await self._blob_store.put(upload_path, UPLOADS_PREFIX + upload_name)
            logger.info("Original image uploaded: %s", original_url)

            prompt = resolve_prompt(request.prompt, self._default_prompt)
            logger.info('Using prompt: "%s"', prompt)
            source_bytes = await self._read(upload_path)
            output_bytes = await self._provider.edit(source_bytes, prompt, self._size)

            output_path = transient.track(self._outputs_dir / output_name)
            await self._write(output_path, output_bytes)

            transformed_url = await self._blob_store.put(output_path, OUTPUTS_PREFIX + output_name)
            logger.info("Transformed image uploaded: %s", transformed_url)

        return TransformResult(
            transformed_image=ImagePayload(data=output_bytes, subtype=CANONICAL_SUBTYPE),
            original_url=original_url,
            transformed_url=transformed_url,
        )

    async def _write(self, path: Path, data: bytes) -> None:
        try:
            await self._pool.run(_write_file, path, data)
        except OSError as exc:
            raise StorageError(f"Failed to write transient file {path.name}: {exc}") from exc
        logger.info("Saved transient file %s (%d bytes)", path, len(data))

    async def _read(self, path: Path) -> bytes:
        try:
            return await self._pool.run(_read_file, path)
        except OSError as exc:
            raise StorageError(f"Failed to read transient file {path.name}: {exc}") from exc
