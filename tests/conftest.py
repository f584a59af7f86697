"""Shared fixtures: fake blob store, stub provider, generated images."""

from __future__ import annotations

import base64
import io
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from PIL import Image

from photoreel.config import Settings
from photoreel.errors import StorageError
from photoreel.orchestrator import ensure_transient_dirs
from photoreel.storage import BlobEntry
from photoreel.workers import WorkerPool

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def make_image_bytes(fmt: str = "JPEG", size: tuple[int, int] = (8, 6), color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def to_data_url(data: bytes, subtype: str) -> str:
    return f"data:image/{subtype};base64,{base64.b64encode(data).decode('ascii')}"


class FakeBlobStore:
    """In-memory blob store; can be told to fail on a given put (1-based)."""

    def __init__(self, public_base: str = "https://storage.googleapis.com/test-bucket") -> None:
        self.public_base = public_base
        self.objects: dict[str, bytes] = {}
        self.entries: list[BlobEntry] = []
        self.put_calls: list[str] = []
        self.fail_on_put: int | None = None
        self.fail_list = False

    async def put(self, local_path: Path, key: str) -> str:
        self.put_calls.append(key)
        if self.fail_on_put == len(self.put_calls):
            raise StorageError(f"Failed to upload {key}: bucket unavailable")
        data = local_path.read_bytes()
        self.objects[key] = data
        url = f"{self.public_base}/{key}"
        self.entries.append(BlobEntry(key=key, url=url, created_at=BASE_TIME + timedelta(seconds=len(self.entries))))
        return url

    async def list_objects(self, prefix: str = "") -> list[BlobEntry]:
        if self.fail_list:
            raise StorageError("Failed to list objects: permission denied")
        return [entry for entry in self.entries if entry.key.startswith(prefix)]

    def add(self, key: str, created_at: datetime) -> None:
        self.entries.append(BlobEntry(key=key, url=f"{self.public_base}/{key}", created_at=created_at))


class StubProvider:
    """Returns a fixed PNG, or raises the configured error."""

    configured = True

    def __init__(self, output: bytes | None = None) -> None:
        self.output = output if output is not None else make_image_bytes("PNG", color="blue")
        self.calls: list[tuple[bytes, str, str]] = []
        self.error: Exception | None = None

    async def edit(self, image: bytes, prompt: str, size: str) -> bytes:
        self.calls.append((image, prompt, size))
        if self.error is not None:
            raise self.error
        return self.output

    async def aclose(self) -> None:
        return None


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    configured = Settings(
        images_dir=str(tmp_path / "images"),
        storage_bucket="test-bucket",
        openai_api_key="sk-test",
        max_concurrent=2,
    )
    ensure_transient_dirs(configured)
    return configured


@pytest.fixture()
def pool() -> Iterator[WorkerPool]:
    worker_pool = WorkerPool(2)
    yield worker_pool
    worker_pool.shutdown()


@pytest.fixture()
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture()
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture()
def jpeg_data_url(jpeg_bytes: bytes) -> str:
    return to_data_url(jpeg_bytes, "jpeg")
