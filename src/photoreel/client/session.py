"""Booth session: the capture/upload/transform state machine.

    IDLE --capture/upload--> CAPTURED --transform--> TRANSFORMING
    TRANSFORMING --success--> TRANSFORMED
    TRANSFORMING --failure--> CAPTURED (transform stays disabled)
    CAPTURED/TRANSFORMED --retake--> IDLE

``BoothSession`` is the only thing that mutates the session state. A front
end renders ``state``, ``controls``, ``status`` and ``reel`` and forwards
user actions to the methods below.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from photoreel.client.api import GalleryUnavailableError, TransformFailedError
from photoreel.client.poller import POLL_INTERVAL_SECONDS, ReelPoller
from photoreel.client.reel import ReelState
from photoreel.errors import MalformedInputError
from photoreel.ingest import ImagePayload, parse_data_url

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from photoreel.client.api import GalleryImage, TransformOutcome

logger = logging.getLogger(__name__)

MSG_NO_IMAGE = "Please capture or upload an image first."
MSG_CAMERA_NOT_READY = "Camera not ready yet. Please wait a moment."
MSG_CAPTURE_FAILED = "Failed to capture image. Please try again."
MSG_READ_FAILED = "Failed to read the uploaded file."
MSG_LOADING = "Loading image..."
MSG_TRANSFORMED = "Transformation complete!"
MSG_DOWNLOADED = "Image downloaded successfully!"
MSG_REEL_FAILED = "Failed to load images."


class BoothState(StrEnum):
    IDLE = "idle"
    CAPTURED = "captured"
    TRANSFORMING = "transforming"
    TRANSFORMED = "transformed"


class MessageKind(StrEnum):
    ERROR = "error"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class StatusMessage:
    text: str
    kind: MessageKind = MessageKind.ERROR


@dataclass
class Controls:
    """Which affordances the front end should show and enable."""

    capture_visible: bool = True
    retake_visible: bool = False
    retake_enabled: bool = True
    transform_enabled: bool = False
    prompt_enabled: bool = True
    download_visible: bool = False
    loading: bool = False


@dataclass(frozen=True)
class DownloadedImage:
    filename: str
    data: bytes


class CaptureError(Exception):
    """The capture source failed to produce a frame."""


class CaptureSource(Protocol):
    """Supplier of camera frames (a browser camera, a webcam, a test stub)."""

    @property
    def ready(self) -> bool:
        """True once the device is streaming and a frame can be grabbed."""
        ...

    def grab_frame(self) -> bytes:
        """Return the current frame as JPEG bytes; raise CaptureError on failure."""
        ...


class BoothBackend(Protocol):
    async def list_images(self) -> list[GalleryImage]: ...

    async def transform(self, image: str, prompt: str) -> TransformOutcome: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BoothSession:
    """Single per-page booth session."""

    def __init__(
        self,
        backend: BoothBackend,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self.poller = ReelPoller(self.refresh_reel, interval=poll_interval)
        self.reel = ReelState()

        self.state = BoothState.IDLE
        self.controls = Controls()
        self.current_image: str | None = None
        self.result: TransformOutcome | None = None
        self.prompt = ""
        self.status: StatusMessage | None = None

    # -- Image acquisition ----------------------------------------------------

    def capture(self, source: CaptureSource) -> bool:
        """Take a JPEG snapshot from ``source`` and make it the current image."""
        if self.state is BoothState.TRANSFORMING:
            return False
        if not source.ready:
            self._show(MSG_CAMERA_NOT_READY)
            return False

        try:
            frame = source.grab_frame()
        except CaptureError as exc:
            logger.error("Error capturing image: %s", exc)
            self._show(MSG_CAPTURE_FAILED)
            return False

        self._set_image(ImagePayload(data=frame, subtype="jpeg").to_data_url())
        logger.info("Image captured successfully")
        return True

    async def load_upload(self, path: Path, mime_type: str | None = None) -> bool:
        """Read an image file from disk and make it the current image."""
        if self.state is BoothState.TRANSFORMING:
            return False

        mime = mime_type or mimetypes.guess_type(path.name)[0]
        if mime is None or not mime.startswith("image/"):
            self._show(MSG_READ_FAILED)
            return False

        self._show(MSG_LOADING, MessageKind.INFO)
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, path.read_bytes)
        except OSError as exc:
            logger.error("Error reading file %s: %s", path, exc)
            self._show(MSG_READ_FAILED)
            return False

        self._set_image(ImagePayload(data=data, subtype=mime.split("/", 1)[1]).to_data_url())
        logger.info("Image uploaded successfully")
        return True

    def retake(self) -> bool:
        """Drop the current image and result and go back to IDLE."""
        if self.state is BoothState.TRANSFORMING:
            return False

        self.state = BoothState.IDLE
        self.current_image = None
        self.result = None
        self.controls = Controls()
        self.status = None
        return True

    # -- Transform ------------------------------------------------------------

    def set_prompt(self, text: str) -> None:
        if self.controls.prompt_enabled:
            self.prompt = text

    async def select_style(self, prompt: str) -> bool:
        """Apply a preset prompt and transform right away when possible."""
        self.prompt = prompt
        if self.current_image is None or not self.controls.transform_enabled:
            self._show(MSG_NO_IMAGE, MessageKind.INFO)
            return False
        return await self.transform()

    async def transform(self) -> bool:
        """Send the current image to the server; True on success.

        The reel is polled for the whole request and refreshed once more
        after it settles.
        """
        if self.current_image is None:
            self._show(MSG_NO_IMAGE)
            return False
        if not self.controls.transform_enabled:
            return False

        self.status = None
        self.state = BoothState.TRANSFORMING
        self.controls.loading = True
        self.controls.transform_enabled = False
        self.controls.retake_enabled = False
        self.controls.prompt_enabled = False
        self.poller.start()

        try:
            outcome = await self._backend.transform(self.current_image, self.prompt.strip())
        except TransformFailedError as exc:
            logger.error("Error transforming image: %s", exc)
            self.state = BoothState.CAPTURED
            self._show(f"Transformation failed: {exc}")
            return False
        except Exception as exc:
            logger.exception("Unexpected error while transforming image")
            self.state = BoothState.CAPTURED
            self._show(f"Transformation failed: {exc}")
            return False
        else:
            self.result = outcome
            self.state = BoothState.TRANSFORMED
            self.controls.download_visible = True
            self._show(MSG_TRANSFORMED, MessageKind.SUCCESS)
            return True
        finally:
            self.controls.loading = False
            self.controls.retake_enabled = True
            self.controls.prompt_enabled = True
            await self.poller.stop()

    def download(self) -> DownloadedImage | None:
        """Return the transformed image as a file name plus PNG bytes."""
        if self.result is None:
            return None
        try:
            payload = parse_data_url(self.result.transformed_image)
        except MalformedInputError:
            logger.error("Transformed image is not a valid data URL")
            self._show("Failed to download image.")
            return None

        timestamp = self._clock().isoformat().replace(":", "-").replace(".", "-")
        self._show(MSG_DOWNLOADED, MessageKind.SUCCESS)
        return DownloadedImage(filename=f"ai-transformed-photo-{timestamp}.{payload.subtype}", data=payload.data)

    # -- Reel -----------------------------------------------------------------

    async def refresh_reel(self) -> None:
        try:
            images = await self._backend.list_images()
        except GalleryUnavailableError:
            self.reel.fail(MSG_REEL_FAILED)
            return
        self.reel.replace(images)

    def reel_next(self) -> GalleryImage | None:
        return self.reel.next()

    def reel_previous(self) -> GalleryImage | None:
        return self.reel.previous()

    # -- Internal -------------------------------------------------------------

    def _set_image(self, data_url: str) -> None:
        self.state = BoothState.CAPTURED
        self.current_image = data_url
        self.result = None
        self.controls.capture_visible = False
        self.controls.retake_visible = True
        self.controls.transform_enabled = True
        self.controls.download_visible = False
        self.status = None

    def _show(self, text: str, kind: MessageKind = MessageKind.ERROR) -> None:
        self.status = StatusMessage(text=text, kind=kind)
