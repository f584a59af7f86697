"""Reel state: the browsable, newest-first view over stored images."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from photoreel.client.api import GalleryImage

_CAPTIONS = {"original": "User Photo", "transformed": "AI Transformed"}


class ReelState:
    """Ordered images plus a cursor; rebuilt wholesale on every refresh."""

    def __init__(self) -> None:
        self._images: list[GalleryImage] = []
        self._index = 0
        self.error: str | None = None

    @property
    def images(self) -> list[GalleryImage]:
        return list(self._images)

    @property
    def index(self) -> int:
        return self._index

    @property
    def is_empty(self) -> bool:
        return not self._images

    @property
    def current(self) -> GalleryImage | None:
        if not self._images:
            return None
        return self._images[self._index]

    @property
    def caption(self) -> str:
        image = self.current
        return _CAPTIONS[image.type] if image is not None else ""

    def replace(self, images: Sequence[GalleryImage]) -> None:
        self._images = list(images)
        self._index = 0
        self.error = None

    def fail(self, message: str) -> None:
        """Record a failed refresh; the reel shows as empty with an error."""
        self._images = []
        self._index = 0
        self.error = message

    def next(self) -> GalleryImage | None:
        if self._images:
            self._index = (self._index + 1) % len(self._images)
        return self.current

    def previous(self) -> GalleryImage | None:
        if self._images:
            self._index = (self._index - 1) % len(self._images)
        return self.current
