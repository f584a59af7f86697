"""Error taxonomy for the transform pipeline and the gallery index."""

from __future__ import annotations


class PhotoreelError(Exception):
    """Base class for every failure surfaced to API clients.

    ``details`` is the most specific diagnostic available and is what ends up
    in the ``details`` field of the error envelope.
    """

    def __init__(self, details: str) -> None:
        super().__init__(details)
        self.details = details


class MalformedInputError(PhotoreelError):
    """Missing or unparseable input image (client-correctable)."""


class ConversionError(PhotoreelError):
    """The image could not be decoded or re-encoded."""


class StorageError(PhotoreelError):
    """Upload to, or listing of, the blob store failed."""


class ProviderError(PhotoreelError):
    """The transform provider returned a non-success response."""

    def __init__(self, details: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(details)
        self.status_code = status_code
        self.body = body


class ProviderTimeoutError(ProviderError):
    """The transform provider did not answer within the latency bound."""


class GalleryIndexError(PhotoreelError):
    """The stored image listing could not be produced."""
