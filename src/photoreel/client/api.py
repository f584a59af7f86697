"""HTTP client for the booth front end.

Wire payloads are parsed into explicit pydantic models; a response that does
not have the documented shape is treated as a failure instead of being read
field by field.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

TRANSFORM_TIMEOUT_SECONDS: float = 150.0


class TransformFailedError(Exception):
    """The server could not transform the image; the message is user-facing."""


class GalleryUnavailableError(Exception):
    """The reel listing could not be fetched."""


class GalleryImage(BaseModel):
    """One entry of ``GET /api/images``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    type: Literal["original", "transformed"]
    name: str
    time_created: datetime = Field(alias="timeCreated")


class _ImagesPayload(BaseModel):
    images: list[GalleryImage]


class TransformOutcome(BaseModel):
    """Successful body of ``POST /api/transform``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: Literal[True]
    transformed_image: str = Field(alias="transformedImage")
    original_url: str = Field(alias="firebaseOriginalUrl")
    transformed_url: str = Field(alias="firebaseTransformedUrl")


class _ErrorPayload(BaseModel):
    error: str
    details: str | None = None


class BoothApiClient:
    """Talks to the Photoreel API over an ``httpx.AsyncClient``."""

    def __init__(self, http: httpx.AsyncClient, transform_timeout: float = TRANSFORM_TIMEOUT_SECONDS) -> None:
        self._http = http
        self._transform_timeout = transform_timeout

    async def list_images(self) -> list[GalleryImage]:
        """Fetch the reel, newest first.

        Raises:
            GalleryUnavailableError: On transport errors, non-2xx answers or
                malformed payloads.
        """
        try:
            response = await self._http.get("/api/images")
            response.raise_for_status()
            return _ImagesPayload.model_validate(response.json()).images
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch reel images: %s", exc)
            raise GalleryUnavailableError(str(exc)) from exc

    async def transform(self, image: str, prompt: str) -> TransformOutcome:
        """Submit an image for transformation.

        Raises:
            TransformFailedError: With ``Server error: <details>`` when the
                server explains the failure, ``Server error: <status> <reason>``
                otherwise.
        """
        try:
            response = await self._http.post(
                "/api/transform",
                json={"image": image, "prompt": prompt},
                timeout=self._transform_timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Transform request failed: %r", exc)
            raise TransformFailedError(f"Network error: {exc}") from exc

        if not response.is_success:
            raise TransformFailedError(self._describe_failure(response))

        try:
            return TransformOutcome.model_validate(response.json())
        except ValueError as exc:
            logger.error("Unexpected transform response: %s", exc)
            raise TransformFailedError("Unexpected response from server") from exc

    @staticmethod
    def _describe_failure(response: httpx.Response) -> str:
        message = f"Server error: {response.status_code} {response.reason_phrase}"
        try:
            payload = _ErrorPayload.model_validate(response.json())
        except (ValueError, ValidationError):
            logger.warning("Could not parse error response body")
            return message
        if payload.details:
            return f"Server error: {payload.details}"
        return f"Server error: {payload.error}"
