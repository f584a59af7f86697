"""Pydantic request/response schemas for the Photoreel API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TransformBody(BaseModel):
    """Body of ``POST /api/transform``; a missing image is reported as 400, not 422."""

    image: str | None = Field(default=None, description="Image as a data URL: data:image/<subtype>;base64,<data>")
    prompt: str | None = Field(default=None, description="Optional style prompt; blank means the default prompt")


class TransformResponse(BaseModel):
    """Successful transform: the result image plus both public storage URLs."""

    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    transformed_image: str = Field(alias="transformedImage")
    original_url: str = Field(alias="firebaseOriginalUrl")
    transformed_url: str = Field(alias="firebaseTransformedUrl")


class GalleryImageOut(BaseModel):
    """A single reel entry."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    type: Literal["original", "transformed"]
    name: str = Field(description="Storage key, e.g. 'outputs/transformed_1700000000000.png'")
    time_created: datetime = Field(alias="timeCreated")


class ImagesResponse(BaseModel):
    """Response for the gallery listing endpoint."""

    images: list[GalleryImageOut]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    storage_configured: bool
    provider_configured: bool
    active_jobs: int
    queue_depth: int


class ErrorResponse(BaseModel):
    """Error envelope shared by every failing endpoint."""

    error: str
    details: str | None = None
