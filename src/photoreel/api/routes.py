"""API route definitions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from photoreel.api.schemas import (
    ErrorResponse,
    GalleryImageOut,
    HealthResponse,
    ImagesResponse,
    TransformBody,
    TransformResponse,
)
from photoreel.errors import MalformedInputError, PhotoreelError
from photoreel.orchestrator import TransformRequest

if TYPE_CHECKING:
    from photoreel.gallery import GalleryIndex
    from photoreel.orchestrator import TransformOrchestrator
    from photoreel.provider import OpenAIImageEditProvider
    from photoreel.workers import WorkerPool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
public_router = APIRouter()

_STORAGE_NOT_CONFIGURED = "Blob storage is not configured (set PHOTOREEL_STORAGE_BUCKET)"


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=details).model_dump(exclude_none=True),
    )


def _get_orchestrator(request: Request) -> TransformOrchestrator | None:
    orchestrator: TransformOrchestrator | None = request.app.state.orchestrator
    return orchestrator


def _get_gallery(request: Request) -> GalleryIndex | None:
    gallery: GalleryIndex | None = request.app.state.gallery
    return gallery


def _get_worker_pool(request: Request) -> WorkerPool:
    pool: WorkerPool = request.app.state.worker_pool
    return pool


def _get_provider(request: Request) -> OpenAIImageEditProvider:
    provider: OpenAIImageEditProvider = request.app.state.provider
    return provider


@router.post(
    "/transform",
    response_model=TransformResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    summary="Transform an image with the image edit provider",
)
async def transform_image(body: TransformBody, request: Request) -> TransformResponse | JSONResponse:
    """Store the original, transform it, store the result and return it as a data URL."""
    logger.info("Received /api/transform request")
    if not body.image:
        return _error(status.HTTP_400_BAD_REQUEST, "No image data provided")

    orchestrator = _get_orchestrator(request)
    if orchestrator is None:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to transform image", _STORAGE_NOT_CONFIGURED)

    try:
        result = await orchestrator.transform(TransformRequest(image=body.image, prompt=body.prompt))
    except MalformedInputError as exc:
        logger.warning("Rejected transform input: %s", exc.details)
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid image data", exc.details)
    except PhotoreelError as exc:
        logger.error("Transform failed (%s): %s", type(exc).__name__, exc.details)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to transform image", exc.details)
    except Exception as exc:
        logger.exception("Unexpected error in /api/transform")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to transform image",
            str(exc) or "An unknown error occurred on the server.",
        )

    logger.info("Sending success response to client")
    return TransformResponse(
        transformed_image=result.transformed_data_url,
        original_url=result.original_url,
        transformed_url=result.transformed_url,
    )


@router.get(
    "/images",
    response_model=ImagesResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
    summary="List stored originals and transformed images, newest first",
)
async def list_images(request: Request) -> ImagesResponse | JSONResponse:
    """Return every stored image for the reel."""
    gallery = _get_gallery(request)
    if gallery is None:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list images", _STORAGE_NOT_CONFIGURED)

    try:
        images = await gallery.list_images()
    except PhotoreelError as exc:
        logger.error("Error listing images: %s", exc.details)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list images", exc.details)
    except Exception as exc:
        logger.exception("Unexpected error in /api/images")
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to list images",
            str(exc) or "An unknown error occurred on the server.",
        )

    return ImagesResponse(
        images=[
            GalleryImageOut(url=image.url, type=image.category.value, name=image.key, time_created=image.created_at)
            for image in images
        ]
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    pool = _get_worker_pool(request)
    return HealthResponse(
        status="ok",
        storage_configured=_get_gallery(request) is not None,
        provider_configured=_get_provider(request).configured,
        active_jobs=pool.active_count,
        queue_depth=pool.queue_depth,
    )


@public_router.get("/favicon.ico", include_in_schema=False)
async def favicon() -> Response:
    """Browsers always ask for a favicon; answer with an empty success."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)
