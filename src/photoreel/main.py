"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from photoreel.api.middleware import BodySizeLimitMiddleware
from photoreel.api.routes import public_router, router
from photoreel.config import Settings, get_settings
from photoreel.gallery import GalleryIndex
from photoreel.orchestrator import TransformOrchestrator, ensure_transient_dirs
from photoreel.provider import OpenAIImageEditProvider
from photoreel.storage import GcsBlobStore
from photoreel.workers import WorkerPool

logger = logging.getLogger(__name__)

PACKAGE_STATIC_DIR = Path(__file__).parent / "static"


def init_state(app: FastAPI, settings: Settings) -> None:
    """Build the pipeline components and attach them to ``app.state``.

    Without a configured bucket the orchestrator and gallery stay ``None`` and
    the API answers with an explicit configuration error.
    """
    app.state.settings = settings
    pool = WorkerPool(settings.max_concurrent)
    app.state.worker_pool = pool
    provider = OpenAIImageEditProvider(settings)
    app.state.provider = provider

    if settings.storage_bucket:
        blob_store = GcsBlobStore(settings, pool)
        app.state.orchestrator = TransformOrchestrator(settings, blob_store, provider, pool)
        app.state.gallery = GalleryIndex(blob_store, max_images=settings.gallery_max_images)
    else:
        logger.warning("PHOTOREEL_STORAGE_BUCKET is not set; transform and gallery endpoints are disabled")
        app.state.orchestrator = None
        app.state.gallery = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting Photoreel (bucket=%s, model=%s, size=%s, max_concurrent=%s)",
        settings.storage_bucket,
        settings.provider_model,
        settings.provider_size,
        settings.max_concurrent,
    )

    ensure_transient_dirs(settings)
    init_state(app, settings)

    logger.info("Photoreel ready on http://%s:%s", settings.host, settings.port)
    yield

    logger.info("Shutting down Photoreel")
    await app.state.provider.aclose()
    app.state.worker_pool.shutdown()
    logger.info("Photoreel shutdown complete")


def create_app(static_dir: str | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Photoreel",
        description="AI photobooth: transform captured photos and browse the reel",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(BodySizeLimitMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    application.include_router(public_router)
    # Mounted last so the API routes take precedence over the static root.
    application.mount(
        "/",
        StaticFiles(directory=static_dir or str(PACKAGE_STATIC_DIR), html=True),
        name="static",
    )
    return application


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(create_app(settings.static_dir), host=settings.host, port=settings.port)


app = create_app()
