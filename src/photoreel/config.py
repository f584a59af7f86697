"""Environment-based configuration for Photoreel."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROMPT = (
    "Stylize this image. Enhance its features and apply an artistic touch, "
    "maintaining the original subject's likeness but presenting it in a visually interesting style."
)


class Settings(BaseSettings):
    """Application settings loaded from PHOTOREEL_* environment variables (and .env)."""

    model_config = SettingsConfigDict(
        env_prefix="PHOTOREEL_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    static_dir: str | None = None

    # Transient files (uploads/ and outputs/ live beneath this directory)
    images_dir: str = "images"

    # Transform provider
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PHOTOREEL_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    provider_url: str = "https://api.openai.com/v1/images/edits"
    provider_model: str = "gpt-image-1"
    provider_size: str = "1024x1024"
    provider_timeout: float = Field(default=120.0, gt=0)
    default_prompt: str = DEFAULT_PROMPT

    # Blob store (None = storage disabled)
    storage_bucket: str | None = None
    storage_credentials_file: str | None = None
    storage_public_base: str = "https://storage.googleapis.com"
    storage_cache_control: str = "public, max-age=31536000"

    # Concurrency
    max_concurrent: int = Field(default=4, ge=1)

    # Input limits
    max_body_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    # Gallery (None = return every stored image)
    gallery_max_images: int | None = Field(default=None, ge=1)

    @property
    def uploads_dir(self) -> Path:
        return Path(self.images_dir) / "uploads"

    @property
    def outputs_dir(self) -> Path:
        return Path(self.images_dir) / "outputs"


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
