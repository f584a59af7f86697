"""Transform provider adapter: OpenAI image edits over HTTP."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, Protocol

import httpx

from photoreel.errors import ProviderError, ProviderTimeoutError

if TYPE_CHECKING:
    from photoreel.config import Settings

logger = logging.getLogger(__name__)

_BODY_SNIPPET_CHARS = 2000


class TransformProvider(Protocol):
    """Protocol for the external image-to-image service."""

    async def edit(self, image: bytes, prompt: str, size: str) -> bytes:
        """Return the transformed image bytes for a PNG input and a prompt.

        Raises:
            ProviderTimeoutError: If the provider exceeds the latency bound.
            ProviderError: On any non-success answer.
        """
        ...


class OpenAIImageEditProvider:
    """Calls ``POST /v1/images/edits`` with multipart form data."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._url = settings.provider_url
        self._model = settings.provider_model
        self._timeout = settings.provider_timeout
        self._client = client if client is not None else httpx.AsyncClient(timeout=settings.provider_timeout)

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def edit(self, image: bytes, prompt: str, size: str) -> bytes:
        if not self._api_key:
            raise ProviderError("PHOTOREEL_OPENAI_API_KEY (or OPENAI_API_KEY) is not set")

        logger.info("Calling image edit API (model=%s, size=%s, %d input bytes)", self._model, size, len(image))
        try:
            response = await self._client.post(
                self._url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                data={"model": self._model, "prompt": prompt, "size": size},
                files={"image": ("input.png", image, "image/png")},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            logger.error("Image edit API timed out after %.0fs", self._timeout)
            raise ProviderTimeoutError(f"Image edit API timed out after {self._timeout:.0f} seconds") from exc
        except httpx.HTTPError as exc:
            logger.error("Image edit API request error: %s", exc)
            raise ProviderError(f"Image edit API request failed: {exc}") from exc

        if not response.is_success:
            body = response.text[:_BODY_SNIPPET_CHARS]
            logger.error("Image edit API status=%s body=%s", response.status_code, body)
            raise ProviderError(
                f"API request failed with status {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )

        logger.info("Received successful response from image edit API")
        return self._decode_result(response)

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _decode_result(response: httpx.Response) -> bytes:
        try:
            b64_data = response.json()["data"][0]["b64_json"]
        except (ValueError, KeyError, IndexError, TypeError):
            b64_data = None
        if not isinstance(b64_data, str) or not b64_data:
            raise ProviderError(
                "No base64 image data received from OpenAI API.",
                status_code=response.status_code,
                body=response.text[:_BODY_SNIPPET_CHARS],
            )

        # Line-wrapped base64 is accepted; any other non-alphabet character is not.
        try:
            return base64.b64decode("".join(b64_data.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ProviderError(f"Provider returned invalid base64 image data: {exc}") from exc
