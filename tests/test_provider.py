"""Tests for the OpenAI image edit adapter."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

import httpx
import pytest
from conftest import make_image_bytes

from photoreel.errors import ProviderError, ProviderTimeoutError
from photoreel.provider import OpenAIImageEditProvider

if TYPE_CHECKING:
    from collections.abc import Callable

    from photoreel.config import Settings


def _provider(settings: Settings, handler: Callable[[httpx.Request], httpx.Response]) -> OpenAIImageEditProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAIImageEditProvider(settings, client=client)


class TestOpenAIImageEditProvider:
    async def test_success_decodes_b64_json(self, settings: Settings) -> None:
        output = make_image_bytes("PNG", color="green")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": [{"b64_json": base64.b64encode(output).decode()}]})

        provider = _provider(settings, handler)
        result = await provider.edit(b"\x89PNG fake", "make it neon", "1024x1024")
        await provider.aclose()

        assert result == output
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.openai.com/v1/images/edits"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        body = request.read()
        assert b'name="model"' in body
        assert b"gpt-image-1" in body
        assert b"make it neon" in body
        assert b"1024x1024" in body
        assert b'filename="input.png"' in body
        assert b"image/png" in body

    async def test_non_2xx_carries_status_and_body(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text='{"error": {"message": "Invalid image"}}')

        provider = _provider(settings, handler)
        with pytest.raises(ProviderError) as excinfo:
            await provider.edit(b"img", "prompt", "1024x1024")

        error = excinfo.value
        assert not isinstance(error, ProviderTimeoutError)
        assert error.status_code == 400
        assert error.body is not None
        assert "Invalid image" in error.body
        assert error.details.startswith("API request failed with status 400:")

    async def test_timeout_raises_provider_timeout(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        provider = _provider(settings, handler)
        with pytest.raises(ProviderTimeoutError, match="timed out after 120 seconds"):
            await provider.edit(b"img", "prompt", "1024x1024")

    async def test_transport_error_raises_provider_error(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _provider(settings, handler)
        with pytest.raises(ProviderError, match="connection refused"):
            await provider.edit(b"img", "prompt", "1024x1024")

    @pytest.mark.parametrize(
        "payload",
        [{"data": []}, {"data": [{"url": "https://example.com/x.png"}]}, {"unexpected": True}, {"data": [{"b64_json": ""}]}],
    )
    async def test_missing_b64_json(self, settings: Settings, payload: dict[str, object]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payload)

        provider = _provider(settings, handler)
        with pytest.raises(ProviderError, match="No base64 image data received"):
            await provider.edit(b"img", "prompt", "1024x1024")

    async def test_line_wrapped_base64_is_accepted(self, settings: Settings) -> None:
        output = make_image_bytes("PNG", color="blue")
        encoded = base64.b64encode(output).decode()
        wrapped = "\n".join(encoded[i : i + 76] for i in range(0, len(encoded), 76)) + "\n"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"b64_json": wrapped}]})

        provider = _provider(settings, handler)
        assert await provider.edit(b"img", "prompt", "1024x1024") == output

    async def test_invalid_base64(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"b64_json": "***"}]})

        provider = _provider(settings, handler)
        with pytest.raises(ProviderError, match="invalid base64"):
            await provider.edit(b"img", "prompt", "1024x1024")

    async def test_missing_api_key_fails_without_network(self, settings: Settings) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        provider = _provider(settings.model_copy(update={"openai_api_key": None}), handler)
        assert provider.configured is False
        with pytest.raises(ProviderError, match="OPENAI_API_KEY"):
            await provider.edit(b"img", "prompt", "1024x1024")
        assert calls == []
