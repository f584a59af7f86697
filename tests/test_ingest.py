"""Tests for data URL decoding and PNG conversion."""

from __future__ import annotations

import base64
import io
from typing import TYPE_CHECKING

import pytest
from conftest import make_image_bytes, to_data_url
from PIL import Image

from photoreel.errors import ConversionError, MalformedInputError
from photoreel.ingest import ImagePayload, convert_to_png, ingest, parse_data_url

if TYPE_CHECKING:
    from pathlib import Path

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestParseDataUrl:
    def test_parses_subtype_and_payload(self, jpeg_bytes: bytes) -> None:
        payload = parse_data_url(to_data_url(jpeg_bytes, "jpeg"))
        assert payload.subtype == "jpeg"
        assert payload.data == jpeg_bytes
        assert payload.mime_type == "image/jpeg"

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "not a data url",
            "data:image/png;base64,",
            "data:text/plain;base64,aGVsbG8=",
            "data:image/png,aGVsbG8=",
            "data:image/;base64,aGVsbG8=",
            "data:image/png;base64,@@@not-base64@@@",
            "image/png;base64,aGVsbG8=",
        ],
    )
    def test_rejects_malformed_strings(self, value: str) -> None:
        with pytest.raises(MalformedInputError, match="Invalid base64 image string"):
            parse_data_url(value)

    def test_to_data_url_round_trips(self) -> None:
        payload = ImagePayload(data=b"\x01\x02\x03", subtype="png")
        assert payload.to_data_url() == "data:image/png;base64,AQID"
        assert parse_data_url(payload.to_data_url()) == payload


class TestConvertToPng:
    @pytest.mark.parametrize("fmt", ["JPEG", "PNG", "GIF", "BMP", "WEBP"])
    def test_any_supported_format_becomes_png(self, fmt: str) -> None:
        payload = ImagePayload(data=make_image_bytes(fmt), subtype=fmt.lower())

        converted = convert_to_png(payload)

        assert converted.subtype == "png"
        assert converted.data.startswith(PNG_SIGNATURE)
        with Image.open(io.BytesIO(converted.data)) as img:
            assert img.format == "PNG"
            assert img.size == (8, 6)

    def test_cmyk_input_is_converted(self) -> None:
        buffer = io.BytesIO()
        Image.new("CMYK", (4, 4)).save(buffer, format="JPEG")

        converted = convert_to_png(ImagePayload(data=buffer.getvalue(), subtype="jpeg"))

        with Image.open(io.BytesIO(converted.data)) as img:
            assert img.mode == "RGB"

    def test_undecodable_bytes_raise_conversion_error(self) -> None:
        with pytest.raises(ConversionError):
            convert_to_png(ImagePayload(data=b"definitely not an image", subtype="jpeg"))


class TestIngest:
    def test_jpeg_data_url_yields_png(self, jpeg_data_url: str) -> None:
        payload = ingest(jpeg_data_url)
        assert payload.subtype == "png"
        assert len(payload.data) > 0
        assert payload.data.startswith(PNG_SIGNATURE)

    def test_malformed_input_writes_nothing(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(MalformedInputError):
            ingest("data:image/png;base64")
        assert list(tmp_path.iterdir()) == []

    def test_declared_subtype_does_not_matter(self) -> None:
        png = make_image_bytes("PNG")
        payload = ingest(f"data:image/jpeg;base64,{base64.b64encode(png).decode()}")
        assert payload.subtype == "png"
