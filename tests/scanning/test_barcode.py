"""Tests for barcode decoding from uploaded images."""

from __future__ import annotations

import io
from types import SimpleNamespace

import pytest
from PIL import Image

from dispensa.config import Settings
from dispensa.scanning.barcode import BarcodeDecodeError, decode_barcode
from dispensa.scanning.config import build_scanner_config


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


def _symbol(data: bytes, kind: str) -> SimpleNamespace:
    return SimpleNamespace(data=data, type=kind)


def test_decode_prefers_numeric_symbols():
    def decoder(image):
        assert image.mode == "L"
        return [_symbol(b"https://example.com", "QRCODE"), _symbol(b"8001505005707", "EAN13")]

    result = decode_barcode(_png_bytes(), decoder=decoder)

    assert result.barcode == "8001505005707"
    assert result.symbology == "EAN13"


def test_decode_retries_on_rotated_image():
    sizes = []

    def decoder(image):
        sizes.append(image.size)
        if len(sizes) < 3:
            return []
        return [_symbol(b"12345670", "EAN8")]

    result = decode_barcode(_png_bytes(), decoder=decoder)

    assert result.barcode == "12345670"
    assert sizes[0] == (40, 20)
    assert sizes[2] == (20, 40)


def test_decode_without_symbols_raises():
    with pytest.raises(BarcodeDecodeError, match="No barcode"):
        decode_barcode(_png_bytes(), decoder=lambda image: [])


def test_decode_rejects_non_images():
    with pytest.raises(BarcodeDecodeError):
        decode_barcode(b"definitely not an image", decoder=lambda image: [])


def test_decode_rejects_empty_upload():
    with pytest.raises(BarcodeDecodeError):
        decode_barcode(b"", decoder=lambda image: [])


def test_scanner_config_filters_unknown_backends():
    settings = Settings(scanner_backends=["Upload", "laser", "upload", "manual"])

    config = build_scanner_config(settings)

    assert config.backends == ["upload", "manual"]
    assert config.lookup_enabled is True


def test_scanner_config_defaults_to_manual():
    config = build_scanner_config(Settings(scanner_backends=["laser"], scanner_lookup_enabled=False))

    assert config.backends == ["manual"]
    assert config.lookup_enabled is False


def test_decode_rejects_oversized_images(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    with pytest.raises(BarcodeDecodeError, match="too many pixels"):
        decode_barcode(_png_bytes(), decoder=lambda image: [])
