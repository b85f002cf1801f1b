"""Barcode decoding for images uploaded from the add-product dialog."""

from __future__ import annotations

import io
import logging
from typing import Any, Callable, Optional, Sequence

from PIL import Image, ImageOps, UnidentifiedImageError

from dispensa.models.lookup import DecodedBarcode

SymbolDecoder = Callable[[Image.Image], Sequence[Any]]

logger = logging.getLogger(__name__)


class BarcodeDecodeError(ValueError):
    """Raised when an upload is not an image or carries no readable barcode."""


def pyzbar_decode(image: Image.Image) -> Sequence[Any]:
    """Decode symbols with zbar (loaded on first use since it needs the native library)."""

    from pyzbar.pyzbar import decode

    return decode(image)


def _open_image(content: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except Image.DecompressionBombError as exc:
        raise BarcodeDecodeError("Uploaded image has too many pixels") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise BarcodeDecodeError("Uploaded file is not a readable image") from exc
    return ImageOps.exif_transpose(image).convert("L")


def _candidates(image: Image.Image):
    yield image
    yield ImageOps.autocontrast(image)
    yield image.rotate(90, expand=True)


def _pick_symbol(symbols: Sequence[Any]) -> Optional[DecodedBarcode]:
    decoded = []
    for symbol in symbols:
        raw = getattr(symbol, "data", b"")
        text = raw.decode("utf-8", errors="ignore").strip() if isinstance(raw, bytes) else str(raw).strip()
        if text:
            decoded.append(DecodedBarcode(barcode=text, symbology=getattr(symbol, "type", None)))
    if not decoded:
        return None
    # Product barcodes are numeric; prefer them over QR codes printed on the same pack.
    numeric = [entry for entry in decoded if entry.barcode.isdigit()]
    return (numeric or decoded)[0]


def decode_barcode(content: bytes, decoder: SymbolDecoder | None = None) -> DecodedBarcode:
    """Read the first barcode found in ``content`` (any format Pillow can open)."""

    if not content:
        raise BarcodeDecodeError("Uploaded file is empty")
    decode = decoder or pyzbar_decode
    image = _open_image(content)
    for candidate in _candidates(image):
        result = _pick_symbol(decode(candidate))
        if result is not None:
            logger.info("Barcode decoded value=%s symbology=%s", result.barcode, result.symbology)
            return result
    raise BarcodeDecodeError("No barcode found in image")


__all__ = ["BarcodeDecodeError", "SymbolDecoder", "decode_barcode", "pyzbar_decode"]
