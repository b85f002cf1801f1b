"""Barcode lookup and scanner configuration models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CaptureBackend = Literal["camera", "upload", "manual"]

CAPTURE_BACKENDS: tuple[str, ...] = ("camera", "upload", "manual")


class ProductLookup(BaseModel):
    """Product details resolved from a barcode."""

    barcode: str
    found: bool
    name: str
    image_url: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class DecodedBarcode(BaseModel):
    """Barcode read from an uploaded image."""

    barcode: str
    symbology: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ScannerConfig(BaseModel):
    """Capture options offered by the add-product dialog."""

    backends: list[CaptureBackend] = Field(default_factory=lambda: list(CAPTURE_BACKENDS))
    lookup_enabled: bool = True
    max_upload_bytes: int = Field(default=8 * 1024 * 1024, ge=1)

    model_config = ConfigDict(frozen=True)


__all__ = [
    "CAPTURE_BACKENDS",
    "CaptureBackend",
    "DecodedBarcode",
    "ProductLookup",
    "ScannerConfig",
]
