"""Barcode capture helpers."""

from .barcode import BarcodeDecodeError, decode_barcode
from .config import build_scanner_config

__all__ = ["BarcodeDecodeError", "build_scanner_config", "decode_barcode"]
