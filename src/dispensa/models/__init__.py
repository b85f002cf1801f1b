"""Pydantic models defining shared data contracts."""

from dispensa.models.lookup import (
    CAPTURE_BACKENDS,
    CaptureBackend,
    DecodedBarcode,
    ProductLookup,
    ScannerConfig,
)
from dispensa.models.product import (
    CATEGORIES,
    STORAGE_LABELS,
    UNITS,
    Product,
    StorageType,
    Unit,
)
from dispensa.models.recipe import Recipe, fallback_recipe
from dispensa.models.shopping import ShoppingItem

__all__ = [
    "CAPTURE_BACKENDS",
    "CATEGORIES",
    "STORAGE_LABELS",
    "UNITS",
    "CaptureBackend",
    "DecodedBarcode",
    "Product",
    "ProductLookup",
    "Recipe",
    "ScannerConfig",
    "ShoppingItem",
    "StorageType",
    "Unit",
    "fallback_recipe",
]
