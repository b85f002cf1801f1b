"""External product lookup services."""

from .openfoodfacts import (
    LookupServiceError,
    OpenFoodFactsClient,
    build_openfoodfacts_client,
    normalize_barcode,
)

__all__ = [
    "LookupServiceError",
    "OpenFoodFactsClient",
    "build_openfoodfacts_client",
    "normalize_barcode",
]
