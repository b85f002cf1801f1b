"""Open Food Facts product lookup by barcode."""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from dispensa import metrics
from dispensa.config import Settings, get_settings
from dispensa.models.lookup import ProductLookup

_BARCODE_RE = re.compile(r"^\d{6,14}$")
USER_AGENT = "Dispensa/0.1 (household inventory tracker)"

logger = logging.getLogger(__name__)


class LookupServiceError(RuntimeError):
    """Raised when Open Food Facts cannot be reached or answers garbage."""


def normalize_barcode(value: str) -> str:
    """Strip whitespace and validate that ``value`` looks like an EAN/UPC code."""

    cleaned = re.sub(r"\s+", "", value or "")
    if not _BARCODE_RE.match(cleaned):
        raise ValueError(f"Invalid barcode {value!r}: expected 6-14 digits")
    return cleaned


class OpenFoodFactsClient:
    """Thin client over the Open Food Facts v0 product endpoint."""

    def __init__(
        self,
        *,
        base_url: str = "https://world.openfoodfacts.org",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def lookup(self, barcode: str) -> ProductLookup:
        """Resolve ``barcode``; unknown products fall back to the barcode as name."""

        code = normalize_barcode(barcode)
        url = f"{self._base_url}/api/v0/product/{code}.json"
        try:
            with httpx.Client(
                timeout=self._timeout,
                transport=self._transport,
                headers={"User-Agent": USER_AGENT},
            ) as client:
                response = client.get(url)
            if response.status_code == 404:
                body: dict = {"status": 0}
            else:
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            metrics.BARCODE_LOOKUPS.labels(result="error").inc()
            logger.warning("Open Food Facts lookup failed barcode=%s: %s", code, exc)
            raise LookupServiceError(f"Open Food Facts lookup failed: {exc}") from exc

        if not isinstance(body, dict):
            metrics.BARCODE_LOOKUPS.labels(result="error").inc()
            raise LookupServiceError("Open Food Facts returned an unexpected payload")

        product = body.get("product") if body.get("status") == 1 else None
        if not isinstance(product, dict):
            metrics.BARCODE_LOOKUPS.labels(result="not_found").inc()
            logger.info("Barcode not found on Open Food Facts barcode=%s", code)
            return ProductLookup(barcode=code, found=False, name=code)

        name = (product.get("product_name") or "").strip()
        metrics.BARCODE_LOOKUPS.labels(result="found").inc()
        return ProductLookup(
            barcode=code,
            found=True,
            name=name or code,
            image_url=product.get("image_front_url") or product.get("image_url") or None,
            brand=(product.get("brands") or "").split(",")[0].strip() or None,
            category=_first_category(product.get("categories")),
        )


def _first_category(raw: object) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    first = raw.split(",")[0].strip()
    return first or None


def build_openfoodfacts_client(settings: Settings | None = None) -> OpenFoodFactsClient:
    settings = settings or get_settings()
    return OpenFoodFactsClient(
        base_url=settings.openfoodfacts_base_url,
        timeout=settings.lookup_timeout,
    )


__all__ = [
    "LookupServiceError",
    "OpenFoodFactsClient",
    "build_openfoodfacts_client",
    "normalize_barcode",
]
