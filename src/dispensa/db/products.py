"""Product list persistence on top of the key-value store."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from dispensa.models.product import Product

from . import kv_store
from .errors import DuplicateIdError, ItemNotFoundError

logger = logging.getLogger(__name__)


def _load(username: str) -> List[Product]:
    raw = kv_store.get(kv_store.list_key("products", username)) or []
    return [Product.model_validate(entry) for entry in raw]


def _save(username: str, products: List[Product]) -> None:
    kv_store.set(
        kv_store.list_key("products", username),
        [product.model_dump(mode="json", by_alias=True) for product in products],
    )


def list_products(username: str) -> List[Product]:
    """Return the products of ``username`` in the order they were added."""

    return _load(username)


def get_product(username: str, product_id: str) -> Optional[Product]:
    for product in _load(username):
        if product.id == product_id:
            return product
    return None


def create_product(
    username: str,
    *,
    name: str,
    expiry_date: date | str,
    category: Optional[str] = None,
    quantity: float = 1.0,
    unit: str = "pz",
    storage_type: str = "frigo",
    image: Optional[str] = None,
    barcode: Optional[str] = None,
    id: Optional[str] = None,  # noqa: A002 - matches the wire field
) -> Product:
    payload: dict[str, object] = {
        "name": name,
        "expiry_date": expiry_date,
        "quantity": quantity,
        "unit": unit,
        "storage_type": storage_type,
        "image": image,
        "barcode": barcode,
    }
    if category:
        payload["category"] = category
    if id:
        payload["id"] = id
    product = Product.model_validate(payload)

    products = _load(username)
    if any(existing.id == product.id for existing in products):
        raise DuplicateIdError(f"Product {product.id} already exists")
    products.append(product)
    _save(username, products)
    logger.info("Product added user=%s id=%s name=%s", username, product.id, product.name)
    return product


def update_product_quantity(username: str, product_id: str, quantity: float) -> Product:
    """Set the quantity of one product; negative values are stored as zero."""

    products = _load(username)
    for index, product in enumerate(products):
        if product.id == product_id:
            updated = product.with_quantity(quantity)
            products[index] = updated
            _save(username, products)
            return updated
    raise ItemNotFoundError(f"Product {product_id} not found")


def adjust_product_quantity(username: str, product_id: str, delta: float) -> Product:
    """Increment (or decrement, for negative ``delta``) a product's quantity."""

    product = get_product(username, product_id)
    if product is None:
        raise ItemNotFoundError(f"Product {product_id} not found")
    return update_product_quantity(username, product_id, product.quantity + delta)


def delete_product(username: str, product_id: str) -> None:
    products = _load(username)
    remaining = [product for product in products if product.id != product_id]
    if len(remaining) == len(products):
        raise ItemNotFoundError(f"Product {product_id} not found")
    _save(username, remaining)
    logger.info("Product removed user=%s id=%s", username, product_id)


__all__ = [
    "adjust_product_quantity",
    "create_product",
    "delete_product",
    "get_product",
    "list_products",
    "update_product_quantity",
]
