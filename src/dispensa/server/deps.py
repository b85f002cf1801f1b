"""Dependency definitions for the Dispensa API server."""

from __future__ import annotations

from typing import Callable, List

from fastapi import Depends, HTTPException, Path, Request, status

from dispensa.ai.recipes import RecipeClient, build_recipe_client
from dispensa.config import get_settings
from dispensa.db.products import (
    adjust_product_quantity,
    create_product,
    delete_product,
    list_products,
    update_product_quantity,
)
from dispensa.db.shopping_list import (
    clear_completed_items,
    create_shopping_item,
    delete_shopping_item,
    list_shopping_items,
    set_shopping_item_completed,
)
from dispensa.lookup.openfoodfacts import OpenFoodFactsClient, build_openfoodfacts_client
from dispensa.models.lookup import DecodedBarcode, ScannerConfig
from dispensa.models.product import Product
from dispensa.models.shopping import ShoppingItem
from dispensa.scanning.barcode import decode_barcode
from dispensa.scanning.config import build_scanner_config

ProductProvider = Callable[[str], List[Product]]
ProductCreator = Callable[[str, dict], Product]
ProductQuantityUpdater = Callable[[str, str, float], Product]
ProductQuantityAdjuster = Callable[[str, str, float], Product]
ProductDeleter = Callable[[str, str], None]
ShoppingListProvider = Callable[[str], List[ShoppingItem]]
ShoppingItemCreator = Callable[[str, dict], ShoppingItem]
ShoppingItemToggler = Callable[[str, str, bool], ShoppingItem]
ShoppingItemDeleter = Callable[[str, str], None]
ShoppingListClearer = Callable[[str], List[ShoppingItem]]
BarcodeDecoder = Callable[[bytes], DecodedBarcode]


def get_username(username: str = Path(min_length=1, max_length=64)) -> str:
    """Partition key taken from the URL; surrounding whitespace is ignored."""

    cleaned = username.strip()
    if not cleaned:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username is required")
    return cleaned


def get_product_provider() -> ProductProvider:
    return list_products


def get_product_creator() -> ProductCreator:
    return lambda username, payload: create_product(username, **payload)


def get_product_quantity_updater() -> ProductQuantityUpdater:
    return update_product_quantity


def get_product_quantity_adjuster() -> ProductQuantityAdjuster:
    return adjust_product_quantity


def get_product_deleter() -> ProductDeleter:
    return delete_product


def get_shopping_list_provider() -> ShoppingListProvider:
    return list_shopping_items


def get_shopping_item_creator() -> ShoppingItemCreator:
    return lambda username, payload: create_shopping_item(username, **payload)


def get_shopping_item_toggler() -> ShoppingItemToggler:
    return set_shopping_item_completed


def get_shopping_item_deleter() -> ShoppingItemDeleter:
    return delete_shopping_item


def get_shopping_list_clearer() -> ShoppingListClearer:
    return clear_completed_items


def get_recipe_client() -> RecipeClient:
    return build_recipe_client()


def get_lookup_client() -> OpenFoodFactsClient:
    return build_openfoodfacts_client()


def get_barcode_decoder() -> BarcodeDecoder:
    return lambda content: decode_barcode(content)


def get_scanner_config() -> ScannerConfig:
    return build_scanner_config()


def require_api_token(
    request: Request,
    settings=Depends(get_settings),
) -> None:
    """Ensure requests carry the configured static token when one is set."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization") or ""
    if auth_header.startswith("Bearer ") and auth_header[len("Bearer "):].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    if request.query_params.get("api_token") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
