"""In-memory dashboard state for one user, kept in sync through the API."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

from dispensa.client.api import ApiClient, ApiError
from dispensa.expiry import sort_by_expiry
from dispensa.models.product import Product
from dispensa.models.recipe import Recipe
from dispensa.models.shopping import ShoppingItem

logger = logging.getLogger(__name__)

LOAD_PRODUCTS_ERROR = "Errore nel caricamento dei prodotti. Riprova."
LOAD_SHOPPING_ERROR = "Errore nel caricamento della lista della spesa. Riprova."
ADD_PRODUCT_ERROR = "Errore nell'aggiunta del prodotto. Riprova."
DELETE_PRODUCT_ERROR = "Errore nell'eliminazione del prodotto. Riprova."
UPDATE_QUANTITY_ERROR = "Errore nell'aggiornamento della quantità. Riprova."
ADD_ITEM_ERROR = "Errore nell'aggiunta dell'articolo. Riprova."
UPDATE_ITEM_ERROR = "Errore nell'aggiornamento dell'articolo. Riprova."
DELETE_ITEM_ERROR = "Errore nell'eliminazione dell'articolo. Riprova."
RECIPE_ERROR = "Errore nella generazione. Riprova!"


class DashboardError(RuntimeError):
    """User-facing failure of a dashboard action."""


class Dashboard:
    """Products and shopping list of ``username``.

    Local lists change only after the server accepted the mutation, so a
    failed call leaves the state exactly as it was.
    """

    def __init__(self, api: ApiClient, username: str) -> None:
        self.api = api
        self.username = username
        self.products: list[Product] = []
        self.shopping_items: list[ShoppingItem] = []
        self.error: Optional[str] = None

    # Loading

    def load_products(self) -> bool:
        try:
            products = self.api.list_products(self.username, sort="added")
        except ApiError as exc:
            logger.error("Failed to load products user=%s: %s", self.username, exc)
            self.error = LOAD_PRODUCTS_ERROR
            return False
        self.products = products
        self.error = None
        return True

    def load_shopping_list(self) -> bool:
        try:
            items = self.api.list_shopping_items(self.username)
        except ApiError as exc:
            logger.error("Failed to load shopping list user=%s: %s", self.username, exc)
            self.error = LOAD_SHOPPING_ERROR
            return False
        self.shopping_items = items
        return True

    def refresh(self) -> bool:
        products_ok = self.load_products()
        shopping_ok = self.load_shopping_list()
        return products_ok and shopping_ok

    # Views

    def visible_products(
        self, storage: Optional[str] = None, today: Optional[date] = None
    ) -> list[Product]:
        products = self.products
        if storage:
            products = [product for product in products if product.storage_type == storage]
        return sort_by_expiry(products, today)

    @property
    def active_items(self) -> list[ShoppingItem]:
        return [item for item in self.shopping_items if not item.completed]

    @property
    def completed_items(self) -> list[ShoppingItem]:
        return [item for item in self.shopping_items if item.completed]

    def find_product(self, product_id: str) -> Product:
        for product in self.products:
            if product.id == product_id:
                return product
        raise DashboardError(f"Prodotto {product_id} non trovato")

    # Product mutations

    def add_product(self, **fields: Any) -> Product:
        try:
            product = self.api.create_product(self.username, fields)
        except ApiError as exc:
            logger.error("Failed to add product user=%s: %s", self.username, exc)
            raise DashboardError(ADD_PRODUCT_ERROR) from exc
        self.products = [*self.products, product]
        return product

    def delete_product(self, product_id: str) -> None:
        try:
            self.api.delete_product(self.username, product_id)
        except ApiError as exc:
            logger.error("Failed to delete product user=%s id=%s: %s", self.username, product_id, exc)
            raise DashboardError(DELETE_PRODUCT_ERROR) from exc
        self.products = [product for product in self.products if product.id != product_id]

    def set_quantity(self, product_id: str, quantity: float) -> Product:
        try:
            product = self.api.set_product_quantity(self.username, product_id, max(quantity, 0.0))
        except ApiError as exc:
            logger.error("Failed to update quantity user=%s id=%s: %s", self.username, product_id, exc)
            raise DashboardError(UPDATE_QUANTITY_ERROR) from exc
        self._replace_product(product)
        return product

    def increment(self, product_id: str, step: float = 1.0) -> Product:
        current = self.find_product(product_id)
        return self.set_quantity(product_id, current.quantity + step)

    def decrement(self, product_id: str, step: float = 1.0) -> Product:
        current = self.find_product(product_id)
        return self.set_quantity(product_id, max(current.quantity - step, 0.0))

    def _replace_product(self, updated: Product) -> None:
        self.products = [updated if product.id == updated.id else product for product in self.products]

    # Shopping list mutations

    def add_shopping_item(self, name: str, quantity: Optional[str] = None) -> ShoppingItem:
        try:
            item = self.api.create_shopping_item(self.username, name, quantity)
        except ApiError as exc:
            logger.error("Failed to add shopping item user=%s: %s", self.username, exc)
            raise DashboardError(ADD_ITEM_ERROR) from exc
        self.shopping_items = [*self.shopping_items, item]
        return item

    def toggle_shopping_item(self, item_id: str, completed: Optional[bool] = None) -> ShoppingItem:
        if completed is None:
            current = next((item for item in self.shopping_items if item.id == item_id), None)
            completed = not current.completed if current else True
        try:
            item = self.api.set_shopping_item_completed(self.username, item_id, completed)
        except ApiError as exc:
            logger.error("Failed to toggle shopping item user=%s id=%s: %s", self.username, item_id, exc)
            raise DashboardError(UPDATE_ITEM_ERROR) from exc
        self.shopping_items = [item if entry.id == item.id else entry for entry in self.shopping_items]
        return item

    def delete_shopping_item(self, item_id: str) -> None:
        try:
            self.api.delete_shopping_item(self.username, item_id)
        except ApiError as exc:
            logger.error("Failed to delete shopping item user=%s id=%s: %s", self.username, item_id, exc)
            raise DashboardError(DELETE_ITEM_ERROR) from exc
        self.shopping_items = [item for item in self.shopping_items if item.id != item_id]

    def clear_completed(self) -> list[ShoppingItem]:
        try:
            items = self.api.clear_completed_items(self.username)
        except ApiError as exc:
            logger.error("Failed to clear shopping list user=%s: %s", self.username, exc)
            raise DashboardError(DELETE_ITEM_ERROR) from exc
        self.shopping_items = items
        return items

    # Recipe

    def suggest_recipe(
        self, product_ids: Iterable[str] = (), ingredients: Iterable[str] = ()
    ) -> Recipe:
        try:
            return self.api.suggest_recipe(self.username, product_ids, ingredients)
        except ApiError as exc:
            logger.error("Recipe request failed user=%s: %s", self.username, exc)
            raise DashboardError(RECIPE_ERROR) from exc


__all__ = ["Dashboard", "DashboardError"]
