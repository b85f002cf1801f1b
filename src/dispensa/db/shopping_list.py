"""Shopping list persistence on top of the key-value store."""

from __future__ import annotations

import logging
from typing import List, Optional

from dispensa.models.shopping import ShoppingItem

from . import kv_store
from .errors import DuplicateIdError, ItemNotFoundError

logger = logging.getLogger(__name__)


def _load(username: str) -> List[ShoppingItem]:
    raw = kv_store.get(kv_store.list_key("shopping", username)) or []
    return [ShoppingItem.model_validate(entry) for entry in raw]


def _save(username: str, items: List[ShoppingItem]) -> None:
    kv_store.set(
        kv_store.list_key("shopping", username),
        [item.model_dump(mode="json", by_alias=True) for item in items],
    )


def list_shopping_items(username: str) -> List[ShoppingItem]:
    """Return all shopping list items in insertion order."""

    return _load(username)


def get_shopping_item(username: str, item_id: str) -> Optional[ShoppingItem]:
    for item in _load(username):
        if item.id == item_id:
            return item
    return None


def create_shopping_item(
    username: str,
    *,
    name: str,
    quantity: Optional[str] = None,
    id: Optional[str] = None,  # noqa: A002 - matches the wire field
) -> ShoppingItem:
    payload: dict[str, object] = {"name": name, "quantity": quantity}
    if id:
        payload["id"] = id
    item = ShoppingItem.model_validate(payload)

    items = _load(username)
    if any(existing.id == item.id for existing in items):
        raise DuplicateIdError(f"Shopping list item {item.id} already exists")
    items.append(item)
    _save(username, items)
    return item


def set_shopping_item_completed(username: str, item_id: str, completed: bool) -> ShoppingItem:
    """Flip the completed flag, leaving name and quantity text untouched."""

    items = _load(username)
    for index, item in enumerate(items):
        if item.id == item_id:
            updated = item.model_copy(update={"completed": bool(completed)})
            items[index] = updated
            _save(username, items)
            return updated
    raise ItemNotFoundError(f"Shopping list item {item_id} not found")


def delete_shopping_item(username: str, item_id: str) -> None:
    items = _load(username)
    remaining = [item for item in items if item.id != item_id]
    if len(remaining) == len(items):
        raise ItemNotFoundError(f"Shopping list item {item_id} not found")
    _save(username, remaining)


def clear_completed_items(username: str) -> List[ShoppingItem]:
    """Drop completed entries and return what is left."""

    items = _load(username)
    remaining = [item for item in items if not item.completed]
    if len(remaining) != len(items):
        _save(username, remaining)
        logger.info(
            "Cleared %s completed shopping item(s) user=%s",
            len(items) - len(remaining),
            username,
        )
    return remaining


__all__ = [
    "clear_completed_items",
    "create_shopping_item",
    "delete_shopping_item",
    "get_shopping_item",
    "list_shopping_items",
    "set_shopping_item_completed",
]
