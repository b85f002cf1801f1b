"""HTTP client for the Dispensa API."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from dispensa.models.lookup import DecodedBarcode, ProductLookup, ScannerConfig
from dispensa.models.product import Product
from dispensa.models.recipe import Recipe
from dispensa.models.shopping import ShoppingItem

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

UNEXPECTED_RESPONSE = "Unexpected response from server"


class ApiError(RuntimeError):
    """Failed call: unreachable server, non-2xx answer or a body of the wrong shape."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _segment(value: str) -> str:
    return quote(value, safe="")


def _parse(model: type[ModelT], body: Any, key: Optional[str] = None) -> ModelT:
    """Validate ``body`` (or ``body[key]``) as ``model``, raising ``ApiError`` on a bad shape."""

    try:
        return model.model_validate(body[key] if key is not None else body)
    except (KeyError, TypeError, ValidationError) as exc:
        raise ApiError(f"{UNEXPECTED_RESPONSE}: {exc}") from exc


def _parse_list(model: type[ModelT], body: Any, key: str) -> list[ModelT]:
    try:
        return [model.model_validate(entry) for entry in body[key]]
    except (KeyError, TypeError, ValidationError) as exc:
        raise ApiError(f"{UNEXPECTED_RESPONSE}: {exc}") from exc


class ApiClient:
    """Typed wrapper over the JSON routes.

    ``http`` may be any ``httpx.Client`` with a base URL, including
    ``fastapi.testclient.TestClient``.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        *,
        token: Optional[str] = None,
        timeout: float = 30.0,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self._owns_http = http is None
        if http is None:
            http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        self._http = http
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._http.request(method, path, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(f"Server unreachable: {exc}") from exc

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                if not response.is_error:
                    logger.warning(
                        "Non-JSON response %s %s status=%s", method, path, response.status_code
                    )
                    raise ApiError(UNEXPECTED_RESPONSE, response.status_code) from None

        if response.is_error:
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiError(message or f"HTTP {response.status_code}", response.status_code)
        return body

    # Products

    def list_products(
        self, username: str, *, storage: Optional[str] = None, sort: str = "expiry"
    ) -> list[Product]:
        params: dict[str, str] = {"sort": sort}
        if storage:
            params["storage"] = storage
        body = self._request("GET", f"/products/{_segment(username)}", params=params)
        return _parse_list(Product, body, "products")

    def products_summary(self, username: str) -> dict[str, int]:
        return self._request("GET", f"/products/{_segment(username)}/summary")

    def create_product(self, username: str, payload: dict[str, Any]) -> Product:
        body = self._request("POST", f"/products/{_segment(username)}", json=payload)
        return _parse(Product, body, "product")

    def set_product_quantity(self, username: str, product_id: str, quantity: float) -> Product:
        body = self._request(
            "PUT",
            f"/products/{_segment(username)}/{_segment(product_id)}",
            json={"quantity": quantity},
        )
        return _parse(Product, body, "product")

    def adjust_product_quantity(self, username: str, product_id: str, delta: float) -> Product:
        body = self._request(
            "POST",
            f"/products/{_segment(username)}/{_segment(product_id)}/adjust",
            json={"delta": delta},
        )
        return _parse(Product, body, "product")

    def delete_product(self, username: str, product_id: str) -> None:
        self._request("DELETE", f"/products/{_segment(username)}/{_segment(product_id)}")

    # Shopping list

    def list_shopping_items(self, username: str) -> list[ShoppingItem]:
        body = self._request("GET", f"/shopping/{_segment(username)}")
        return _parse_list(ShoppingItem, body, "items")

    def create_shopping_item(
        self, username: str, name: str, quantity: Optional[str] = None
    ) -> ShoppingItem:
        payload: dict[str, Any] = {"name": name}
        if quantity:
            payload["quantity"] = quantity
        body = self._request("POST", f"/shopping/{_segment(username)}", json=payload)
        return _parse(ShoppingItem, body, "item")

    def set_shopping_item_completed(
        self, username: str, item_id: str, completed: bool
    ) -> ShoppingItem:
        body = self._request(
            "PUT",
            f"/shopping/{_segment(username)}/{_segment(item_id)}",
            json={"completed": completed},
        )
        return _parse(ShoppingItem, body, "item")

    def delete_shopping_item(self, username: str, item_id: str) -> None:
        self._request("DELETE", f"/shopping/{_segment(username)}/{_segment(item_id)}")

    def clear_completed_items(self, username: str) -> list[ShoppingItem]:
        body = self._request("POST", f"/shopping/{_segment(username)}/clear-completed")
        return _parse_list(ShoppingItem, body, "items")

    # Services

    def suggest_recipe(
        self,
        username: str,
        product_ids: Iterable[str] = (),
        ingredients: Iterable[str] = (),
    ) -> Recipe:
        payload = {"productIds": list(product_ids), "ingredients": list(ingredients)}
        body = self._request("POST", f"/recipes/{_segment(username)}", json=payload)
        return _parse(Recipe, body)

    def lookup_barcode(self, code: str) -> ProductLookup:
        return _parse(ProductLookup, self._request("GET", f"/barcode/{_segment(code)}"))

    def decode_barcode(self, content: bytes, filename: str = "barcode.png") -> DecodedBarcode:
        files = {"file": (filename, content, "application/octet-stream")}
        return _parse(DecodedBarcode, self._request("POST", "/barcode/decode", files=files))

    def scanner_config(self) -> ScannerConfig:
        return _parse(ScannerConfig, self._request("GET", "/scanner/config"))


__all__ = ["ApiClient", "ApiError"]
