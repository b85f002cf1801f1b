"""ASGI application for Dispensa."""

from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, File, HTTPException, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from dispensa import __version__, metrics
from dispensa.ai.recipes import RecipeClient
from dispensa.config import Settings, get_settings
from dispensa.db.errors import DuplicateIdError, ItemNotFoundError
from dispensa.expiry import sort_by_expiry, summarize
from dispensa.logging_utils import configure_logging as configure_app_logging
from dispensa.lookup.openfoodfacts import LookupServiceError, OpenFoodFactsClient, normalize_barcode
from dispensa.models.lookup import DecodedBarcode, ProductLookup, ScannerConfig
from dispensa.models.product import Product, StorageType, Unit, coerce_expiry_date
from dispensa.models.recipe import Recipe
from dispensa.models.shopping import ShoppingItem, normalize_quantity_text
from dispensa.scanning.barcode import BarcodeDecodeError
from dispensa.server import deps, ui

logger = logging.getLogger(__name__)


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _configure_logging(settings: Settings) -> None:
    secrets = [settings.api_token or "", settings.recipe_llm_api_key or ""]
    configure_app_logging(settings.log_level, settings.log_format, secrets)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Frigorifero & Dispensa", version=__version__)
    application.include_router(ui.router)

    if settings.log_requests:
        access_logger = logging.getLogger("dispensa.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log one access line per request and record request metrics."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    request.url.path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                path = _route_path(request)
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
                raise

            duration_ms = (perf_counter() - start) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            # Route templates keep usernames out of the metric labels.
            path = _route_path(request)
            metrics.REQUEST_COUNT.labels(method=method, path=path, status=str(response.status_code)).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
            return response

    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Request-ID"],
        expose_headers=["Content-Length", "X-Request-ID"],
        max_age=600,
    )

    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, str):
            response = _error_response(exc.status_code, exc.detail)
        else:
            response = _error_response(exc.status_code, "Request failed", details=_json_safe(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        body_preview: str | None = None
        raw_body = await request.body()
        if raw_body:
            decoded = raw_body.decode("utf-8", errors="replace")
            if len(decoded) > 2048:
                decoded = decoded[:2048] + "...(truncated)"
            body_preview = decoded

        log_kwargs: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_kwargs["extra"] = {"request_id": request_id}

        logger.warning(
            "Validation error on %s %s: %s | body=%s",
            request.method,
            request.url.path,
            exc.errors(),
            body_preview,
            **log_kwargs,
        )
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Invalid request",
            details=_json_safe(list(exc.errors())),
        )

    @application.exception_handler(ValidationError)
    async def model_validation_exception_handler(request: Request, exc: ValidationError):
        # Raised inside a route when a stored value would become invalid, e.g. an
        # adjustment overflowing the quantity.
        logger.warning(
            "Rejected invalid value on %s %s: %s",
            request.method,
            request.url.path,
            exc.errors(include_url=False),
        )
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Invalid request",
            details=_json_safe(list(exc.errors(include_url=False))),
        )

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @application.get("/health", response_model=HealthResponse, summary="Health check")
    def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @application.get(
        "/products/{username}",
        response_model=ProductListResponse,
        summary="List products",
    )
    def products_list(
        username: str = Depends(deps.get_username),
        storage: Optional[StorageType] = Query(default=None),
        sort: str = Query(default="expiry", pattern="^(expiry|added)$"),
        auth: None = Depends(deps.require_api_token),
        provider: deps.ProductProvider = Depends(deps.get_product_provider),
    ) -> ProductListResponse:
        products = provider(username)
        if storage is not None:
            products = [product for product in products if product.storage_type == storage]
        if sort == "expiry":
            products = sort_by_expiry(products)
        return ProductListResponse(products=products)

    @application.get(
        "/products/{username}/summary",
        response_model=InventorySummaryResponse,
        summary="Count products by storage and urgency",
    )
    def products_summary(
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        provider: deps.ProductProvider = Depends(deps.get_product_provider),
        shopping_provider: deps.ShoppingListProvider = Depends(deps.get_shopping_list_provider),
    ) -> InventorySummaryResponse:
        summary = summarize(provider(username))
        active = sum(1 for item in shopping_provider(username) if not item.completed)
        return InventorySummaryResponse(
            total=summary.total,
            fridge=summary.fridge,
            pantry=summary.pantry,
            expired=summary.expired,
            expiring_soon=summary.expiring_soon,
            shopping_active=active,
        )

    @application.post(
        "/products/{username}",
        response_model=ProductResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Add product",
    )
    def products_create(
        payload: ProductCreateRequest = Body(...),
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        creator: deps.ProductCreator = Depends(deps.get_product_creator),
    ) -> ProductResponse:
        create_payload = payload.model_dump(exclude_none=True)
        logger.debug("Creating product user=%s name=%s", username, payload.name)
        try:
            product = creator(username, create_payload)
        except DuplicateIdError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return ProductResponse(product=product)

    @application.put(
        "/products/{username}/{product_id}",
        response_model=ProductResponse,
        summary="Set product quantity",
    )
    def products_update_quantity(
        product_id: str,
        payload: QuantityUpdateRequest = Body(...),
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        updater: deps.ProductQuantityUpdater = Depends(deps.get_product_quantity_updater),
    ) -> ProductResponse:
        try:
            product = updater(username, product_id, payload.quantity)
        except ItemNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return ProductResponse(product=product)

    @application.post(
        "/products/{username}/{product_id}/adjust",
        response_model=ProductResponse,
        summary="Increment or decrement product quantity",
    )
    def products_adjust_quantity(
        product_id: str,
        payload: QuantityAdjustRequest = Body(...),
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        adjuster: deps.ProductQuantityAdjuster = Depends(deps.get_product_quantity_adjuster),
    ) -> ProductResponse:
        try:
            product = adjuster(username, product_id, payload.delta)
        except ItemNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return ProductResponse(product=product)

    @application.delete(
        "/products/{username}/{product_id}",
        response_model=SuccessResponse,
        summary="Delete product",
    )
    def products_delete(
        product_id: str,
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        deleter: deps.ProductDeleter = Depends(deps.get_product_deleter),
    ) -> SuccessResponse:
        try:
            deleter(username, product_id)
        except ItemNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return SuccessResponse()

    @application.get(
        "/shopping/{username}",
        response_model=ShoppingListResponse,
        summary="List shopping items",
    )
    def shopping_list(
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        provider: deps.ShoppingListProvider = Depends(deps.get_shopping_list_provider),
    ) -> ShoppingListResponse:
        return ShoppingListResponse(items=provider(username))

    @application.post(
        "/shopping/{username}",
        response_model=ShoppingItemResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Add shopping item",
    )
    def shopping_create(
        payload: ShoppingItemCreateRequest = Body(...),
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        creator: deps.ShoppingItemCreator = Depends(deps.get_shopping_item_creator),
    ) -> ShoppingItemResponse:
        try:
            item = creator(username, payload.model_dump(exclude_none=True))
        except DuplicateIdError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return ShoppingItemResponse(item=item)

    @application.post(
        "/shopping/{username}/clear-completed",
        response_model=ShoppingListResponse,
        summary="Remove completed shopping items",
    )
    def shopping_clear_completed(
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        clearer: deps.ShoppingListClearer = Depends(deps.get_shopping_list_clearer),
    ) -> ShoppingListResponse:
        return ShoppingListResponse(items=clearer(username))

    @application.put(
        "/shopping/{username}/{item_id}",
        response_model=ShoppingItemResponse,
        summary="Mark shopping item completed or active",
    )
    def shopping_toggle(
        item_id: str,
        payload: ShoppingToggleRequest = Body(...),
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        toggler: deps.ShoppingItemToggler = Depends(deps.get_shopping_item_toggler),
    ) -> ShoppingItemResponse:
        try:
            item = toggler(username, item_id, payload.completed)
        except ItemNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return ShoppingItemResponse(item=item)

    @application.delete(
        "/shopping/{username}/{item_id}",
        response_model=SuccessResponse,
        summary="Delete shopping item",
    )
    def shopping_delete(
        item_id: str,
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        deleter: deps.ShoppingItemDeleter = Depends(deps.get_shopping_item_deleter),
    ) -> SuccessResponse:
        try:
            deleter(username, item_id)
        except ItemNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return SuccessResponse()

    @application.post(
        "/recipes/{username}",
        response_model=Recipe,
        summary="Suggest a recipe from selected products",
    )
    def recipes_suggest(
        payload: RecipeRequest = Body(...),
        username: str = Depends(deps.get_username),
        auth: None = Depends(deps.require_api_token),
        provider: deps.ProductProvider = Depends(deps.get_product_provider),
        client: RecipeClient = Depends(deps.get_recipe_client),
    ) -> Recipe:
        names: list[str] = []
        if payload.product_ids:
            by_id = {product.id: product for product in provider(username)}
            missing = [product_id for product_id in payload.product_ids if product_id not in by_id]
            if missing:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Product {missing[0]} not found",
                )
            names.extend(by_id[product_id].name for product_id in payload.product_ids)
        names.extend(payload.ingredients)
        if not any(name.strip() for name in names):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Select at least one ingredient",
            )
        return client.suggest(names)

    @application.get(
        "/scanner/config",
        response_model=ScannerConfig,
        summary="Capture backends for the add-product dialog",
    )
    def scanner_config(config: ScannerConfig = Depends(deps.get_scanner_config)) -> ScannerConfig:
        return config

    @application.get(
        "/barcode/{code}",
        response_model=ProductLookup,
        summary="Look a barcode up on Open Food Facts",
    )
    def barcode_lookup(
        code: str,
        auth: None = Depends(deps.require_api_token),
        config: ScannerConfig = Depends(deps.get_scanner_config),
        client: OpenFoodFactsClient = Depends(deps.get_lookup_client),
    ) -> ProductLookup:
        try:
            barcode = normalize_barcode(code)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
        if not config.lookup_enabled:
            return ProductLookup(barcode=barcode, found=False, name=barcode)
        try:
            return client.lookup(barcode)
        except LookupServiceError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    @application.post(
        "/barcode/decode",
        response_model=DecodedBarcode,
        summary="Decode a barcode from an uploaded image",
    )
    async def barcode_decode(
        file: UploadFile = File(...),
        auth: None = Depends(deps.require_api_token),
        config: ScannerConfig = Depends(deps.get_scanner_config),
        decoder: deps.BarcodeDecoder = Depends(deps.get_barcode_decoder),
    ) -> DecodedBarcode:
        content = await file.read()
        if not content:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
        if len(content) > config.max_upload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Image exceeds {config.max_upload_bytes} bytes",
            )
        try:
            # Decoding is CPU bound; keep it off the event loop.
            return await run_in_threadpool(decoder, content)
        except BarcodeDecodeError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    logger.debug("Application created with log level %s", settings.log_level)
    return application


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class HealthResponse(BaseModel):
    status: str
    version: str


class SuccessResponse(BaseModel):
    success: bool = True


class ProductListResponse(BaseModel):
    products: list[Product]


class ProductResponse(BaseModel):
    success: bool = True
    product: Product


class ShoppingListResponse(BaseModel):
    items: list[ShoppingItem]


class ShoppingItemResponse(BaseModel):
    success: bool = True
    item: ShoppingItem


class InventorySummaryResponse(BaseModel):
    total: int
    fridge: int
    pantry: int
    expired: int
    expiring_soon: int
    shopping_active: int


class ProductCreateRequest(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    category: Optional[str] = Field(default=None, max_length=64)
    quantity: float = Field(default=1.0, allow_inf_nan=False)
    unit: Unit = Field(default="pz")
    expiry_date: date = Field(alias="expiryDate")
    storage_type: StorageType = Field(default="frigo", alias="storageType")
    image: Optional[str] = None
    barcode: Optional[str] = Field(default=None, max_length=64)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _blank_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _coerce_expiry(cls, value: Any) -> Any:
        return coerce_expiry_date(value)


class QuantityUpdateRequest(BaseModel):
    quantity: float = Field(allow_inf_nan=False)


class QuantityAdjustRequest(BaseModel):
    delta: float = Field(allow_inf_nan=False)


class ShoppingItemCreateRequest(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    quantity: Optional[str] = Field(default=None, max_length=64)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("quantity", mode="before")
    @classmethod
    def _normalize_quantity(cls, value: Any) -> Any:
        return normalize_quantity_text(value)


class ShoppingToggleRequest(BaseModel):
    completed: bool


class RecipeRequest(BaseModel):
    product_ids: list[str] = Field(default_factory=list, alias="productIds")
    ingredients: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


app = create_app()

__all__ = ["app", "create_app"]
