"""FastAPI proxy between the Technology Matrix page and the document store."""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ConfigurationError, Settings, get_settings
from .models import PayloadError, parse_item_payload
from .pages import render_page, security_headers
from .records import build_record_document, summarize_customers
from .restdb import (
    Projection,
    RestDbClient,
    StoreFilter,
    UpstreamError,
    UpstreamUnavailable,
)
from .schema import validate_record_document

API_PREFIX = "/api"
TOKEN_HEADER = "x-app-token"

logger = structlog.get_logger(__name__)


def configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def _is_api_path(path: str) -> bool:
    return path == API_PREFIX or path.startswith(API_PREFIX + "/")


def _error(status_code: int, error: Any, headers: Dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"ok": False, "error": error}, headers=headers
    )


# --- Dependencies ------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(settings: Settings = Depends(get_app_settings)) -> RestDbClient:
    """Store client for this request; missing configuration surfaces as a 500."""
    return RestDbClient.from_settings(settings)


async def read_json_body(request: Request) -> Any:
    """Decode the request body as JSON whatever its declared content type."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise PayloadError("Invalid JSON body") from exc


# --- Routes ------------------------------------------------------------------

pages = APIRouter()
api = APIRouter(prefix=API_PREFIX)


@pages.get("/", response_class=HTMLResponse, include_in_schema=False)
def index(settings: Settings = Depends(get_app_settings)) -> HTMLResponse:
    return HTMLResponse(render_page(settings), headers=security_headers(settings))


@pages.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@api.get("/items")
def list_items(
    customer_name: str = Query("", alias="customerName"),
    category: str = Query(""),
    customer_id: str = Query("", alias="customerId"),
    store: RestDbClient = Depends(get_store),
) -> Dict[str, Any]:
    """List records matching every non-blank filter, newest first."""
    store_filter = StoreFilter.exact(
        customerName=customer_name, category=category, customerId=customer_id
    )
    items = store.list(store_filter)
    logger.info("items_listed", filters=sorted(store_filter.fields), count=len(items))
    return {"ok": True, "items": items}


@api.post("/items")
def create_item(
    payload: Any = Depends(read_json_body),
    store: RestDbClient = Depends(get_store),
) -> Dict[str, Any]:
    """Validate, classify and stamp a new record, then store it."""
    draft = parse_item_payload(payload)
    document = validate_record_document(build_record_document(draft))
    created = store.create(document)
    logger.info(
        "item_created",
        category=document["category"],
        time_code=document["timeCode"],
    )
    return {"ok": True, "item": created}


@api.delete("/items/{record_id}")
def delete_item(record_id: str, store: RestDbClient = Depends(get_store)) -> Dict[str, Any]:
    store.delete(record_id)
    logger.info("item_deleted", record_id=record_id)
    return {"ok": True}


@api.get("/customers")
def list_customers(store: RestDbClient = Depends(get_store)) -> Dict[str, Any]:
    """Distinct customer names with record counts, scanned from the whole collection."""
    documents = store.list(sort=None, projection=Projection(["customerName"]))
    customers = summarize_customers(documents)
    return {
        "ok": True,
        "customers": [c.model_dump(by_alias=True) for c in customers],
    }


# --- Error handling ----------------------------------------------------------

def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PayloadError)
    async def payload_error_handler(request: Request, exc: PayloadError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error("configuration_error", error=str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        return _error(exc.status_code, exc.body)

    @app.exception_handler(UpstreamUnavailable)
    async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable):
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if _is_api_path(request.url.path):
            return _error(exc.status_code, exc.detail, headers=exc.headers)
        return PlainTextResponse(
            str(exc.detail), status_code=exc.status_code, headers=exc.headers
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled_exception", path=request.url.path, exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def _register_token_gate(app: FastAPI) -> None:
    @app.middleware("http")
    async def token_gate(request: Request, call_next):
        settings: Settings = request.app.state.settings
        if settings.token_gate_enabled and _is_api_path(request.url.path):
            supplied = request.headers.get(TOKEN_HEADER, "")
            expected = settings.app_shared_token or ""
            if not secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
                logger.warning("token_rejected", path=request.url.path, method=request.method)
                return _error(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
        return await call_next(request)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around one settings instance shared by all requests."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Technology Matrix")
    app.state.settings = settings
    app.include_router(pages)
    app.include_router(api)
    _register_error_handlers(app)
    _register_token_gate(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)
