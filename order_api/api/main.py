from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from order_api.core.errors import ConcurrencyConflictError, EntityValidationError
from order_api.core.logging import configure_logging, correlation_id_var
from order_api.core.settings import get_app_settings
from order_api.db.seed import fill_db
from order_api.db.session import dispose_engine, get_session_maker
from order_api.schemas.common import ErrorInfo, ErrorResponse, MessageResponse
from order_api.services.unit_of_work import UnitOfWork

# Routers
from order_api.api.routes.customers import router as customers_router
from order_api.api.routes.order_items import router as order_items_router
from order_api.api.routes.orders import router as orders_router
from order_api.api.routes.products import router as products_router
from order_api.api.routes.reports import router as reports_router

# Configure structured logging once at import
configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Customers", "description": "Customer master data."},
    {"name": "Orders", "description": "Orders, paging and sales statistic."},
    {"name": "Order Items", "description": "Order line items."},
    {"name": "Products", "description": "Product catalogue."},
    {"name": "Reports", "description": "Exportable business reports (CSV/Excel)."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with a correlation_id for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    request.state.correlation_id = corr

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    ts = datetime.now(tz=timezone.utc)
    corr = getattr(request.state, "correlation_id", None)
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=corr,
        path=request.url.path,
        method=request.method,
        timestamp=ts,
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(EntityValidationError)
async def entity_validation_handler(request: Request, exc: EntityValidationError):
    """
    Entity validation failures raised by save_changes map to 400 with the
    offending member names.
    """
    logger.info("Entity validation failed: %s", exc)
    return _build_error_response(
        request=request,
        status_code=400,
        error_type="entity_validation_error",
        message=exc.result.message,
        details={
            "member_names": list(exc.member_names),
            "errors": [
                {"message": e.message, "member_names": list(e.member_names)} for e in exc.errors
            ],
        },
    )


@app.exception_handler(ConcurrencyConflictError)
async def concurrency_conflict_handler(request: Request, exc: ConcurrencyConflictError):
    return _build_error_response(
        request=request,
        status_code=409,
        error_type="concurrency_conflict",
        message=str(exc),
        details=None,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=exc.errors(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and the optional CSV import on service startup.

    The import recreates the database, so it is opt-in via settings.
    """
    if not (settings.RUN_MIGRATIONS_ON_STARTUP or settings.IMPORT_ON_STARTUP):
        return
    async with UnitOfWork(get_session_maker()()) as uow:
        if settings.RUN_MIGRATIONS_ON_STARTUP:
            try:
                logger.info("Running Alembic migrations: upgrade head")
                await uow.migrate_database()
                logger.info("Migrations completed.")
            except Exception as exc:
                logger.exception("Migration step failed: %s", exc)
                # Do not crash the app in case of transient DB issues; rely on retries or later readiness probes.

        if settings.IMPORT_ON_STARTUP:
            try:
                logger.info("Importing CSV data from %s", settings.IMPORT_DATA_DIR)
                saved = await fill_db(uow, settings.IMPORT_DATA_DIR, settings.CSV_SEPARATOR)
                logger.info("Import completed, %d rows written.", saved)
            except Exception as exc:
                logger.exception("Import step failed: %s", exc)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await dispose_engine()


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")

# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# Include all routers under /api/v1
api_v1.include_router(customers_router)
api_v1.include_router(orders_router)
api_v1.include_router(order_items_router)
api_v1.include_router(products_router)
api_v1.include_router(reports_router)

# Attach api_v1 to app
app.include_router(api_v1)
