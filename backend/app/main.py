from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import admin, availability, bookings, webhooks
from app.booking.ledger import BookingLedger
from app.booking.locks import InMemoryLedgerLocks, LedgerLocks, RedisLedgerLocks
from app.booking.service import BookingService
from app.core.config import get_settings
from app.core.logging import setup_logging
from app.shopify.client import ShopifyClient

logger = logging.getLogger(__name__)

settings = get_settings()
setup_logging()

# Выбираем блокировки журнала в зависимости от конфигурации
ledger_locks: LedgerLocks
if settings.use_redis_lock:
    ledger_locks = RedisLedgerLocks.from_url(
        settings.redis_url,
        timeout=settings.ledger_lock_timeout,
        blocking_timeout=settings.ledger_lock_blocking_timeout,
    )
    logger.info("Using Redis locks for booking ledger writes")
else:
    ledger_locks = InMemoryLedgerLocks()
    logger.info("Using in-process locks for booking ledger writes")

shopify_client = ShopifyClient()
booking_ledger = BookingLedger(
    shopify_client,
    namespace=settings.booking_metafield_namespace,
    key=settings.booking_metafield_key,
)
booking_service = BookingService(shopify_client, booking_ledger, ledger_locks)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not shopify_client.is_configured():
        logger.error("Shopify store or API token is missing, remote calls will fail")
    logger.info("Booking server running against %s", shopify_client.base_url)

    try:
        yield
    finally:
        await shopify_client.close()
        if isinstance(ledger_locks, RedisLedgerLocks):
            await ledger_locks.close()
            logger.info("Redis client closed")


def booking_service_dependency() -> BookingService:
    return booking_service


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = any(error.get("type") == "missing" for error in exc.errors())
    message = "Missing required fields" if missing else "Invalid request payload"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse({"error": message}, status_code=status.HTTP_400_BAD_REQUEST)


def create_app() -> FastAPI:
    app = FastAPI(title="Shopify Booking API", lifespan=lifespan)
    api_prefix = settings.api_prefix

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.dependency_overrides[bookings.get_booking_service] = booking_service_dependency

    app.include_router(availability.router, prefix=api_prefix)
    app.include_router(bookings.router, prefix=api_prefix)
    app.include_router(webhooks.router, prefix=api_prefix)
    app.include_router(admin.router, prefix=api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
