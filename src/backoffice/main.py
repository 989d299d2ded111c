import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from tortoise import Tortoise
from tortoise.contrib.fastapi import tortoise_exception_handlers

from .core import logging_config  # noqa: F401  (configures the "backoffice" logger)
from .core.config import TORTOISE_ORM_CONFIG
from .features.auth.router import router as auth_router
from .features.changes.router import router as changes_router
from .features.combos.router import router as combos_router
from .features.customers.router import router as customers_router
from .features.finance.router import router as finance_router
from .features.inventory.router import router as inventory_router
from .features.orders.fulfillment import FulfillmentError, InsufficientStockError
from .features.orders.router import router as orders_router
from .features.reports.router import router as reports_router

logger = logging.getLogger("backoffice.main")  # This logger will inherit from 'backoffice'


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Handles startup and shutdown events, such as connecting to the database.
    """
    logger.info("Starting application...")
    await Tortoise.init(config=TORTOISE_ORM_CONFIG)
    logger.info("Tortoise-ORM has been initialized.")

    yield

    await Tortoise.close_connections()
    logger.info("Tortoise-ORM connections have been closed.")


async def fulfillment_exception_handler(request: Request, exc: FulfillmentError) -> JSONResponse:
    """Answers rejected order operations with their status code and a readable detail."""
    if isinstance(exc, InsufficientStockError):
        logger.info(f"{request.method} {request.url.path} rejected: {exc.detail}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app = FastAPI(
    title="Back Office API",
    description="API for managing customers, stock, combos, orders and finances.",
    version="0.1.0",
    exception_handlers={
        **tortoise_exception_handlers(),
        FulfillmentError: fulfillment_exception_handler,
        Exception: unhandled_exception_handler,
    },
    lifespan=lifespan,
)


@app.get("/")
async def read_root(request: Request):
    """
    Root endpoint for the API.
    """
    client_host = request.client.host if request.client else "unknown client"
    logger.info(f"Root endpoint '/' accessed by {client_host}")
    return {"message": "Welcome to the Back Office API!"}


# Include your routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(customers_router, prefix="/api/v1")
app.include_router(inventory_router, prefix="/api/v1")
app.include_router(combos_router, prefix="/api/v1")
app.include_router(orders_router, prefix="/api/v1")
app.include_router(finance_router, prefix="/api/v1")
app.include_router(reports_router, prefix="/api/v1")
app.include_router(changes_router, prefix="/api/v1")
