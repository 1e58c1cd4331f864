import asyncio
import contextlib
import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import PricingError
from app.core.logging import configure_logging
from app.middleware.metrics import MetricsMiddleware, new_metrics
from app.routes import system
from app.database.connection import Base, engine
from app.models import cart, coupon, currency_rate, flash_sale, pricing, product, tax_rule  # noqa: F401
from app.routes.pricing.calculate_price import router as calculate_price_router
from app.routes.pricing.pricing_route import router as pricing_router
from app.routes.flash_sale import router as flash_sales_router
from app.routes.tax import router as tax_router
from app.routes.currency import router as currency_router
from app.routes.coupons import router as coupons_router
from app.routes.cart import router as cart_router
from app.services.scheduler_service import flash_sale_scheduler_loop

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Storefront Price & Discount Resolution Service")

app.add_middleware(MetricsMiddleware)


# resolve must be registered ahead of the /pricing CRUD routes
app.include_router(calculate_price_router)
app.include_router(pricing_router)
app.include_router(flash_sales_router)
app.include_router(tax_router)
app.include_router(currency_router)
app.include_router(coupons_router)
app.include_router(cart_router)
app.include_router(system.router)


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error_type": exc.error_type, "message": exc.message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error_type": "INTERNAL_ERROR", "message": "Internal error"},
    )


@app.on_event("startup")
async def startup_event():
    app.state.start_time = datetime.utcnow()
    app.state.metrics = new_metrics()
    app.state.flash_sale_sweeper = None
    if settings.FLASH_SALE_SWEEP_ENABLED:
        # keep a reference so the task is not garbage collected mid-run
        app.state.flash_sale_sweeper = asyncio.create_task(flash_sale_scheduler_loop())


@app.on_event("shutdown")
async def shutdown_event():
    sweeper = app.state.flash_sale_sweeper
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
