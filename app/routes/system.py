import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.enums.coupons import CouponStatus
from app.enums.pricing import FlashSaleStatus
from app.models.cart import Cart
from app.models.coupon import Coupon
from app.models.flash_sale import FlashSale
from app.schemas.system import HealthCheckResponse, SystemMetricsResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


def _uptime_seconds(request: Request, now: datetime) -> float:
    start_time = getattr(request.app.state, "start_time", now)
    return (now - start_time).total_seconds()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Lightweight public health check.
    Returns ok + DB connectivity check (SELECT 1).
    """
    now = datetime.utcnow()

    db_ok = True
    extra = {}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Health check could not reach the database: %s", e)
        db_ok = False
        extra["db_error"] = str(e)

    return HealthCheckResponse(
        status="ok" if db_ok else "degraded",
        now=now,
        uptime_seconds=_uptime_seconds(request, now),
        db_ok=db_ok,
        extra=extra or None,
    )


@router.get("/metrics", response_model=SystemMetricsResponse)
def system_metrics(request: Request, db: Session = Depends(get_db)):
    """
    System metrics in JSON form.
    Uses in-process counters stored on app.state.metrics and DB-derived metrics.
    """
    now = datetime.utcnow()

    metrics = getattr(request.app.state, "metrics", None) or {}
    requests_count = int(metrics.get("requests", 0))
    total_response_ms = float(metrics.get("total_response_ms", 0.0))
    avg_response_ms = (total_response_ms / requests_count) if requests_count > 0 else None

    running_flash_sales = (
        db.query(func.count(FlashSale.id))
        .filter(
            FlashSale.status == FlashSaleStatus.running,
            FlashSale.start_date <= now,
            FlashSale.end_date >= now,
        )
        .scalar()
    ) or 0

    active_coupons = (
        db.query(func.count(Coupon.id))
        .filter(
            Coupon.status == CouponStatus.active,
            Coupon.start_date <= now,
            Coupon.end_date >= now,
        )
        .scalar()
    ) or 0

    carts_with_coupon = (
        db.query(func.count(Cart.id)).filter(Cart.coupon_code.isnot(None)).scalar()
    ) or 0

    return SystemMetricsResponse(
        uptime_seconds=_uptime_seconds(request, now),
        now=now,
        requests_count=requests_count,
        avg_response_ms=avg_response_ms,
        slow_resolutions=int(metrics.get("slow_resolutions", 0)),
        running_flash_sales=int(running_flash_sales),
        active_coupons=int(active_coupons),
        carts_with_coupon=int(carts_with_coupon),
    )
