import logging
from typing import Optional
from time import perf_counter

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.database.connection import get_db
from app.schemas.pricing import PriceBreakdown
from app.services.pricing_service.calculate_price import resolve_price

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pricing & Calculation"])


@router.get(
    "/pricing/resolve",
    response_model=PriceBreakdown,
)
def resolve_price_route(
    request: Request,
    product_id: str,
    variant_id: Optional[str] = None,
    qty: int = 1,
    currency: Optional[str] = None,
    country: Optional[str] = None,
    state: Optional[str] = None,
    include_tax: bool = True,
    db: Session = Depends(get_db),
):
    """
    Resolve the unit price of a product/variant:

    1. Flash Sale (else Special Price)
    2. Quantity Tier
    3. Tax
    4. Currency
    """
    # ---- measure resolution time ----
    start = perf_counter()
    breakdown = resolve_price(
        db,
        product_id=product_id,
        variant_id=variant_id,
        qty=qty,
        currency=currency,
        country=country,
        state=state,
        include_tax=include_tax,
    )
    duration_ms = (perf_counter() - start) * 1000.0

    if duration_ms > settings.SLOW_RESOLUTION_MS:
        logger.warning(
            "Price resolution for product %s took %.2f ms (qty=%d)",
            product_id,
            duration_ms,
            qty,
        )
        metrics = getattr(request.app.state, "metrics", None)
        if metrics is not None:
            metrics["slow_resolutions"] = metrics.get("slow_resolutions", 0) + 1

    return breakdown
