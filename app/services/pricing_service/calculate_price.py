import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, PricingError, ValidationError
from app.core.money import round2
from app.enums.pricing import TaxType
from app.models.tax_rule import TaxRule
from app.schemas.pricing import (
    AppliedCurrencyRate,
    AppliedFlashSale,
    AppliedSpecial,
    AppliedTax,
    AppliedTier,
    PriceBreakdown,
)
from app.services.catalog_service import ensure_product_exists
from app.services.currency_service import get_rate
from app.services.flash_sale import find_running_flash_sale_item
from app.services.pricing_service.pricing_service import (
    find_active_special,
    find_tier_band,
    get_pricing_record,
)
from app.services.tax_service import find_tax_rule

logger = logging.getLogger(__name__)


def resolve_price(
    db: Session,
    product_id: str,
    variant_id: Optional[str] = None,
    qty: int = 1,
    currency: Optional[str] = None,
    country: Optional[str] = None,
    state: Optional[str] = None,
    include_tax: bool = True,
    now: Optional[datetime] = None,
) -> PriceBreakdown:
    """
    Resolve the authoritative unit price for one product/variant.

    Resolution order:
    1. Base price from the pricing record (its derived final price)
    2. Running flash sale, else an active special price
    3. Quantity tier band (overrides the promotional price of step 2)
    4. Regional tax (most specific rule, skipped if none)
    5. Currency conversion of the taxed price

    Every monetary value is rounded to 2 places where it is produced.
    """
    if not product_id or not str(product_id).strip():
        raise ValidationError("product_id is required")
    if qty is None or int(qty) < 1:
        raise ValidationError("qty must be at least 1")
    qty = int(qty)
    variant_id = variant_id or None

    try:
        return _resolve(
            db,
            product_id=product_id,
            variant_id=variant_id,
            qty=qty,
            currency=currency,
            country=country,
            state=state,
            include_tax=include_tax,
            now=now or datetime.utcnow(),
        )
    except SQLAlchemyError as exc:
        logger.exception("Store failure while resolving price for %s", product_id)
        raise PricingError("Price resolution failed") from exc


def _resolve(
    db: Session,
    product_id: str,
    variant_id: Optional[str],
    qty: int,
    currency: Optional[str],
    country: Optional[str],
    state: Optional[str],
    include_tax: bool,
    now: datetime,
) -> PriceBreakdown:
    # ---- 1) Product / variant / pricing record ----
    ensure_product_exists(db, product_id, variant_id)

    record = get_pricing_record(db, product_id, variant_id)
    if record is None or not record.active:
        raise NotFoundError("Pricing not found for product/variant")

    breakdown = PriceBreakdown(
        product_id=product_id,
        variant_id=variant_id,
        currency=record.currency,
        qty=qty,
        base_price=float(record.final_price),
    )
    applied = breakdown.applied
    price = breakdown.base_price

    # ---- 2) Flash sale, exclusive with special pricing ----
    flash = find_running_flash_sale_item(db, product_id, variant_id, now)
    if flash is not None:
        sale, item = flash
        applied.flash_sale = AppliedFlashSale(
            sale_id=sale.id, flash_price=float(item.flash_price)
        )
        price = float(item.flash_price)
    else:
        special = find_active_special(db, product_id, variant_id, now)
        if special is not None:
            applied.special = AppliedSpecial(
                special_id=special.id, special_price=float(special.special_price)
            )
            price = float(special.special_price)

    # ---- 3) Tier band, always attempted ----
    # A matching band replaces any promotional price above.
    tier = find_tier_band(db, product_id, variant_id, qty)
    if tier is not None:
        applied.tier = AppliedTier(
            tier_id=tier.id,
            price=float(tier.price),
            range=[tier.min_qty, tier.max_qty],
        )
        price = float(tier.price)

    # ---- 4) Tax ----
    if include_tax:
        rule = find_tax_rule(db, country, state)
        if rule is not None:
            tax_amount = compute_tax_amount(rule, price)
            applied.tax = AppliedTax(
                rule_id=rule.id,
                type=rule.type,
                value=float(rule.value),
                amount=tax_amount,
            )
            price = round2(price + tax_amount)

    # ---- 5) Currency conversion, strictly after tax ----
    if currency:
        target = currency.strip().upper()
        if target and target != breakdown.currency:
            rate = get_rate(db, breakdown.currency, target)
            if rate is None:
                raise NotFoundError(
                    f"Conversion rate {breakdown.currency}->{target} not found"
                )
            applied.currency_rate = AppliedCurrencyRate(
                from_currency=breakdown.currency, to=target, rate=float(rate.rate)
            )
            price = round2(price * float(rate.rate))
            breakdown.currency = target

    breakdown.final_price = price
    return breakdown


def compute_tax_amount(rule: TaxRule, price: float) -> float:
    tax_type = TaxType(rule.type)
    if tax_type is TaxType.percentage:
        return round2(price * float(rule.value) / 100)
    if tax_type is TaxType.fixed:
        return round2(float(rule.value))
    raise ValueError(f"Unsupported tax type: {rule.type}")
