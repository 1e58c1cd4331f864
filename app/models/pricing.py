from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    Enum,
    UniqueConstraint,
    event,
)

from app.core.money import round2
from app.database.connection import Base
from app.enums.pricing import DiscountType


def compute_final_price(base_price, discount_type, discount_value) -> float:
    """
    Derive the sellable price from a base price and its standing discount.

    flat:    max(0, base - value)
    percent: base * (1 - min(100, value) / 100)
    none:    base
    """
    price = float(base_price or 0)
    value = float(discount_value or 0)
    discount_type = DiscountType(discount_type or DiscountType.none)

    if discount_type is DiscountType.flat:
        price = max(0.0, price - value)
    elif discount_type is DiscountType.percent:
        price = price * (1 - min(100.0, value) / 100)
    elif discount_type is DiscountType.none:
        pass
    return max(0.0, round2(price))


class PricingRecord(Base):
    __tablename__ = "pricing_records"
    __table_args__ = (
        UniqueConstraint("product_id", "variant_id", name="uq_pricing_product_variant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, nullable=False, index=True)
    variant_id = Column(String, nullable=True, index=True)
    base_price = Column(Float, nullable=False)
    discount_type = Column(
        Enum(DiscountType, native_enum=False, length=16),
        nullable=False,
        default=DiscountType.none,
    )
    discount_value = Column(Float, nullable=False, default=0.0)
    final_price = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="INR")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


@event.listens_for(PricingRecord, "before_insert")
@event.listens_for(PricingRecord, "before_update")
def _derive_final_price(mapper, connection, target):
    target.final_price = compute_final_price(
        target.base_price, target.discount_type, target.discount_value
    )


class TierPriceBand(Base):
    __tablename__ = "tier_price_bands"
    __table_args__ = (
        UniqueConstraint(
            "product_id", "variant_id", "min_qty", "max_qty", name="uq_tier_band"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, nullable=False, index=True)
    variant_id = Column(String, nullable=True, index=True)
    min_qty = Column(Integer, nullable=False)
    max_qty = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class SpecialPriceWindow(Base):
    __tablename__ = "special_price_windows"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, nullable=False, index=True)
    variant_id = Column(String, nullable=True, index=True)
    special_price = Column(Float, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
