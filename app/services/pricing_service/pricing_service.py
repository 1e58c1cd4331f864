from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ValidationError
from app.models.pricing import PricingRecord, TierPriceBand, SpecialPriceWindow
from app.schemas.pricing import PricingRecordUpsert, TierBandCreate, SpecialPriceCreate
from app.services.catalog_service import ensure_product_exists


def _variant_filter(column, variant_id: Optional[str]):
    if variant_id:
        return column == variant_id
    return column.is_(None)


def _commit_unique(db: Session, message: str) -> None:
    # the unique constraints back up the pre-checks under concurrent writes
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError(message) from exc


# ===================== PRICING RECORDS =====================

def upsert_pricing_record(db: Session, data: PricingRecordUpsert) -> PricingRecord:
    ensure_product_exists(db, data.product_id, data.variant_id)

    record = get_pricing_record(db, data.product_id, data.variant_id)

    if record is None:
        values = data.model_dump()
        values["currency"] = values["currency"] or settings.DEFAULT_CURRENCY
        record = PricingRecord(**values)
        db.add(record)
    else:
        # only fields sent by the caller; a missing currency keeps the stored one
        values = data.model_dump(exclude_unset=True)
        if not values.get("currency"):
            values.pop("currency", None)
        for key, value in values.items():
            setattr(record, key, value)

    _commit_unique(db, "Pricing record already exists for product/variant")
    db.refresh(record)
    return record


def get_pricing_record(
    db: Session, product_id: str, variant_id: Optional[str] = None
) -> Optional[PricingRecord]:
    return (
        db.query(PricingRecord)
        .filter(
            PricingRecord.product_id == product_id,
            _variant_filter(PricingRecord.variant_id, variant_id),
        )
        .first()
    )


def list_pricing_records(
    db: Session, product_id: Optional[str] = None
) -> List[PricingRecord]:
    query = db.query(PricingRecord)
    if product_id:
        query = query.filter(PricingRecord.product_id == product_id)
    return query.order_by(PricingRecord.id).all()


def delete_pricing_record(
    db: Session, product_id: str, variant_id: Optional[str] = None
) -> bool:
    record = get_pricing_record(db, product_id, variant_id)
    if not record:
        return False
    db.delete(record)
    db.commit()
    return True


# ===================== TIER BANDS =====================

def create_tier_band(db: Session, data: TierBandCreate) -> TierPriceBand:
    ensure_product_exists(db, data.product_id, data.variant_id)
    if find_matching_tier_band(db, data):
        raise ValidationError("Tier band already exists for this quantity range")

    band = TierPriceBand(**data.model_dump())
    db.add(band)
    _commit_unique(db, "Tier band already exists for this quantity range")
    db.refresh(band)
    return band


def find_matching_tier_band(db: Session, data: TierBandCreate) -> Optional[TierPriceBand]:
    """Same (product, variant, min_qty, max_qty); a NULL variant matches NULL."""
    return (
        db.query(TierPriceBand)
        .filter(
            TierPriceBand.product_id == data.product_id,
            _variant_filter(TierPriceBand.variant_id, data.variant_id),
            TierPriceBand.min_qty == data.min_qty,
            TierPriceBand.max_qty == data.max_qty,
        )
        .first()
    )


def list_tier_bands(
    db: Session,
    product_id: Optional[str] = None,
    variant_id: Optional[str] = None,
) -> List[TierPriceBand]:
    query = db.query(TierPriceBand)
    if product_id:
        query = query.filter(TierPriceBand.product_id == product_id)
    if variant_id:
        query = query.filter(TierPriceBand.variant_id == variant_id)
    return query.order_by(TierPriceBand.min_qty.asc(), TierPriceBand.id.asc()).all()


def delete_tier_band(db: Session, tier_id: int) -> bool:
    band = db.query(TierPriceBand).filter(TierPriceBand.id == tier_id).first()
    if not band:
        return False
    db.delete(band)
    db.commit()
    return True


def find_tier_band(
    db: Session, product_id: str, variant_id: Optional[str], qty: int
) -> Optional[TierPriceBand]:
    """
    Band covering ``qty`` for this product/variant.

    Bands may overlap; the one with the highest ``min_qty`` wins.
    """
    return (
        db.query(TierPriceBand)
        .filter(
            TierPriceBand.product_id == product_id,
            _variant_filter(TierPriceBand.variant_id, variant_id),
            TierPriceBand.min_qty <= qty,
            TierPriceBand.max_qty >= qty,
        )
        .order_by(TierPriceBand.min_qty.desc(), TierPriceBand.id.asc())
        .first()
    )


# ===================== SPECIAL PRICING =====================

def create_special_price(db: Session, data: SpecialPriceCreate) -> SpecialPriceWindow:
    ensure_product_exists(db, data.product_id, data.variant_id)
    window = SpecialPriceWindow(**data.model_dump())
    db.add(window)
    db.commit()
    db.refresh(window)
    return window


def list_special_prices(
    db: Session,
    product_id: Optional[str] = None,
    variant_id: Optional[str] = None,
    active_only: bool = False,
) -> List[SpecialPriceWindow]:
    query = db.query(SpecialPriceWindow)
    if product_id:
        query = query.filter(SpecialPriceWindow.product_id == product_id)
    if variant_id:
        query = query.filter(SpecialPriceWindow.variant_id == variant_id)
    if active_only:
        now = datetime.utcnow()
        query = query.filter(
            SpecialPriceWindow.active.is_(True),
            SpecialPriceWindow.start_date <= now,
            SpecialPriceWindow.end_date >= now,
        )
    return query.order_by(SpecialPriceWindow.start_date.desc()).all()


def delete_special_price(db: Session, special_id: int) -> bool:
    window = (
        db.query(SpecialPriceWindow)
        .filter(SpecialPriceWindow.id == special_id)
        .first()
    )
    if not window:
        return False
    db.delete(window)
    db.commit()
    return True


def find_active_special(
    db: Session, product_id: str, variant_id: Optional[str], now: datetime
) -> Optional[SpecialPriceWindow]:
    return (
        db.query(SpecialPriceWindow)
        .filter(
            SpecialPriceWindow.product_id == product_id,
            _variant_filter(SpecialPriceWindow.variant_id, variant_id),
            SpecialPriceWindow.active.is_(True),
            SpecialPriceWindow.start_date <= now,
            SpecialPriceWindow.end_date >= now,
        )
        .order_by(SpecialPriceWindow.id.asc())
        .first()
    )
