from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.database.connection import get_db
from app.schemas.pricing import (
    PricingRecordUpsert,
    PricingRecordResponse,
    TierBandCreate,
    TierBandResponse,
    SpecialPriceCreate,
    SpecialPriceResponse,
)
from app.services.pricing_service.pricing_service import (
    upsert_pricing_record, get_pricing_record, list_pricing_records, delete_pricing_record,
    create_tier_band, list_tier_bands, delete_tier_band,
    create_special_price, list_special_prices, delete_special_price,
)


router = APIRouter(prefix="/pricing", tags=["Pricing Records"])


# ---------- PRICING RECORDS ----------

@router.put("/", response_model=PricingRecordResponse)
def upsert_record(data: PricingRecordUpsert, db: Session = Depends(get_db)):
    return upsert_pricing_record(db, data)

@router.get("/", response_model=List[PricingRecordResponse])
def list_records(db: Session = Depends(get_db)):
    return list_pricing_records(db)

@router.get("/products/{product_id}", response_model=List[PricingRecordResponse])
def get_records(product_id: str, variant_id: Optional[str] = None, db: Session = Depends(get_db)):
    """The record for a variant, or every record of the product when no variant is given."""
    if variant_id:
        record = get_pricing_record(db, product_id, variant_id)
        if not record:
            raise NotFoundError("Pricing not found for product/variant")
        return [record]
    records = list_pricing_records(db, product_id=product_id)
    if not records:
        raise NotFoundError("Pricing not found for product")
    return records

@router.delete("/products/{product_id}")
def delete_record(product_id: str, variant_id: Optional[str] = None, db: Session = Depends(get_db)):
    if not delete_pricing_record(db, product_id, variant_id or None):
        raise NotFoundError("Pricing not found for product/variant")
    return {"message": "Pricing record deleted"}


# ---------- TIER BANDS ----------

@router.post("/tiers", response_model=TierBandResponse)
def create_tier(data: TierBandCreate, db: Session = Depends(get_db)):
    return create_tier_band(db, data)

@router.get("/tiers", response_model=List[TierBandResponse])
def list_tiers(product_id: Optional[str] = None, variant_id: Optional[str] = None, db: Session = Depends(get_db)):
    return list_tier_bands(db, product_id=product_id, variant_id=variant_id)

@router.delete("/tiers/{tier_id}")
def delete_tier(tier_id: int, db: Session = Depends(get_db)):
    if not delete_tier_band(db, tier_id):
        raise NotFoundError("Tier band not found")
    return {"message": "Tier band deleted"}


# ---------- SPECIAL PRICES ----------

@router.post("/specials", response_model=SpecialPriceResponse)
def create_special(data: SpecialPriceCreate, db: Session = Depends(get_db)):
    return create_special_price(db, data)

@router.get("/specials", response_model=List[SpecialPriceResponse])
def list_specials(
    product_id: Optional[str] = None,
    variant_id: Optional[str] = None,
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    return list_special_prices(db, product_id=product_id, variant_id=variant_id, active_only=active_only)

@router.delete("/specials/{special_id}")
def delete_special(special_id: int, db: Session = Depends(get_db)):
    if not delete_special_price(db, special_id):
        raise NotFoundError("Special price not found")
    return {"message": "Special price deleted"}
