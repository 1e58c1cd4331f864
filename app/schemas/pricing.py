from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.enums.pricing import DiscountType, TaxType
from app.schemas.common import CamelModel, blank_to_none


# ---------- Pricing records ----------

class PricingRecordUpsert(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    base_price: float = Field(ge=0)
    discount_type: DiscountType = DiscountType.none
    discount_value: float = Field(default=0.0, ge=0)
    currency: Optional[str] = None
    active: bool = True

    normalize_variant = field_validator("variant_id", mode="before")(blank_to_none)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.strip().upper() if v else v


class PricingRecordResponse(PricingRecordUpsert):
    model_config = ConfigDict(from_attributes=True)

    id: int
    final_price: float
    currency: str
    created_at: datetime
    updated_at: datetime


# ---------- Tier bands ----------

class TierBandCreate(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    min_qty: int = Field(ge=1)
    max_qty: int = Field(ge=1)
    price: float = Field(ge=0)

    normalize_variant = field_validator("variant_id", mode="before")(blank_to_none)

    @model_validator(mode="after")
    def check_range(self):
        if self.min_qty > self.max_qty:
            raise ValueError("min_qty cannot be greater than max_qty")
        return self


class TierBandResponse(TierBandCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


# ---------- Special pricing ----------

class SpecialPriceCreate(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    special_price: float = Field(ge=0)
    start_date: datetime
    end_date: datetime
    active: bool = True

    normalize_variant = field_validator("variant_id", mode="before")(blank_to_none)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class SpecialPriceResponse(SpecialPriceCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


# ---------- Price breakdown (resolution result) ----------

class AppliedFlashSale(CamelModel):
    sale_id: int
    flash_price: float


class AppliedSpecial(CamelModel):
    special_id: int
    special_price: float


class AppliedTier(CamelModel):
    tier_id: int
    price: float
    range: List[int]


class AppliedTax(CamelModel):
    rule_id: int
    type: TaxType
    value: float
    amount: float


class AppliedCurrencyRate(CamelModel):
    from_currency: str = Field(alias="from")
    to: str
    rate: float


class AppliedOverrides(CamelModel):
    flash_sale: Optional[AppliedFlashSale] = None
    special: Optional[AppliedSpecial] = None
    tier: Optional[AppliedTier] = None
    tax: Optional[AppliedTax] = None
    currency_rate: Optional[AppliedCurrencyRate] = None


class PriceBreakdown(CamelModel):
    product_id: str
    variant_id: Optional[str] = None
    currency: str
    qty: int
    base_price: float
    applied: AppliedOverrides = Field(default_factory=AppliedOverrides)
    final_price: Optional[float] = None
