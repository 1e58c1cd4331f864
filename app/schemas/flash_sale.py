from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.enums.pricing import FlashSaleStatus
from app.schemas.common import blank_to_none


# ---------- Product item inside a flash sale ----------

class FlashSaleItemBase(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    flash_price: float = Field(ge=0)
    stock_limit: int = Field(ge=1)

    normalize_variant = field_validator("variant_id", mode="before")(blank_to_none)


class FlashSaleItemCreate(FlashSaleItemBase):
    pass


class FlashSaleItemResponse(FlashSaleItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


# ---------- Flash sale main schemas ----------

class FlashSaleBase(BaseModel):
    title: str
    start_date: datetime
    end_date: datetime
    status: FlashSaleStatus = FlashSaleStatus.scheduled


class FlashSaleCreate(FlashSaleBase):
    items: List[FlashSaleItemCreate] = Field(min_length=1)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class FlashSaleUpdate(BaseModel):
    title: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[FlashSaleStatus] = None
    items: Optional[List[FlashSaleItemCreate]] = Field(default=None, min_length=1)


class FlashSaleResponse(FlashSaleBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime
    items: List[FlashSaleItemResponse] = []
