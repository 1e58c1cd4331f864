from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.enums.coupons import CouponType, CouponStatus


class CouponBase(BaseModel):
    code: str = Field(min_length=1)
    type: CouponType
    value: float = Field(ge=0)
    min_order_amount: Optional[float] = Field(default=0.0, ge=0)
    max_discount: Optional[float] = Field(default=0.0, ge=0)
    usage_limit: Optional[int] = Field(default=0, ge=0)
    allowed_categories: List[str] = []
    start_date: datetime
    end_date: datetime
    status: CouponStatus = CouponStatus.inactive

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class CouponCreate(CouponBase):
    @model_validator(mode="after")
    def check_window(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class CouponUpdate(BaseModel):
    type: Optional[CouponType] = None
    value: Optional[float] = Field(default=None, ge=0)
    min_order_amount: Optional[float] = Field(default=None, ge=0)
    max_discount: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=0)
    allowed_categories: Optional[List[str]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[CouponStatus] = None


class CouponResponse(CouponBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    used_count: int
    created_at: datetime
    updated_at: datetime
