from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from app.enums.coupons import CouponErrorType, CouponType
from app.schemas.common import CamelModel, blank_to_none


# ---------- Requests ----------

class CartItemAdd(CamelModel):
    session_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    variant_id: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    user_id: Optional[str] = None

    normalize_variant = field_validator("variant_id", mode="before")(blank_to_none)


class CartItemUpdate(CamelModel):
    quantity: int = Field(ge=1)


class ApplyCouponRequest(CamelModel):
    # left unconstrained so an empty code reaches the engine's own check
    coupon_code: Optional[str] = None
    session_id: str = Field(min_length=1)


class RemoveCouponRequest(CamelModel):
    session_id: str = Field(min_length=1)


class MergeCartRequest(CamelModel):
    user_id: str = Field(min_length=1)


# ---------- Responses ----------

class CartItemResponse(CamelModel):
    id: int
    product_id: str
    variant_id: Optional[str] = None
    quantity: int
    price: float
    final_price: float
    added_at: datetime


class CartResponse(CamelModel):
    session_id: str
    user_id: Optional[str] = None
    currency: Optional[str] = None
    items: List[CartItemResponse] = []
    subtotal: float
    coupon_code: Optional[str] = None
    discount: float
    discount_details: Optional[Dict[str, Any]] = None
    coupon_applied_at: Optional[datetime] = None
    cart_total: float
    version: int


class DiscountInfo(CamelModel):
    amount: float
    type: CouponType
    coupon_code: str
    details: Dict[str, Any]


class CouponSummary(CamelModel):
    subtotal: float
    discount: float
    total: float
    savings: str  # e.g. "12.5%"
    savings_amount: float


class CouponApplyResult(CamelModel):
    """Discriminated on ``success``; rejections carry ``error_type``."""

    success: bool
    message: str
    error_type: Optional[CouponErrorType] = None
    cart: Optional[CartResponse] = None
    discount: Optional[DiscountInfo] = None
    summary: Optional[CouponSummary] = None
    required_amount: Optional[float] = None
    current_amount: Optional[float] = None


class CartMutationResponse(CamelModel):
    message: str
    cart: CartResponse
    coupon_auto_removed: bool = False
