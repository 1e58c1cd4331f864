from enum import Enum

class CouponType(str, Enum):
    flat = "flat"
    percent = "percent"


class CouponStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class CouponErrorType(str, Enum):
    INVALID_COUPON_CODE = "INVALID_COUPON_CODE"
    CART_NOT_FOUND = "CART_NOT_FOUND"
    EMPTY_CART = "EMPTY_CART"
    COUPON_ALREADY_APPLIED = "COUPON_ALREADY_APPLIED"
    COUPON_NOT_FOUND = "COUPON_NOT_FOUND"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    NO_VALID_ITEMS = "NO_VALID_ITEMS"
    MIN_ORDER_VALUE_NOT_MET = "MIN_ORDER_VALUE_NOT_MET"
    CATEGORY_RESTRICTION = "CATEGORY_RESTRICTION"
    NO_COUPON_APPLIED = "NO_COUPON_APPLIED"
