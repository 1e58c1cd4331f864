from enum import Enum

class DiscountType(str, Enum):
    none = "none"
    flat = "flat"
    percent = "percent"


class TaxType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class FlashSaleStatus(str, Enum):
    scheduled = "scheduled"
    running = "running"
    expired = "expired"
