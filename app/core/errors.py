"""
Error taxonomy for the pricing and cart services.

Hard failures are raised as exceptions and rendered by the handlers
registered in ``app.main``. Expected coupon eligibility outcomes are not
exceptions; they travel as ``CouponApplyResult`` payloads.
"""


class PricingError(Exception):
    """Base class; unexpected store failures surface as this."""

    status_code = 500
    error_type = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)
        self.message = message


class ValidationError(PricingError):
    status_code = 400
    error_type = "VALIDATION_ERROR"


class NotFoundError(PricingError):
    status_code = 404
    error_type = "NOT_FOUND"


class ConcurrentModificationError(PricingError):
    status_code = 409
    error_type = "CONCURRENT_MODIFICATION"
