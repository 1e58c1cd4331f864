from decimal import Decimal, ROUND_HALF_UP

_CENTS = Decimal("0.01")


def round2(value) -> float:
    """Round a monetary amount half-up to 2 decimal places."""
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))
