# stockroom/utils/decimal_utils.py
from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")

def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal | None:
    """unit_price x quantity, or None when no price was given."""
    if unit_price is None:
        return None
    return (to_decimal(unit_price) * quantity).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def ratio(numerator, denominator) -> float:
    if not denominator:
        return 0.0
    return float(
        (Decimal(numerator) / Decimal(denominator)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    )
