from decimal import ROUND_HALF_UP, Decimal


def decimal_to_int(d: Decimal, precision: int = 2) -> int:
    return int((d * (Decimal(10) ** precision)).to_integral_value(rounding=ROUND_HALF_UP))
