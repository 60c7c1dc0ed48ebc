from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[int, float, Decimal]


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def minutes_amount_cents(minutes: Optional[int], rate_cents: int) -> int:
    """Amount for a span of minutes at an hourly rate.

    Computed as minutes * rate / 60 in Decimal so fractional hours never pass
    through a float (90 min at 6667 -> 10001).
    """
    if not minutes or not rate_cents:
        return 0
    exact = Decimal(int(minutes)) * Decimal(int(rate_cents)) / Decimal(60)
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_amount_cents(quantity: Number, rate_cents: int) -> int:
    return round_half_up(Decimal(str(quantity)) * Decimal(int(rate_cents)))


def vat_amount_cents(amount_cents: int, vat_percent: Optional[Number]) -> int:
    if vat_percent is None:
        return 0
    return round_half_up(Decimal(int(amount_cents)) * Decimal(str(vat_percent)) / Decimal(100))
