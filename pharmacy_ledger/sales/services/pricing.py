# sales/services/pricing.py

"""
SALE MONEY MATH (INTEGER MINOR UNITS)

Rules:
- Every stored amount is an integer count of minor units (cents)
- Conversions and percentages round HALF-UP to the nearest minor unit
- Payment totals must match the sale total EXACTLY (no epsilon)
- Refund amounts are prorated per unit; the refund that exhausts a line
  takes whatever is left so refunds of a line always sum to its total
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

from inventory.services.exceptions import ValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _to_decimal(value, *, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a decimal amount")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a decimal amount")


def to_minor(value, *, name: str = "amount") -> int:
    amount = _to_decimal(value, name=name)
    if amount < 0:
        raise ValidationError(f"{name} cannot be negative")
    return int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * HUNDRED).to_integral_value())


def from_minor(minor: int) -> Decimal:
    return (Decimal(int(minor)) / HUNDRED).quantize(CENT)


def percent_of(minor: int, percent) -> int:
    share = Decimal(int(minor)) * Decimal(percent) / HUNDRED
    return int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _require_percent(value, *, name: str) -> Decimal:
    pct = _to_decimal(value if value is not None else "0", name=name)
    if pct < 0 or pct > HUNDRED:
        raise ValidationError(f"{name} must be between 0 and 100")
    return pct


@dataclass(frozen=True)
class LinePrice:
    quantity: int
    unit_price_minor: int
    discount_percent: Decimal
    subtotal_minor: int
    discount_minor: int
    tax_minor: int
    total_minor: int


@dataclass(frozen=True)
class SaleTotals:
    subtotal_minor: int
    discount_minor: int
    tax_minor: int
    total_minor: int


def price_line(*, unit_price, quantity: int, discount_percent=None, tax_rate=None) -> LinePrice:
    unit_price_minor = to_minor(unit_price, name="unit_price")
    discount_pct = _require_percent(discount_percent, name="discount_percent")
    tax_pct = _require_percent(tax_rate, name="tax_rate")

    subtotal = unit_price_minor * int(quantity)
    discount = percent_of(subtotal, discount_pct)
    taxable = subtotal - discount
    tax = percent_of(taxable, tax_pct)

    return LinePrice(
        quantity=int(quantity),
        unit_price_minor=unit_price_minor,
        discount_percent=discount_pct,
        subtotal_minor=subtotal,
        discount_minor=discount,
        tax_minor=tax,
        total_minor=taxable + tax,
    )


def total_sale(lines: Iterable[LinePrice]) -> SaleTotals:
    lines = list(lines)
    return SaleTotals(
        subtotal_minor=sum(p.subtotal_minor for p in lines),
        discount_minor=sum(p.discount_minor for p in lines),
        tax_minor=sum(p.tax_minor for p in lines),
        total_minor=sum(p.total_minor for p in lines),
    )


def validate_payments(
    total_minor: int,
    *,
    customer_payment=None,
    insurance_payment=None,
) -> tuple[Optional[int], Optional[int]]:
    """
    Optional payment split. When any leg is given, the legs must add up to
    the sale total to the minor unit.
    """
    if customer_payment is None and insurance_payment is None:
        return None, None

    customer_minor = to_minor(customer_payment or 0, name="customer_payment")
    insurance_minor = to_minor(insurance_payment or 0, name="insurance_payment")

    if customer_minor + insurance_minor != total_minor:
        raise ValidationError(
            f"Payment amounts ({from_minor(customer_minor + insurance_minor)}) "
            f"do not match sale total ({from_minor(total_minor)})"
        )

    return customer_minor, insurance_minor


def prorate_refund(
    *,
    line_total_minor: int,
    line_quantity: int,
    refunded_quantity: int,
    refunded_minor: int,
    quantity: int,
) -> int:
    if refunded_quantity + quantity >= line_quantity:
        return line_total_minor - refunded_minor

    share = Decimal(line_total_minor) * Decimal(quantity) / Decimal(line_quantity)
    return int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
