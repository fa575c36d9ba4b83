"""
Order pricing

Construction-time computations for a new order: line subtotals, tax,
totals and the order number. Each is called once during placement and
the results are stored; nothing here is re-run against a persisted order.
"""

import secrets
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from microservices.inventory_service.models import ProductKind

from .models import OrderLineItem

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize to cents, half-up"""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def line_subtotal(
    product_kind: ProductKind,
    unit_price: Decimal,
    quantity: int,
    rental_days: Optional[int] = None,
) -> Decimal:
    """unit_price * quantity, times rental_days for rentable items"""
    amount = Decimal(unit_price) * quantity
    if product_kind is ProductKind.RENTABLE:
        amount *= rental_days or 1
    return to_money(amount)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    total_amount: Decimal


def compute_totals(
    lines: Iterable[OrderLineItem],
    tax: Optional[Decimal] = None,
    shipping_cost: Optional[Decimal] = None,
    tax_rate: Decimal = Decimal("0.08"),
) -> OrderTotals:
    """
    Sum the line subtotals and add tax and shipping.

    An explicit tax (including 0) is used as given; only a missing tax
    falls back to ``tax_rate`` applied to the subtotal.
    """
    subtotal = to_money(sum((line.subtotal for line in lines), Decimal("0")))
    tax_amount = to_money(subtotal * Decimal(str(tax_rate))) if tax is None else to_money(tax)
    shipping = to_money(shipping_cost) if shipping_cost is not None else to_money(0)
    return OrderTotals(
        subtotal=subtotal,
        tax=tax_amount,
        shipping_cost=shipping,
        total_amount=subtotal + tax_amount + shipping,
    )


def generate_order_number() -> str:
    """ORD + epoch millis + random suffix; uniqueness is enforced by the table index"""
    return f"ORD{int(time.time() * 1000)}{secrets.token_hex(3).upper()}"
