"""
Order pricing and payment settlement

Pure functions, no I/O. Used at order creation, item replacement and held
order completion, and by analytics for per-product revenue.

Line items may be pydantic models, stored JSON dicts or plain mappings.
Missing or malformed numeric fields count as zero: a partially filled line
undercounts instead of failing the sale. A topping without a quantity uses
its declared default of one.
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Tuple

from lunapos.modules.orders.models import PaymentMethod

ZERO = Decimal("0")

CASH_CHANNEL = "cash"
BANK_TRANSFER_CHANNEL = "bank_transfer"

_MISSING = object()


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def to_decimal(value: Any) -> Decimal:
    """Lenient numeric conversion: None, booleans, garbage and NaN/inf become 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not number.is_finite():
        return ZERO
    return number


def topping_total(topping: Any) -> Decimal:
    """Price of one topping selection for a single unit of its drink."""
    quantity = _field(topping, "quantity", _MISSING)
    if quantity is _MISSING:
        quantity = 1
    return to_decimal(_field(topping, "price")) * to_decimal(quantity)


def line_total(item: Any) -> Decimal:
    """price x quantity + (sum of toppings) x quantity"""
    quantity = to_decimal(_field(item, "quantity"))
    unit = to_decimal(_field(item, "price"))
    toppings = _field(item, "toppings")
    if not isinstance(toppings, (list, tuple)):
        toppings = []
    toppings_per_unit = sum((topping_total(t) for t in toppings), ZERO)
    return unit * quantity + toppings_per_unit * quantity


def compute_order_total(items: Optional[Iterable[Any]]) -> Decimal:
    return sum((line_total(item) for item in items or []), ZERO)


def coerce_payment_method(method: Any) -> Optional[PaymentMethod]:
    if method is None or isinstance(method, PaymentMethod):
        return method
    return PaymentMethod(getattr(method, "value", method))


def settle_payment(
    method: Any,
    total: Decimal,
    customer_paid: Any = None,
    change: Any = None
) -> Tuple[PaymentMethod, Decimal, Decimal]:
    """
    Derive (method, customer_paid, change) for a sale.

    - exact_amount: the customer paid the total, no change
    - bank_transfer: no cash changes hands
    - cash (default): amounts handed over by the cashier are kept as given
    """
    method = coerce_payment_method(method) or PaymentMethod.CASH
    if method == PaymentMethod.EXACT_AMOUNT:
        return method, total, ZERO
    if method == PaymentMethod.BANK_TRANSFER:
        return method, ZERO, ZERO
    return method, to_decimal(customer_paid), to_decimal(change)


def payment_channel(method: Any) -> str:
    """Cash drawer channel of an order; legacy orders without a method are cash."""
    method = coerce_payment_method(method)
    if method == PaymentMethod.BANK_TRANSFER:
        return BANK_TRANSFER_CHANNEL
    return CASH_CHANNEL


def split_by_channel(orders: Iterable[Any]) -> Tuple[Decimal, Decimal]:
    """
    (cash, bank_transfer) revenue of ``orders``.

    Orders whose total is missing or not a number are skipped so one corrupt
    record cannot poison a whole day.
    """
    cash = ZERO
    bank_transfer = ZERO
    for order in orders:
        amount = to_decimal(_field(order, "total_amount"))
        if amount == ZERO:
            continue
        if payment_channel(_field(order, "payment_method")) == BANK_TRANSFER_CHANNEL:
            bank_transfer += amount
        else:
            cash += amount
    return cash, bank_transfer
