"""
Orders module - Luna POS

Sales registered at the register, including orders parked ("held") to be
finished later.

Components:
- models.py: Order model and enums
- pricing.py: pure order total and payment settlement rules
- crud.py: queries, including the business day bucketing predicate
- service.py: OrderService, every write plus the shift refresh that follows
- router.py: REST endpoints
- tests.py: unit and API tests
"""

from .models import Order, OrderStatus, PaymentMethod, ItemSize, IceType

__all__ = [
    "Order",
    "OrderStatus",
    "PaymentMethod",
    "ItemSize",
    "IceType",
]
