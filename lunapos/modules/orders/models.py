"""
SQLAlchemy models for the orders module

An order is one sale at the register. Line items are stored as a JSON
snapshot (names and prices as they were at sale time); they are never
re-derived from the catalog afterwards.

Legacy rows may lack ``payment_method``, ``status`` and ``business_date``:
those columns are nullable and every reader treats NULL as cash, completed
and "use created_at" respectively.
"""

from lunapos.database.database import Base
from sqlalchemy import Column, Date, DateTime, Enum, JSON, Numeric, or_
from lunapos.common.mixins import IdMixin, TimestampMixin
import enum


# ===== ENUMS =====

class PaymentMethod(enum.Enum):
    """Payment channel chosen at checkout"""
    CASH = "cash"                    # Cash handed over, change returned
    BANK_TRANSFER = "bank_transfer"  # Bank transfer, no cash in the drawer
    EXACT_AMOUNT = "exact_amount"    # Cash, exact amount, no change


class OrderStatus(enum.Enum):
    COMPLETED = "completed"  # Settled sale
    HELD = "held"            # Parked at the register, not yet a sale


class ItemSize(enum.Enum):
    SMALL = "small"
    LARGE = "large"


class IceType(enum.Enum):
    COMMON = "common"
    SEPARATE = "separate"
    NONE = "none"


def _values(enum_cls):
    return [member.value for member in enum_cls]


# ===== MODELS =====

class Order(Base, IdMixin, TimestampMixin):
    """
    A sale transaction

    ``total_amount`` is always computed server side from ``items``
    (see ``pricing.compute_order_total``).
    """
    __tablename__ = "orders"

    items = Column(JSON, nullable=False, default=list)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)
    customer_paid = Column(Numeric(15, 2), nullable=False, default=0)
    change = Column(Numeric(15, 2), nullable=False, default=0)

    payment_method = Column(
        Enum(PaymentMethod, values_callable=_values, native_enum=False, length=20),
        nullable=True,
        default=PaymentMethod.CASH
    )
    status = Column(
        Enum(OrderStatus, values_callable=_values, native_enum=False, length=20),
        nullable=True,
        default=OrderStatus.COMPLETED,
        index=True
    )

    # Calendar day the sale is attributed to (NULL on legacy rows)
    business_date = Column(Date, nullable=True, index=True)
    held_at = Column(DateTime, nullable=True)

    @classmethod
    def settled_condition(cls):
        """Completed orders, including legacy rows without a status"""
        return or_(cls.status == OrderStatus.COMPLETED, cls.status.is_(None))

    @property
    def is_held(self) -> bool:
        return self.status == OrderStatus.HELD

    @property
    def is_settled(self) -> bool:
        return self.status in (None, OrderStatus.COMPLETED)
