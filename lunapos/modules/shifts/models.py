"""
SQLAlchemy models for the shifts module

One row per calendar day reconciling the cash drawer with that day's sales.
Only ``start_amount`` is entered by the operator; every other amount and the
order list are derived by ``ShiftLedger.recompute`` from the orders table.
"""

from lunapos.database.database import Base
from sqlalchemy import Column, Date, Integer, JSON, Numeric
from lunapos.common.mixins import IdMixin, TimestampMixin


class DailyShift(Base, IdMixin, TimestampMixin):
    """
    Daily cash drawer reconciliation

    - cash_amount: completed cash / exact_amount / legacy orders of the day
    - bank_transfer_amount: completed bank transfer orders of the day
    - end_amount: cash counted at the end of the day (= cash_amount)
    - net_amount: cash gained during the shift (end_amount - start_amount)
    """
    __tablename__ = "daily_shifts"

    date = Column(Date, nullable=False, unique=True, index=True)

    # Opening float, entered by the operator
    start_amount = Column(Numeric(15, 2), nullable=False, default=0)

    # Derived from orders
    cash_amount = Column(Numeric(15, 2), nullable=False, default=0)
    bank_transfer_amount = Column(Numeric(15, 2), nullable=False, default=0)
    end_amount = Column(Numeric(15, 2), nullable=False, default=0)
    net_amount = Column(Numeric(15, 2), nullable=False, default=0)
    orders = Column(JSON, nullable=False, default=list)

    # Row version for optimistic concurrency between writers
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def order_count(self) -> int:
        return len(self.orders or [])
