"""
Pydantic schemas for the shifts module
"""

from pydantic import Field, computed_field
from typing import List
from uuid import UUID
from datetime import date, datetime

from lunapos.common.schemas import CamelModel, Money


class ShiftOut(CamelModel):
    id: UUID
    date: date
    start_amount: Money = Field(description="Opening float")
    cash_amount: Money = Field(description="Cash revenue of the day")
    bank_transfer_amount: Money = Field(description="Bank transfer revenue of the day")
    end_amount: Money = Field(description="Cash in the drawer from sales")
    net_amount: Money = Field(description="end_amount - start_amount")
    orders: List[str] = Field(default_factory=list, description="Orders behind the totals")
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="orderCount")
    @property
    def order_count(self) -> int:
        return len(self.orders)

    @computed_field(alias="totalRevenue")
    @property
    def total_revenue(self) -> Money:
        return self.cash_amount + self.bank_transfer_amount

    @computed_field(alias="drawerTotal")
    @property
    def drawer_total(self) -> Money:
        """Opening float plus cash sales: what the drawer should hold"""
        return self.start_amount + self.end_amount


class ShiftStartAmountUpdate(CamelModel):
    start_amount: Money = Field(..., ge=0, description="Opening float")
