"""
Pydantic schemas for the analytics module
"""

from pydantic import Field
from typing import Dict, List, Optional
from datetime import date

from lunapos.common.dates import Period
from lunapos.common.schemas import CamelModel, Money
from lunapos.modules.orders.schemas import OrderOut


class ProductStat(CamelModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int = Field(0, description="Units sold")
    revenue: Money = Field(description="Line revenue including toppings")
    orders: int = Field(0, description="Order lines containing the product")


class BreakdownEntry(CamelModel):
    """Revenue of one day (week/month reports) or one month (quarter/year reports)"""
    label: str
    start_date: date
    end_date: date
    revenue: Money
    orders: int


class PeriodReport(CamelModel):
    period: Period
    label: str = Field(description="Bucket label, e.g. 2024-03-15, 2024-W11, 2024-03, 2024-Q1, 2024")
    start_date: date
    end_date: date

    total_revenue: Money
    total_orders: int
    total_items: int
    top_products: List[ProductStat] = Field(default_factory=list)

    cash_amount: Money
    bank_transfer_amount: Money

    previous_revenue: Money = Field(description="Revenue of the previous bucket of the same kind")
    revenue_change: Money
    revenue_change_percent: float

    breakdown: List[BreakdownEntry] = Field(default_factory=list)
    orders: Optional[List[OrderOut]] = Field(None, description="Orders of the day (daily report only)")


class HourSlot(CamelModel):
    revenue: Money
    orders: int


class PeakHoursReport(CamelModel):
    date: date
    hour_stats: Dict[int, HourSlot] = Field(description="Hour of day (0-23) to sales")
    peak_hour: Optional[int] = Field(None, description="Hour with the highest revenue, None without sales")


class TopProductsReport(CamelModel):
    period: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    top_products: List[ProductStat] = Field(default_factory=list)
