"""
Sales analytics

Read-only rollups over completed orders. Bucketing, the settled-status
filter and the cash / bank transfer split are the same ones the shift ledger
uses, so a daily report always agrees with that day's shift.
"""

import calendar
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lunapos.common.dates import (
    DateBucket, Period, day_bucket, local_today, order_in_bucket,
    parse_calendar_date, previous_bucket, range_bucket, resolve_bucket,
    to_local
)
from lunapos.common.exceptions import ValidationError
from lunapos.modules.orders import crud as order_crud
from lunapos.modules.orders.models import Order
from lunapos.modules.orders.pricing import ZERO, line_total, split_by_channel, to_decimal

logger = logging.getLogger(__name__)

TOP_PRODUCTS_IN_REPORT = 10
TOP_PRODUCTS_RANKING = 20

TOP_PRODUCT_PERIODS = ("today", "week", "month")


def _items_of(order: Order) -> list:
    return [item for item in (order.items or []) if isinstance(item, dict)]


def _text(value) -> Optional[str]:
    return None if value is None else str(value)


def _quantity(item: dict) -> int:
    return int(to_decimal(item.get("quantity")))


def product_stats(orders: List[Order], limit: int) -> List[Dict[str, Any]]:
    """Products ranked by units sold; revenue includes toppings."""
    stats: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        for item in _items_of(order):
            key = str(item.get("productId") or item.get("productName") or "")
            entry = stats.setdefault(key, {
                "product_id": _text(item.get("productId")),
                "product_name": _text(item.get("productName")),
                "quantity": 0,
                "revenue": ZERO,
                "orders": 0
            })
            entry["quantity"] += _quantity(item)
            entry["revenue"] += line_total(item)
            entry["orders"] += 1

    ranked = sorted(stats.values(), key=lambda s: s["quantity"], reverse=True)
    return ranked[:limit]


def total_items(orders: List[Order]) -> int:
    return sum(_quantity(item) for order in orders for item in _items_of(order))


def growth_percentage(current: Decimal, previous: Decimal) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round(float((current - previous) / previous * 100), 2)


def _months_back(day: date, months: int) -> date:
    """Same day ``months`` months earlier, clamped to the end of that month."""
    year, month = divmod(day.year * 12 + day.month - 1 - months, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


class AnalyticsService:
    """Revenue reports by day, week, month, quarter and year"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _revenue(self, bucket: DateBucket) -> Decimal:
        cash, bank_transfer = split_by_channel(await order_crud.get_settled_orders(self.db, bucket))
        return cash + bank_transfer

    def _breakdown(self, bucket: DateBucket, orders: List[Order]) -> List[Dict[str, Any]]:
        """Per-day entries for week and month buckets, per-month for quarter and year."""
        if bucket.period in (Period.WEEK, Period.MONTH):
            slots = [day_bucket(day) for day in bucket.days()]
        elif bucket.period in (Period.QUARTER, Period.YEAR):
            slots = [resolve_bucket(Period.MONTH, day) for day in bucket.days() if day.day == 1]
        else:
            return []

        breakdown = []
        for slot in slots:
            slot_orders = [o for o in orders if order_in_bucket(o.business_date, o.created_at, slot)]
            cash, bank_transfer = split_by_channel(slot_orders)
            breakdown.append({
                "label": slot.label,
                "start_date": slot.first_day,
                "end_date": slot.last_day,
                "revenue": cash + bank_transfer,
                "orders": len(slot_orders)
            })
        return breakdown

    async def period_report(self, period: Period, reference) -> Dict[str, Any]:
        """
        Sales report for the bucket of ``period`` containing ``reference``.

        ``reference`` is a date or the period's label (see ``resolve_bucket``).
        Revenue is compared with the bucket right before it.
        """
        bucket = resolve_bucket(period, reference)
        orders = await order_crud.get_settled_orders(self.db, bucket)
        cash, bank_transfer = split_by_channel(orders)
        revenue = cash + bank_transfer

        previous = previous_bucket(bucket)
        previous_revenue = await self._revenue(previous)

        logger.debug(
            f"Analytics {bucket.period.value} {bucket.label}: {len(orders)} orders, "
            f"revenue={revenue}, previous {previous.label}={previous_revenue}"
        )

        return {
            "period": bucket.period,
            "label": bucket.label,
            "start_date": bucket.first_day,
            "end_date": bucket.last_day,
            "total_revenue": revenue,
            "total_orders": len(orders),
            "total_items": total_items(orders),
            "top_products": product_stats(orders, TOP_PRODUCTS_IN_REPORT),
            "cash_amount": cash,
            "bank_transfer_amount": bank_transfer,
            "previous_revenue": previous_revenue,
            "revenue_change": revenue - previous_revenue,
            "revenue_change_percent": growth_percentage(revenue, previous_revenue),
            "breakdown": self._breakdown(bucket, orders),
            "orders": orders if bucket.period == Period.DAY else None
        }

    async def peak_hours(self, day: date) -> Dict[str, Any]:
        """Revenue and order count per hour of creation for one day."""
        orders = await order_crud.get_settled_orders(self.db, day_bucket(day))

        hour_stats = {hour: {"revenue": ZERO, "orders": 0} for hour in range(24)}
        for order in orders:
            if order.created_at is None:
                continue
            slot = hour_stats[to_local(order.created_at).hour]
            slot["revenue"] += to_decimal(order.total_amount)
            slot["orders"] += 1

        busiest = max(hour_stats.items(), key=lambda kv: kv[1]["revenue"])
        peak_hour = busiest[0] if busiest[1]["orders"] else None

        return {"date": day, "hour_stats": hour_stats, "peak_hour": peak_hour}

    async def top_products(
        self,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Top 20 products by units sold.

        An explicit startDate/endDate range wins over ``period``: ``today``,
        ``week`` (last 7 days) or ``month`` (since the same day last month).
        Without either, every completed order counts.
        """
        bucket = None
        if start_date and end_date:
            bucket = range_bucket(parse_calendar_date(start_date), parse_calendar_date(end_date))
        elif period:
            today = local_today()
            if period == "today":
                bucket = day_bucket(today)
            elif period == "week":
                bucket = range_bucket(today - timedelta(days=7), today)
            elif period == "month":
                bucket = range_bucket(_months_back(today, 1), today)
            else:
                raise ValidationError(f"Invalid period '{period}', expected one of: {', '.join(TOP_PRODUCT_PERIODS)}")

        orders = await order_crud.get_settled_orders(self.db, bucket)
        return {
            "period": period,
            "start_date": bucket.first_day if bucket else None,
            "end_date": bucket.last_day if bucket else None,
            "top_products": product_stats(orders, TOP_PRODUCTS_RANKING)
        }
