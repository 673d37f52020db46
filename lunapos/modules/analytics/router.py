"""
API Router for sales analytics.
"""
from typing import Optional
from fastapi import APIRouter, Query

from lunapos.common.dates import Period, parse_calendar_date
from lunapos.dependencies.dbDependecies import async_db_dependency

from . import schemas
from .service import AnalyticsService

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"]
)


@router.get("/daily", response_model=schemas.PeriodReport)
async def daily_analytics(
    db: async_db_dependency,
    date: str = Query(..., description="Day YYYY-MM-DD")
):
    """Sales of one day compared with the day before."""
    return await AnalyticsService(db).period_report(Period.DAY, date)


@router.get("/weekly", response_model=schemas.PeriodReport)
async def weekly_analytics(
    db: async_db_dependency,
    week: str = Query(..., description="ISO week YYYY-Www (weeks start on Monday)")
):
    """Sales of one ISO week with a per-day breakdown."""
    return await AnalyticsService(db).period_report(Period.WEEK, week)


@router.get("/monthly", response_model=schemas.PeriodReport)
async def monthly_analytics(
    db: async_db_dependency,
    month: str = Query(..., description="Month YYYY-MM")
):
    """Sales of one month with a per-day breakdown."""
    return await AnalyticsService(db).period_report(Period.MONTH, month)


@router.get("/quarterly", response_model=schemas.PeriodReport)
async def quarterly_analytics(
    db: async_db_dependency,
    quarter: str = Query(..., description="Quarter YYYY-Qn")
):
    """Sales of one quarter with a per-month breakdown."""
    return await AnalyticsService(db).period_report(Period.QUARTER, quarter)


@router.get("/yearly", response_model=schemas.PeriodReport)
async def yearly_analytics(
    db: async_db_dependency,
    year: str = Query(..., description="Year YYYY")
):
    """Sales of one year with a per-month breakdown."""
    return await AnalyticsService(db).period_report(Period.YEAR, year)


@router.get("/peak-hours", response_model=schemas.PeakHoursReport)
async def peak_hours(
    db: async_db_dependency,
    date: str = Query(..., description="Day YYYY-MM-DD")
):
    """Revenue and order count per hour of the day."""
    return await AnalyticsService(db).peak_hours(parse_calendar_date(date))


@router.get("/products", response_model=schemas.TopProductsReport)
async def top_products(
    db: async_db_dependency,
    period: Optional[str] = Query(None, description="today, week or month"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate")
):
    """Best sellers by units sold (top 20)."""
    return await AnalyticsService(db).top_products(period, start_date, end_date)
