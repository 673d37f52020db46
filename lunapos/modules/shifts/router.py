"""
API Router for daily shifts.
"""
from typing import List, Optional
from fastapi import APIRouter, Query
from uuid import UUID

from lunapos.common.dates import local_today, parse_calendar_date
from lunapos.dependencies.dbDependecies import async_db_dependency

from . import schemas
from .ledger import ShiftLedger

router = APIRouter(
    prefix="/shifts",
    tags=["Shifts"],
    responses={404: {"description": "Not found"}}
)


@router.get("", response_model=schemas.ShiftOut)
async def get_shift(
    db: async_db_dependency,
    date: Optional[str] = Query(None, description="Day YYYY-MM-DD, defaults to today")
):
    """
    Shift of a day, created on first access.

    Totals are recomputed from the day's orders on every read.
    """
    day = parse_calendar_date(date) if date else local_today()
    return await ShiftLedger(db).refresh(day)


@router.get("/list", response_model=List[schemas.ShiftOut])
async def list_shifts(
    db: async_db_dependency,
    start_date: Optional[str] = Query(None, alias="startDate", description="First day YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Last day YYYY-MM-DD (inclusive)")
):
    """Stored shifts, newest first. Either bound may be given alone."""
    return await ShiftLedger(db).list_shifts(
        parse_calendar_date(start_date) if start_date else None,
        parse_calendar_date(end_date) if end_date else None
    )


@router.put("/{shift_id}/start-amount", response_model=schemas.ShiftOut)
async def update_start_amount(
    shift_id: UUID,
    payload: schemas.ShiftStartAmountUpdate,
    db: async_db_dependency
):
    """Set the opening float of a shift."""
    return await ShiftLedger(db).set_opening_float(shift_id, payload.start_amount)
