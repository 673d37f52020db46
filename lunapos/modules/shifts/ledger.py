"""
Daily shift ledger

Keeps one ``DailyShift`` per calendar day consistent with the orders table:

- get_or_create: shift for a day, created with zeroed totals on first access
- recompute: rebuild the derived fields from the day's completed orders
- refresh: get_or_create + recompute + commit, serialized per day
- set_opening_float: operator edit of ``start_amount``

The derived fields are always a pure function of the orders attributed to
the day plus the stored opening float, so running ``refresh`` twice in a row
leaves the row unchanged.

Writers of the same day are serialized in-process by a per-day lock. Writers
in other processes are detected by the row version and retried.
"""

import asyncio
import logging
import weakref
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from lunapos.common.dates import day_bucket, range_bucket
from lunapos.common.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from lunapos.core.config import settings
from lunapos.modules.orders import crud as order_crud
from lunapos.modules.orders.pricing import ZERO, split_by_channel, to_decimal
from lunapos.modules.shifts.models import DailyShift

logger = logging.getLogger(__name__)


class DayLocks:
    """
    asyncio.Lock per (event loop, day); locks cannot be shared across loops.

    Locks are held weakly: a day's lock lives only while a writer holds it or
    waits on it.
    """

    def __init__(self):
        self._locks = weakref.WeakKeyDictionary()

    def _per_loop(self) -> "weakref.WeakValueDictionary[date, asyncio.Lock]":
        loop = asyncio.get_running_loop()
        per_loop = self._locks.get(loop)
        if per_loop is None:
            per_loop = self._locks[loop] = weakref.WeakValueDictionary()
        return per_loop

    def lock_for(self, day: date) -> asyncio.Lock:
        per_loop = self._per_loop()
        lock = per_loop.get(day)
        if lock is None:
            lock = asyncio.Lock()
            per_loop[day] = lock
        return lock

    def tracked_days(self) -> List[date]:
        return list(self._per_loop().keys())


day_locks = DayLocks()


class ShiftLedger:
    """Daily shift bookkeeping on top of an AsyncSession"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===== READS =====

    async def get_shift(self, shift_id: UUID) -> DailyShift:
        result = await self.db.execute(select(DailyShift).where(DailyShift.id == shift_id))
        shift = result.scalar_one_or_none()
        if not shift:
            raise NotFoundError("Shift not found")
        return shift

    async def find_by_date(self, day: date) -> Optional[DailyShift]:
        result = await self.db.execute(select(DailyShift).where(DailyShift.date == day))
        return result.scalar_one_or_none()

    async def list_shifts(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[DailyShift]:
        """Shifts newest first, optionally limited to an inclusive day range."""
        query = select(DailyShift)
        if start_date and end_date:
            bucket = range_bucket(start_date, end_date)
            query = query.where(DailyShift.date.between(bucket.first_day, bucket.last_day))
        elif start_date:
            query = query.where(DailyShift.date >= start_date)
        elif end_date:
            query = query.where(DailyShift.date <= end_date)

        result = await self.db.execute(query.order_by(desc(DailyShift.date)))
        return result.scalars().all()

    # ===== DERIVATION =====

    async def get_or_create(self, day: date) -> DailyShift:
        """
        Shift of ``day``, inserted with zeroed totals if missing.

        The insert is flushed, not committed. When another writer inserted the
        same day first, the unique date constraint fires and the winner's row
        is returned instead.
        """
        shift = await self.find_by_date(day)
        if shift:
            return shift

        shift = DailyShift(
            date=day,
            start_amount=ZERO,
            cash_amount=ZERO,
            bank_transfer_amount=ZERO,
            end_amount=ZERO,
            net_amount=ZERO,
            orders=[]
        )
        self.db.add(shift)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"Shift for {day.isoformat()} created concurrently, reloading")
            shift = await self.find_by_date(day)
            if shift is None:
                raise
            return shift

        logger.info(f"Created shift for {day.isoformat()}")
        return shift

    async def recompute(self, shift: DailyShift) -> DailyShift:
        """Overwrite the derived fields of ``shift`` from its day's completed orders."""
        orders = await order_crud.get_settled_orders(self.db, day_bucket(shift.date))
        cash, bank_transfer = split_by_channel(orders)

        shift.cash_amount = cash
        shift.bank_transfer_amount = bank_transfer
        shift.end_amount = cash
        shift.net_amount = cash - to_decimal(shift.start_amount)
        shift.orders = [str(order.id) for order in orders]
        return shift

    async def refresh(self, day: date) -> DailyShift:
        """
        Bring the shift of ``day`` in line with the orders table and commit.

        Lost races (concurrent insert of the day, row version changed by
        another process) are retried up to LEDGER_MAX_RETRIES times.
        """
        async with day_locks.lock_for(day):
            attempts = max(1, settings.LEDGER_MAX_RETRIES)
            for attempt in range(1, attempts + 1):
                try:
                    shift = await self.get_or_create(day)
                    await self.recompute(shift)
                    await self.db.commit()
                    logger.debug(
                        f"Shift {day.isoformat()} recomputed: cash={shift.cash_amount} "
                        f"bank_transfer={shift.bank_transfer_amount} orders={len(shift.orders)}"
                    )
                    return shift
                except (StaleDataError, IntegrityError) as e:
                    await self.db.rollback()
                    if attempt == attempts:
                        logger.error(f"Shift {day.isoformat()} refresh gave up after {attempt} attempts: {e}")
                        raise
                    logger.warning(f"Shift {day.isoformat()} refresh conflict (attempt {attempt}), retrying")

    # ===== OPERATOR EDITS =====

    async def set_opening_float(self, shift_id: UUID, amount) -> DailyShift:
        """Set ``start_amount``; net_amount follows from the stored end amount."""
        amount = to_decimal(amount) if amount is not None else None
        if amount is None or amount < ZERO:
            raise ValidationError("Start amount must be a non-negative number")

        shift = await self.get_shift(shift_id)
        async with day_locks.lock_for(shift.date):
            try:
                await self.db.refresh(shift)
                shift.start_amount = amount
                shift.net_amount = to_decimal(shift.end_amount) - amount
                await self.db.commit()
            except StaleDataError:
                await self.db.rollback()
                raise ConflictError("Shift was modified concurrently, please retry")
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Error updating start amount of shift {shift_id}: {e}")
                raise PersistenceError("Could not update the shift")

        logger.info(f"Shift {shift.date.isoformat()} start amount set to {amount}")
        return shift
