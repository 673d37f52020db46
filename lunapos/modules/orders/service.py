"""
Business logic for the orders module

OrderService is the only writer of orders. Every mutation follows the same
sequence:

1. validate and apply the change to the order row
2. commit it (storage failures roll back and surface as PersistenceError)
3. refresh the shift of each affected day through ``_apply_ledger_effects``

Step 3 runs in its own session with its own timeout. A failed or slow
refresh is logged and swallowed: the order change already happened and the
client is told so. The next refresh of that day repairs the shift.
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lunapos.common.dates import (
    day_bucket, effective_business_day, local_now, local_today,
    parse_calendar_date, range_bucket
)
from lunapos.common.exceptions import (
    ConflictError, NotFoundError, OrderNotHeldError, PersistenceError, ValidationError
)
from lunapos.core.config import settings
from lunapos.database.database import AsyncSessionLocal
from lunapos.modules.orders import crud
from lunapos.modules.orders.models import Order, OrderStatus, PaymentMethod
from lunapos.modules.orders.pricing import compute_order_total, settle_payment, to_decimal
from lunapos.modules.orders.schemas import OrderComplete, OrderCreate, OrderItemIn, OrderItemsUpdate
from lunapos.modules.shifts.ledger import ShiftLedger

logger = logging.getLogger(__name__)


def _snapshot(items: List[OrderItemIn]) -> list:
    """JSON snapshot of line items as stored on the order"""
    return [item.model_dump(mode="json", by_alias=True) for item in items]


class OrderService:
    """Create, edit, hold, complete and delete orders, keeping shifts in sync"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===== HELPERS =====

    async def _get_or_404(self, order_id: UUID) -> Order:
        order = await crud.get_order(self.db, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def _persist(self, order: Order, action: str) -> Order:
        try:
            return await crud.save_order(self.db, order)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error trying to {action} order: {e}")
            raise PersistenceError(f"Could not {action} the order")

    async def _apply_ledger_effects(self, *days: Optional[date]) -> None:
        """Refresh the shift of every affected day; failures never propagate."""
        for day in dict.fromkeys(d for d in days if d is not None):
            try:
                async with AsyncSessionLocal() as session:
                    await asyncio.wait_for(
                        ShiftLedger(session).refresh(day),
                        timeout=settings.LEDGER_RECOMPUTE_TIMEOUT
                    )
            except asyncio.TimeoutError:
                logger.error(
                    f"Shift refresh for {day.isoformat()} timed out after "
                    f"{settings.LEDGER_RECOMPUTE_TIMEOUT}s; shift may be stale"
                )
            except Exception:
                logger.exception(f"Shift refresh for {day.isoformat()} failed; shift may be stale")

    # ===== READS =====

    async def get(self, order_id: UUID) -> Order:
        return await self._get_or_404(order_id)

    async def list_orders(
        self,
        date: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        status: Optional[OrderStatus] = None
    ) -> List[Order]:
        """Orders newest first, filtered by a day or an inclusive day range."""
        bucket = None
        if date:
            bucket = day_bucket(parse_calendar_date(date))
        elif start_date and end_date:
            bucket = range_bucket(parse_calendar_date(start_date), parse_calendar_date(end_date))
        elif start_date or end_date:
            raise ValidationError("startDate and endDate must be provided together")

        return await crud.get_orders(self.db, bucket=bucket, status=status)

    async def list_held(self) -> List[Order]:
        return await crud.get_held_orders(self.db, settings.HELD_ORDERS_LIMIT)

    # ===== MUTATIONS =====

    async def create(self, payload: OrderCreate) -> Order:
        if not payload.items:
            raise ValidationError("Order must contain at least one item")

        total = compute_order_total(payload.items)
        method, customer_paid, change = settle_payment(
            payload.payment_method, total, payload.customer_paid, payload.change
        )
        business_date = parse_calendar_date(payload.order_date) if payload.order_date else local_today()
        status = payload.status or OrderStatus.COMPLETED

        order = Order(
            items=_snapshot(payload.items),
            total_amount=total,
            customer_paid=customer_paid,
            change=change,
            payment_method=method,
            status=status,
            business_date=business_date,
            held_at=local_now() if status == OrderStatus.HELD else None
        )
        order = await self._persist(order, "create")
        logger.info(f"Order {order.id} created: total={total} method={method.value} status={status.value}")

        await self._apply_ledger_effects(effective_business_day(order.business_date, order.created_at))
        return order

    async def update_items(self, order_id: UUID, payload: OrderItemsUpdate) -> Order:
        """Replace the line items and reprice; an empty list leaves the items as they are."""
        order = await self._get_or_404(order_id)

        if payload.items:
            total = compute_order_total(payload.items)
            order.items = _snapshot(payload.items)
            order.total_amount = total
            if order.payment_method == PaymentMethod.EXACT_AMOUNT:
                order.customer_paid = total

        order = await self._persist(order, "update")
        logger.info(f"Order {order.id} items updated: total={order.total_amount}")

        await self._apply_ledger_effects(effective_business_day(order.business_date, order.created_at))
        return order

    async def delete(self, order_id: UUID) -> dict:
        order = await self._get_or_404(order_id)
        day = effective_business_day(order.business_date, order.created_at)

        try:
            await crud.delete_order(self.db, order)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error trying to delete order {order_id}: {e}")
            raise PersistenceError("Could not delete the order")
        logger.info(f"Order {order_id} deleted")

        await self._apply_ledger_effects(day)
        return {"message": "Order deleted successfully"}

    async def hold(self, order_id: UUID) -> Order:
        """Park an order at the register; it stops counting toward its day."""
        order = await self._get_or_404(order_id)
        if order.is_held:
            raise ConflictError("Order is already held")

        order.status = OrderStatus.HELD
        order.held_at = local_now()
        order = await self._persist(order, "hold")
        logger.info(f"Order {order.id} held")

        await self._apply_ledger_effects(effective_business_day(order.business_date, order.created_at))
        return order

    async def restore(self, order_id: UUID) -> Order:
        """Return a held order to the register. Nothing is written."""
        order = await self._get_or_404(order_id)
        if not order.is_held:
            raise OrderNotHeldError("Order is not held")
        return order

    async def complete(self, order_id: UUID, payload: OrderComplete) -> Order:
        """Finalize a held order as a sale, optionally with new items, payment and date."""
        order = await self._get_or_404(order_id)
        if not order.is_held:
            raise OrderNotHeldError("Order is not held")

        previous_day = effective_business_day(order.business_date, order.created_at)

        if payload.items is not None:
            if not payload.items:
                raise ValidationError("Order must contain at least one item")
            order.items = _snapshot(payload.items)
            order.total_amount = compute_order_total(payload.items)

        customer_paid = payload.customer_paid if payload.customer_paid is not None else order.customer_paid
        change = payload.change if payload.change is not None else order.change
        method, customer_paid, change = settle_payment(
            payload.payment_method or order.payment_method,
            to_decimal(order.total_amount),
            customer_paid,
            change
        )
        order.payment_method = method
        order.customer_paid = customer_paid
        order.change = change

        if payload.order_date:
            order.business_date = parse_calendar_date(payload.order_date)

        order.status = OrderStatus.COMPLETED
        order.held_at = None
        order = await self._persist(order, "complete")
        logger.info(f"Held order {order.id} completed: total={order.total_amount} method={method.value}")

        await self._apply_ledger_effects(
            previous_day,
            effective_business_day(order.business_date, order.created_at)
        )
        return order
