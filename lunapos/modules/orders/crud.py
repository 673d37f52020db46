"""
CRUD operations for orders.
"""
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, asc, desc

from lunapos.common.dates import DateBucket
from .models import Order, OrderStatus


def bucket_condition(bucket: DateBucket):
    """
    Orders attributed to ``bucket``.

    business_date decides when present; legacy rows without one fall back to
    created_at. Both branches are OR-ed, never AND-ed.
    """
    return or_(
        and_(
            Order.business_date.isnot(None),
            Order.business_date.between(bucket.first_day, bucket.last_day)
        ),
        and_(
            Order.business_date.is_(None),
            Order.created_at.between(bucket.start, bucket.end)
        )
    )


async def get_order(db: AsyncSession, order_id: UUID) -> Optional[Order]:
    """Obtener una orden por ID."""
    result = await db.execute(select(Order).where(Order.id == order_id))
    return result.scalar_one_or_none()


async def get_orders(
    db: AsyncSession,
    bucket: Optional[DateBucket] = None,
    status: Optional[OrderStatus] = None
) -> List[Order]:
    """Orders newest first, optionally restricted to a bucket and a status."""
    query = select(Order)

    conditions = []
    if bucket is not None:
        conditions.append(bucket_condition(bucket))
    if status == OrderStatus.COMPLETED:
        conditions.append(Order.settled_condition())
    elif status is not None:
        conditions.append(Order.status == status)

    if conditions:
        query = query.where(and_(*conditions))

    query = query.order_by(desc(Order.created_at))
    result = await db.execute(query)
    return result.scalars().all()


async def get_held_orders(db: AsyncSession, limit: int) -> List[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.status == OrderStatus.HELD)
        .order_by(desc(Order.held_at), desc(Order.created_at))
        .limit(limit)
    )
    return result.scalars().all()


async def get_settled_orders(db: AsyncSession, bucket: Optional[DateBucket] = None) -> List[Order]:
    """Completed (or legacy status-less) orders, oldest first; all of them when no bucket is given."""
    conditions = [Order.settled_condition()]
    if bucket is not None:
        conditions.append(bucket_condition(bucket))

    result = await db.execute(
        select(Order)
        .where(and_(*conditions))
        .order_by(asc(Order.created_at), asc(Order.id))
    )
    return result.scalars().all()


async def save_order(db: AsyncSession, order: Order) -> Order:
    db.add(order)
    await db.commit()
    await db.refresh(order)
    return order


async def delete_order(db: AsyncSession, order: Order) -> None:
    await db.delete(order)
    await db.commit()
