"""
API Router for orders.
"""
from typing import List, Optional
from fastapi import APIRouter, Query, status
from uuid import UUID

from lunapos.common.schemas import MessageOut
from lunapos.dependencies.dbDependecies import async_db_dependency

from . import schemas
from .models import OrderStatus
from .service import OrderService

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    responses={404: {"description": "Not found"}}
)


@router.get("", response_model=List[schemas.OrderOut])
async def list_orders(
    db: async_db_dependency,
    date: Optional[str] = Query(None, description="Business day YYYY-MM-DD"),
    start_date: Optional[str] = Query(None, alias="startDate", description="First day YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Last day YYYY-MM-DD (inclusive)"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="completed or held")
):
    """
    List orders, newest first.

    Filter by a single day (``date``) or an inclusive range (``startDate`` and
    ``endDate``). Orders without a business date are matched by creation time.
    """
    return await OrderService(db).list_orders(
        date=date,
        start_date=start_date,
        end_date=end_date,
        status=order_status
    )


@router.get("/held", response_model=List[schemas.OrderOut])
async def list_held_orders(db: async_db_dependency):
    """Held orders, most recently held first."""
    return await OrderService(db).list_held()


@router.get("/{order_id}", response_model=schemas.OrderOut)
async def get_order(order_id: UUID, db: async_db_dependency):
    return await OrderService(db).get(order_id)


@router.post("", response_model=schemas.OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(payload: schemas.OrderCreate, db: async_db_dependency):
    """
    Register a sale (or park it with ``status: held``).

    The total is computed from the items; client-sent totals are ignored.
    """
    return await OrderService(db).create(payload)


@router.put("/{order_id}", response_model=schemas.OrderOut)
async def update_order(order_id: UUID, payload: schemas.OrderItemsUpdate, db: async_db_dependency):
    """Replace the items of an order and recompute its total."""
    return await OrderService(db).update_items(order_id, payload)


@router.delete("/{order_id}", response_model=MessageOut)
async def delete_order(order_id: UUID, db: async_db_dependency):
    return await OrderService(db).delete(order_id)


@router.post("/{order_id}/hold", response_model=schemas.OrderOut)
async def hold_order(order_id: UUID, db: async_db_dependency):
    """Park an order; it no longer counts toward its day's shift."""
    return await OrderService(db).hold(order_id)


@router.post("/{order_id}/restore", response_model=schemas.OrderOut)
async def restore_order(order_id: UUID, db: async_db_dependency):
    """Load a held order back into the register without changing it."""
    return await OrderService(db).restore(order_id)


@router.post("/{order_id}/complete", response_model=schemas.OrderOut)
async def complete_order(
    order_id: UUID,
    db: async_db_dependency,
    payload: Optional[schemas.OrderComplete] = None
):
    """Finalize a held order as a sale."""
    return await OrderService(db).complete(order_id, payload or schemas.OrderComplete())
