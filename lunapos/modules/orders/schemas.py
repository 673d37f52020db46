"""
Pydantic schemas for the orders module

Request bodies follow the register's camelCase payloads. Monetary inputs on
line items are optional on purpose: pricing treats a missing price or
quantity as zero rather than rejecting the sale.
"""

from collections.abc import Mapping

from pydantic import BeforeValidator, ConfigDict, Field, field_validator
from typing import Annotated, List, Optional
from uuid import UUID
from datetime import date, datetime

from lunapos.common.schemas import CamelModel, Money
from lunapos.modules.orders.models import PaymentMethod, OrderStatus, ItemSize, IceType
from lunapos.modules.orders.pricing import to_decimal


# ===== LINE ITEMS =====

class ToppingSelection(CamelModel):
    """Topping chosen for a drink (price snapshot at sale time)"""
    topping_id: Optional[str] = Field(None, description="Catalog topping reference")
    topping_name: str = Field(..., min_length=1, description="Topping name at sale time")
    price: Optional[Money] = Field(None, ge=0, description="Unit price snapshot")
    quantity: int = Field(1, ge=1, description="Units per drink")


class OrderItemIn(CamelModel):
    """Order line as sent by the register"""
    product_id: Optional[str] = Field(None, description="Catalog product reference")
    product_name: str = Field(..., min_length=1, description="Product name at sale time")
    size: ItemSize = Field(..., description="Drink size")
    quantity: Optional[int] = Field(None, ge=1, description="Number of drinks")
    price: Optional[Money] = Field(None, ge=0, description="Unit price snapshot")
    ice_type: IceType = Field(IceType.COMMON, description="Ice preference")
    note: str = Field("", max_length=500, description="Free text note")
    toppings: List[ToppingSelection] = Field(default_factory=list)

    @field_validator("product_id", mode="before")
    @classmethod
    def stringify_reference(cls, v):
        return None if v is None else str(v)


def _lenient_number(value):
    """Stored numbers render the way pricing reads them; garbage becomes 0."""
    return None if value is None else to_decimal(value)


def _lenient_text(value):
    return None if value is None else str(value)


def _mappings_only(value):
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


StoredNumber = Annotated[Optional[Money], BeforeValidator(_lenient_number)]
StoredText = Annotated[Optional[str], BeforeValidator(_lenient_text)]


class ToppingSelectionOut(CamelModel):
    model_config = ConfigDict(extra="allow")

    topping_id: StoredText = None
    topping_name: StoredText = None
    price: StoredNumber = None
    quantity: StoredNumber = None


class OrderItemOut(CamelModel):
    """Stored line item; lenient so legacy snapshots always render"""
    model_config = ConfigDict(extra="allow")

    product_id: StoredText = None
    product_name: StoredText = None
    size: StoredText = None
    quantity: StoredNumber = None
    price: StoredNumber = None
    ice_type: StoredText = None
    note: StoredText = None
    toppings: Annotated[List[ToppingSelectionOut], BeforeValidator(_mappings_only)] = Field(default_factory=list)


# ===== REQUESTS =====

class OrderCreate(CamelModel):
    items: List[OrderItemIn] = Field(default_factory=list, description="Order lines")
    payment_method: Optional[PaymentMethod] = Field(None, description="Defaults to cash")
    customer_paid: Optional[Money] = Field(None, ge=0, description="Cash handed over (cash only)")
    change: Optional[Money] = Field(None, ge=0, description="Change returned (cash only)")
    order_date: Optional[str] = Field(None, description="Business date YYYY-MM-DD, defaults to today")
    status: Optional[OrderStatus] = Field(None, description="completed (default) or held")


class OrderItemsUpdate(CamelModel):
    items: List[OrderItemIn] = Field(default_factory=list, description="Replacement order lines")


class OrderComplete(CamelModel):
    """Finalize a held order at the register"""
    items: Optional[List[OrderItemIn]] = Field(None, description="Replacement lines, keeps current ones when omitted")
    payment_method: Optional[PaymentMethod] = Field(None, description="Defaults to cash")
    customer_paid: Optional[Money] = Field(None, ge=0)
    change: Optional[Money] = Field(None, ge=0)
    order_date: Optional[str] = Field(None, description="Re-attribute the sale to another business date")


# ===== RESPONSES =====

class OrderOut(CamelModel):
    id: UUID
    items: Annotated[List[OrderItemOut], BeforeValidator(_mappings_only)] = Field(default_factory=list)
    total_amount: Money
    customer_paid: Money
    change: Money
    payment_method: PaymentMethod
    status: OrderStatus
    business_date: Optional[date] = None
    held_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("payment_method", mode="before")
    @classmethod
    def legacy_payment_method(cls, v):
        return PaymentMethod.CASH if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def legacy_status(cls, v):
        return OrderStatus.COMPLETED if v is None else v
