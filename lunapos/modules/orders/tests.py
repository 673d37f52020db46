"""
Tests for the orders module

Covers:
- pricing: line totals with toppings, lenient numeric handling
- payment settlement per method
- order lifecycle through the API: create, update, delete, hold, restore, complete
- the shift of the affected day after every mutation
- legacy records without business date, status or payment method
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

from lunapos.modules.orders.models import OrderStatus, PaymentMethod
from lunapos.modules.orders.pricing import (
    BANK_TRANSFER_CHANNEL, CASH_CHANNEL, compute_order_total, line_total,
    payment_channel, settle_payment, split_by_channel, topping_total
)
from lunapos.modules.orders.schemas import OrderItemIn
from lunapos.modules.shifts.ledger import ShiftLedger


ORDERS_URL = "/api/orders"
SHIFTS_URL = "/api/shifts"


def make_item(price=30000, quantity=2, toppings=None, name="Milk tea", product_id="milk-tea", size="large"):
    return {
        "productId": product_id,
        "productName": name,
        "size": size,
        "quantity": quantity,
        "price": price,
        "toppings": toppings or [],
    }


def make_topping(price=5000, quantity=1, name="Pearl"):
    return {"toppingId": name.lower(), "toppingName": name, "price": price, "quantity": quantity}


def create_order(client, **overrides):
    payload = {"items": [make_item()], "paymentMethod": "cash", "customerPaid": 100000, "change": 40000}
    payload.update(overrides)
    response = client.post(ORDERS_URL, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def get_shift(client, day="2024-03-15"):
    response = client.get(SHIFTS_URL, params={"date": day})
    assert response.status_code == 200, response.text
    return response.json()


# ===== PRICING =====

class TestPricing:

    def test_line_total_counts_toppings_per_drink(self):
        item = make_item(price=30000, quantity=2, toppings=[make_topping(5000)])
        assert line_total(item) == Decimal("70000")

    def test_topping_quantity_multiplies_its_price(self):
        item = make_item(price=30000, quantity=2, toppings=[make_topping(5000, quantity=2)])
        assert line_total(item) == Decimal("80000")

    def test_topping_without_quantity_counts_once(self):
        assert topping_total({"price": 7000}) == Decimal("7000")

    def test_missing_numbers_count_as_zero(self):
        assert line_total({"productName": "Mystery", "quantity": 3}) == Decimal("0")
        assert line_total({"productName": "Mystery", "price": 25000}) == Decimal("0")
        assert line_total({"price": "abc", "quantity": 2}) == Decimal("0")

    def test_order_total_accepts_schema_items(self):
        items = [
            OrderItemIn(**make_item(price=30000, quantity=1, toppings=[make_topping(5000)])),
            OrderItemIn(**make_item(price=25000, quantity=2, name="Black coffee", product_id="coffee")),
        ]
        assert compute_order_total(items) == Decimal("85000")

    def test_order_total_of_nothing_is_zero(self):
        assert compute_order_total(None) == Decimal("0")
        assert compute_order_total([]) == Decimal("0")


class TestPaymentSettlement:

    def test_exact_amount_pays_the_total(self):
        assert settle_payment("exact_amount", Decimal("60000"), 999, 5) == (
            PaymentMethod.EXACT_AMOUNT, Decimal("60000"), Decimal("0")
        )

    def test_bank_transfer_moves_no_cash(self):
        assert settle_payment(PaymentMethod.BANK_TRANSFER, Decimal("60000"), 100000, 40000) == (
            PaymentMethod.BANK_TRANSFER, Decimal("0"), Decimal("0")
        )

    def test_cash_keeps_cashier_amounts(self):
        assert settle_payment("cash", Decimal("60000"), 100000, 40000) == (
            PaymentMethod.CASH, Decimal("100000"), Decimal("40000")
        )

    def test_missing_method_defaults_to_cash(self):
        method, customer_paid, change = settle_payment(None, Decimal("60000"))
        assert method == PaymentMethod.CASH
        assert (customer_paid, change) == (Decimal("0"), Decimal("0"))

    def test_channels(self):
        assert payment_channel(None) == CASH_CHANNEL
        assert payment_channel("exact_amount") == CASH_CHANNEL
        assert payment_channel(PaymentMethod.CASH) == CASH_CHANNEL
        assert payment_channel("bank_transfer") == BANK_TRANSFER_CHANNEL

    def test_split_skips_unusable_totals(self):
        orders = [
            SimpleNamespace(total_amount=Decimal("60000"), payment_method=PaymentMethod.CASH),
            SimpleNamespace(total_amount=Decimal("40000"), payment_method=PaymentMethod.BANK_TRANSFER),
            SimpleNamespace(total_amount=Decimal("20000"), payment_method=None),
            SimpleNamespace(total_amount=None, payment_method=PaymentMethod.CASH),
            SimpleNamespace(total_amount=Decimal("NaN"), payment_method=PaymentMethod.CASH),
            SimpleNamespace(total_amount=float("inf"), payment_method=PaymentMethod.BANK_TRANSFER),
        ]
        assert split_by_channel(orders) == (Decimal("80000"), Decimal("40000"))


# ===== CREATE =====

class TestCreateOrder:

    def test_total_is_computed_server_side(self, client, clock):
        order = create_order(client, items=[make_item(toppings=[make_topping(5000)])], totalAmount=1)
        assert order["totalAmount"] == 70000
        assert order["status"] == "completed"
        assert order["businessDate"] == "2024-03-15"
        assert order["heldAt"] is None
        assert order["items"][0]["productName"] == "Milk tea"

    def test_cash_order_updates_the_shift(self, client, clock):
        order = create_order(client)
        assert (order["customerPaid"], order["change"]) == (100000, 40000)

        shift = get_shift(client)
        assert shift["cashAmount"] == 60000
        assert shift["bankTransferAmount"] == 0
        assert shift["endAmount"] == 60000
        assert shift["netAmount"] == 60000
        assert shift["orders"] == [order["id"]]
        assert shift["orderCount"] == 1

    def test_exact_amount_order(self, client, clock):
        order = create_order(client, paymentMethod="exact_amount", customerPaid=500000, change=7)
        assert order["paymentMethod"] == "exact_amount"
        assert order["customerPaid"] == 60000
        assert order["change"] == 0
        assert get_shift(client)["cashAmount"] == 60000

    def test_bank_transfer_order(self, client, clock):
        order = create_order(client, paymentMethod="bank_transfer")
        assert (order["customerPaid"], order["change"]) == (0, 0)

        shift = get_shift(client)
        assert shift["bankTransferAmount"] == 60000
        assert shift["cashAmount"] == 0
        assert shift["endAmount"] == 0

    def test_order_date_sets_the_business_day(self, client, clock):
        order = create_order(client, orderDate="2024-03-14")
        assert order["businessDate"] == "2024-03-14"

        assert get_shift(client, "2024-03-14")["orders"] == [order["id"]]
        assert get_shift(client, "2024-03-15")["orders"] == []

    def test_empty_order_is_rejected(self, client, clock):
        response = client.post(ORDERS_URL, json={"items": [], "paymentMethod": "cash"})
        assert response.status_code == 400
        assert "at least one item" in response.json()["message"]

    def test_invalid_order_date_is_rejected(self, client, clock):
        response = client.post(ORDERS_URL, json={"items": [make_item()], "orderDate": "15/03/2024"})
        assert response.status_code == 400
        assert "Invalid date" in response.json()["message"]

    def test_malformed_body_is_a_400_with_message(self, client, clock):
        response = client.post(ORDERS_URL, json={"items": [{"productName": "No size"}]})
        assert response.status_code == 400
        assert "size" in response.json()["message"]

    def test_shift_failure_does_not_fail_the_sale(self, client, clock, monkeypatch):
        async def broken_refresh(self, day):
            raise RuntimeError("ledger unavailable")

        working_refresh = ShiftLedger.refresh
        monkeypatch.setattr(ShiftLedger, "refresh", broken_refresh)
        order = create_order(client)
        assert client.get(f"{ORDERS_URL}/{order['id']}").status_code == 200

        # The next read of the shift repairs it
        monkeypatch.setattr(ShiftLedger, "refresh", working_refresh)
        assert get_shift(client)["orders"] == [order["id"]]


# ===== UPDATE / DELETE =====

class TestUpdateOrder:

    def test_items_are_replaced_and_repriced(self, client, clock):
        order = create_order(client)
        response = client.put(
            f"{ORDERS_URL}/{order['id']}",
            json={"items": [make_item(price=25000, quantity=3, name="Black coffee", product_id="coffee")]}
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["totalAmount"] == 75000
        assert updated["items"][0]["productName"] == "Black coffee"
        assert get_shift(client)["cashAmount"] == 75000

    def test_exact_amount_follows_the_new_total(self, client, clock):
        order = create_order(client, paymentMethod="exact_amount")
        updated = client.put(
            f"{ORDERS_URL}/{order['id']}",
            json={"items": [make_item(price=10000, quantity=1)]}
        ).json()
        assert updated["totalAmount"] == 10000
        assert updated["customerPaid"] == 10000

    def test_empty_items_keep_the_order(self, client, clock):
        order = create_order(client)
        updated = client.put(f"{ORDERS_URL}/{order['id']}", json={"items": []}).json()
        assert updated["totalAmount"] == 60000
        assert len(updated["items"]) == 1

    def test_unknown_order(self, client, clock):
        response = client.put(f"{ORDERS_URL}/3f1c4b9e-0000-4000-8000-000000000000", json={"items": [make_item()]})
        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"


class TestDeleteOrder:

    def test_delete_removes_the_order_from_its_day(self, client, clock):
        kept = create_order(client)
        removed = create_order(client, orderDate="2024-03-15", paymentMethod="bank_transfer")

        response = client.delete(f"{ORDERS_URL}/{removed['id']}")
        assert response.status_code == 200
        assert response.json() == {"message": "Order deleted successfully"}

        shift = get_shift(client)
        assert shift["orders"] == [kept["id"]]
        assert shift["bankTransferAmount"] == 0
        assert client.get(f"{ORDERS_URL}/{removed['id']}").status_code == 404

    def test_delete_uses_the_captured_business_day(self, client, clock):
        order = create_order(client, orderDate="2024-03-10")
        assert get_shift(client, "2024-03-10")["cashAmount"] == 60000

        client.delete(f"{ORDERS_URL}/{order['id']}")
        assert get_shift(client, "2024-03-10")["cashAmount"] == 0

    def test_unknown_order(self, client, clock):
        response = client.delete(f"{ORDERS_URL}/3f1c4b9e-0000-4000-8000-000000000000")
        assert response.status_code == 404


# ===== HOLD / RESTORE / COMPLETE =====

class TestHeldOrders:

    def test_held_order_does_not_count(self, client, clock):
        held = create_order(client, status="held")
        assert held["status"] == "held"
        assert held["heldAt"] == "2024-03-15T10:00:00"

        shift = get_shift(client)
        assert shift["cashAmount"] == 0
        assert shift["orders"] == []

    def test_hold_removes_a_completed_order_from_the_shift(self, client, clock):
        order = create_order(client)
        assert get_shift(client)["cashAmount"] == 60000

        response = client.post(f"{ORDERS_URL}/{order['id']}/hold")
        assert response.status_code == 200
        assert response.json()["status"] == "held"
        assert get_shift(client)["cashAmount"] == 0

    def test_hold_twice_is_a_conflict(self, client, clock):
        order = create_order(client)
        assert client.post(f"{ORDERS_URL}/{order['id']}/hold").status_code == 200

        response = client.post(f"{ORDERS_URL}/{order['id']}/hold")
        assert response.status_code == 409
        assert response.json()["message"] == "Order is already held"

    def test_restore_returns_the_held_order_unchanged(self, client, clock):
        held = create_order(client, status="held")
        response = client.post(f"{ORDERS_URL}/{held['id']}/restore")
        assert response.status_code == 200
        assert response.json() == held

    def test_restore_requires_a_held_order(self, client, clock):
        order = create_order(client)
        response = client.post(f"{ORDERS_URL}/{order['id']}/restore")
        assert response.status_code == 400
        assert response.json()["message"] == "Order is not held"

    def test_complete_brings_the_order_back(self, client, clock):
        held = create_order(client, status="held")
        response = client.post(
            f"{ORDERS_URL}/{held['id']}/complete",
            json={"paymentMethod": "bank_transfer"}
        )
        assert response.status_code == 200
        completed = response.json()
        assert completed["status"] == "completed"
        assert completed["heldAt"] is None
        assert completed["paymentMethod"] == "bank_transfer"

        shift = get_shift(client)
        assert shift["bankTransferAmount"] == 60000
        assert shift["orders"] == [held["id"]]

    def test_complete_with_new_items_and_date(self, client, clock):
        held = create_order(client, status="held")
        completed = client.post(
            f"{ORDERS_URL}/{held['id']}/complete",
            json={"items": [make_item(price=20000, quantity=1)], "paymentMethod": "exact_amount", "orderDate": "2024-03-16"}
        ).json()
        assert completed["totalAmount"] == 20000
        assert completed["customerPaid"] == 20000
        assert completed["businessDate"] == "2024-03-16"

        assert get_shift(client, "2024-03-16")["cashAmount"] == 20000
        assert get_shift(client, "2024-03-15")["cashAmount"] == 0

    def test_complete_requires_a_held_order(self, client, clock):
        order = create_order(client)
        assert client.post(f"{ORDERS_URL}/{order['id']}/complete").status_code == 400

    def test_held_list_is_newest_first(self, client, clock):
        first = create_order(client, status="held")
        clock.set(datetime(2024, 3, 15, 11, 0))
        second = create_order(client, status="held")
        create_order(client)

        held = client.get(f"{ORDERS_URL}/held").json()
        assert [o["id"] for o in held] == [second["id"], first["id"]]


# ===== LISTING =====

class TestListOrders:

    def test_day_filter_falls_back_to_creation_time(self, client, clock, seed_order):
        legacy_id = seed_order(total_amount=45000, created_at=datetime(2024, 3, 15, 8, 0))
        seed_order(total_amount=10000, created_at=datetime(2024, 3, 14, 8, 0))
        moved_id = seed_order(
            total_amount=20000,
            business_date=date(2024, 3, 14),
            created_at=datetime(2024, 3, 15, 9, 0),
            status=OrderStatus.COMPLETED,
            payment_method=PaymentMethod.CASH
        )
        current = create_order(client)

        orders = client.get(ORDERS_URL, params={"date": "2024-03-15"}).json()
        assert [o["id"] for o in orders] == [current["id"], legacy_id]

        previous_day = client.get(ORDERS_URL, params={"date": "2024-03-14"}).json()
        assert moved_id in [o["id"] for o in previous_day]

    def test_legacy_order_renders_as_completed_cash(self, client, clock, seed_order):
        legacy_id = seed_order(total_amount=45000)
        order = client.get(f"{ORDERS_URL}/{legacy_id}").json()
        assert order["status"] == "completed"
        assert order["paymentMethod"] == "cash"
        assert order["businessDate"] is None

    def test_legacy_order_counts_in_its_creation_day_shift(self, client, clock, seed_order):
        seed_order(total_amount=45000, created_at=datetime(2024, 3, 15, 8, 0))
        seed_order(total_amount=20000, business_date=date(2024, 3, 14), created_at=datetime(2024, 3, 15, 9, 0))

        assert get_shift(client, "2024-03-15")["cashAmount"] == 45000
        assert get_shift(client, "2024-03-14")["cashAmount"] == 20000

    def test_corrupt_stored_items_still_render(self, client, clock, seed_order):
        broken_id = seed_order(
            total_amount=30000,
            business_date=date(2024, 3, 15),
            items=[
                {"productName": "Old tea", "quantity": 1.5, "price": "abc", "toppings": 7},
                "not an item",
            ]
        )

        orders = client.get(ORDERS_URL, params={"date": "2024-03-15"})
        assert orders.status_code == 200, orders.text
        broken = next(o for o in orders.json() if o["id"] == broken_id)
        assert broken["items"] == [{
            "productId": None, "productName": "Old tea", "size": None, "quantity": 1.5,
            "price": 0, "iceType": None, "note": None, "toppings": []
        }]

        report = client.get("/api/analytics/daily", params={"date": "2024-03-15"})
        assert report.status_code == 200, report.text
        assert report.json()["totalRevenue"] == 30000
        assert get_shift(client)["cashAmount"] == 30000

    def test_range_and_status_filters(self, client, clock):
        create_order(client, orderDate="2024-03-13")
        create_order(client, orderDate="2024-03-14", status="held")
        create_order(client, orderDate="2024-03-16")

        in_range = client.get(ORDERS_URL, params={"startDate": "2024-03-13", "endDate": "2024-03-14"}).json()
        assert sorted(o["businessDate"] for o in in_range) == ["2024-03-13", "2024-03-14"]

        held = client.get(ORDERS_URL, params={"startDate": "2024-03-13", "endDate": "2024-03-14", "status": "held"}).json()
        assert [o["businessDate"] for o in held] == ["2024-03-14"]

        completed = client.get(ORDERS_URL, params={"status": "completed"}).json()
        assert len(completed) == 2

    def test_half_open_range_is_rejected(self, client, clock):
        response = client.get(ORDERS_URL, params={"startDate": "2024-03-13"})
        assert response.status_code == 400

    def test_unknown_order(self, client, clock):
        response = client.get(f"{ORDERS_URL}/3f1c4b9e-0000-4000-8000-000000000000")
        assert response.status_code == 404
        assert response.json() == {"message": "Order not found"}
