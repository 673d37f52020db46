"""
Tests for the daily shift ledger

Covers:
- get-or-create on read, zeroed shift for a day without sales
- derived amounts and their invariants after recompute
- idempotent recompute
- opening float edits and validation
- listing by date range
- row version guard and concurrent refreshes of the same day
"""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.orm.exc import StaleDataError

from lunapos.common.exceptions import ValidationError
from lunapos.database.database import AsyncSessionLocal
from lunapos.modules.orders.models import PaymentMethod
from lunapos.modules.shifts.ledger import ShiftLedger, day_locks


ORDERS_URL = "/api/orders"
SHIFTS_URL = "/api/shifts"
DAY = date(2024, 3, 15)


def sell(client, price=30000, quantity=1, method="cash", **extra):
    payload = {
        "items": [{"productId": "milk-tea", "productName": "Milk tea", "size": "small", "quantity": quantity, "price": price}],
        "paymentMethod": method,
    }
    payload.update(extra)
    response = client.post(ORDERS_URL, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def assert_invariants(shift):
    assert shift["endAmount"] == shift["cashAmount"]
    assert shift["netAmount"] == shift["endAmount"] - shift["startAmount"]
    assert shift["orderCount"] == len(shift["orders"])
    assert shift["totalRevenue"] == shift["cashAmount"] + shift["bankTransferAmount"]


# ===== GET OR CREATE =====

class TestGetShift:

    def test_day_without_sales_gets_a_zeroed_shift(self, client, clock):
        shift = client.get(SHIFTS_URL, params={"date": "2024-03-20"}).json()
        assert shift["date"] == "2024-03-20"
        for field in ("startAmount", "cashAmount", "bankTransferAmount", "endAmount", "netAmount", "orderCount"):
            assert shift[field] == 0
        assert shift["orders"] == []

    def test_date_defaults_to_today(self, client, clock):
        assert client.get(SHIFTS_URL).json()["date"] == "2024-03-15"

    def test_invalid_date(self, client, clock):
        response = client.get(SHIFTS_URL, params={"date": "2024-15-03"})
        assert response.status_code == 400
        assert "Invalid date" in response.json()["message"]

    def test_mixed_day_totals(self, client, clock):
        cash = sell(client, price=30000, quantity=2)
        exact = sell(client, price=20000, method="exact_amount")
        transfer = sell(client, price=45000, method="bank_transfer")
        sell(client, price=99000, status="held")

        shift = client.get(SHIFTS_URL, params={"date": "2024-03-15"}).json()
        assert shift["cashAmount"] == 80000
        assert shift["bankTransferAmount"] == 45000
        assert shift["drawerTotal"] == 80000
        assert sorted(shift["orders"]) == sorted([cash["id"], exact["id"], transfer["id"]])
        assert_invariants(shift)

    def test_orders_are_listed_oldest_first(self, client, clock):
        first = sell(client)
        clock.set(datetime(2024, 3, 15, 12, 0))
        second = sell(client)

        shift = client.get(SHIFTS_URL, params={"date": "2024-03-15"}).json()
        assert shift["orders"] == [first["id"], second["id"]]

    def test_recompute_is_idempotent(self, client, clock):
        sell(client, price=30000)
        sell(client, price=45000, method="bank_transfer")

        first = client.get(SHIFTS_URL, params={"date": "2024-03-15"}).json()
        second = client.get(SHIFTS_URL, params={"date": "2024-03-15"}).json()
        assert first == second


# ===== OPENING FLOAT =====

class TestStartAmount:

    def test_net_amount_follows_the_opening_float(self, client, clock):
        sell(client, price=60000)
        shift = client.get(SHIFTS_URL, params={"date": "2024-03-15"}).json()

        response = client.put(f"{SHIFTS_URL}/{shift['id']}/start-amount", json={"startAmount": 500000})
        assert response.status_code == 200
        updated = response.json()
        assert updated["startAmount"] == 500000
        assert updated["endAmount"] == 60000
        assert updated["netAmount"] == -440000
        assert updated["drawerTotal"] == 560000
        assert_invariants(updated)

    def test_opening_float_survives_recompute(self, client, clock):
        shift = client.get(SHIFTS_URL, params={"date": "2024-03-15"}).json()
        client.put(f"{SHIFTS_URL}/{shift['id']}/start-amount", json={"startAmount": 200000})

        sell(client, price=50000)
        refreshed = client.get(SHIFTS_URL, params={"date": "2024-03-15"}).json()
        assert refreshed["startAmount"] == 200000
        assert refreshed["netAmount"] == -150000
        assert_invariants(refreshed)

    def test_negative_amount_is_rejected(self, client, clock):
        shift = client.get(SHIFTS_URL).json()
        response = client.put(f"{SHIFTS_URL}/{shift['id']}/start-amount", json={"startAmount": -1})
        assert response.status_code == 400
        assert "startAmount" in response.json()["message"]

    def test_unknown_shift(self, client, clock):
        response = client.put(
            f"{SHIFTS_URL}/3f1c4b9e-0000-4000-8000-000000000000/start-amount",
            json={"startAmount": 100}
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Shift not found"

    def test_ledger_rejects_negative_amount(self, database):
        async def scenario():
            async with AsyncSessionLocal() as session:
                ledger = ShiftLedger(session)
                shift = await ledger.refresh(DAY)
                await ledger.set_opening_float(shift.id, Decimal("-5"))

        with pytest.raises(ValidationError):
            asyncio.run(scenario())


# ===== LISTING =====

class TestListShifts:

    def test_range_is_inclusive_and_newest_first(self, client, clock):
        for day in ("2024-03-12", "2024-03-13", "2024-03-14", "2024-03-15"):
            client.get(SHIFTS_URL, params={"date": day})

        shifts = client.get(f"{SHIFTS_URL}/list", params={"startDate": "2024-03-13", "endDate": "2024-03-14"}).json()
        assert [s["date"] for s in shifts] == ["2024-03-14", "2024-03-13"]

        everything = client.get(f"{SHIFTS_URL}/list").json()
        assert [s["date"] for s in everything] == ["2024-03-15", "2024-03-14", "2024-03-13", "2024-03-12"]

    def test_single_bound_filters_one_side(self, client, clock):
        for day in ("2024-03-01", "2024-03-10", "2024-03-20"):
            client.get(SHIFTS_URL, params={"date": day})

        since = client.get(f"{SHIFTS_URL}/list", params={"startDate": "2024-03-10"}).json()
        assert [s["date"] for s in since] == ["2024-03-20", "2024-03-10"]

        until = client.get(f"{SHIFTS_URL}/list", params={"endDate": "2024-03-10"}).json()
        assert [s["date"] for s in until] == ["2024-03-10", "2024-03-01"]

    def test_listing_does_not_create_shifts(self, client, clock):
        assert client.get(f"{SHIFTS_URL}/list", params={"startDate": "2024-03-01", "endDate": "2024-03-31"}).json() == []

    def test_reversed_range_is_rejected(self, client, clock):
        response = client.get(f"{SHIFTS_URL}/list", params={"startDate": "2024-03-15", "endDate": "2024-03-01"})
        assert response.status_code == 400


# ===== CONCURRENCY =====

class TestConcurrency:

    def test_concurrent_refreshes_leave_one_consistent_shift(self, seed_order):
        seed_order(total_amount=30000, payment_method=PaymentMethod.CASH, business_date=DAY)
        seed_order(total_amount=45000, payment_method=PaymentMethod.BANK_TRANSFER, business_date=DAY)

        async def refresh_once():
            async with AsyncSessionLocal() as session:
                shift = await ShiftLedger(session).refresh(DAY)
                return shift.id, shift.cash_amount, shift.bank_transfer_amount

        async def scenario():
            return await asyncio.gather(*(refresh_once() for _ in range(5)))

        results = asyncio.run(scenario())
        assert len({shift_id for shift_id, _, _ in results}) == 1
        assert all(cash == Decimal("30000") and bank == Decimal("45000") for _, cash, bank in results)

    def test_stale_writer_is_detected(self, database):
        async def scenario():
            async with AsyncSessionLocal() as first, AsyncSessionLocal() as second:
                shift = await ShiftLedger(first).refresh(DAY)
                other = await ShiftLedger(second).get_shift(shift.id)

                await ShiftLedger(second).set_opening_float(other.id, Decimal("1000"))

                shift.start_amount = Decimal("2000")
                await first.commit()

        with pytest.raises(StaleDataError):
            asyncio.run(scenario())

    def test_opening_float_edit_bumps_the_version(self, database):
        async def scenario():
            async with AsyncSessionLocal() as session:
                ledger = ShiftLedger(session)
                shift = await ledger.refresh(DAY)
                before = shift.version
                await ledger.set_opening_float(shift.id, Decimal("1000"))
                return before, shift.version

        before, after = asyncio.run(scenario())
        assert after == before + 1

    def test_day_locks_are_released_after_use(self, database):
        async def scenario():
            async with AsyncSessionLocal() as session:
                ledger = ShiftLedger(session)
                for day in (DAY, date(2024, 3, 16), date(2024, 3, 17)):
                    await ledger.refresh(day)

                lock = day_locks.lock_for(DAY)
                async with lock:
                    held = day_locks.tracked_days()
                del lock
                return held, day_locks.tracked_days()

        held, after = asyncio.run(scenario())
        assert held == [DAY]
        assert after == []
