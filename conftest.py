"""
Shared test fixtures

The environment is configured before ``lunapos`` is imported: settings are
read once at import time and the engine is built from them.
"""
import asyncio
import os
import tempfile
from datetime import datetime
from uuid import uuid4

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="lunapos-tests-")

os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"

from fastapi.testclient import TestClient

from lunapos.common import dates
from lunapos.database.database import AsyncSessionLocal, create_tables, drop_tables
from lunapos.main import app
from lunapos.modules.orders.models import Order


async def _reset_schema():
    await drop_tables()
    await create_tables()


class FrozenClock:
    """Replacement for the application clock; tests move it with ``set``"""

    def __init__(self, now: datetime):
        self.now = now

    def set(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ===== FIXTURES =====

@pytest.fixture
def database():
    """Fresh, empty schema for one test"""
    asyncio.run(_reset_schema())
    yield


@pytest.fixture
def client(database):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def clock(monkeypatch):
    """Application clock pinned to 2024-03-15 10:00 local time"""
    frozen = FrozenClock(datetime(2024, 3, 15, 10, 0, 0))
    monkeypatch.setattr(dates, "_system_now", frozen)
    return frozen


@pytest.fixture
def seed_order(database):
    """
    Insert an order row as-is, bypassing the service.

    Used for records the API can no longer produce: legacy orders without a
    business date, status or payment method, or corrupt totals.
    """
    def _seed(**fields) -> str:
        row = {
            "id": uuid4(),
            "items": [],
            "total_amount": 0,
            "customer_paid": 0,
            "change": 0,
            "payment_method": None,
            "status": None,
            "business_date": None,
            "held_at": None,
            "created_at": datetime(2024, 3, 15, 9, 0, 0),
            "updated_at": datetime(2024, 3, 15, 9, 0, 0),
        }
        row.update(fields)

        async def _insert():
            async with AsyncSessionLocal() as session:
                await session.execute(Order.__table__.insert().values(**row))
                await session.commit()

        asyncio.run(_insert())
        return str(row["id"])

    return _seed
