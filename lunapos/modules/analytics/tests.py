"""
Tests for the analytics module

Covers:
- daily report totals, payment split and comparison with the previous day
- agreement between the daily report and the shift of the same day
- week / month / quarter / year buckets, breakdowns and previous buckets
- peak hours and best sellers
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from lunapos.modules.analytics.service import _months_back, growth_percentage, product_stats


ANALYTICS_URL = "/api/analytics"


def sell(client, price=30000, quantity=1, method="cash", product="Milk tea", **extra):
    payload = {
        "items": [{
            "productId": product.lower().replace(" ", "-"),
            "productName": product,
            "size": "large",
            "quantity": quantity,
            "price": price,
        }],
        "paymentMethod": method,
    }
    payload.update(extra)
    response = client.post("/api/orders", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


# ===== HELPERS =====

class TestHelpers:

    @pytest.mark.parametrize("current,previous,expected", [
        (Decimal("150"), Decimal("100"), 50.0),
        (Decimal("50"), Decimal("100"), -50.0),
        (Decimal("10"), Decimal("0"), 100.0),
        (Decimal("0"), Decimal("0"), 0.0),
    ])
    def test_growth_percentage(self, current, previous, expected):
        assert growth_percentage(current, previous) == expected

    def test_months_back_clamps_to_month_end(self):
        assert _months_back(date(2024, 3, 31), 1) == date(2024, 2, 29)
        assert _months_back(date(2024, 1, 15), 1) == date(2023, 12, 15)

    def test_product_stats_rank_by_quantity(self):
        class Stored:
            def __init__(self, items):
                self.items = items

        orders = [
            Stored([{"productId": "tea", "productName": "Tea", "quantity": 1, "price": 20000,
                     "toppings": [{"price": 5000}]}]),
            Stored([{"productId": "coffee", "productName": "Coffee", "quantity": 3, "price": 25000}]),
            Stored([{"productId": "tea", "productName": "Tea", "quantity": 1, "price": 20000}]),
        ]
        stats = product_stats(orders, limit=10)
        assert [s["product_name"] for s in stats] == ["Coffee", "Tea"]
        assert stats[1]["quantity"] == 2
        assert stats[1]["revenue"] == Decimal("45000")
        assert stats[1]["orders"] == 2


# ===== DAILY =====

class TestDailyReport:

    def test_totals_split_and_comparison(self, client, clock):
        sell(client, price=30000, quantity=2)
        sell(client, price=40000, method="bank_transfer", product="Black coffee")
        sell(client, price=99000, status="held")
        sell(client, price=50000, orderDate="2024-03-14")

        report = client.get(f"{ANALYTICS_URL}/daily", params={"date": "2024-03-15"}).json()
        assert report["period"] == "day"
        assert report["label"] == "2024-03-15"
        assert report["totalRevenue"] == 100000
        assert report["totalOrders"] == 2
        assert report["totalItems"] == 3
        assert report["cashAmount"] == 60000
        assert report["bankTransferAmount"] == 40000
        assert report["previousRevenue"] == 50000
        assert report["revenueChange"] == 50000
        assert report["revenueChangePercent"] == 100.0
        assert report["topProducts"][0]["productName"] == "Milk tea"
        assert report["topProducts"][0]["quantity"] == 2
        assert len(report["orders"]) == 2
        assert report["breakdown"] == []

    def test_daily_report_agrees_with_the_shift(self, client, clock, seed_order):
        seed_order(total_amount=45000, created_at=datetime(2024, 3, 15, 8, 0))
        sell(client, price=30000)
        sell(client, price=20000, method="bank_transfer")

        report = client.get(f"{ANALYTICS_URL}/daily", params={"date": "2024-03-15"}).json()
        shift = client.get("/api/shifts", params={"date": "2024-03-15"}).json()
        assert report["cashAmount"] == shift["cashAmount"] == 75000
        assert report["bankTransferAmount"] == shift["bankTransferAmount"] == 20000
        assert report["totalOrders"] == shift["orderCount"] == 3

    def test_no_previous_revenue(self, client, clock):
        sell(client)
        report = client.get(f"{ANALYTICS_URL}/daily", params={"date": "2024-03-15"}).json()
        assert report["previousRevenue"] == 0
        assert report["revenueChangePercent"] == 100.0

    def test_empty_day(self, client, clock):
        report = client.get(f"{ANALYTICS_URL}/daily", params={"date": "2024-03-15"}).json()
        assert report["totalRevenue"] == 0
        assert report["revenueChangePercent"] == 0.0
        assert report["topProducts"] == []

    def test_date_is_required(self, client, clock):
        response = client.get(f"{ANALYTICS_URL}/daily")
        assert response.status_code == 400
        assert "date" in response.json()["message"]


# ===== LONGER PERIODS =====

class TestPeriodReports:

    def test_weekly_report_has_a_day_breakdown(self, client, clock):
        sell(client, price=30000, orderDate="2024-03-11")
        sell(client, price=20000, orderDate="2024-03-17")
        sell(client, price=10000, orderDate="2024-03-18")
        sell(client, price=40000, orderDate="2024-03-04")

        report = client.get(f"{ANALYTICS_URL}/weekly", params={"week": "2024-W11"}).json()
        assert (report["startDate"], report["endDate"]) == ("2024-03-11", "2024-03-17")
        assert report["totalRevenue"] == 50000
        assert report["previousRevenue"] == 40000
        assert report["revenueChangePercent"] == 25.0
        assert len(report["breakdown"]) == 7
        assert report["breakdown"][0] == {
            "label": "2024-03-11", "startDate": "2024-03-11", "endDate": "2024-03-11",
            "revenue": 30000, "orders": 1
        }
        assert report["breakdown"][6]["revenue"] == 20000
        assert "orders" in report and report["orders"] is None

    def test_previous_month_of_january(self, client, clock):
        sell(client, price=30000, orderDate="2024-01-10")
        sell(client, price=60000, orderDate="2023-12-31")

        report = client.get(f"{ANALYTICS_URL}/monthly", params={"month": "2024-01"}).json()
        assert report["totalRevenue"] == 30000
        assert report["previousRevenue"] == 60000
        assert report["revenueChangePercent"] == -50.0
        assert len(report["breakdown"]) == 31

    def test_quarterly_report_has_a_month_breakdown(self, client, clock):
        sell(client, price=30000, orderDate="2024-02-10")
        sell(client, price=10000, orderDate="2023-11-05")

        report = client.get(f"{ANALYTICS_URL}/quarterly", params={"quarter": "2024-Q1"}).json()
        assert report["totalRevenue"] == 30000
        assert report["previousRevenue"] == 10000
        assert [entry["label"] for entry in report["breakdown"]] == ["2024-01", "2024-02", "2024-03"]
        assert [entry["revenue"] for entry in report["breakdown"]] == [0, 30000, 0]

    def test_yearly_report(self, client, clock, seed_order):
        seed_order(total_amount=45000, created_at=datetime(2024, 6, 1, 12, 0))
        sell(client, price=30000)

        report = client.get(f"{ANALYTICS_URL}/yearly", params={"year": "2024"}).json()
        assert report["totalRevenue"] == 75000
        assert len(report["breakdown"]) == 12
        assert report["breakdown"][2]["revenue"] == 30000
        assert report["breakdown"][5]["revenue"] == 45000

    @pytest.mark.parametrize("path,params", [
        ("weekly", {"week": "2024-11"}),
        ("monthly", {"month": "March"}),
        ("quarterly", {"quarter": "2024-Q7"}),
        ("yearly", {"year": "twenty"}),
    ])
    def test_malformed_labels(self, client, clock, path, params):
        response = client.get(f"{ANALYTICS_URL}/{path}", params=params)
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid")

    def test_first_year_has_no_previous_year(self, client, clock):
        response = client.get(f"{ANALYTICS_URL}/yearly", params={"year": "0001"})
        assert response.status_code == 400
        assert response.json()["message"] == "No year before 1"


# ===== PEAK HOURS / PRODUCTS =====

class TestPeakHours:

    def test_sales_are_grouped_by_hour_of_creation(self, client, clock):
        clock.set(datetime(2024, 3, 15, 9, 15))
        sell(client, price=30000)
        clock.set(datetime(2024, 3, 15, 14, 5))
        sell(client, price=20000)
        clock.set(datetime(2024, 3, 15, 14, 45))
        sell(client, price=25000)

        report = client.get(f"{ANALYTICS_URL}/peak-hours", params={"date": "2024-03-15"}).json()
        assert len(report["hourStats"]) == 24
        assert report["hourStats"]["9"] == {"revenue": 30000, "orders": 1}
        assert report["hourStats"]["14"] == {"revenue": 45000, "orders": 2}
        assert report["peakHour"] == 14

    def test_quiet_day_has_no_peak(self, client, clock):
        report = client.get(f"{ANALYTICS_URL}/peak-hours", params={"date": "2024-03-15"}).json()
        assert report["peakHour"] is None


class TestTopProducts:

    def test_today(self, client, clock):
        sell(client, quantity=3, product="Milk tea")
        sell(client, quantity=5, product="Black coffee", price=25000)
        sell(client, quantity=9, product="Old favourite", orderDate="2024-03-01")

        report = client.get(f"{ANALYTICS_URL}/products", params={"period": "today"}).json()
        assert [p["productName"] for p in report["topProducts"]] == ["Black coffee", "Milk tea"]
        assert report["topProducts"][0]["revenue"] == 125000
        assert report["startDate"] == report["endDate"] == "2024-03-15"

    def test_explicit_range_and_all_time(self, client, clock):
        sell(client, quantity=3, product="Milk tea")
        sell(client, quantity=9, product="Old favourite", orderDate="2024-03-01")

        ranged = client.get(
            f"{ANALYTICS_URL}/products",
            params={"startDate": "2024-03-01", "endDate": "2024-03-02"}
        ).json()
        assert [p["productName"] for p in ranged["topProducts"]] == ["Old favourite"]

        everything = client.get(f"{ANALYTICS_URL}/products").json()
        assert [p["productName"] for p in everything["topProducts"]] == ["Old favourite", "Milk tea"]

    def test_month_window(self, client, clock):
        sell(client, product="Recent", orderDate="2024-02-20")
        sell(client, product="Too old", orderDate="2024-02-10")

        report = client.get(f"{ANALYTICS_URL}/products", params={"period": "month"}).json()
        assert report["startDate"] == "2024-02-15"
        assert [p["productName"] for p in report["topProducts"]] == ["Recent"]

    def test_unknown_period(self, client, clock):
        response = client.get(f"{ANALYTICS_URL}/products", params={"period": "decade"})
        assert response.status_code == 400
