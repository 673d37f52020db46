"""
Shifts module - Luna POS

One shift per calendar day. The opening float is entered by the operator;
cash, bank transfer, end and net amounts are always derived from the day's
completed orders by the ledger.
"""

from .models import DailyShift

__all__ = ["DailyShift"]
