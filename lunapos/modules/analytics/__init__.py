"""
Analytics module - Luna POS

Read-only revenue reports (day, ISO week, month, quarter, year), peak hours
and best selling products, computed with the same rules as the shift ledger.
"""
