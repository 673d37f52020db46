"""
Luna POS - point of sale backend

Orders, daily shift reconciliation and sales analytics over a FastAPI +
SQLAlchemy (async) stack.
"""

__version__ = "1.0.0"
