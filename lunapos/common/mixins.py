"""
Common mixins for POS models
"""
from sqlalchemy import Column, DateTime, Uuid
from uuid import uuid4

from lunapos.common.dates import local_now


class TimestampMixin:
    """Creation/update timestamps in the shop's local time (naive, never UTC)"""

    created_at = Column(DateTime, default=local_now, nullable=False, index=True)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now, nullable=False)


class IdMixin:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
