"""Camada de persistência (SQLModel)."""

from pixpay.db.models import (
    CANCELLED,
    EXPIRED,
    PAID,
    PENDING,
    Group,
    Payment,
    Profile,
    utcnow,
)
from pixpay.db.session import build_engine, create_all_tables, get_session

__all__ = [
    "CANCELLED",
    "EXPIRED",
    "PAID",
    "PENDING",
    "Group",
    "Payment",
    "Profile",
    "build_engine",
    "create_all_tables",
    "get_session",
    "utcnow",
]
