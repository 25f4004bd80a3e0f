"""Database layer - engine, base classes, types, and store error translation."""

from uuid import UUID

from ledger_kernel.db.base import SYSTEM_ACTOR_ID, Base, TrackedBase
from ledger_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
    store_errors,
    translate_store_errors,
)
from ledger_kernel.db.types import Money, UUIDString

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "store_errors",
    "translate_store_errors",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "SYSTEM_ACTOR_ID",
    "Money",
]
