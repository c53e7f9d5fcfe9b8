"""Database layer - engine, base classes and session scopes."""

from ledger_kernel.db.base import UUID, Base, TenantScopedBase, UUIDString
from ledger_kernel.db.engine import (
    create_engine_from_url,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "create_engine_from_url",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "TenantScopedBase",
    "UUIDString",
    "UUID",
]
