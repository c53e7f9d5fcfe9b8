"""
Declarative bases for the ledger tables.

Every table has a uuid4 ``id`` stored as a 36-character string, so the same
schema runs on PostgreSQL and SQLite.  Amounts are ``Numeric(12, 2)``
through the annotation map: a model column typed ``Mapped[Decimal]`` is
two-place money without further configuration.

Customers, invoices and expenses belong to one tenant and derive from
``TenantScopedBase``.  Payments are reached through their invoice and use
``Base`` directly.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

TENANT_ID_LENGTH = 64


class UUIDString(TypeDecorator):
    """UUID held as String(36); comes back as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(12, 2),
        datetime: DateTime(timezone=True),
        date: Date,
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TenantScopedBase(Base):
    """
    Row owned by one tenant.

    Lookups in ``LedgerStore`` always filter on ``tenant_id`` together with
    ``id``; a row of another tenant is indistinguishable from a missing one.
    """

    __abstract__ = True

    tenant_id: Mapped[str] = mapped_column(
        String(TENANT_ID_LENGTH),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
