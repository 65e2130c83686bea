"""
db/base.py
----------
Declarative bases and shared mixins.

Two metadata trees are kept apart on purpose:
  Base        → central registry tables (tenants, domains), one shared store.
  TenantBase  → entity tables, created once inside every tenant's own store.

TimestampMixin:          created_at / updated_at columns.
LifecycleEnvelopeMixin:  hidden / trashed flags plus their audit stamps.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Persisted flag values ('sim' / 'não').
FLAG_ON = "s"
FLAG_OFF = "n"


class Base(DeclarativeBase):
    """Base class for central registry models."""
    pass


class TenantBase(DeclarativeBase):
    """Base class for models stored in a tenant's own database."""
    pass


class TimestampMixin:
    """Adds server-side created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class LifecycleEnvelopeMixin:
    """
    Visibility/trash envelope carried by every tenant entity.

    Column names match the legacy tenant schema (excluido, deletado,
    reg_excluido, reg_deletado). A flag and its audit column are always
    written together by the lifecycle managers.
    """

    hidden: Mapped[Optional[str]] = mapped_column(
        "excluido", String(1), nullable=True, default=FLAG_OFF, index=True
    )
    trashed: Mapped[Optional[str]] = mapped_column(
        "deletado", String(1), nullable=True, default=FLAG_OFF, index=True
    )
    hidden_audit: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "reg_excluido", JSON, nullable=True
    )
    trashed_audit: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "reg_deletado", JSON, nullable=True
    )
