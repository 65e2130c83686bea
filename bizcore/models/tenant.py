"""
models/tenant.py
----------------
Central registry models: Tenant and Domain.

These live in the shared central store and are never partitioned per
tenant. A tenant's business data lives in its own database, addressed by
its id (see db/tenant_router.py). Domains are unique across all tenants,
so one host can never resolve to two tenants.
"""

from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizcore.db.base import Base, TimestampMixin


class Tenant(Base, TimestampMixin):
    __tablename__ = "tenants"

    # Stable slug, also used to derive the tenant's database name.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Relationships
    domains: Mapped[list["Domain"]] = relationship(
        "Domain",
        back_populates="tenant",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Domain.id",
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name}>"


class Domain(Base, TimestampMixin):
    __tablename__ = "domains"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    domain: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="domains")

    def __repr__(self) -> str:
        return f"<Domain {self.domain} tenant_id={self.tenant_id}>"
