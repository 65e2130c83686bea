"""
services/central_registry.py
----------------------------
Business logic for the central tenant registry.

Service layer is responsible for:
  - Constructing queries against the central store
  - Enforcing registry rules (unique tenant ids, unique domains)
  - Returning domain objects (ORM models) to the route layer
  - Never returning HTTP responses (that's the route's job)

TenantRecord is the immutable snapshot handed to request handling, so a
registry change made while a request is running never affects it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from bizcore.core.config import settings
from bizcore.core.logging import get_logger
from bizcore.models.tenant import Domain, Tenant
from bizcore.schemas.tenant import TenantCreate, TenantUpdate

logger = get_logger(__name__)


def normalise_host(host: str) -> str:
    """'Acme.Example.com:8000 ' → 'acme.example.com'."""
    host = host.strip().lower()
    if host.startswith("["):  # IPv6 literal, keep the brackets
        return host.split("]")[0] + "]"
    return host.split(":")[0]


def _reject_central(domains) -> None:
    for domain in domains:
        if normalise_host(domain) in settings.CENTRAL_DOMAINS:
            raise ValueError(f"Domain '{domain}' is reserved for central routes")


@dataclass(frozen=True)
class TenantRecord:
    id: str
    name: str
    domains: Tuple[str, ...] = ()
    active: bool = True
    config: Dict[str, Any] = field(default_factory=dict)

    @property
    def slug(self) -> str:
        return str(self.config.get("slug") or self.id)

    @classmethod
    def from_model(cls, tenant: Tenant) -> "TenantRecord":
        return cls(
            id=tenant.id,
            name=tenant.name,
            domains=tuple(d.domain for d in tenant.domains),
            active=tenant.active,
            config=dict(tenant.config or {}),
        )


class CentralRegistry:

    @staticmethod
    async def create_tenant(db: AsyncSession, data: TenantCreate) -> Tenant:
        """
        Register a tenant with its domains.
        Raises ValueError if the id or any domain is already taken.
        """
        _reject_central(data.domains)
        tenant = Tenant(
            id=data.id,
            name=data.name,
            active=data.active,
            config=dict(data.config),
            domains=[Domain(domain=d) for d in data.domains],
        )
        db.add(tenant)
        try:
            await db.flush()  # Trigger DB constraints before commit
        except IntegrityError:
            await db.rollback()
            raise ValueError(
                f"Tenant '{data.id}' or one of its domains is already registered"
            )
        logger.info("Tenant created", tenant_id=tenant.id, domains=data.domains)
        return await CentralRegistry.get_tenant(db, tenant.id)

    @staticmethod
    async def get_tenant(db: AsyncSession, tenant_id: str) -> Optional[Tenant]:
        result = await db.execute(
            select(Tenant)
            .where(Tenant.id == tenant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_tenants(db: AsyncSession) -> list[Tenant]:
        result = await db.execute(select(Tenant).order_by(Tenant.created_at, Tenant.id))
        return list(result.scalars().all())

    @staticmethod
    async def find_by_domain(db: AsyncSession, host: str) -> Optional[Tenant]:
        result = await db.execute(
            select(Tenant)
            .join(Domain, Domain.tenant_id == Tenant.id)
            .where(Domain.domain == normalise_host(host))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def update_tenant(db: AsyncSession, tenant: Tenant, data: TenantUpdate) -> Tenant:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for key, value in changes.items():
            setattr(tenant, key, value)
        await db.flush()
        logger.info("Tenant updated", tenant_id=tenant.id, fields=sorted(changes))
        return await CentralRegistry.get_tenant(db, tenant.id)

    @staticmethod
    async def attach_domain(db: AsyncSession, tenant: Tenant, domain: str) -> Tenant:
        """
        Attach a domain to a tenant.
        Raises ValueError if the domain already belongs to any tenant.
        """
        _reject_central([domain])
        db.add(Domain(domain=normalise_host(domain), tenant_id=tenant.id))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ValueError(f"Domain '{domain}' is already registered")
        logger.info("Domain attached", tenant_id=tenant.id, domain=domain)
        return await CentralRegistry.get_tenant(db, tenant.id)

    @staticmethod
    async def detach_domain(db: AsyncSession, tenant: Tenant, domain: str) -> bool:
        """
        Detach a domain; returns False when the tenant does not own it.
        Raises ValueError when it is the tenant's last domain.

        Runs under a lock on the tenant row, and the delete only matches
        while another domain of the tenant remains.
        """
        result = await db.execute(
            select(Domain).where(
                Domain.tenant_id == tenant.id,
                Domain.domain == normalise_host(domain),
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            return False

        await db.execute(select(Tenant.id).where(Tenant.id == tenant.id).with_for_update())
        sibling = aliased(Domain)
        remaining = (
            select(func.count(sibling.id))
            .where(sibling.tenant_id == tenant.id)
            .scalar_subquery()
        )
        deleted = await db.execute(
            delete(Domain)
            .where(Domain.id == row.id, remaining > 1)
            .execution_options(synchronize_session=False)
        )
        if not deleted.rowcount:
            raise ValueError(f"Tenant '{tenant.id}' must keep at least one domain")
        logger.info("Domain detached", tenant_id=tenant.id, domain=domain)
        return True
