"""
services/tenant_resolver.py
---------------------------
Maps a request host to exactly one tenant.

Resolution order:
  1. Normalise the host (lower-case, port stripped).
  2. Central domains never resolve to a tenant: a tenant-scoped route
     reached through one is refused with CentralDomainAccessDenied.
  3. Look the host up in the central registry's domain index.
  4. Unknown or inactive tenants raise TenantNotResolved.

The result is an immutable TenantRecord, taken once per request.
"""

from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.exceptions import CentralDomainAccessDenied, TenantNotResolved
from bizcore.core.logging import get_logger
from bizcore.services.central_registry import (
    CentralRegistry,
    TenantRecord,
    normalise_host,
)

logger = get_logger(__name__)


class TenantResolver:

    def __init__(self, db: AsyncSession, central_domains: Iterable[str]) -> None:
        self._db = db
        self._central_domains = frozenset(normalise_host(d) for d in central_domains)

    def is_central(self, host: str) -> bool:
        return normalise_host(host) in self._central_domains

    async def resolve(self, host: str) -> TenantRecord:
        normalised = normalise_host(host or "")
        if not normalised:
            raise TenantNotResolved(host or "", reason="request carries no host")

        if normalised in self._central_domains:
            logger.warning("Tenant route requested via central domain", host=normalised)
            raise CentralDomainAccessDenied(normalised)

        tenant = await CentralRegistry.find_by_domain(self._db, normalised)
        if tenant is None:
            logger.info("No tenant for host", host=normalised)
            raise TenantNotResolved(normalised)
        if not tenant.active:
            logger.info("Tenant inactive", host=normalised, tenant_id=tenant.id)
            raise TenantNotResolved(normalised, reason="tenant is inactive")

        return TenantRecord.from_model(tenant)
