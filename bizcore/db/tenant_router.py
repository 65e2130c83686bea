"""
db/tenant_router.py
-------------------
Routes a request to its tenant's own database.

Design decisions:
  - Each tenant has a dedicated database whose URL is derived from the
    tenant id alone (settings.TENANT_DATABASE_URL_TEMPLATE), so the same
    tenant always lands on the same store.
  - Engines (connection pools) are created lazily, one per tenant, and
    reused across requests. Sessions are never shared: bind() opens a new
    AsyncSession for the caller and closes it on every exit path.
  - If the tenant's store cannot be reached, or exists without its entity
    tables, the caller gets TenantConnectionUnavailable. There is no
    fallback store, and binding never creates one: SQLite files are opened
    read-write only, so only provision() brings a store into existence.
  - The yielded TenantContext is the only handle to tenant data. It is
    passed explicitly to services; nothing stores it globally.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Set, Union

from sqlalchemy import inspect
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bizcore.core.config import settings
from bizcore.core.exceptions import TenantConnectionUnavailable
from bizcore.core.logging import get_logger
from bizcore.db.session import engine_options
from bizcore.lifecycle.audit import RequestMeta
from bizcore.models import TenantBase
from bizcore.services.central_registry import TenantRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class TenantContext:
    tenant: TenantRecord
    session: AsyncSession
    meta: RequestMeta = field(default_factory=RequestMeta)

    @property
    def tenant_id(self) -> str:
        return self.tenant.id


def _existing_store_only(url: str) -> Union[str, URL]:
    """SQLite URL that refuses to create a missing database file."""
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return url
    database = parsed.database or ""
    if database in ("", ":memory:") or database.startswith("file:"):
        return url
    return parsed.set(
        database=f"file:{database}",
        query={**parsed.query, "mode": "rw", "uri": "true"},
    )


def _has_entity_tables(sync_conn) -> bool:
    existing = set(inspect(sync_conn).get_table_names())
    return set(TenantBase.metadata.tables).issubset(existing)


class TenantConnectionRouter:

    def __init__(self, url_template: str) -> None:
        self._url_template = url_template
        self._engines: Dict[str, AsyncEngine] = {}
        self._sessionmakers: Dict[str, async_sessionmaker] = {}
        # Tenants whose entity tables were seen (or created) by this router.
        self._provisioned: Set[str] = set()

    def database_url(self, tenant_id: str) -> str:
        return self._url_template.format(tenant_id=tenant_id)

    def _engine_for(self, tenant_id: str) -> AsyncEngine:
        engine = self._engines.get(tenant_id)
        if engine is None:
            url = self.database_url(tenant_id)
            engine = create_async_engine(_existing_store_only(url), **engine_options(url))
            self._engines[tenant_id] = engine
            self._sessionmakers[tenant_id] = async_sessionmaker(
                bind=engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return engine

    def _sessionmaker_for(self, tenant_id: str) -> async_sessionmaker:
        self._engine_for(tenant_id)
        return self._sessionmakers[tenant_id]

    @asynccontextmanager
    async def bind(
        self,
        tenant: TenantRecord,
        meta: RequestMeta = RequestMeta(),
    ) -> AsyncIterator[TenantContext]:
        """
        Open a session on the tenant's store for the duration of the block.

        Commits when the block exits normally, rolls back on error, and
        always closes the session (cancellation included).

        Raises:
            TenantConnectionUnavailable: the store could not be reached or
                was never provisioned.
        """
        session = self._sessionmaker_for(tenant.id)()
        try:
            conn = await session.connection()
            if tenant.id not in self._provisioned:
                if not await conn.run_sync(_has_entity_tables):
                    await session.close()
                    logger.error("Tenant store not provisioned", tenant_id=tenant.id)
                    raise TenantConnectionUnavailable(tenant.id)
                self._provisioned.add(tenant.id)
        except (OSError, SQLAlchemyError) as exc:
            await session.close()
            logger.error("Tenant store unreachable", tenant_id=tenant.id, error=str(exc))
            raise TenantConnectionUnavailable(tenant.id) from exc

        logger.debug("Tenant context bound", tenant_id=tenant.id)
        try:
            yield TenantContext(tenant=tenant, session=session, meta=meta)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def provision(self, tenant_id: str) -> None:
        """Create the tenant's store and its entity tables (idempotent)."""
        url = self.database_url(tenant_id)
        engine = create_async_engine(url, **engine_options(url))
        try:
            async with engine.begin() as conn:
                await conn.run_sync(TenantBase.metadata.create_all)
        except (OSError, SQLAlchemyError) as exc:
            logger.error("Tenant provisioning failed", tenant_id=tenant_id, error=str(exc))
            raise TenantConnectionUnavailable(tenant_id) from exc
        finally:
            await engine.dispose()
        self._provisioned.add(tenant_id)
        logger.info("Tenant store provisioned", tenant_id=tenant_id)

    async def dispose(self) -> None:
        """Drain every tenant pool (application shutdown)."""
        for engine in self._engines.values():
            await engine.dispose()
        self._engines.clear()
        self._sessionmakers.clear()
        self._provisioned.clear()


tenant_router = TenantConnectionRouter(settings.TENANT_DATABASE_URL_TEMPLATE)
