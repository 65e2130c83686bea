"""
create_tables.py
----------------
One-shot script to create the central registry tables and provision the
entity tables of every registered tenant.
Use this for quick setup. For production migrations, use Alembic instead.

Usage:
    python create_tables.py
"""

import asyncio

from sqlalchemy import select

from bizcore.core.logging import configure_logging, get_logger
from bizcore.db.session import AsyncSessionLocal, engine
from bizcore.db.tenant_router import tenant_router
from bizcore.models import Base, Tenant  # Imports all models so metadata is populated

logger = get_logger(__name__)


async def create_all_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Central tables created")

    async with AsyncSessionLocal() as session:
        tenant_ids = list((await session.execute(select(Tenant.id))).scalars().all())

    for tenant_id in tenant_ids:
        await tenant_router.provision(tenant_id)

    await tenant_router.dispose()
    await engine.dispose()
    logger.info("All tables created", tenants=len(tenant_ids))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(create_all_tables())
