"""
Pytest configuration.

Settings are read from the environment at import time, so the test
databases are pointed at a temporary directory before any bizcore module
is imported. Service-level tests build their own engines and routers on
`tmp_path`; HTTP tests go through the application's own ones.
"""

import os
import tempfile
from pathlib import Path

_tmp = Path(tempfile.mkdtemp(prefix="bizcore-tests-"))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{(_tmp / 'central.db').as_posix()}"
os.environ["TENANT_DATABASE_URL_TEMPLATE"] = (
    f"sqlite+aiosqlite:///{_tmp.as_posix()}/tenant_{{tenant_id}}.db"
)
os.environ["CENTRAL_DOMAINS"] = '["localhost", "127.0.0.1"]'

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from bizcore.db.tenant_router import TenantConnectionRouter  # noqa: E402
from bizcore.lifecycle.audit import RequestMeta  # noqa: E402
from bizcore.models import Base  # noqa: E402
from bizcore.services.central_registry import TenantRecord  # noqa: E402

ACME = TenantRecord(id="acme", name="Acme Ltda", domains=("acme.localhost",))
GLOBEX = TenantRecord(id="globex", name="Globex SA", domains=("globex.localhost",))


@pytest.fixture
async def router(tmp_path):
    """Tenant router writing one SQLite file per tenant under tmp_path."""
    r = TenantConnectionRouter(
        f"sqlite+aiosqlite:///{tmp_path.as_posix()}/tenant_{{tenant_id}}.db"
    )
    await r.provision(ACME.id)
    await r.provision(GLOBEX.id)
    yield r
    await r.dispose()


@pytest.fixture
async def acme_ctx(router):
    async with router.bind(ACME, RequestMeta(ip="10.0.0.1")) as ctx:
        yield ctx


@pytest.fixture
async def central_db(tmp_path):
    """Session on a fresh central registry."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{(tmp_path / 'central.db').as_posix()}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()
