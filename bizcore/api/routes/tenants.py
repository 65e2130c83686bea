"""
api/routes/tenants.py
---------------------
Central tenant administration. Served only on central domains (404
elsewhere) and only to admins.

POST   /central/tenants                            — Register a tenant and provision its store
GET    /central/tenants                            — List tenants
GET    /central/tenants/{tenant_id}                — Get one tenant
PATCH  /central/tenants/{tenant_id}                — Rename / (de)activate / update config
POST   /central/tenants/{tenant_id}/domains        — Attach a domain
DELETE /central/tenants/{tenant_id}/domains/{domain} — Detach a domain
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.db.session import get_db
from bizcore.db.tenant_router import tenant_router
from bizcore.dependencies import get_current_admin, require_central_domain
from bizcore.models.tenant import Tenant
from bizcore.schemas.tenant import DomainAttach, TenantCreate, TenantRead, TenantUpdate
from bizcore.services.central_registry import CentralRegistry

router = APIRouter(
    prefix="/central/tenants",
    tags=["Central"],
    dependencies=[Depends(require_central_domain)],
)

Db = Annotated[AsyncSession, Depends(get_db)]
Admin = Annotated[str, Depends(get_current_admin)]


async def _tenant_or_404(db: AsyncSession, tenant_id: str) -> Tenant:
    tenant = await CentralRegistry.get_tenant(db, tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant '{tenant_id}' not found",
        )
    return tenant


@router.post(
    "",
    response_model=TenantRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a tenant and provision its database",
)
async def create_tenant(body: TenantCreate, db: Db, admin: Admin) -> TenantRead:
    """
    The registry row is only committed when provisioning succeeds; a
    store that cannot be reached yields 503 and nothing is registered.
    """
    try:
        tenant = await CentralRegistry.create_tenant(db, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    await tenant_router.provision(tenant.id)
    return TenantRead.model_validate(tenant)


@router.get("", response_model=list[TenantRead], summary="List tenants")
async def list_tenants(db: Db, admin: Admin) -> list[TenantRead]:
    tenants = await CentralRegistry.list_tenants(db)
    return [TenantRead.model_validate(t) for t in tenants]


@router.get("/{tenant_id}", response_model=TenantRead, summary="Get a tenant")
async def get_tenant(tenant_id: str, db: Db, admin: Admin) -> TenantRead:
    return TenantRead.model_validate(await _tenant_or_404(db, tenant_id))


@router.patch("/{tenant_id}", response_model=TenantRead, summary="Update a tenant")
async def update_tenant(
    tenant_id: str, body: TenantUpdate, db: Db, admin: Admin
) -> TenantRead:
    tenant = await _tenant_or_404(db, tenant_id)
    tenant = await CentralRegistry.update_tenant(db, tenant, body)
    return TenantRead.model_validate(tenant)


@router.post(
    "/{tenant_id}/domains",
    response_model=TenantRead,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a domain to a tenant",
)
async def attach_domain(
    tenant_id: str, body: DomainAttach, db: Db, admin: Admin
) -> TenantRead:
    tenant = await _tenant_or_404(db, tenant_id)
    try:
        tenant = await CentralRegistry.attach_domain(db, tenant, body.domain)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return TenantRead.model_validate(tenant)


@router.delete(
    "/{tenant_id}/domains/{domain}",
    response_model=TenantRead,
    summary="Detach a domain from a tenant",
)
async def detach_domain(
    tenant_id: str, domain: str, db: Db, admin: Admin
) -> TenantRead:
    tenant = await _tenant_or_404(db, tenant_id)
    try:
        detached = await CentralRegistry.detach_domain(db, tenant, domain)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if not detached:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Domain '{domain}' is not attached to tenant '{tenant_id}'",
        )
    return TenantRead.model_validate(await CentralRegistry.get_tenant(db, tenant_id))
