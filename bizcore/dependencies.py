"""
dependencies.py
---------------
FastAPI dependency injection functions for tenancy and actor identification.

Tenant-scoped flow:
  1. get_current_tenant resolves the Host header to one tenant through the
     central registry (central domains are refused here).
  2. get_tenant_context binds a session on that tenant's own database for
     the rest of the request and releases it afterwards.
  3. get_current_actor reads the optional Bearer token. No token means no
     actor, and lifecycle mutations then fail with ActorRequired.

Central flow:
  require_central_domain hides central routes from tenant domains, and
  get_current_admin layers an admin role check on top of a valid token.
"""

from typing import Annotated, AsyncIterator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from bizcore.core.config import settings
from bizcore.core.logging import bind_request_context, get_logger
from bizcore.core.security import decode_access_token
from bizcore.db.session import get_db
from bizcore.db.tenant_router import TenantContext, tenant_router
from bizcore.lifecycle.audit import RequestMeta
from bizcore.services.central_registry import TenantRecord, normalise_host
from bizcore.services.tenant_resolver import TenantResolver

logger = get_logger(__name__)

ADMIN_ROLE = "admin"

# Tokens are issued by the identity provider; tokenUrl only documents it.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token", auto_error=False)

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def _decode(token: str) -> dict:
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        raise _CREDENTIALS_EXCEPTION
    if not payload.get("sub"):
        raise _CREDENTIALS_EXCEPTION
    return payload


def get_request_meta(request: Request) -> RequestMeta:
    return RequestMeta(ip=request.client.host if request.client else None)


# ── Tenant-scoped requests ────────────────────────────────────────────────────

async def get_current_tenant(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TenantRecord:
    """
    Resolve the request host to a tenant snapshot. The snapshot is kept on
    request.state so the response headers can name the tenant.
    Raises TenantNotResolved (404) or CentralDomainAccessDenied (403).
    """
    resolver = TenantResolver(db, settings.CENTRAL_DOMAINS)
    tenant = await resolver.resolve(request.headers.get("host", ""))
    bind_request_context(tenant_id=tenant.id)
    request.state.tenant = tenant
    return tenant


async def get_tenant_context(
    tenant: Annotated[TenantRecord, Depends(get_current_tenant)],
    meta: Annotated[RequestMeta, Depends(get_request_meta)],
) -> AsyncIterator[TenantContext]:
    """
    Bind the request to the tenant's database.
    Raises TenantConnectionUnavailable (503) if the store is unreachable
    or was never provisioned.
    """
    async with tenant_router.bind(tenant, meta) as ctx:
        yield ctx


async def get_current_actor(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    tenant: Annotated[TenantRecord, Depends(get_current_tenant)],
) -> Optional[str]:
    """
    Actor id from the Bearer token, or None when no token was sent.

    A token minted for another tenant is rejected with 401. Central
    administrators (tenant_id=None, role=admin) may act on any tenant.
    """
    if not token:
        return None
    payload = _decode(token)
    token_tenant = payload.get("tenant_id")
    if token_tenant is None and payload.get("role") == ADMIN_ROLE:
        return str(payload["sub"])
    if token_tenant != tenant.id:
        logger.warning(
            "Token tenant mismatch",
            token_tenant=token_tenant,
            tenant_id=tenant.id,
        )
        raise _CREDENTIALS_EXCEPTION
    return str(payload["sub"])


# ── Central requests ──────────────────────────────────────────────────────────

def require_central_domain(request: Request) -> None:
    """Central routes do not exist on tenant domains."""
    host = normalise_host(request.headers.get("host", ""))
    if host not in settings.CENTRAL_DOMAINS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


async def get_current_admin(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
) -> str:
    """
    Require a valid token with the admin role.
    Raises 401 without a valid token, 403 for non-admins.
    """
    if not token:
        raise _CREDENTIALS_EXCEPTION
    payload = _decode(token)
    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return str(payload["sub"])
