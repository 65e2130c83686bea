"""
core/exceptions.py
------------------
Domain errors raised by the tenancy and lifecycle layers.

Services raise these; the application-level handler in main.py renders
them as JSON with the status code carried by each class. None of them is
fatal to the process: each is scoped to the request that raised it, and
the request's tenant session is rolled back before the response is sent.
"""

from fastapi import status


class BizcoreError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


# ── Tenancy ───────────────────────────────────────────────────────────────────

class TenantNotResolved(BizcoreError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "tenant_not_resolved"

    def __init__(self, host: str, reason: str = "no tenant is registered for this domain") -> None:
        super().__init__(f"Host '{host}': {reason}")
        self.host = host


class CentralDomainAccessDenied(BizcoreError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "central_domain_access_denied"

    def __init__(self, host: str) -> None:
        super().__init__(f"Host '{host}' is a central domain and cannot serve tenant routes")
        self.host = host


class TenantConnectionUnavailable(BizcoreError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "tenant_connection_unavailable"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Store for tenant '{tenant_id}' is unavailable")
        self.tenant_id = tenant_id


# ── Lifecycle ─────────────────────────────────────────────────────────────────

class EntityNotFound(BizcoreError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "entity_not_found"

    def __init__(self, entity: str, entity_id) -> None:
        super().__init__(f"{entity} '{entity_id}' not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidLifecycleTransition(BizcoreError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_lifecycle_transition"

    def __init__(self, entity: str, entity_id, transition: str, reason: str) -> None:
        super().__init__(f"Cannot {transition} {entity} '{entity_id}': {reason}")
        self.entity = entity
        self.entity_id = entity_id
        self.transition = transition


class ActorRequired(BizcoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "actor_required"

    def __init__(self) -> None:
        super().__init__("Lifecycle changes require an identified actor")
