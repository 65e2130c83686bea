"""End-to-end HTTP tests through the FastAPI application."""

import uuid

import pytest
from fastapi.testclient import TestClient

from bizcore import dependencies
from bizcore.core.security import create_access_token
from bizcore.db.session import AsyncSessionLocal, engine
from bizcore.db.tenant_router import TenantConnectionRouter, tenant_router
from bizcore.models import Base, Domain, Tenant
from main import app

CENTRAL = "http://localhost"


async def _reset_central() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


def _auth(sub: str, tenant_id=None, role: str = "user") -> dict:
    return {"Authorization": f"Bearer {create_access_token(sub, tenant_id, role)}"}


ADMIN = _auth("root", None, "admin")


@pytest.fixture
def client():
    with TestClient(app) as c:
        c.portal.call(_reset_central)
        yield c


@pytest.fixture
def make_tenant(client):
    """Register a tenant with a fresh id; returns (tenant_id, base_url)."""

    def _make(**overrides):
        tenant_id = f"t{uuid.uuid4().hex[:10]}"
        body = {
            "id": tenant_id,
            "name": f"Tenant {tenant_id}",
            "domains": [f"{tenant_id}.localhost"],
        }
        body.update(overrides)
        response = client.post(f"{CENTRAL}/central/tenants", json=body, headers=ADMIN)
        assert response.status_code == 201, response.text
        return tenant_id, f"http://{tenant_id}.localhost"

    return _make


def test_health(client):
    response = client.get(f"{CENTRAL}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ── Central administration ────────────────────────────────────────────────────

def test_register_and_manage_tenant(client, make_tenant):
    tenant_id, _ = make_tenant(config={"slug": "acme-ltda"})

    listed = client.get(f"{CENTRAL}/central/tenants", headers=ADMIN).json()
    assert [t["id"] for t in listed] == [tenant_id]

    response = client.post(
        f"{CENTRAL}/central/tenants/{tenant_id}/domains",
        json={"domain": "Portal.Acme.Test"},
        headers=ADMIN,
    )
    assert response.status_code == 201
    assert response.json()["domains"] == [f"{tenant_id}.localhost", "portal.acme.test"]

    response = client.patch(
        f"{CENTRAL}/central/tenants/{tenant_id}", json={"name": "Renamed"}, headers=ADMIN
    )
    assert response.json()["name"] == "Renamed"
    assert response.json()["config"] == {"slug": "acme-ltda"}

    response = client.delete(
        f"{CENTRAL}/central/tenants/{tenant_id}/domains/portal.acme.test", headers=ADMIN
    )
    assert response.status_code == 200
    assert response.json()["domains"] == [f"{tenant_id}.localhost"]


def test_registry_conflicts(client, make_tenant):
    tenant_id, _ = make_tenant()
    url = f"{CENTRAL}/central/tenants"

    duplicate = {"id": tenant_id, "name": "Again", "domains": ["other.localhost"]}
    assert client.post(url, json=duplicate, headers=ADMIN).status_code == 409

    central = {"id": "tcentral", "name": "Central", "domains": ["localhost"]}
    assert client.post(url, json=central, headers=ADMIN).status_code == 409

    last = f"{url}/{tenant_id}/domains/{tenant_id}.localhost"
    assert client.delete(last, headers=ADMIN).status_code == 409
    assert client.delete(f"{url}/{tenant_id}/domains/nope.test", headers=ADMIN).status_code == 404
    assert client.get(f"{url}/missing", headers=ADMIN).status_code == 404


def test_central_routes_require_admin(client):
    url = f"{CENTRAL}/central/tenants"
    assert client.get(url).status_code == 401
    assert client.get(url, headers=_auth("7", "acme", "user")).status_code == 403


def test_central_routes_do_not_exist_on_tenant_domains(client, make_tenant):
    _, base = make_tenant()
    assert client.get(f"{base}/central/tenants", headers=ADMIN).status_code == 404


# ── Tenant resolution ─────────────────────────────────────────────────────────

def test_tenant_route_on_central_domain_never_binds(client, monkeypatch):
    def bind_spy(*args, **kwargs):
        raise AssertionError("tenant store must not be bound for a central host")

    monkeypatch.setattr(tenant_router, "bind", bind_spy)

    response = client.get(f"{CENTRAL}/clients")

    assert response.status_code == 403
    assert response.json()["code"] == "central_domain_access_denied"


def test_unknown_host_is_404(client):
    response = client.get("http://nobody.localhost/clients")
    assert response.status_code == 404
    assert response.json()["code"] == "tenant_not_resolved"


def test_inactive_tenant_is_404(client, make_tenant):
    tenant_id, base = make_tenant()
    client.patch(f"{CENTRAL}/central/tenants/{tenant_id}", json={"active": False}, headers=ADMIN)

    response = client.get(f"{base}/clients")

    assert response.status_code == 404
    assert response.json()["code"] == "tenant_not_resolved"


def test_unreachable_tenant_store_is_503(client, make_tenant, monkeypatch):
    _, base = make_tenant()
    broken = TenantConnectionRouter("sqlite+aiosqlite:////nonexistent/dir/tenant_{tenant_id}.db")
    monkeypatch.setattr(dependencies, "tenant_router", broken)

    response = client.get(f"{base}/clients")

    assert response.status_code == 503
    assert response.json()["code"] == "tenant_connection_unavailable"


def test_registered_but_unprovisioned_tenant_is_503(client):
    async def register_without_store():
        async with AsyncSessionLocal() as db:
            tenant = Tenant(id="tbare", name="Bare", active=True, config={})
            tenant.domains.append(Domain(domain="tbare.localhost"))
            db.add(tenant)
            await db.commit()

    client.portal.call(register_without_store)

    response = client.get("http://tbare.localhost/clients")

    assert response.status_code == 503
    assert response.json()["code"] == "tenant_connection_unavailable"


def test_tenant_headers_on_every_tenant_response(client, make_tenant):
    tenant_id, base = make_tenant(config={"slug": "acme-ltda"})
    record = client.post(f"{base}/clients", json={"name": "A"}).json()

    responses = [
        client.get(f"{base}/clients"),
        client.get(f"{base}/clients/999"),
        client.put(f"{base}/clients/{record['id']}/restore", headers=_auth("1", tenant_id)),
    ]

    assert [r.status_code for r in responses] == [200, 404, 409]
    for response in responses:
        assert response.headers["X-Tenant-Id"] == tenant_id
        assert response.headers["X-Tenant-Slug"] == "acme-ltda"


def test_no_tenant_headers_without_a_tenant(client):
    response = client.get("http://nobody.localhost/clients")
    assert "X-Tenant-Id" not in response.headers


# ── Lifecycle over HTTP ───────────────────────────────────────────────────────

def test_client_trash_lifecycle(client, make_tenant):
    tenant_id, base = make_tenant()
    actor = _auth("42", tenant_id)

    created = client.post(f"{base}/clients", json={"name": "Maria", "email": "maria@example.com"})
    assert created.status_code == 201
    client_id = created.json()["id"]
    assert created.json()["hidden"] is False
    assert created.json()["trashed"] is False

    # Without an actor nothing changes.
    response = client.delete(f"{base}/clients/{client_id}")
    assert response.status_code == 401
    assert response.json()["code"] == "actor_required"
    assert client.get(f"{base}/clients").json()["total"] == 1

    response = client.delete(f"{base}/clients/{client_id}?reason=duplicate", headers=actor)
    assert response.status_code == 200
    body = response.json()
    assert body["trashed"] is True
    assert body["trashed_audit"]["actor"] == "42"
    assert body["trashed_audit"]["entity_label"] == "Maria"
    assert body["trashed_audit"]["reason"] == "duplicate"
    assert body["trashed_audit"]["ip"] == "testclient"

    assert client.get(f"{base}/clients").json() == {"total": 0, "items": []}
    assert [c["id"] for c in client.get(f"{base}/clients/trash").json()["items"]] == [client_id]
    assert client.get(f"{base}/clients/{client_id}").status_code == 404

    response = client.put(f"{base}/clients/{client_id}/restore", headers=actor)
    assert response.status_code == 200
    assert response.json()["trashed"] is False
    assert response.json()["trashed_audit"] is None
    assert client.get(f"{base}/clients/{client_id}").status_code == 200

    response = client.delete(f"{base}/clients/{client_id}/force", headers=actor)
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_lifecycle_transition"

    client.delete(f"{base}/clients/{client_id}", headers=actor)
    assert client.delete(f"{base}/clients/{client_id}/force", headers=actor).status_code == 204
    assert client.put(f"{base}/clients/{client_id}/restore", headers=actor).status_code == 404
    assert client.get(f"{base}/clients/trash").json()["total"] == 0


def test_hide_and_unhide(client, make_tenant):
    tenant_id, base = make_tenant()
    actor = _auth("9", tenant_id)
    course_id = client.post(f"{base}/courses", json={"name": "pp-asa"}).json()["id"]

    hidden = client.put(f"{base}/courses/{course_id}/hide", headers=actor).json()
    assert hidden["hidden"] is True
    assert hidden["hidden_audit"]["actor"] == "9"
    assert client.get(f"{base}/courses").json()["total"] == 0

    shown = client.put(f"{base}/courses/{course_id}/unhide", headers=actor).json()
    assert shown["hidden"] is False
    assert client.get(f"{base}/courses").json()["total"] == 1


def test_options_delete_hides_and_have_no_trash_routes(client, make_tenant):
    tenant_id, base = make_tenant()
    actor = _auth("3", tenant_id)
    option = client.post(
        f"{base}/options", json={"name": "Currency", "url": "currency", "value": "BRL"}
    ).json()

    response = client.delete(f"{base}/options/{option['id']}", headers=actor)

    assert response.status_code == 200
    assert response.json()["hidden"] is True
    assert response.json()["trashed"] is False
    assert client.put(f"{base}/options/{option['id']}/restore", headers=actor).status_code == 404


def test_tenants_with_same_local_id_are_isolated(client, make_tenant):
    a_id, a = make_tenant()
    b_id, b = make_tenant()

    first = client.post(f"{a}/clients", json={"name": "A"}).json()
    second = client.post(f"{b}/clients", json={"name": "B"}).json()
    assert first["id"] == second["id"]

    client.delete(f"{a}/clients/{first['id']}", headers=_auth("1", a_id))

    assert client.get(f"{a}/clients").json()["total"] == 0
    listed = client.get(f"{b}/clients").json()
    assert [c["name"] for c in listed["items"]] == ["B"]
    assert client.get(f"{b}/clients/trash").json()["total"] == 0


def test_token_for_another_tenant_is_rejected(client, make_tenant):
    _, a = make_tenant()
    b_id, _ = make_tenant()
    record = client.post(f"{a}/clients", json={"name": "A"}).json()

    response = client.delete(f"{a}/clients/{record['id']}", headers=_auth("1", b_id))

    assert response.status_code == 401
    assert client.get(f"{a}/clients").json()["total"] == 1


def test_central_admin_may_act_on_any_tenant(client, make_tenant):
    _, base = make_tenant()
    record = client.post(f"{base}/clients", json={"name": "A"}).json()

    response = client.delete(f"{base}/clients/{record['id']}", headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["trashed_audit"]["actor"] == "root"


def test_listing_can_be_sorted(client, make_tenant):
    _, base = make_tenant()
    for name in ["Carla", "Ana", "Bruno"]:
        client.post(f"{base}/clients", json={"name": name})

    newest_first = client.get(f"{base}/clients").json()["items"]
    by_name = client.get(f"{base}/clients?order_by=name&order=asc").json()["items"]

    assert [c["name"] for c in newest_first] == ["Bruno", "Ana", "Carla"]
    assert [c["name"] for c in by_name] == ["Ana", "Bruno", "Carla"]


@pytest.mark.parametrize("query", ["order_by=secret", "order_by=trashed_audit", "order=sideways"])
def test_unknown_sort_is_422(client, make_tenant, query):
    _, base = make_tenant()
    assert client.get(f"{base}/clients?{query}").status_code == 422
