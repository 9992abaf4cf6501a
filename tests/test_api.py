"""
HTTP-level tests against the FastAPI app with the memory store wired in.
"""
import pytest
from httpx import AsyncClient, ASGITransport

from ticketdesk.api.deps import get_store
from ticketdesk.main import app
from ticketdesk.platform.provider_registry import registry

API = "/api/v1"


@pytest.fixture
async def client(seeded_store, cursor):
    app.dependency_overrides[get_store] = lambda: seeded_store
    registry._rotation_cursor = cursor
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    registry.reset()


async def create_category(client, **kw):
    body = {"issue_type": "Complaint", "l1": "Payments", "l2": "Payouts", "l3": "Delayed payout", "issue_priority_points": 20}
    body.update(kw)
    resp = await client.post(f"{API}/categories", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_health(client):
    resp = await client.get(f"{API}/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_priority_score_endpoint(client):
    resp = await client.post(f"{API}/priority/score", json={"gmv_tier": "Platinum", "open_ticket_count": 2, "category_issue_points": 20})

    assert resp.status_code == 200
    body = resp.json()
    assert body["priority_score"] == 70
    assert body["priority_badge"] == "P0"


async def test_ticket_flow(client):
    category = await create_category(client)
    assert category["path"] == "Complaint > Payments > Payouts > Delayed payout"

    agent = (await client.post(f"{API}/users", json={
        "email": "ana@example.com", "name": "Ana", "role": "Agent", "department": "Finance",
    })).json()
    resp = await client.put(f"{API}/routing/rules", json={
        "category_id": category["id"], "target_department": "Finance",
        "auto_assign_enabled": True, "assignment_strategy": "round_robin",
    })
    assert resp.status_code == 200, resp.text

    resp = await client.post(f"{API}/tickets", json={
        "subject": "Payout missing", "description": "Nothing arrived this week",
        "department": "Experience", "issue_type": "Complaint", "category_id": category["id"],
    })
    assert resp.status_code == 201, resp.text
    ticket = resp.json()
    assert ticket["department"] == "Finance"
    assert ticket["assignee_id"] == agent["id"]
    assert ticket["status"] == "Open"
    assert ticket["category_label"] == category["path"]

    resp = await client.post(f"{API}/tickets/{ticket['id']}/status", json={"status": "Closed"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "InvalidStatusTransition"

    resp = await client.get(f"{API}/tickets/{ticket['id']}")
    assert resp.status_code == 200

    audit = (await client.get(f"{API}/audit")).json()
    assert audit[0]["action"] == "ticket.create"


async def test_missing_required_fields_returns_422_with_fields(client):
    category = await create_category(client)

    resp = await client.post(f"{API}/tickets", json={"category_id": category["id"], "department": "Finance"})

    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "MissingRequiredFields"
    assert body["fields"] == ["issueType", "subject", "description"]


async def test_invalid_rule_returns_422(client):
    category = await create_category(client)

    resp = await client.put(f"{API}/routing/rules", json={
        "category_id": category["id"], "target_department": "Finance",
        "assignment_strategy": "specific_agent",
    })

    assert resp.status_code == 422
    assert "assigned_agent_id" in resp.json()["detail"]


async def test_system_role_delete_returns_409(client, seeded_store):
    admin = await seeded_store.get_role_by_name("Admin")

    resp = await client.delete(f"{API}/roles/{admin.id}")

    assert resp.status_code == 409


async def test_access_override_roundtrip(client, seeded_store, make_user):
    user = await make_user("Ana")

    resp = await client.get(f"{API}/access/users/{user.id}/pages/users")
    assert resp.json() == {"enabled": False, "source": "default"}

    resp = await client.put(f"{API}/access/user/{user.id}/pages/users", json={"enabled": True, "reason": "cover"})
    assert resp.status_code == 200
    resp = await client.get(f"{API}/access/users/{user.id}/pages/users")
    assert resp.json() == {"enabled": True, "source": "user-override"}

    resp = await client.delete(f"{API}/access/user/{user.id}/pages/users")
    assert resp.status_code == 204
    resp = await client.delete(f"{API}/access/user/{user.id}/pages/users")
    assert resp.status_code == 404


async def test_resolve_fields_endpoint(client):
    resp = await client.get(f"{API}/fields/resolve", params={"department_type": "Seller Support"})

    assert resp.status_code == 200
    fields = {f["field_name"]: f for f in resp.json()}
    assert fields["vendorHandle"]["effective_visibility"] == "visible"
    assert fields["customer"]["effective_visibility"] == "hidden"


async def test_store_unavailable_maps_to_503(client, seeded_store, monkeypatch):
    from ticketdesk.core.errors import StoreUnavailable

    async def broken(*args, **kwargs):
        raise StoreUnavailable("database unreachable")

    monkeypatch.setattr(seeded_store, "list_roles", broken)
    resp = await client.get(f"{API}/roles")

    assert resp.status_code == 503


async def test_role_rename_onto_existing_name_returns_409(client):
    role = (await client.post(f"{API}/roles", json={"name": "Triage"})).json()

    resp = await client.patch(f"{API}/roles/{role['id']}", json={"name": "Agent"})

    assert resp.status_code == 409
    assert resp.json()["error"] == "DuplicateRoleName"


async def test_vendor_size_code_scores_like_named_tier(client):
    resp = await client.put(f"{API}/vendors", json={"handle": "acme", "name": "Acme", "gmv_tier": "XL"})
    assert resp.status_code == 200, resp.text

    resp = await client.put(f"{API}/vendors", json={"handle": "acme", "name": "Acme", "gmv_tier": "Platinum/XL"})
    assert resp.status_code == 422

    resp = await client.post(f"{API}/priority/score-ticket", json={"vendor_handle": "acme"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["breakdown"]["gmv_points"] == 40
