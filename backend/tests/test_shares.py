# tests/test_shares.py - Task sharing endpoint tests
import pytest
from httpx import AsyncClient

from events import TaskEventType
from tests.conftest import ALICE, BOB, CAROL, get_auth_headers


async def _task(client: AsyncClient, identity: dict = ALICE, title: str = "Shared task") -> dict:
    resp = await client.post("/api/tasks", json={"title": title}, headers=get_auth_headers(identity))
    assert resp.status_code == 201
    return resp.json()


async def _share(client: AsyncClient, task_id: int, email: str, identity: dict = ALICE, **extra):
    body = {"taskId": task_id, "email": email, **extra}
    return await client.post("/api/tasks/share", json=body, headers=get_auth_headers(identity))


@pytest.mark.asyncio
async def test_share_task(client: AsyncClient, publisher):
    bob = (await client.get("/api/user", headers=get_auth_headers(BOB))).json()
    task = await _task(client)

    resp = await _share(client, task["id"], BOB["email"], permission="edit")
    assert resp.status_code == 201
    data = resp.json()
    assert data["taskId"] == task["id"]
    assert data["sharedWithId"] == bob["id"]
    assert data["permission"] == "edit"
    assert data["sharedWith"]["email"] == BOB["email"]

    event = publisher.last()
    assert event.type == TaskEventType.TASK_SHARED
    assert event.payload["sharedWithEmail"] == BOB["email"]


@pytest.mark.asyncio
async def test_share_defaults_to_view(client: AsyncClient):
    task = await _task(client)
    resp = await _share(client, task["id"], BOB["email"])
    assert resp.status_code == 201
    assert resp.json()["permission"] == "view"


@pytest.mark.asyncio
async def test_share_with_unknown_email_provisions_placeholder(client: AsyncClient):
    task = await _task(client)
    resp = await _share(client, task["id"], "newcomer@example.com")
    assert resp.status_code == 201
    assert resp.json()["sharedWith"]["email"] == "newcomer@example.com"
    assert resp.json()["sharedWith"]["displayName"] is None

    shares = (await client.get(f"/api/tasks/{task['id']}/shares", headers=get_auth_headers(ALICE))).json()
    assert [s["sharedWith"]["email"] for s in shares] == ["newcomer@example.com"]


@pytest.mark.asyncio
async def test_duplicate_share_conflict(client: AsyncClient):
    task = await _task(client)
    assert (await _share(client, task["id"], BOB["email"])).status_code == 201

    resp = await _share(client, task["id"], BOB["email"], permission="edit")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Task is already shared with this user"


@pytest.mark.asyncio
async def test_duplicate_share_to_placeholder_conflict(client: AsyncClient):
    task = await _task(client)
    assert (await _share(client, task["id"], "later@example.com")).status_code == 201
    assert (await _share(client, task["id"], "later@example.com")).status_code == 409


@pytest.mark.asyncio
async def test_share_requires_ownership(client: AsyncClient):
    task = await _task(client)

    resp = await _share(client, task["id"], CAROL["email"], identity=BOB)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "You can only share tasks you own"

    resp = await _share(client, 99999, CAROL["email"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_share_validation(client: AsyncClient):
    task = await _task(client)
    resp = await _share(client, task["id"], "not-an-email")
    assert resp.status_code == 400
    resp = await _share(client, task["id"], BOB["email"], permission="admin")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_shares_owner_only(client: AsyncClient):
    task = await _task(client)
    await _share(client, task["id"], BOB["email"])
    await _share(client, task["id"], CAROL["email"])

    resp = await client.get(f"/api/tasks/{task['id']}/shares", headers=get_auth_headers(ALICE))
    assert resp.status_code == 200
    assert {s["sharedWith"]["email"] for s in resp.json()} == {BOB["email"], CAROL["email"]}

    resp = await client.get(f"/api/tasks/{task['id']}/shares", headers=get_auth_headers(BOB))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_owner_sees_shares_on_task(client: AsyncClient):
    task = await _task(client)
    await _share(client, task["id"], BOB["email"])

    resp = await client.get(f"/api/tasks/{task['id']}", headers=get_auth_headers(ALICE))
    shares = resp.json()["shares"]
    assert len(shares) == 1
    assert shares[0]["sharedWith"]["email"] == BOB["email"]


@pytest.mark.asyncio
async def test_remove_share(client: AsyncClient, publisher):
    bob = (await client.get("/api/user", headers=get_auth_headers(BOB))).json()
    task = await _task(client)
    await _share(client, task["id"], BOB["email"])

    resp = await client.delete(f"/api/tasks/{task['id']}/shares/{bob['id']}", headers=get_auth_headers(BOB))
    assert resp.status_code == 403

    resp = await client.delete(f"/api/tasks/{task['id']}/shares/{bob['id']}", headers=get_auth_headers(ALICE))
    assert resp.status_code == 204
    assert publisher.last().type == TaskEventType.TASK_UNSHARED

    resp = await client.get(f"/api/tasks/{task['id']}", headers=get_auth_headers(BOB))
    assert resp.status_code == 403

    resp = await client.delete(f"/api/tasks/{task['id']}/shares/{bob['id']}", headers=get_auth_headers(ALICE))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_deleting_task_removes_it_from_recipients(client: AsyncClient):
    await client.get("/api/user", headers=get_auth_headers(BOB))
    task = await _task(client)
    await _share(client, task["id"], BOB["email"])

    resp = await client.delete(f"/api/tasks/{task['id']}", headers=get_auth_headers(ALICE))
    assert resp.status_code == 204

    resp = await client.get("/api/tasks", headers=get_auth_headers(BOB))
    assert resp.json() == []
