"""HTTP-level tests: identity header, error mapping, cron trigger."""
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from taskboard.tasks import TaskService


def as_user(user_id):
    return {"X-User-ID": user_id}


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_requests_without_identity_are_rejected(client):
    resp = await client.get("/api/tasks")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_task_lifecycle(client):
    alice = as_user("alice")
    created = await client.post(
        "/api/tasks",
        json={"title": "Ship it", "dueDate": "2030-01-02", "dueTime": "09:30", "priority": "high"},
        headers=alice,
    )
    assert created.status_code == 201
    task = created.json()
    assert task["dueTime"] == "09:30"
    assert task["status"] == "pending"

    toggled = await client.post(f"/api/tasks/{task['id']}/toggle", headers=alice)
    assert toggled.json()["isCompleted"] is True

    listing = await client.get("/api/tasks", headers=alice)
    assert listing.json()["count"] == 1

    # Someone else's personal task does not exist for them.
    other = await client.get(f"/api/tasks/{task['id']}", headers=as_user("bob"))
    assert other.status_code in (403, 404)


@pytest.mark.asyncio
async def test_validation_error_body(client):
    resp = await client.post("/api/tasks", json={"title": "   "}, headers=as_user("alice"))
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "validation_error"
    assert body["field"] == "title"


@pytest.mark.asyncio
async def test_missing_task_is_404(client):
    resp = await client.get("/api/tasks/nope", headers=as_user("alice"))
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_profile_timezone_is_validated(client):
    alice = as_user("alice")
    bad = await client.put("/api/me/profile", json={"timezone": "Mars/Olympus"}, headers=alice)
    assert bad.status_code == 400

    ok = await client.put(
        "/api/me/profile",
        json={"username": "Alice", "timezone": "Europe/Berlin", "reminderHoursBefore": 2},
        headers=alice,
    )
    assert ok.status_code == 200
    profile = (await client.get("/api/me/profile", headers=alice)).json()
    assert profile["timezone"] == "Europe/Berlin"
    assert profile["reminderHoursBefore"] == 2


@pytest.mark.asyncio
async def test_workspace_roles_over_http(client):
    owner, viewer = as_user("owner"), as_user("vic")
    await client.put("/api/me/profile", json={"username": "Vic", "email": "vic@example.com"}, headers=viewer)

    ws = (await client.post("/api/workspaces", json={"title": "Launch"}, headers=owner)).json()
    assert ws["role"] == "owner"

    added = await client.post(
        f"/api/workspaces/{ws['id']}/members", json={"userId": "vic", "role": "viewer"}, headers=owner,
    )
    assert added.status_code == 201

    forbidden = await client.delete(f"/api/workspaces/{ws['id']}", headers=viewer)
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "forbidden"

    promote = await client.patch(
        f"/api/workspaces/{ws['id']}/members/vic", json={"role": "owner"}, headers=owner,
    )
    assert promote.status_code == 400

    mine = (await client.get("/api/workspaces", headers=viewer)).json()
    assert [w["role"] for w in mine["data"]] == ["viewer"]


@pytest.mark.asyncio
async def test_share_link_join_and_deactivate(client):
    owner = as_user("owner")
    ws = (await client.post("/api/workspaces", json={"title": "Team"}, headers=owner)).json()
    link = (await client.post(
        f"/api/workspaces/{ws['id']}/share-links", json={"role": "editor", "usageLimit": 5}, headers=owner,
    )).json()
    assert link["joinUrl"].startswith("https://board.test/")

    joined = await client.post(f"/api/share-links/{link['token']}/join", headers=as_user("newbie"))
    assert joined.status_code == 200
    assert joined.json() == {"workspaceId": ws["id"], "role": "editor", "alreadyMember": False}

    again = await client.post(f"/api/share-links/{link['token']}/join", headers=as_user("newbie"))
    assert again.json()["alreadyMember"] is True

    gone = await client.delete(f"/api/workspaces/{ws['id']}/share-links/{link['token']}", headers=owner)
    assert gone.status_code == 204

    late = await client.post(f"/api/share-links/{link['token']}/join", headers=as_user("latecomer"))
    assert late.status_code == 410
    assert late.json()["reason"] == "inactive"


@pytest.mark.asyncio
async def test_batch_delete_endpoint(client):
    alice = as_user("alice")
    ids = [
        (await client.post("/api/tasks", json={"title": f"t{i}"}, headers=alice)).json()["id"]
        for i in range(2)
    ]
    resp = await client.post(
        "/api/tasks/batch-delete", json={"taskIds": ids + ["missing"]}, headers=alice,
    )
    assert resp.json() == {"deleted": 2, "skipped": 1}

    empty = await client.post("/api/tasks/batch-delete", json={"taskIds": []}, headers=alice)
    assert empty.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "?secret=wrong"])
async def test_cron_requires_secret(client, query):
    resp = await client.get(f"/api/cron/send-reminders{query}")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_cron_runs_job(client):
    resp = await client.get("/api/cron/send-reminders?secret=s3cret")
    assert resp.status_code == 200
    assert resp.json() == {"considered": 0, "notified": 0, "emailed": 0}


@pytest.mark.asyncio
async def test_notifications_endpoints(client):
    owner, bob = as_user("owner"), as_user("bob")
    ws = (await client.post("/api/workspaces", json={"title": "Ops"}, headers=owner)).json()
    await client.put("/api/me/profile", json={"username": "Bob"}, headers=bob)
    await client.post(f"/api/workspaces/{ws['id']}/members", json={"userId": "bob", "role": "editor"}, headers=owner)
    task = (await client.post("/api/tasks", json={"title": "Fix", "boardId": ws["id"]}, headers=owner)).json()
    assigned = await client.post(f"/api/tasks/{task['id']}/assignees", json={"userId": "bob"}, headers=owner)
    assert assigned.status_code == 201

    count = (await client.get("/api/notifications/unread-count", headers=bob)).json()
    assert count == {"count": 1}
    read_all = (await client.post("/api/notifications/read-all", headers=bob)).json()
    assert read_all == {"updated": 1}
    assert (await client.get("/api/notifications?unread_only=true", headers=bob)).json()["count"] == 0


@pytest.mark.asyncio
async def test_due_date_move_keeps_time(client):
    alice = as_user("alice")
    task = (await client.post(
        "/api/tasks", json={"title": "Call", "dueDate": "2030-01-02", "dueTime": "15:00"}, headers=alice,
    )).json()
    moved = await client.put(f"/api/tasks/{task['id']}/due-date", json={"dueDate": "2030-01-03"}, headers=alice)
    assert moved.status_code == 200
    assert moved.json()["dueTime"] == "15:00"


def _failing(exc):
    async def fail(*args, **kwargs):
        raise exc
    return fail


@pytest.mark.asyncio
async def test_store_failure_is_retryable_503(client, monkeypatch):
    monkeypatch.setattr(
        TaskService, "list_my_tasks",
        _failing(OperationalError("SELECT 1", {}, Exception("database is locked"))),
    )
    resp = await client.get("/api/tasks", headers=as_user("alice"))
    assert resp.status_code == 503
    body = resp.json()
    assert body["error"] == "store_unavailable"
    assert body["retryable"] is True


@pytest.mark.asyncio
async def test_integrity_failure_is_409(client, monkeypatch):
    monkeypatch.setattr(
        TaskService, "list_my_tasks",
        _failing(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))),
    )
    resp = await client.get("/api/tasks", headers=as_user("alice"))
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "conflict"
    assert "retryable" not in body
