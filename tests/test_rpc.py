# tests/test_rpc.py

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from slipbox.core.state import AppState
from slipbox.rpc.app import create_app

from .conftest import OTHER_OWNER

MakeJwt = Callable[..., str]


@pytest.fixture()
def client(state: AppState) -> TestClient:
    return TestClient(create_app(state))


@pytest.fixture()
def auth(make_jwt: MakeJwt) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_jwt()}"}


@pytest.fixture()
def other_auth(make_jwt: MakeJwt) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_jwt(sub=OTHER_OWNER)}"}


@pytest.fixture()
def call(client: TestClient, auth: dict[str, str]) -> Callable[..., httpx.Response]:
    def _call(op: str, args: dict[str, Any] | None = None, *, headers: dict[str, str] | None = None, **ctx: Any):
        envelope: dict[str, Any] = {"op": op, "args": args or {}}
        if ctx:
            envelope["ctx"] = ctx
        return client.post("/call", json=envelope, headers=auth if headers is None else headers)

    return _call


def _result(resp: httpx.Response) -> dict[str, Any]:
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["state"] == "complete"
    return body["result"]


def _error(resp: httpx.Response, status: int, code: str) -> str:
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["state"] == "error"
    assert body["error"]["code"] == code
    return body["error"]["message"]


# ---- transport ----


def test_healthz(client: TestClient) -> None:
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_well_known_ops_lists_operations(client: TestClient) -> None:
    ops = {o["op"] for o in client.get("/.well-known/ops").json()["operations"]}
    assert {"CreateTask", "ReorderChecklistItems", "CreateAPIToken", "ListTags"} <= ops
    assert "RefreshToken" not in ops


def test_get_call_is_not_allowed(client: TestClient) -> None:
    resp = client.get("/call")
    assert resp.status_code == 405
    assert resp.headers["allow"] == "POST"


def test_invalid_json_and_envelopes(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.post("/call", content=b"{not json", headers={**auth, "content-type": "application/json"})
    _error(resp, 400, "INVALID_REQUEST")

    _error(client.post("/call", json=["op"], headers=auth), 400, "INVALID_REQUEST")
    _error(client.post("/call", json={"args": {}}, headers=auth), 400, "INVALID_REQUEST")
    _error(client.post("/call", json={"op": "ListTasks", "args": [1]}, headers=auth), 400, "INVALID_REQUEST")


def test_request_id_is_echoed(call) -> None:
    resp = call("ListTasks", requestId="req-123")
    assert resp.json()["requestId"] == "req-123"

    generated = call("ListTasks").json()["requestId"]
    assert str(uuid.UUID(generated)) == generated


def test_unknown_and_public_operations(call) -> None:
    assert "Unknown operation: Nope" in _error(call("Nope"), 400, "UNKNOWN_OP")
    # Allowlisted ops skip identity checks but are served by the identity provider, not here.
    _error(call("RefreshToken", headers={}), 400, "UNKNOWN_OP")


def test_missing_or_bad_credentials(call, make_jwt: MakeJwt) -> None:
    _error(call("ListTasks", headers={}), 401, "UNAUTHENTICATED")
    _error(call("ListTasks", headers={"Authorization": "Basic abc"}), 401, "UNAUTHENTICATED")
    _error(
        call("ListTasks", headers={"Authorization": f"Bearer {make_jwt(typ='refresh')}"}),
        401,
        "UNAUTHENTICATED",
    )


# ---- tasks ----


def test_start_date_round_trip(call) -> None:
    task = _result(call("CreateTask", {"title": "Buy milk"}))["task"]
    assert task["startDateKind"] == "inbox"
    assert "startDate" not in task
    assert task["archivedAt"] is None
    assert task["createdAt"].endswith("Z")

    base = {"id": task["id"], "title": "Buy milk"}

    scheduled = _result(call("UpdateTask", {**base, "startDate": "2025-06-01"}))["task"]
    assert scheduled["startDateKind"] == "specific_date"
    assert scheduled["startDate"] == "2025-06-01"

    untouched = _result(call("UpdateTask", base))["task"]
    assert untouched["startDateKind"] == "specific_date"
    assert untouched["startDate"] == "2025-06-01"

    cleared = _result(call("UpdateTask", {**base, "startDate": None}))["task"]
    assert cleared["startDateKind"] == "inbox"
    assert "startDate" not in cleared

    again = _result(call("UpdateTask", {**base, "startDate": "2025-06-02", "startDateKind": "specific_date"}))["task"]
    assert again["startDate"] == "2025-06-02"

    emptied = _result(call("UpdateTask", {**base, "startDate": ""}))["task"]
    assert emptied["startDateKind"] == "inbox"


def test_start_date_errors(call) -> None:
    task = _result(call("CreateTask", {"title": "t"}))["task"]
    base = {"id": task["id"], "title": "t"}

    assert "YYYY-MM-DD" in _error(call("CreateTask", {"title": "t", "startDate": "06/01/2025"}), 400, "INVALID_ARGUMENT")
    _error(call("UpdateTask", {**base, "startDate": "2025-13-01"}), 400, "INVALID_ARGUMENT")
    _error(call("UpdateTask", {**base, "startDate": None, "startDateKind": "specific_date"}), 400, "INVALID_ARGUMENT")
    _error(call("UpdateTask", {**base, "startDate": "2025-06-01", "startDateKind": "inbox"}), 400, "INVALID_ARGUMENT")
    _error(call("UpdateTask", {**base, "startDateKind": "someday"}), 400, "INVALID_ARGUMENT")
    _error(call("CreateTask", {"title": "t", "startDateKind": "specific_date"}), 400, "INVALID_ARGUMENT")
    _error(call("CreateTask", {"title": "t", "startDate": "2025-06-01", "startDateKind": "inbox"}), 400, "INVALID_ARGUMENT")
    _error(call("CreateTask", {"title": "t", "startDateKind": "someday"}), 400, "INVALID_ARGUMENT")
    assert len(_result(call("ListTasks"))["tasks"]) == 1

    scheduled = _result(
        call("CreateTask", {"title": "t", "startDate": "2025-06-01", "startDateKind": "specific_date"})
    )["task"]
    assert scheduled["startDateKind"] == "specific_date"
    assert scheduled["startDate"] == "2025-06-01"
    inbox = _result(call("CreateTask", {"title": "t", "startDate": None, "startDateKind": "inbox"}))["task"]
    assert inbox["startDateKind"] == "inbox"
    assert "startDate" not in inbox


def test_task_crud_and_ownership(call, other_auth: dict[str, str]) -> None:
    created = _result(
        call("CreateTask", {"title": "t", "notes": "n", "tagNames": ["a", "b"], "checklistItems": ["x", "y"]})
    )["task"]
    assert len(created["tagIds"]) == 2
    assert [i["content"] for i in created["checklistItems"]] == ["x", "y"]

    assert _result(call("GetTask", {"id": created["id"]}))["task"]["notes"] == "n"
    _error(call("GetTask", {"id": created["id"]}, headers=other_auth), 404, "NOT_FOUND")
    assert "invalid task ID format" in _error(call("GetTask", {"id": "123"}), 400, "INVALID_ARGUMENT")
    _error(call("CreateTask", {"title": ""}), 400, "INVALID_ARGUMENT")

    assert _result(call("DeleteTask", {"id": created["id"]})) == {}
    _error(call("GetTask", {"id": created["id"]}), 404, "NOT_FOUND")
    assert _result(call("ListTags"))["tags"] == []


def test_list_tasks_filters_and_paging(call) -> None:
    tagged = _result(call("CreateTask", {"title": "tagged", "tagNames": ["a"]}))["task"]
    plain = _result(call("CreateTask", {"title": "plain"}))["task"]
    archived = _result(call("CreateTask", {"title": "old"}))["task"]
    _result(call("ArchiveTask", {"id": archived["id"]}))

    def ids(args: dict[str, Any]) -> list[str]:
        result = _result(call("ListTasks", args))
        assert result["nextPageToken"] == ""
        return [t["id"] for t in result["tasks"]]

    assert ids({}) == [plain["id"], tagged["id"]]
    assert ids({"filterTagIds": tagged["tagIds"]}) == [tagged["id"]]
    assert ids({"filterTagIds": [str(uuid.uuid4())]}) == []
    assert set(ids({"includeArchived": True})) == {tagged["id"], plain["id"], archived["id"]}
    assert ids({"archivedOnly": True}) == [archived["id"]]
    assert ids({"archivedOnly": True, "includeArchived": True}) == [archived["id"]]
    assert ids({"pageSize": 1}) == [plain["id"]]
    assert len(ids({"pageSize": 0})) == 2
    assert len(ids({"pageSize": 1000})) == 2

    _error(call("ListTasks", {"pageToken": "next"}), 501, "UNIMPLEMENTED")
    _error(call("ListTasks", {"filterTagIds": ["nope"]}), 400, "INVALID_ARGUMENT")

    restored = _result(call("UnarchiveTask", {"id": archived["id"]}))["task"]
    assert restored["archivedAt"] is None


def test_checklist_operations(call, other_auth: dict[str, str]) -> None:
    task = _result(call("CreateTask", {"title": "t", "checklistItems": ["a", "b"]}))["task"]
    a, b = (i["id"] for i in task["checklistItems"])

    c = _result(call("AddChecklistItem", {"taskId": task["id"], "content": "c"}))["item"]
    assert c["sortOrder"] == 2

    assert _result(call("UpdateChecklistItem", {"id": a, "content": "a2"}))["item"]["content"] == "a2"
    assert _result(call("SetChecklistItemCompleted", {"id": b, "completed": True}))["item"]["completed"] is True
    _error(call("SetChecklistItemCompleted", {"id": b}), 400, "INVALID_ARGUMENT")
    _error(call("SetChecklistItemCompleted", {"id": b, "completed": True}, headers=other_auth), 404, "NOT_FOUND")

    items = _result(call("ReorderChecklistItems", {"taskId": task["id"], "itemIds": [c["id"], b, a]}))["items"]
    assert [i["content"] for i in items] == ["c", "b", "a2"]

    message = _error(call("ReorderChecklistItems", {"taskId": task["id"], "itemIds": [a, b]}), 400, "INVALID_ARGUMENT")
    assert "exactly once" in message
    message = _error(call("ReorderChecklistItems", {"taskId": task["id"], "itemIds": []}), 400, "INVALID_ARGUMENT")
    assert "cannot be empty" in message

    assert _result(call("DeleteChecklistItem", {"id": b})) == {}
    listed = _result(call("ListChecklistItems", {"taskId": task["id"]}))["items"]
    assert [(i["content"], i["sortOrder"]) for i in listed] == [("c", 0), ("a2", 1)]


# ---- tags ----


def test_tag_operations(call, other_auth: dict[str, str]) -> None:
    tag = _result(call("CreateTag", {"name": "work"}))["tag"]
    _error(call("CreateTag", {"name": "work"}), 409, "ALREADY_EXISTS")
    _error(call("GetTag", {"id": tag["id"]}, headers=other_auth), 404, "NOT_FOUND")

    assert _result(call("UpdateTag", {"id": tag["id"], "name": "office"}))["tag"]["name"] == "office"
    assert _result(call("GetTag", {"id": tag["id"]}))["tag"]["name"] == "office"

    listed = _result(call("ListTags", {"pageSize": 500}))
    assert [t["name"] for t in listed["tags"]] == ["office"]
    assert listed["nextPageToken"] == ""
    _error(call("ListTags", {"pageToken": "x"}), 501, "UNIMPLEMENTED")

    assert _result(call("DeleteTag", {"id": tag["id"]})) == {}
    _error(call("GetTag", {"id": tag["id"]}), 404, "NOT_FOUND")


# ---- api tokens ----


def test_api_token_lifecycle(call, state: AppState, other_auth: dict[str, str]) -> None:
    created = _result(call("CreateAPIToken", {"name": "cli", "expiresAt": "2999-01-01T00:00:00Z"}))["apiToken"]
    secret = created["token"]
    assert created["isActive"] is True
    assert created["expiresAt"] == "2999-01-01T00:00:00Z"

    fetched = _result(call("GetAPIToken", {"id": created["id"]}))["apiToken"]
    assert "token" not in fetched
    listed = _result(call("ListAPITokens"))["apiTokens"]
    assert [t["id"] for t in listed] == [created["id"]]
    assert all("token" not in t for t in listed)

    token_auth = {"Authorization": f"API-Token {secret}"}
    _result(call("CreateTask", {"title": "via token"}, headers=token_auth))
    assert state.detached.wait_idle(timeout=5)
    assert _result(call("GetAPIToken", {"id": created["id"]}))["apiToken"]["lastUsedAt"] is not None

    _error(call("RevokeAPIToken", {"id": created["id"]}, headers=other_auth), 403, "UNAUTHORIZED")
    _error(call("DeleteAPIToken", {"id": created["id"]}, headers=other_auth), 403, "UNAUTHORIZED")

    assert _result(call("RevokeAPIToken", {"id": created["id"]})) == {}
    _error(call("ListTasks", headers=token_auth), 401, "UNAUTHENTICATED")

    assert _result(call("DeleteAPIToken", {"id": created["id"]})) == {}
    _error(call("GetAPIToken", {"id": created["id"]}), 404, "NOT_FOUND")


def test_api_token_validation_errors(call) -> None:
    _error(call("CreateAPIToken", {"name": ""}), 400, "INVALID_ARGUMENT")
    _error(call("CreateAPIToken", {"name": "x", "expiresAt": "tomorrow"}), 400, "INVALID_ARGUMENT")


# ---- internal errors ----


def test_unexpected_errors_do_not_leak(call, state: AppState, monkeypatch: pytest.MonkeyPatch) -> None:
    def explode(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("sqlite3 at /secret/path exploded")

    monkeypatch.setattr(state.tasks, "get_task", explode)

    message = _error(call("GetTask", {"id": str(uuid.uuid4())}), 500, "INTERNAL")
    assert "secret" not in message
    assert "GetTask" in message


@pytest.mark.asyncio
async def test_call_over_asgi(state: AppState, make_jwt: MakeJwt) -> None:
    transport = httpx.ASGITransport(app=create_app(state))
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        resp = await ac.post(
            "/call",
            json={"op": "CreateTask", "args": {"title": "async"}},
            headers={"Authorization": f"Bearer {make_jwt()}"},
        )

    assert resp.status_code == 200
    assert resp.json()["result"]["task"]["title"] == "async"
