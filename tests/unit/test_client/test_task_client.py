"""Tests for the dashboard API client."""

import json

import httpx
import pytest

from src.client.task_client import LIST_VIEW, STATS_VIEW, TaskClient, TaskClientError, raise_for_outcome
from src.models.task import TaskStatus
from src.utils.errors import NotFoundError, UnauthenticatedError, ValidationFailedError

OWNER = "11111111-aaaa-4aaa-8aaa-aaaaaaaaaaaa"
TASK_ID = "6f1c2a9e-0000-4000-8000-000000000000"


def wire_task(**overrides):
    task = {
        "id": TASK_ID,
        "title": "Buy milk",
        "description": None,
        "status": "pending",
        "dueDate": None,
        "ownerId": OWNER,
        "createdAt": "2024-12-09T12:00:00Z",
        "updatedAt": "2024-12-09T12:00:00Z",
    }
    task.update(overrides)
    return task


class FakeApi:
    """Minimal task API behind httpx.MockTransport that records requests."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == STATS_VIEW:
            return httpx.Response(200, json={"total": 1, "pending": 1, "inProgress": 0, "completed": 0})
        if path == LIST_VIEW and request.method == "GET":
            return httpx.Response(200, json={
                "tasks": [wire_task()],
                "pagination": {"total": 1, "page": 1, "limit": 10, "totalPages": 1},
            })
        if path == LIST_VIEW and request.method == "POST":
            return httpx.Response(201, json=wire_task(**json.loads(request.content)))
        if request.method == "PATCH":
            return httpx.Response(200, json=wire_task(**json.loads(request.content)))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json=wire_task())

    def paths(self, method="GET"):
        return [r.url.path for r in self.requests if r.method == method]


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def client(api):
    return TaskClient(base_url="http://testserver", token="token-a", transport=httpx.MockTransport(api))


def response(status, body=None):
    request = httpx.Request("GET", "http://testserver/api/tasks")
    if body is None:
        return httpx.Response(status, request=request)
    return httpx.Response(status, json=body, request=request)


@pytest.mark.unit
def test_success_passes():
    raise_for_outcome(response(200, {"ok": True}))
    raise_for_outcome(response(204))


@pytest.mark.unit
def test_outcome_401():
    with pytest.raises(UnauthenticatedError):
        raise_for_outcome(response(401, {"message": "Unauthorized"}))


@pytest.mark.unit
def test_outcome_404_keeps_message():
    with pytest.raises(NotFoundError) as exc_info:
        raise_for_outcome(response(404, {"message": "Task not found"}))
    assert exc_info.value.public_message == "Task not found"


@pytest.mark.unit
def test_outcome_422_carries_field_errors():
    errors = [{"field": "title", "message": "Title is required", "type": "value_error"}]

    with pytest.raises(ValidationFailedError) as exc_info:
        raise_for_outcome(response(422, {"message": "Validation failed", "errors": errors}))

    assert exc_info.value.errors == errors


@pytest.mark.unit
@pytest.mark.parametrize("status", [400, 405, 500, 503])
def test_other_failures_are_generic(status):
    with pytest.raises(TaskClientError) as exc_info:
        raise_for_outcome(response(status, {"message": "boom"}))

    assert exc_info.value.status_code == status
    assert exc_info.value.public_message == "boom"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_requests_carry_bearer_token(client, api):
    await client.get_task(TASK_ID)

    assert api.requests[0].headers["Authorization"] == "Bearer token-a"
    assert api.requests[0].url.path == f"{LIST_VIEW}/{TASK_ID}"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_sends_filters_as_query_params(client, api):
    page = await client.list_tasks(status=TaskStatus.COMPLETED, search="milk", page=2, limit=5)

    params = api.requests[0].url.params
    assert params["status"] == "completed"
    assert params["search"] == "milk"
    assert params["page"] == "2"
    assert params["limit"] == "5"
    assert "dueDate" not in params
    assert page.pagination.total_pages == 1
    assert page.tasks[0].title == "Buy milk"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_views_are_cached_until_refresh(client, api):
    await client.list_tasks()
    await client.list_tasks()
    await client.get_stats()
    await client.get_stats()

    assert api.paths() == [LIST_VIEW, STATS_VIEW]

    await client.get_stats(refresh=True)
    assert api.paths() == [LIST_VIEW, STATS_VIEW, STATS_VIEW]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_different_queries_are_cached_separately(client, api):
    await client.list_tasks(page=1)
    await client.list_tasks(page=2)

    assert len(api.paths()) == 2
    assert len(client.cached_views()) == 2


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("mutation", ["create", "update", "delete"])
async def test_mutations_invalidate_list_and_stats(client, api, mutation):
    await client.list_tasks()
    await client.get_stats()

    if mutation == "create":
        await client.create_task("Buy milk")
    elif mutation == "update":
        await client.update_task(TASK_ID, status=TaskStatus.COMPLETED)
    else:
        await client.delete_task(TASK_ID)

    assert client.cached_views() == []

    await client.list_tasks()
    await client.get_stats()
    assert api.paths() == [LIST_VIEW, STATS_VIEW, LIST_VIEW, STATS_VIEW]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_mutation_keeps_cache():
    def reject(request):
        if request.method == "GET":
            return httpx.Response(200, json={"total": 0, "pending": 0, "inProgress": 0, "completed": 0})
        return httpx.Response(422, json={"message": "Validation failed", "errors": []})

    client = TaskClient(base_url="http://testserver", token="t", transport=httpx.MockTransport(reject))
    await client.get_stats()

    with pytest.raises(ValidationFailedError):
        await client.create_task("")

    assert client.cached_views() == [(STATS_VIEW,)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_sends_only_given_fields_in_camel_case(client, api):
    await client.update_task(TASK_ID, due_date=None, status=TaskStatus.IN_PROGRESS)

    body = json.loads(api.requests[0].content)
    assert body == {"dueDate": None, "status": "in-progress"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_serializes_optional_fields(client, api):
    task = await client.create_task("Buy milk", description="2 litres", due_date="2024-12-15")

    body = json.loads(api.requests[0].content)
    assert body == {"title": "Buy milk", "description": "2 litres", "dueDate": "2024-12-15"}
    assert task.description == "2 litres"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_not_found_surfaces_as_not_found():
    transport = httpx.MockTransport(lambda request: httpx.Response(404, json={"message": "Task not found"}))

    async with TaskClient(base_url="http://testserver", token="t", transport=transport) as client:
        with pytest.raises(NotFoundError):
            await client.get_task(TASK_ID)


@pytest.mark.unit
def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("TASKBOARD_API_URL", "https://tasks.example.com/")
    monkeypatch.setenv("TASKBOARD_API_TOKEN", "env-token")
    monkeypatch.setenv("TASKBOARD_API_TIMEOUT", "3.5")

    client = TaskClient()

    assert client.base_url == "https://tasks.example.com"
    assert client.token == "env-token"
    assert client.timeout == 3.5
