"""
Dashboard API client.

Wraps the task endpoints for a dashboard-style consumer: list and stats
responses are cached per query, and every successful create, update or delete
invalidates both the list views and the stats view.
"""

import os
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

import httpx
from pydantic.alias_generators import to_camel

from src.models.account import Account
from src.models.task import STATUS_FILTER_ALL, Task, TaskPage, TaskStats
from src.utils.errors import NotFoundError, TaskboardError, UnauthenticatedError, ValidationFailedError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

LIST_VIEW = "/api/tasks"
STATS_VIEW = "/api/tasks/stats"


class TaskClientError(TaskboardError):
    """Non-2xx response that is not one of the distinguished outcomes."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.public_message = message


def _wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message", ""))
    return ""


def raise_for_outcome(response: httpx.Response) -> None:
    """Translate error responses into the outcome the dashboard reacts to."""
    if response.is_success:
        return

    status = response.status_code
    message = _error_message(response)
    if status == 401:
        raise UnauthenticatedError(message or "Unauthorized")
    if status == 404:
        raise NotFoundError(message or None)
    if status == 422:
        try:
            errors = response.json().get("errors", [])
        except (ValueError, AttributeError):
            errors = []
        raise ValidationFailedError(errors)
    raise TaskClientError(status, message)


class TaskClient:
    """Async HTTP client for the task API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or os.environ.get("TASKBOARD_API_URL", "http://127.0.0.1:3000")).rstrip("/")
        self.token = token or os.environ.get("TASKBOARD_API_TOKEN")
        self.timeout = timeout or float(os.environ.get("TASKBOARD_API_TIMEOUT", "10"))
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._cache: dict[tuple, Any] = {}

    async def __aenter__(self) -> "TaskClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        self._client.headers.update(self._get_headers())
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one request. Failures are raised, never retried."""
        response = await self._get_client().request(method, path, json=json, params=params)
        raise_for_outcome(response)
        return response

    def invalidate(self) -> None:
        """Drop cached list and stats views."""
        stale = [key for key in self._cache if key[0] in (LIST_VIEW, STATS_VIEW)]
        for key in stale:
            del self._cache[key]
        logger.debug("Invalidated task views", invalidated=len(stale))

    def cached_views(self) -> list[tuple]:
        return list(self._cache)

    async def list_tasks(
        self,
        *,
        status: str = STATUS_FILTER_ALL,
        due_date: Optional[date] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        refresh: bool = False,
    ) -> TaskPage:
        params: dict[str, Any] = {"status": _wire_value(status), "page": page, "limit": limit}
        if due_date:
            params["dueDate"] = _wire_value(due_date)
        if search:
            params["search"] = search

        key = (LIST_VIEW, tuple(sorted(params.items())))
        if not refresh and key in self._cache:
            return self._cache[key]

        response = await self.request("GET", LIST_VIEW, params=params)
        result = TaskPage.model_validate(response.json())
        self._cache[key] = result
        return result

    async def get_stats(self, *, refresh: bool = False) -> TaskStats:
        key = (STATS_VIEW,)
        if not refresh and key in self._cache:
            return self._cache[key]

        response = await self.request("GET", STATS_VIEW)
        stats = TaskStats.model_validate(response.json())
        self._cache[key] = stats
        return stats

    async def get_task(self, task_id: str) -> Task:
        response = await self.request("GET", f"{LIST_VIEW}/{task_id}")
        return Task.model_validate(response.json())

    async def create_task(self, title: str, **fields: Any) -> Task:
        body = {"title": title}
        body.update({to_camel(name): _wire_value(value) for name, value in fields.items()})

        response = await self.request("POST", LIST_VIEW, json=body)
        self.invalidate()
        return Task.model_validate(response.json())

    async def update_task(self, task_id: str, **fields: Any) -> Task:
        """Send only the given fields; pass None to clear description or due_date."""
        body = {to_camel(name): _wire_value(value) for name, value in fields.items()}

        response = await self.request("PATCH", f"{LIST_VIEW}/{task_id}", json=body)
        self.invalidate()
        return Task.model_validate(response.json())

    async def delete_task(self, task_id: str) -> None:
        await self.request("DELETE", f"{LIST_VIEW}/{task_id}")
        self.invalidate()

    async def get_current_account(self) -> Account:
        response = await self.request("GET", "/api/auth/user")
        return Account.model_validate(response.json())
