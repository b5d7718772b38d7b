"""
Task service - the authenticated boundary between HTTP handlers and the store.

Every function takes the requester's account ID first and passes it to the
store as the ownership filter. Validation failures raise
ValidationFailedError before the store is touched; missing and foreign tasks
both raise NotFoundError.
"""

import uuid
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from src.models.account import Identity
from src.models.task import Pagination, Task, TaskCreate, TaskListQuery, TaskPage, TaskPatch, TaskStats
from src.services.account_store import get_account_store
from src.services.task_store import TaskStore, get_task_store
from src.utils.errors import NotFoundError, ValidationFailedError
from src.utils.logging import get_structured_logger, mask_account_id, sanitize_text

logger = get_structured_logger(__name__)


def validation_errors(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into field-level entries for the response body."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        errors.append({"field": field, "message": error["msg"], "type": error["type"]})
    return errors


def normalize_task_id(task_id: Optional[str]) -> Optional[str]:
    """Canonical form of a task ID, or None when it cannot name any task."""
    if not task_id:
        return None
    try:
        return str(uuid.UUID(task_id))
    except ValueError:
        return None


def _require_owner(owner_id: str) -> None:
    if not owner_id:
        raise ValueError("owner_id is required")


async def list_tasks(
    owner_id: str,
    params: Mapping[str, Any],
    store: Optional[TaskStore] = None,
) -> TaskPage:
    """Filtered, paginated list of the owner's tasks, newest first."""
    _require_owner(owner_id)
    try:
        query = TaskListQuery.model_validate(dict(params))
    except ValidationError as e:
        raise ValidationFailedError(validation_errors(e))

    store = store or get_task_store()
    tasks, total = await store.list_tasks(owner_id, query.to_filter())

    logger.info(
        "Listed tasks",
        owner=mask_account_id(owner_id),
        status_filter=query.status,
        due_date_filter=query.due_date.isoformat() if query.due_date else None,
        search=sanitize_text(query.search),
        page=query.page,
        limit=query.limit,
        total=total,
    )
    return TaskPage(tasks=tasks, pagination=Pagination.build(total, query.page, query.limit))


async def get_stats(owner_id: str, store: Optional[TaskStore] = None) -> TaskStats:
    """Per-status counts over all of the owner's tasks, ignoring list filters."""
    _require_owner(owner_id)
    store = store or get_task_store()
    return await store.get_stats(owner_id)


async def get_task(owner_id: str, task_id: str, store: Optional[TaskStore] = None) -> Task:
    _require_owner(owner_id)
    normalized = normalize_task_id(task_id)
    if normalized is None:
        raise NotFoundError()

    store = store or get_task_store()
    task = await store.get_task(normalized, owner_id)
    if task is None:
        raise NotFoundError()
    return task


async def create_task(
    owner_id: str,
    body: Any,
    store: Optional[TaskStore] = None,
    identity: Optional[Identity] = None,
) -> Task:
    """
    Validate a create body and store it with the requester as owner.

    When the verified identity is given, its account row is ensured first so
    the task's owner reference is satisfied on a first-ever write.
    """
    _require_owner(owner_id)
    try:
        fields = TaskCreate.model_validate(body)
    except ValidationError as e:
        errors = validation_errors(e)
        logger.info("Task create rejected", owner=mask_account_id(owner_id), errors=errors)
        raise ValidationFailedError(errors)

    if identity is not None:
        await get_account_store().ensure_account(identity)

    store = store or get_task_store()
    return await store.create_task(fields, owner_id)


async def update_task(
    owner_id: str,
    task_id: str,
    body: Any,
    store: Optional[TaskStore] = None,
) -> Task:
    """Apply a partial update to one of the owner's tasks."""
    _require_owner(owner_id)
    try:
        patch = TaskPatch.model_validate(body)
    except ValidationError as e:
        errors = validation_errors(e)
        logger.info("Task update rejected", owner=mask_account_id(owner_id), errors=errors)
        raise ValidationFailedError(errors)

    normalized = normalize_task_id(task_id)
    if normalized is None:
        raise NotFoundError()

    store = store or get_task_store()
    task = await store.update_task(normalized, owner_id, patch)
    if task is None:
        raise NotFoundError()

    logger.info(
        "Task updated",
        task_id=normalized,
        owner=mask_account_id(owner_id),
        fields=sorted(patch.model_fields_set),
    )
    return task


async def delete_task(owner_id: str, task_id: str, store: Optional[TaskStore] = None) -> None:
    _require_owner(owner_id)
    normalized = normalize_task_id(task_id)
    if normalized is None:
        raise NotFoundError()

    store = store or get_task_store()
    if not await store.delete_task(normalized, owner_id):
        raise NotFoundError()

    logger.info("Task deleted", task_id=normalized, owner=mask_account_id(owner_id))
