"""
Owner-scoped task persistence.

Every operation takes the owner ID and binds it into the same query or
conditional write that addresses the row, so one account can never read or
mutate another account's tasks.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Optional

from src.models.task import Task, TaskCreate, TaskFilter, TaskPatch, TaskStats, TaskStatus
from src.services.supabase_client import SupabaseClient
from src.services.task_filters import apply_all, build_predicates, matches_all
from src.utils.config import AppConfig
from src.utils.errors import SupabaseError
from src.utils.logging import get_structured_logger, mask_account_id, timed

logger = get_structured_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_task(fields: TaskCreate, owner_id: str) -> Task:
    """Assign identity, owner and timestamps to validated create fields."""
    now = utc_now()
    return Task(
        id=str(uuid.uuid4()),
        title=fields.title,
        description=fields.description,
        status=fields.status,
        due_date=fields.due_date,
        owner_id=owner_id,
        created_at=now,
        updated_at=now,
    )


def stats_from_statuses(statuses: Iterable[str]) -> TaskStats:
    counts = Counter(statuses)
    pending = counts[TaskStatus.PENDING.value]
    in_progress = counts[TaskStatus.IN_PROGRESS.value]
    completed = counts[TaskStatus.COMPLETED.value]
    return TaskStats(
        total=pending + in_progress + completed,
        pending=pending,
        in_progress=in_progress,
        completed=completed,
    )


def newest_first(tasks: Iterable[Task]) -> list[Task]:
    """Order by created_at descending, id descending for equal timestamps."""
    return sorted(tasks, key=lambda task: (task.created_at, task.id), reverse=True)


class TaskStore(ABC):
    """Storage interface for tasks."""

    @abstractmethod
    async def list_tasks(self, owner_id: str, task_filter: TaskFilter) -> tuple[list[Task], int]:
        """Return one page of matching tasks and the count of all matches."""

    @abstractmethod
    async def get_task(self, task_id: str, owner_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    async def create_task(self, fields: TaskCreate, owner_id: str) -> Task:
        ...

    @abstractmethod
    async def update_task(self, task_id: str, owner_id: str, patch: TaskPatch) -> Optional[Task]:
        ...

    @abstractmethod
    async def delete_task(self, task_id: str, owner_id: str) -> bool:
        ...

    @abstractmethod
    async def get_stats(self, owner_id: str) -> TaskStats:
        ...


class SupabaseTaskStore(TaskStore):
    """Tasks in a Supabase (PostgreSQL) table, queried through PostgREST."""

    def __init__(self, table: Optional[str] = None):
        self.table = table or AppConfig.tasks_table()

    @timed("task_store.list_tasks")
    async def list_tasks(self, owner_id: str, task_filter: TaskFilter) -> tuple[list[Task], int]:
        predicates = build_predicates(owner_id, task_filter)
        offset = task_filter.offset

        async with SupabaseClient() as client:
            try:
                count_query = client.table(self.table).select("id", count="exact", head=True)
                total = apply_all(predicates, count_query).execute().count or 0

                if total == 0 or offset >= total:
                    return [], total

                query = apply_all(predicates, client.table(self.table).select("*"))
                query = query.order("created_at", desc=True).order("id", desc=True)
                if task_filter.limit:
                    query = query.range(offset, offset + task_filter.limit - 1)
                elif offset:
                    query = query.offset(offset)

                result = query.execute()
            except Exception as e:
                raise SupabaseError(f"Failed to list tasks: {e}")

        return [Task.from_record(row) for row in result.data or []], total

    @timed("task_store.get_task")
    async def get_task(self, task_id: str, owner_id: str) -> Optional[Task]:
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.table)
                    .select("*")
                    .eq("id", task_id)
                    .eq("owner_id", owner_id)
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to get task: {e}")

        return Task.from_record(result.data[0]) if result.data else None

    @timed("task_store.create_task")
    async def create_task(self, fields: TaskCreate, owner_id: str) -> Task:
        task = new_task(fields, owner_id)
        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).insert(task.to_record()).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to create task: {e}")

        if not result.data:
            raise SupabaseError("Failed to create task: no data returned")
        logger.info("Task created", task_id=task.id, owner=mask_account_id(owner_id))
        return Task.from_record(result.data[0])

    @timed("task_store.update_task")
    async def update_task(self, task_id: str, owner_id: str, patch: TaskPatch) -> Optional[Task]:
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.table)
                    .update(patch.to_update_record(utc_now()))
                    .eq("id", task_id)
                    .eq("owner_id", owner_id)
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to update task: {e}")

        return Task.from_record(result.data[0]) if result.data else None

    @timed("task_store.delete_task")
    async def delete_task(self, task_id: str, owner_id: str) -> bool:
        async with SupabaseClient() as client:
            try:
                result = (
                    client.table(self.table)
                    .delete()
                    .eq("id", task_id)
                    .eq("owner_id", owner_id)
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to delete task: {e}")

        return bool(result.data)

    @timed("task_store.get_stats")
    async def get_stats(self, owner_id: str) -> TaskStats:
        counts: dict[str, int] = {}
        async with SupabaseClient() as client:
            try:
                for status in TaskStatus:
                    result = (
                        client.table(self.table)
                        .select("id", count="exact", head=True)
                        .eq("owner_id", owner_id)
                        .eq("status", status.value)
                        .execute()
                    )
                    counts[status.value] = result.count or 0
            except Exception as e:
                raise SupabaseError(f"Failed to get task stats: {e}")

        return TaskStats(
            total=sum(counts.values()),
            pending=counts[TaskStatus.PENDING.value],
            in_progress=counts[TaskStatus.IN_PROGRESS.value],
            completed=counts[TaskStatus.COMPLETED.value],
        )


class InMemoryTaskStore(TaskStore):
    """Process-local store for development and tests. Not shared across instances."""

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        self._tasks: dict[str, Task] = {task.id: task for task in tasks or []}
        self._lock = threading.Lock()

    async def list_tasks(self, owner_id: str, task_filter: TaskFilter) -> tuple[list[Task], int]:
        predicates = build_predicates(owner_id, task_filter)
        with self._lock:
            matching = newest_first(t for t in self._tasks.values() if matches_all(predicates, t))

        start = task_filter.offset
        end = start + task_filter.limit if task_filter.limit else None
        return matching[start:end], len(matching)

    async def get_task(self, task_id: str, owner_id: str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id:
            return None
        return task

    async def create_task(self, fields: TaskCreate, owner_id: str) -> Task:
        task = new_task(fields, owner_id)
        with self._lock:
            self._tasks[task.id] = task
        logger.info("Task created", task_id=task.id, owner=mask_account_id(owner_id))
        return task

    async def update_task(self, task_id: str, owner_id: str, patch: TaskPatch) -> Optional[Task]:
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None or current.owner_id != owner_id:
                return None
            updated = patch.apply_to(current, utc_now())
            self._tasks[task_id] = updated
        return updated

    async def delete_task(self, task_id: str, owner_id: str) -> bool:
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None or current.owner_id != owner_id:
                return False
            del self._tasks[task_id]
        return True

    async def get_stats(self, owner_id: str) -> TaskStats:
        with self._lock:
            statuses = [t.status.value for t in self._tasks.values() if t.owner_id == owner_id]
        return stats_from_statuses(statuses)


_store: Optional[TaskStore] = None
_store_lock = threading.Lock()


def get_task_store() -> TaskStore:
    """Get or create the configured task store singleton."""
    global _store

    with _store_lock:
        if _store is None:
            backend = AppConfig.task_store_backend()
            _store = InMemoryTaskStore() if backend == "memory" else SupabaseTaskStore()
            logger.info("Task store initialized", backend=backend)

    return _store


def reset_task_store() -> None:
    """Forget the cached store; the next call re-reads configuration."""
    global _store
    _store = None
