"""Task models and wire/store translation."""

import math
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from src.utils.config import AppConfig


STATUS_FILTER_ALL = "all"


class TaskStatus(str, Enum):
    """Task lifecycle states."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Any:
    """
    Convert an ISO-8601 date or date-time string into a UTC datetime.

    Date-only strings become midnight UTC. Non-string values are passed through
    for pydantic to validate.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return value

    text = value.strip()
    try:
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")


class WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON and stored as snake_case columns."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize for an HTTP response body."""
        return self.model_dump(mode="json", by_alias=True)


class Task(WireModel):
    """A task owned by exactly one account."""
    id: str = Field(..., description="Task ID (UUID, immutable)")
    title: str = Field(..., min_length=1, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Status: pending, in-progress, completed")
    due_date: Optional[datetime] = Field(None, description="Due date-time (UTC)")
    owner_id: str = Field(..., description="Owning account ID (immutable)")
    created_at: datetime
    updated_at: datetime

    @field_validator("due_date", "created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_timestamps(cls, value: Any) -> Any:
        if value is None:
            return None
        return parse_timestamp(value)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Task":
        """Build a task from a store row (snake_case columns)."""
        return cls.model_validate(record)

    def to_record(self) -> dict[str, Any]:
        """Serialize to a store row (snake_case columns, ISO timestamps)."""
        return self.model_dump(mode="json")


class TaskCreate(WireModel):
    """Validated body of a create request."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: str = Field(..., description="Task title, required and non-empty")
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return parse_timestamp(value)


class TaskPatch(WireModel):
    """
    Partial update. Only fields present in the request body are applied.

    `description` and `dueDate` may be cleared with an explicit null;
    `title` and `status` may not.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("Title cannot be null")
        value = value.strip()
        if not value:
            raise ValueError("Title cannot be empty")
        return value

    @field_validator("status")
    @classmethod
    def _status_not_null(cls, value: Optional[TaskStatus]) -> TaskStatus:
        if value is None:
            raise ValueError("Status cannot be null")
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return parse_timestamp(value)

    def changes(self) -> dict[str, Any]:
        """Fields supplied by the caller, keyed by store column."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def apply_to(self, task: Task, now: datetime) -> Task:
        """Merge the supplied fields over an existing task and refresh updated_at."""
        merged = task.model_dump()
        merged.update(self.changes())
        merged["updated_at"] = now
        return Task.model_validate(merged)

    def to_update_record(self, now: datetime) -> dict[str, Any]:
        """Column updates for a conditional store write."""
        record = self.model_dump(mode="json", include=self.model_fields_set)
        record["updated_at"] = ensure_utc(now).isoformat()
        return record


class TaskListQuery(BaseModel):
    """Query string of a list request."""
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    due_date: Optional[date] = Field(None, alias="dueDate")
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(default_factory=AppConfig.default_page_size, ge=1)

    @field_validator("status", "due_date", "search", "page", "limit", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str) and not value.strip():
            value = None
        if value is None and info.field_name == "page":
            return 1
        if value is None and info.field_name == "limit":
            return AppConfig.default_page_size()
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_filter(self) -> "TaskFilter":
        return TaskFilter(
            status=self.status,
            due_date=self.due_date,
            search=self.search,
            limit=self.limit,
            offset=self.offset,
        )


class TaskFilter(BaseModel):
    """Optional predicates and paging window for a list query."""
    status: Optional[str] = None
    due_date: Optional[date] = None
    search: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: int = Field(0, ge=0)


class TaskStats(WireModel):
    """Per-status counts of one owner's tasks, independent of any filter."""
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0


class Pagination(WireModel):
    """Pagination metadata for a list response."""
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit))


class TaskPage(WireModel):
    """List response: one page of tasks plus pagination metadata."""
    tasks: list[Task]
    pagination: Pagination
