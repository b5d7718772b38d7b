"""
List filters as composable predicates.

Each predicate is an independent condition that can be evaluated against a
Task in memory or applied to a PostgREST query builder. A list query is the
logical AND of all predicates built for it; the owner predicate is always
first.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable

from src.models.task import STATUS_FILTER_ALL, Task, TaskFilter


class Predicate(ABC):
    """A single boolean condition over a task."""

    @abstractmethod
    def matches(self, task: Task) -> bool:
        ...

    @abstractmethod
    def apply(self, query: Any) -> Any:
        """Narrow a PostgREST filter builder and return it."""
        ...


@dataclass(frozen=True)
class OwnerIs(Predicate):
    owner_id: str

    def matches(self, task: Task) -> bool:
        return task.owner_id == self.owner_id

    def apply(self, query: Any) -> Any:
        return query.eq("owner_id", self.owner_id)


@dataclass(frozen=True)
class StatusIs(Predicate):
    status: str

    def matches(self, task: Task) -> bool:
        return task.status.value == self.status

    def apply(self, query: Any) -> Any:
        return query.eq("status", self.status)


@dataclass(frozen=True)
class DueWithin(Predicate):
    """Half-open range [start, end) over due_date. Tasks without a due date never match."""
    start: datetime
    end: datetime

    @classmethod
    def on_day(cls, day: date) -> "DueWithin":
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        return cls(start=start, end=start + timedelta(days=1))

    def matches(self, task: Task) -> bool:
        if task.due_date is None:
            return False
        return self.start <= task.due_date < self.end

    def apply(self, query: Any) -> Any:
        return query.gte("due_date", self.start.isoformat()).lt("due_date", self.end.isoformat())


def escape_like(term: str) -> str:
    """Escape LIKE metacharacters so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def quote_postgrest(value: str) -> str:
    """Double-quote a value for use inside a PostgREST logic tree such as or=(...)."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


@dataclass(frozen=True)
class TextContains(Predicate):
    """Case-insensitive substring match against title OR description."""
    term: str

    def matches(self, task: Task) -> bool:
        needle = self.term.lower()
        if needle in task.title.lower():
            return True
        return task.description is not None and needle in task.description.lower()

    def apply(self, query: Any) -> Any:
        # PostgREST turns every * in a like pattern into %, with no escape
        if "*" in self.term:
            pattern = quote_postgrest(re.escape(self.term))
            return query.or_(f"title.imatch.{pattern},description.imatch.{pattern}")
        pattern = quote_postgrest(f"%{escape_like(self.term)}%")
        return query.or_(f"title.ilike.{pattern},description.ilike.{pattern}")


def build_predicates(owner_id: str, task_filter: TaskFilter) -> list[Predicate]:
    """Translate a list filter into predicates, always bound to the owner."""
    if not owner_id:
        raise ValueError("owner_id is required")

    predicates: list[Predicate] = [OwnerIs(owner_id)]

    if task_filter.status and task_filter.status != STATUS_FILTER_ALL:
        predicates.append(StatusIs(task_filter.status))

    if task_filter.due_date is not None:
        predicates.append(DueWithin.on_day(task_filter.due_date))

    if task_filter.search:
        predicates.append(TextContains(task_filter.search))

    return predicates


def matches_all(predicates: Iterable[Predicate], task: Task) -> bool:
    return all(predicate.matches(task) for predicate in predicates)


def apply_all(predicates: Iterable[Predicate], query: Any) -> Any:
    for predicate in predicates:
        query = predicate.apply(query)
    return query
