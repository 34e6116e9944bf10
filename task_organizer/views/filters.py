"""Dashboard filtering, recomputed from the full collection on every read."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..task_store.models import Task, validate_priority


@dataclass(frozen=True, slots=True)
class DashboardFilters:
    """Ephemeral filter state for the task list."""

    search: str = ""
    category: Optional[str] = None
    priority: Optional[str] = None

    def __post_init__(self) -> None:
        if self.priority is not None:
            validate_priority(self.priority)

    @property
    def active_count(self) -> int:
        """Number of dropdown filters in use (search text is not counted)."""
        return (1 if self.category else 0) + (1 if self.priority else 0)

    @property
    def is_filtering(self) -> bool:
        return bool(self.search or self.category or self.priority)

    def matches(self, task: Task) -> bool:
        if self.search and self.search.lower() not in task.title.lower():
            return False
        if self.category and task.category != self.category:
            return False
        if self.priority and task.priority != self.priority:
            return False
        return True


def filter_tasks(
    tasks: Iterable[Task],
    filters: Optional[DashboardFilters] = None,
    *,
    completed: bool = False,
) -> List[Task]:
    """Tasks on the requested tab that pass every filter, in collection order."""
    filters = filters or DashboardFilters()
    return [t for t in tasks if t.completed == completed and filters.matches(t)]


def all_categories(tasks: Iterable[Task]) -> List[str]:
    """Distinct non-empty categories in first-seen order."""
    seen: List[str] = []
    for task in tasks:
        if task.category and task.category not in seen:
            seen.append(task.category)
    return seen
