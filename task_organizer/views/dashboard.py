"""Dashboard view model: tabs, filter state and the summary sidebar."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..task_store.models import Task, TaskPriority
from .cards import task_card
from .filters import DashboardFilters, all_categories, filter_tasks

NO_MATCHES = "No tasks match your filters"
NO_ACTIVE = "No active tasks. Create a new task to get started!"
NO_COMPLETED = "No completed tasks yet."


def _percent(part: int, whole: int) -> float:
    return round(part / max(whole, 1) * 100, 2)


def summary_panel(tasks: Sequence[Task]) -> Dict[str, Any]:
    """Counts for the sidebar, over the unfiltered collection."""
    active = sum(1 for t in tasks if not t.completed)
    completed = len(tasks) - active
    high_active = sum(
        1 for t in tasks if t.priority == TaskPriority.HIGH.value and not t.completed
    )
    return {
        "active": active,
        "completed": completed,
        "highPriority": high_active,
        "activePercent": _percent(active, len(tasks)),
        "completedPercent": _percent(completed, len(tasks)),
        "highPriorityPercent": _percent(high_active, active),
    }


def dashboard_view(
    tasks: Sequence[Task],
    filters: Optional[DashboardFilters] = None,
    *,
    loading: bool = False,
    error: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    filters = filters or DashboardFilters()
    active = filter_tasks(tasks, filters, completed=False)
    completed = filter_tasks(tasks, filters, completed=True)

    empty_active = None
    if not active:
        empty_active = NO_MATCHES if filters.is_filtering else NO_ACTIVE

    return {
        "loading": loading,
        "error": error,
        "filters": {
            "search": filters.search,
            "category": filters.category,
            "priority": filters.priority,
            "activeCount": filters.active_count,
        },
        "categories": all_categories(tasks),
        "active": {
            "count": len(active),
            "tasks": [task_card(t, now) for t in active],
            "emptyMessage": empty_active,
        },
        "completed": {
            "count": len(completed),
            "tasks": [task_card(t, now) for t in completed],
            "emptyMessage": None if completed else NO_COMPLETED,
        },
        "summary": summary_panel(tasks),
    }
