"""View models derived from the task collection."""
from __future__ import annotations

from .cards import is_overdue, task_card
from .dashboard import dashboard_view, summary_panel
from .filters import DashboardFilters, all_categories, filter_tasks

__all__ = [
    "DashboardFilters",
    "all_categories",
    "dashboard_view",
    "filter_tasks",
    "is_overdue",
    "summary_panel",
    "task_card",
]
