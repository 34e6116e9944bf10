"""Aggregate counts for the analytics charts."""
from __future__ import annotations

from typing import Any, Dict, List, Sequence

from .task_store.models import PRIORITY_LABELS, PRIORITY_ORDER, Task


def status_breakdown(tasks: Sequence[Task]) -> List[Dict[str, Any]]:
    """Pie chart data: completed vs active."""
    completed = sum(1 for t in tasks if t.completed)
    return [
        {"name": "Completed", "value": completed},
        {"name": "Active", "value": len(tasks) - completed},
    ]


def priority_breakdown(tasks: Sequence[Task]) -> List[Dict[str, Any]]:
    """Stacked bar data: active/completed per priority, high first."""
    rows = []
    for priority in PRIORITY_ORDER:
        matching = [t for t in tasks if t.priority == priority]
        done = sum(1 for t in matching if t.completed)
        rows.append(
            {
                "name": PRIORITY_LABELS[priority],
                "priority": priority,
                "active": len(matching) - done,
                "completed": done,
            }
        )
    return rows


def analytics_view(tasks: Sequence[Task]) -> Dict[str, Any]:
    completed = sum(1 for t in tasks if t.completed)
    return {
        "total": len(tasks),
        "completionRate": round(completed / len(tasks) * 100, 2) if tasks else 0.0,
        "status": status_breakdown(tasks),
        "priority": priority_breakdown(tasks),
    }
