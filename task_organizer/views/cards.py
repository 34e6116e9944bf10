"""Task card view model."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..task_store.models import PRIORITY_LABELS, Task


def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    if task.completed or task.due_date is None:
        return False
    now = now or datetime.now(timezone.utc)
    return task.due_date < now


def task_card(task: Task, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Everything a task card renders, derived from the task alone."""
    card = task.to_api_dict()
    card.update(
        {
            "priorityLabel": PRIORITY_LABELS.get(task.priority, task.priority),
            "completedSubtasks": task.completed_subtasks,
            "totalSubtasks": len(task.subtasks),
            "progress": round(task.progress, 2),
            "overdue": is_overdue(task, now),
        }
    )
    return card
