"""Task store package - task records, document backends and the in-memory store."""
from __future__ import annotations

from .documents import (
    DocumentNotFoundError,
    DocumentStore,
    FileDocumentStore,
    FirestoreDocumentStore,
)
from .models import (
    PRIORITY_LABELS,
    PRIORITY_ORDER,
    Subtask,
    Task,
    TaskPriority,
    sort_tasks,
)
from .store import SubtaskNotFoundError, TaskNotFoundError, TaskStore

__all__ = [
    "DocumentNotFoundError",
    "DocumentStore",
    "FileDocumentStore",
    "FirestoreDocumentStore",
    "PRIORITY_LABELS",
    "PRIORITY_ORDER",
    "Subtask",
    "SubtaskNotFoundError",
    "Task",
    "TaskNotFoundError",
    "TaskPriority",
    "TaskStore",
    "sort_tasks",
]
