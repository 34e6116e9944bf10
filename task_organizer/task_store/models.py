"""Task and subtask records as stored in the document store.

Documents keep the field names the web client has always written
(``dueDate``, ``createdAt``, ``userId``). Temporal fields are stored as
store-native values (Firestore timestamps, ISO strings in the file
fallback) and come back as timezone-aware ``datetime`` objects.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class TaskPriority(str, Enum):
    """Priority levels, most urgent first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER = {
    TaskPriority.HIGH.value: 0,
    TaskPriority.MEDIUM.value: 1,
    TaskPriority.LOW.value: 2,
}

PRIORITY_LABELS = {
    TaskPriority.HIGH.value: "High",
    TaskPriority.MEDIUM.value: "Medium",
    TaskPriority.LOW.value: "Low",
}

# snake_case attribute -> document field
TASK_FIELDS = {
    "title": "title",
    "description": "description",
    "completed": "completed",
    "priority": "priority",
    "due_date": "dueDate",
    "category": "category",
    "tags": "tags",
    "subtasks": "subtasks",
}

SUBTASK_FIELDS = {
    "title": "title",
    "completed": "completed",
    "priority": "priority",
    "due_date": "dueDate",
}


def to_datetime(value: Any) -> Optional[datetime]:
    """Convert a stored date-like value to an aware ``datetime``.

    Accepts Firestore timestamps (``datetime`` subclasses), plain dates and
    ISO-8601 strings. Naive values are treated as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, time.min)
    elif isinstance(value, str):
        result = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif hasattr(value, "to_datetime"):
        result = value.to_datetime()
    else:
        raise TypeError(f"Unsupported date value: {value!r}")

    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result


def normalize_tags(tags: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Trim tags and drop blanks and duplicates, keeping first-seen order."""
    if not tags:
        return ()
    seen: List[str] = []
    for tag in tags:
        cleaned = (tag or "").strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


def validate_priority(value: Optional[str], *, allow_none: bool = False) -> Optional[str]:
    if value is None and allow_none:
        return None
    if value not in PRIORITY_ORDER:
        raise ValueError(f"Invalid priority '{value}'. Valid: {list(PRIORITY_ORDER)}")
    return value


@dataclass(frozen=True, slots=True)
class Subtask:
    """A sub-item embedded in its parent task's document."""

    id: str
    title: str
    completed: bool = False
    priority: Optional[str] = None
    due_date: Optional[datetime] = None

    def merged(self, updates: Mapping[str, Any]) -> "Subtask":
        return replace(self, **_clean_subtask_updates(updates))

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
        }
        if self.priority is not None:
            doc["priority"] = self.priority
        if self.due_date is not None:
            doc["dueDate"] = self.due_date
        return doc

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "Subtask":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            completed=bool(data.get("completed", False)),
            priority=data.get("priority"),
            due_date=to_datetime(data.get("dueDate")),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "priority": self.priority,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
        }


@dataclass(frozen=True, slots=True)
class Task:
    """A top-level to-do item owned by one user."""

    id: str
    title: str
    user_id: str
    created_at: datetime
    completed: bool = False
    priority: str = TaskPriority.MEDIUM.value
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    category: Optional[str] = None
    tags: Tuple[str, ...] = ()
    subtasks: Tuple[Subtask, ...] = field(default_factory=tuple)

    @property
    def completed_subtasks(self) -> int:
        return sum(1 for subtask in self.subtasks if subtask.completed)

    @property
    def progress(self) -> float:
        """Percentage of completed subtasks (0 when there are none)."""
        if not self.subtasks:
            return 0.0
        return self.completed_subtasks / len(self.subtasks) * 100

    def find_subtask(self, subtask_id: str) -> Optional[Subtask]:
        return next((s for s in self.subtasks if s.id == subtask_id), None)

    def merged(self, updates: Mapping[str, Any]) -> "Task":
        """Return a copy with the partial field set applied."""
        return replace(self, **_clean_task_updates(updates))

    def to_document(self) -> Dict[str, Any]:
        """Full record for an insert."""
        doc = task_fields_to_document(
            {
                "title": self.title,
                "description": self.description,
                "completed": self.completed,
                "priority": self.priority,
                "due_date": self.due_date,
                "category": self.category,
                "tags": self.tags,
                "subtasks": self.subtasks,
            }
        )
        doc["createdAt"] = self.created_at
        doc["userId"] = self.user_id
        return doc

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "Task":
        """Build a task from a stored document, applying read defaults."""
        created = to_datetime(data.get("createdAt")) or datetime.now(timezone.utc)
        return cls(
            id=doc_id,
            title=data.get("title", ""),
            user_id=data.get("userId", ""),
            created_at=created,
            completed=bool(data.get("completed", False)),
            priority=data.get("priority") or TaskPriority.MEDIUM.value,
            description=data.get("description"),
            due_date=to_datetime(data.get("dueDate")),
            category=data.get("category"),
            tags=normalize_tags(data.get("tags")),
            subtasks=tuple(Subtask.from_document(s) for s in data.get("subtasks") or []),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to API response format (camelCase)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "priority": self.priority,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "category": self.category,
            "tags": list(self.tags),
            "subtasks": [s.to_api_dict() for s in self.subtasks],
            "createdAt": self.created_at.isoformat(),
            "userId": self.user_id,
        }


def subtasks_to_document(subtasks: Iterable[Subtask]) -> List[Dict[str, Any]]:
    return [subtask.to_document() for subtask in subtasks]


def task_fields_to_document(updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate a partial attribute set into document fields."""
    cleaned = _clean_task_updates(updates)
    doc: Dict[str, Any] = {}
    for key, value in cleaned.items():
        if key == "tags":
            value = list(value)
        elif key == "subtasks":
            value = subtasks_to_document(value)
        doc[TASK_FIELDS[key]] = value
    return doc


def task_sort_key(task: Task) -> Tuple[int, int, float, int]:
    """Incomplete first, then dated before undated by date, then priority."""
    due = task.due_date.timestamp() if task.due_date else 0.0
    return (
        1 if task.completed else 0,
        0 if task.due_date else 1,
        due,
        PRIORITY_ORDER.get(task.priority, len(PRIORITY_ORDER)),
    )


def sort_tasks(tasks: Iterable[Task]) -> List[Task]:
    return sorted(tasks, key=task_sort_key)


def _clean_task_updates(updates: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(updates) - set(TASK_FIELDS)
    if unknown:
        raise ValueError(f"Unknown task fields: {sorted(unknown)}")

    cleaned: Dict[str, Any] = {}
    for key, value in updates.items():
        if key == "title":
            value = (value or "").strip()
            if not value:
                raise ValueError("Title is required")
        elif key == "priority":
            value = validate_priority(value)
        elif key == "due_date":
            value = to_datetime(value)
        elif key == "completed":
            value = bool(value)
        elif key == "tags":
            value = normalize_tags(value)
        elif key == "subtasks":
            value = tuple(
                s if isinstance(s, Subtask) else Subtask.from_document(s) for s in value or ()
            )
        cleaned[key] = value
    return cleaned


def _clean_subtask_updates(updates: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(updates) - set(SUBTASK_FIELDS)
    if unknown:
        raise ValueError(f"Unknown subtask fields: {sorted(unknown)}")

    cleaned: Dict[str, Any] = {}
    for key, value in updates.items():
        if key == "title":
            value = (value or "").strip()
            if not value:
                raise ValueError("Subtask title is required")
        elif key == "priority":
            value = validate_priority(value, allow_none=True)
        elif key == "due_date":
            value = to_datetime(value)
        elif key == "completed":
            value = bool(value)
        cleaned[key] = value
    return cleaned
