"""In-memory task collection for the signed-in user, written through to the document store.

The store is the only writer of the collection. Every mutation first writes
to the document store and only then applies the same change to memory, so a
failed write leaves the displayed state untouched. Subtasks live inside their
parent's document and every subtask change rewrites the whole ``subtasks``
field (last write wins at that granularity).
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..notifications import Notifier
from .documents import DocumentStore
from .models import (
    Subtask,
    Task,
    sort_tasks,
    subtasks_to_document,
    task_fields_to_document,
)

logger = logging.getLogger(__name__)

Listener = Callable[["TaskStore"], None]

LOAD_ERROR = "Failed to load tasks"


class TaskNotFoundError(LookupError):
    """Raised when a task id is not in the loaded collection."""


class SubtaskNotFoundError(LookupError):
    """Raised when a subtask id is not part of its parent task."""


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStore:
    """Owns the current user's tasks and mediates every read and write."""

    def __init__(
        self,
        documents: DocumentStore,
        notifier: Notifier,
        *,
        collection: str = "tasks",
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._documents = documents
        self._notifier = notifier
        self._collection = collection
        self._id_factory = id_factory
        self._clock = clock

        self._tasks: Tuple[Task, ...] = ()
        self._loading = True
        self._error: Optional[str] = None
        self._user_id: Optional[str] = None
        self._listeners: List[Listener] = []

    # -------------------------------------------------------------------------
    # Published state
    # -------------------------------------------------------------------------

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return self._tasks

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def get_task(self, task_id: str) -> Optional[Task]:
        return next((task for task in self._tasks if task.id == task_id), None)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback fired after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _apply(self, change: Callable[[Tuple[Task, ...]], Iterable[Task]]) -> None:
        self._tasks = tuple(change(self._tasks))
        self._publish()

    def _require_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    @staticmethod
    def _require_subtask(task: Task, subtask_id: str) -> Subtask:
        subtask = task.find_subtask(subtask_id)
        if subtask is None:
            raise SubtaskNotFoundError(f"Subtask not found: {subtask_id}")
        return subtask

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_for_user(self, user_id: Optional[str]) -> None:
        """Replace the collection with the given user's tasks.

        ``None`` clears the collection. A failed query records ``error``; the
        previous collection survives only when reloading for the same user.
        """
        if user_id != self._user_id:
            self._tasks = ()
        self._user_id = user_id
        if not user_id:
            self._tasks = ()
            self._error = None
            self._loading = False
            self._publish()
            return

        self._loading = True
        try:
            documents = self._documents.query(self._collection, user_id)
            fetched = [Task.from_document(doc_id, data) for doc_id, data in documents]
            self._tasks = tuple(sort_tasks(fetched))
            self._error = None
        except Exception:
            logger.exception("Error fetching tasks for %s", user_id)
            self._error = LOAD_ERROR
            self._notifier.error(LOAD_ERROR)
        finally:
            self._loading = False
            self._publish()

    def reload(self) -> None:
        self.load_for_user(self._user_id)

    # -------------------------------------------------------------------------
    # Task mutations
    # -------------------------------------------------------------------------

    def add_task(self, fields: Mapping[str, Any]) -> Optional[Task]:
        """Create a task owned by the current user and append it.

        The new task goes to the end of the collection; ordering is only
        recomputed on the next load.
        """
        if not self._user_id:
            self._notifier.error("You must be signed in to add tasks")
            return None

        try:
            values: Dict[str, Any] = dict(fields)
            values["subtasks"] = self._draft_subtasks(values.get("subtasks") or ())
            values.setdefault("title", "")
            values.setdefault("completed", False)

            draft = Task(
                id="",
                title="",
                user_id=self._user_id,
                created_at=self._clock(),
            ).merged(values)
            doc_id = self._documents.insert(self._collection, draft.to_document())
        except Exception:
            logger.exception("Error adding task")
            self._notifier.error("Failed to add task")
            return None

        task = replace(draft, id=doc_id)
        self._apply(lambda tasks: (*tasks, task))
        self._notifier.success("Task added")
        return task

    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge a partial field set into the task, document first."""
        try:
            # Validates the partial set before anything is written.
            self._require_task(task_id).merged(updates)
            self._documents.update(
                self._collection, task_id, task_fields_to_document(updates)
            )
        except Exception:
            logger.exception("Error updating task %s", task_id)
            self._notifier.error("Failed to update task")
            return False

        self._apply(
            lambda tasks: (t.merged(updates) if t.id == task_id else t for t in tasks)
        )
        self._notifier.success("Task updated")
        return True

    def delete_task(self, task_id: str) -> bool:
        """Delete the task document; embedded subtasks go with it."""
        try:
            self._require_task(task_id)
            self._documents.delete(self._collection, task_id)
        except Exception:
            logger.exception("Error deleting task %s", task_id)
            self._notifier.error("Failed to delete task")
            return False

        self._apply(lambda tasks: (t for t in tasks if t.id != task_id))
        self._notifier.success("Task deleted")
        return True

    def toggle_task_complete(self, task_id: str) -> bool:
        try:
            task = self._require_task(task_id)
        except TaskNotFoundError:
            logger.exception("Error toggling task completion")
            self._notifier.error("Failed to update task")
            return False
        return self.update_task(task_id, {"completed": not task.completed})

    # -------------------------------------------------------------------------
    # Subtask mutations
    # -------------------------------------------------------------------------

    def add_subtask(self, task_id: str, fields: Mapping[str, Any]) -> Optional[Subtask]:
        try:
            task = self._require_task(task_id)
            subtask = self._new_subtask(fields, taken={s.id for s in task.subtasks})
            updated = (*task.subtasks, subtask)
            self._write_subtasks(task_id, updated)
        except Exception:
            logger.exception("Error adding subtask to %s", task_id)
            self._notifier.error("Failed to add subtask")
            return None

        self._mirror_subtasks(task_id, updated)
        self._notifier.success("Subtask added")
        return subtask

    def update_subtask(
        self, task_id: str, subtask_id: str, updates: Mapping[str, Any]
    ) -> bool:
        try:
            task = self._require_task(task_id)
            self._require_subtask(task, subtask_id)
            updated = tuple(
                s.merged(updates) if s.id == subtask_id else s for s in task.subtasks
            )
            self._write_subtasks(task_id, updated)
        except Exception:
            logger.exception("Error updating subtask %s", subtask_id)
            self._notifier.error("Failed to update subtask")
            return False

        self._mirror_subtasks(task_id, updated)
        return True

    def delete_subtask(self, task_id: str, subtask_id: str) -> bool:
        try:
            task = self._require_task(task_id)
            self._require_subtask(task, subtask_id)
            updated = tuple(s for s in task.subtasks if s.id != subtask_id)
            self._write_subtasks(task_id, updated)
        except Exception:
            logger.exception("Error deleting subtask %s", subtask_id)
            self._notifier.error("Failed to delete subtask")
            return False

        self._mirror_subtasks(task_id, updated)
        self._notifier.success("Subtask deleted")
        return True

    def toggle_subtask_complete(self, task_id: str, subtask_id: str) -> bool:
        try:
            task = self._require_task(task_id)
            subtask = self._require_subtask(task, subtask_id)
        except LookupError:
            logger.exception("Error toggling subtask")
            self._notifier.error("Failed to update subtask")
            return False
        return self.update_subtask(task_id, subtask_id, {"completed": not subtask.completed})

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _new_subtask(self, fields: Mapping[str, Any], *, taken: Iterable[str]) -> Subtask:
        taken = set(taken)
        subtask_id = self._id_factory()
        while subtask_id in taken:
            subtask_id = self._id_factory()
        values = {"completed": False, **dict(fields)}
        values.pop("id", None)
        return Subtask(id=subtask_id, title="").merged(values)

    def _draft_subtasks(self, drafts: Iterable[Any]) -> Tuple[Subtask, ...]:
        created: List[Subtask] = []
        for draft in drafts:
            fields = draft.to_document() if isinstance(draft, Subtask) else dict(draft)
            fields = {
                "title": fields.get("title"),
                "completed": fields.get("completed", False),
                "priority": fields.get("priority"),
                "due_date": fields.get("due_date", fields.get("dueDate")),
            }
            created.append(self._new_subtask(fields, taken={s.id for s in created}))
        return tuple(created)

    def _write_subtasks(self, task_id: str, subtasks: Iterable[Subtask]) -> None:
        self._documents.update(
            self._collection, task_id, {"subtasks": subtasks_to_document(subtasks)}
        )

    def _mirror_subtasks(self, task_id: str, subtasks: Tuple[Subtask, ...]) -> None:
        self._apply(
            lambda tasks: (
                t.merged({"subtasks": subtasks}) if t.id == task_id else t for t in tasks
            )
        )

