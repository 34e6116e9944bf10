"""Tests for TaskStore - the signed-in user's task collection.

Runs against the in-memory FakeDocumentStore so write failures can be
injected per operation.

Test Categories:
1. Loading and ordering
2. Task mutations (write-through, failure leaves memory untouched)
3. Subtask mutations
4. Listeners
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from task_organizer.notifications import Notifier
from task_organizer.task_store import FileDocumentStore, TaskStore
from task_organizer.task_store.store import LOAD_ERROR

from tests.fakes import FakeDocumentStore


def _dt(day: int) -> datetime:
    return datetime(2024, 1, day, 9, 0, tzinfo=timezone.utc)


def _seed(documents: FakeDocumentStore, doc_id: str, **fields) -> None:
    data = {
        "title": doc_id,
        "userId": "user-ada",
        "completed": False,
        "priority": "medium",
        "createdAt": _dt(1),
    }
    data.update(fields)
    documents.seed("tasks", doc_id, data)


def _messages(notifier: Notifier):
    return [(n.level, n.message) for n in notifier.drain()]


# =============================================================================
# Loading
# =============================================================================

class TestLoading:
    def test_starts_loading_with_empty_collection(self, store):
        assert store.loading is True
        assert store.tasks == ()
        assert store.error is None

    def test_load_none_clears_collection(self, store, documents):
        _seed(documents, "t1")
        store.load_for_user("user-ada")
        assert len(store.tasks) == 1

        store.load_for_user(None)

        assert store.tasks == ()
        assert store.loading is False
        assert store.current_user_id is None

    def test_only_owned_tasks_are_loaded(self, store, documents):
        _seed(documents, "mine")
        _seed(documents, "theirs", userId="user-bob")

        store.load_for_user("user-ada")

        assert [t.id for t in store.tasks] == ["mine"]
        assert ("query", "tasks", "user-ada") in documents.calls

    def test_load_orders_incomplete_dated_then_priority(self, store, documents):
        _seed(documents, "done", completed=True, dueDate=_dt(1), priority="high")
        _seed(documents, "undated-high", priority="high")
        _seed(documents, "late-low", dueDate=_dt(10), priority="low")
        _seed(documents, "early-low", dueDate=_dt(5), priority="low")
        _seed(documents, "early-high", dueDate=_dt(5), priority="high")

        store.load_for_user("user-ada")

        assert [t.id for t in store.tasks] == [
            "early-high",
            "early-low",
            "late-low",
            "undated-high",
            "done",
        ]

    def test_missing_fields_get_read_defaults(self, store, documents):
        documents.seed("tasks", "bare", {"title": "Bare", "userId": "user-ada"})

        store.load_for_user("user-ada")

        task = store.get_task("bare")
        assert task.completed is False
        assert task.priority == "medium"
        assert task.tags == ()
        assert task.subtasks == ()
        assert task.created_at.tzinfo is not None

    def test_failed_query_sets_error_and_keeps_previous_tasks(self, store, documents, notifier):
        _seed(documents, "t1")
        store.load_for_user("user-ada")
        notifier.drain()

        documents.fail_on.add("query")
        store.reload()

        assert [t.id for t in store.tasks] == ["t1"]
        assert store.error == LOAD_ERROR
        assert store.loading is False
        assert _messages(notifier) == [("error", LOAD_ERROR)]

    def test_successful_reload_clears_error(self, store, documents):
        documents.fail_on.add("query")
        store.load_for_user("user-ada")
        assert store.error == LOAD_ERROR

        documents.fail_on.clear()
        store.reload()

        assert store.error is None

    def test_switching_users_replaces_collection(self, store, documents):
        _seed(documents, "ada-task")
        _seed(documents, "bob-task", userId="user-bob")

        store.load_for_user("user-ada")
        store.load_for_user("user-bob")

        assert [t.id for t in store.tasks] == ["bob-task"]

    def test_failed_switch_never_exposes_previous_users_tasks(self, store, documents, notifier):
        _seed(documents, "ada-secret", title="Ada only")
        store.load_for_user("user-ada")
        documents.fail_on.add("query")

        store.load_for_user("user-bob")

        assert store.current_user_id == "user-bob"
        assert store.tasks == ()
        assert store.error == LOAD_ERROR
        assert store.update_task("ada-secret", {"title": "Changed by bob"}) is False
        assert store.delete_task("ada-secret") is False
        assert documents.get("tasks", "ada-secret")["title"] == "Ada only"


# =============================================================================
# Task Mutations
# =============================================================================

class TestAddTask:
    def test_requires_signed_in_user(self, store, documents, notifier):
        store.load_for_user(None)

        assert store.add_task({"title": "Nope"}) is None

        assert not [c for c in documents.calls if c[0] == "insert"]
        assert _messages(notifier) == [("error", "You must be signed in to add tasks")]

    def test_writes_owner_and_creation_time(self, signed_in_store, documents, notifier):
        task = signed_in_store.add_task(
            {"title": "  Write report ", "priority": "high", "due_date": _dt(3), "tags": ["work"]}
        )

        stored = documents.get("tasks", task.id)
        assert stored["title"] == "Write report"
        assert stored["userId"] == "user-ada"
        assert stored["completed"] is False
        assert stored["dueDate"] == _dt(3)
        assert isinstance(stored["createdAt"], datetime)
        assert signed_in_store.tasks[-1] == task
        assert _messages(notifier) == [("success", "Task added")]

    def test_new_task_is_appended_without_resorting(self, signed_in_store):
        first = signed_in_store.add_task({"title": "Later", "due_date": _dt(20)})
        second = signed_in_store.add_task({"title": "Sooner", "due_date": _dt(2)})

        assert [t.id for t in signed_in_store.tasks] == [first.id, second.id]

    def test_draft_subtasks_get_distinct_ids(self, signed_in_store, documents):
        task = signed_in_store.add_task(
            {
                "title": "Trip",
                "subtasks": [{"title": "Book flight"}, {"title": "Pack", "priority": "low"}],
            }
        )

        ids = [s.id for s in task.subtasks]
        assert len(set(ids)) == 2
        stored = documents.get("tasks", task.id)["subtasks"]
        assert [s["title"] for s in stored] == ["Book flight", "Pack"]
        assert all(s["completed"] is False for s in stored)

    def test_failed_insert_leaves_collection_unchanged(self, signed_in_store, documents, notifier):
        documents.fail_on.add("insert")

        assert signed_in_store.add_task({"title": "Lost"}) is None

        assert signed_in_store.tasks == ()
        assert _messages(notifier) == [("error", "Failed to add task")]

    def test_missing_title_is_rejected(self, signed_in_store, documents):
        assert signed_in_store.add_task({"priority": "low"}) is None
        assert documents.collections.get("tasks", {}) == {}


class TestUpdateTask:
    @pytest.fixture
    def loaded(self, store, documents):
        _seed(documents, "t1", title="Original")
        store.load_for_user("user-ada")
        return store

    def test_partial_update_writes_only_given_fields(self, loaded, documents, notifier):
        assert loaded.update_task("t1", {"due_date": _dt(7), "category": "Home"})

        stored = documents.get("tasks", "t1")
        assert stored["dueDate"] == _dt(7)
        assert stored["category"] == "Home"
        assert stored["title"] == "Original"
        task = loaded.get_task("t1")
        assert task.due_date == _dt(7)
        assert task.category == "Home"
        assert _messages(notifier) == [("success", "Task updated")]

    def test_failed_write_keeps_memory(self, loaded, documents, notifier):
        documents.fail_on.add("update")

        assert loaded.update_task("t1", {"title": "Changed"}) is False

        assert loaded.get_task("t1").title == "Original"
        assert _messages(notifier) == [("error", "Failed to update task")]

    def test_blank_title_is_never_written(self, loaded, documents):
        assert loaded.update_task("t1", {"title": "   "}) is False
        assert ("update", "tasks", "t1") not in documents.calls

    def test_unknown_task_fails(self, loaded, documents, notifier):
        assert loaded.update_task("missing", {"title": "x"}) is False
        assert _messages(notifier) == [("error", "Failed to update task")]

    def test_toggle_flips_completion(self, loaded, documents):
        assert loaded.toggle_task_complete("t1")
        assert loaded.get_task("t1").completed is True
        assert documents.get("tasks", "t1")["completed"] is True

        assert loaded.toggle_task_complete("t1")
        assert loaded.get_task("t1").completed is False


class TestDeleteTask:
    def test_removes_from_store_and_memory(self, store, documents, notifier):
        _seed(documents, "t1")
        store.load_for_user("user-ada")

        assert store.delete_task("t1")

        assert store.tasks == ()
        assert documents.get("tasks", "t1") is None
        assert _messages(notifier) == [("success", "Task deleted")]

    def test_failed_delete_keeps_task(self, store, documents, notifier):
        _seed(documents, "t1")
        store.load_for_user("user-ada")
        notifier.drain()
        documents.fail_on.add("delete")

        assert store.delete_task("t1") is False

        assert store.get_task("t1") is not None
        assert _messages(notifier) == [("error", "Failed to delete task")]


# =============================================================================
# Subtask Mutations
# =============================================================================

class TestSubtasks:
    @pytest.fixture
    def loaded(self, store, documents):
        _seed(
            documents,
            "t1",
            subtasks=[
                {"id": "s1", "title": "First", "completed": False},
                {"id": "s2", "title": "Second", "completed": True},
            ],
        )
        store.load_for_user("user-ada")
        return store

    def test_add_rewrites_whole_subtask_list(self, loaded, documents, notifier):
        subtask = loaded.add_subtask("t1", {"title": "Third", "priority": "high"})

        stored = documents.get("tasks", "t1")["subtasks"]
        assert [s["id"] for s in stored] == ["s1", "s2", subtask.id]
        assert stored[-1]["priority"] == "high"
        assert loaded.get_task("t1").subtasks[-1] == subtask
        assert _messages(notifier) == [("success", "Subtask added")]

    def test_generated_id_never_collides(self, documents):
        _seed(documents, "t1", subtasks=[{"id": "dup", "title": "Existing"}])
        ids = iter(["dup", "dup", "fresh"])
        store = TaskStore(documents, Notifier(), id_factory=lambda: next(ids))
        store.load_for_user("user-ada")

        subtask = store.add_subtask("t1", {"title": "New"})

        assert subtask.id == "fresh"

    def test_update_is_silent_on_success(self, loaded, documents, notifier):
        assert loaded.update_subtask("t1", "s1", {"title": "Renamed"})

        assert loaded.get_task("t1").find_subtask("s1").title == "Renamed"
        assert documents.get("tasks", "t1")["subtasks"][0]["title"] == "Renamed"
        assert _messages(notifier) == []

    def test_update_unknown_subtask_fails(self, loaded, documents, notifier):
        assert loaded.update_subtask("t1", "nope", {"title": "x"}) is False
        assert ("update", "tasks", "t1") not in documents.calls
        assert _messages(notifier) == [("error", "Failed to update subtask")]

    def test_toggle_subtask(self, loaded):
        assert loaded.toggle_subtask_complete("t1", "s1")

        task = loaded.get_task("t1")
        assert task.find_subtask("s1").completed is True
        assert task.progress == 100.0

    def test_delete_subtask(self, loaded, documents, notifier):
        assert loaded.delete_subtask("t1", "s2")

        assert [s.id for s in loaded.get_task("t1").subtasks] == ["s1"]
        assert [s["id"] for s in documents.get("tasks", "t1")["subtasks"]] == ["s1"]
        assert _messages(notifier) == [("success", "Subtask deleted")]

    def test_failed_subtask_write_keeps_memory(self, loaded, documents, notifier):
        documents.fail_on.add("update")

        assert loaded.add_subtask("t1", {"title": "Lost"}) is None
        assert loaded.delete_subtask("t1", "s1") is False

        assert [s.id for s in loaded.get_task("t1").subtasks] == ["s1", "s2"]
        assert _messages(notifier) == [
            ("error", "Failed to add subtask"),
            ("error", "Failed to delete subtask"),
        ]


# =============================================================================
# Listeners
# =============================================================================

class TestListeners:
    def test_listener_sees_every_change_until_unsubscribed(self, signed_in_store):
        seen = []
        unsubscribe = signed_in_store.subscribe(lambda s: seen.append(len(s.tasks)))

        signed_in_store.add_task({"title": "One"})
        signed_in_store.add_task({"title": "Two"})
        unsubscribe()
        signed_in_store.add_task({"title": "Three"})

        assert seen == [1, 2]

    def test_previous_snapshot_is_not_mutated(self, signed_in_store):
        before = signed_in_store.tasks
        signed_in_store.add_task({"title": "One"})

        assert before == ()
        assert len(signed_in_store.tasks) == 1


# =============================================================================
# Scenarios
# =============================================================================

class TestScenarios:
    def test_added_task_survives_reload(self, signed_in_store):
        task = signed_in_store.add_task({"title": "Round trip", "category": "Home", "tags": ["a", "b"]})

        signed_in_store.reload()

        reloaded = signed_in_store.get_task(task.id)
        assert reloaded.title == "Round trip"
        assert reloaded.category == "Home"
        assert reloaded.tags == ("a", "b")
        assert reloaded.user_id == "user-ada"

    def test_write_report_is_active(self, signed_in_store):
        from task_organizer.views import filter_tasks

        signed_in_store.add_task(
            {"title": "Write report", "priority": "high", "due_date": datetime(2024, 6, 1, tzinfo=timezone.utc)}
        )

        assert len(signed_in_store.tasks) == 1
        assert [t.title for t in filter_tasks(signed_in_store.tasks, completed=False)] == ["Write report"]
        assert filter_tasks(signed_in_store.tasks, completed=True) == []

    def test_draft_outline_progress(self, signed_in_store):
        task = signed_in_store.add_task({"title": "Essay"})
        subtask = signed_in_store.add_subtask(task.id, {"title": "Draft outline"})
        assert len(signed_in_store.get_task(task.id).subtasks) == 1

        signed_in_store.toggle_subtask_complete(task.id, subtask.id)

        updated = signed_in_store.get_task(task.id)
        assert updated.completed_subtasks == 1
        assert updated.progress == 100.0

    def test_toggle_twice_restores_original(self, signed_in_store):
        task = signed_in_store.add_task({"title": "Flip"})

        signed_in_store.toggle_task_complete(task.id)
        signed_in_store.toggle_task_complete(task.id)

        assert signed_in_store.get_task(task.id) == task

    def test_work_category_filter_counts_incomplete_only(self, store, documents):
        from task_organizer.views import DashboardFilters, filter_tasks

        _seed(documents, "w1", category="Work")
        _seed(documents, "w2", category="Work", completed=True)
        _seed(documents, "h1", category="Home")
        _seed(documents, "h2", category="Home")
        _seed(documents, "n1")
        store.load_for_user("user-ada")

        active = filter_tasks(store.tasks, DashboardFilters(category="Work"), completed=False)

        assert [t.id for t in active] == ["w1"]

    def test_deleted_subtask_id_is_not_reissued(self, signed_in_store):
        task = signed_in_store.add_task({"title": "Ids"})
        first = signed_in_store.add_subtask(task.id, {"title": "A"})
        signed_in_store.delete_subtask(task.id, first.id)

        second = signed_in_store.add_subtask(task.id, {"title": "B"})

        assert second.id != first.id


# =============================================================================
# Round Trip Through Each Backend
# =============================================================================

@pytest.fixture(params=["memory", "file"])
def backend(request, tmp_path):
    if request.param == "file":
        return FileDocumentStore(tmp_path / "documents")
    return FakeDocumentStore()


class TestRoundTrip:
    def test_reloaded_task_matches_added_task(self, backend):
        ids = iter(["sub-a", "sub-b"])
        store = TaskStore(
            backend,
            Notifier(),
            id_factory=lambda: next(ids),
            clock=lambda: datetime(2024, 5, 4, 3, 2, 1, 123456, tzinfo=timezone.utc),
        )
        store.load_for_user("user-ada")

        added = store.add_task(
            {
                "title": "Write report",
                "description": "Quarterly numbers",
                "priority": "high",
                "due_date": datetime(2024, 6, 1, 17, 30, tzinfo=timezone.utc),
                "category": "Work",
                "tags": ["finance", "q2"],
                "subtasks": [
                    {"title": "Draft outline", "priority": "low", "due_date": _dt(20)},
                    {"title": "Collect data"},
                ],
            }
        )
        store.reload()

        assert store.tasks[0].to_api_dict() == added.to_api_dict()
        assert store.tasks[0] == added
