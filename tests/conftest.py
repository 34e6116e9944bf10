from __future__ import annotations

import os
import tempfile

import pytest

# Set env vars BEFORE api.main is imported anywhere; its module-level app
# must come up without Firebase credentials.
os.environ.setdefault("TASKORG_TASK_STORE_FORCE_FILE", "1")
os.environ.setdefault("TASKORG_DATA_DIR", tempfile.mkdtemp(prefix="taskorg-tests-"))

from task_organizer.notifications import Notifier  # noqa: E402
from task_organizer.task_store import TaskStore  # noqa: E402

from tests.fakes import FakeDocumentStore, FakeIdentityClient, sequential_ids  # noqa: E402


@pytest.fixture
def documents() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def identity_client() -> FakeIdentityClient:
    client = FakeIdentityClient()
    client.register("ada@example.com", "secret1", uid="user-ada")
    return client


@pytest.fixture
def store(documents, notifier) -> TaskStore:
    """A store with nobody signed in yet."""
    return TaskStore(documents, notifier, id_factory=sequential_ids("sub"))


@pytest.fixture
def signed_in_store(store) -> TaskStore:
    store.load_for_user("user-ada")
    return store
