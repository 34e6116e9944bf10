"""Per-device client sessions and the registry that hands them out.

Shared services (identity client, document store) are built once when the
app starts and passed into every ``ClientSession`` by reference. A session
bundles what a browser tab would otherwise keep in global providers: who is
signed in, that user's tasks, the theme and pending notifications.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Dict, Optional

from .auth import AuthError, AuthUser, IdentityClient, IdentityProvider, SessionTracker
from .notifications import Notifier
from .task_store import DocumentStore, TaskStore
from .theme import FilePreferenceStorage, PreferenceStorage, ThemeController

logger = logging.getLogger(__name__)

PreferenceFactory = Callable[[str], PreferenceStorage]

DEFAULT_MAX_SESSIONS = 1000
DEFAULT_IDLE_SECONDS = 60 * 60 * 12


class ClientSession:
    """Everything one device needs, wired together."""

    def __init__(
        self,
        device_id: str,
        identity: IdentityProvider,
        documents: DocumentStore,
        preferences: PreferenceStorage,
        *,
        collection: str = "tasks",
    ) -> None:
        self.device_id = device_id
        self.identity = identity
        self.notifier = Notifier()
        self.tracker = SessionTracker()
        self.store = TaskStore(documents, self.notifier, collection=collection)
        self.theme = ThemeController(preferences)

        self._unsubscribe_store = self.tracker.subscribe(self.store.load_for_user)
        self.tracker.start(identity)

    @property
    def user(self) -> Optional[AuthUser]:
        return self.tracker.current_user

    # -------------------------------------------------------------------------
    # Auth actions: failures become notifications, never exceptions
    # -------------------------------------------------------------------------

    def sign_up(self, email: str, password: str) -> bool:
        return self._auth_action(
            lambda: self.identity.sign_up(email, password), "Account created successfully"
        )

    def sign_in(self, email: str, password: str) -> bool:
        return self._auth_action(
            lambda: self.identity.sign_in(email, password), "Signed in successfully"
        )

    def sign_in_with_popup(self, provider_id: str, provider_token: str) -> bool:
        return self._auth_action(
            lambda: self.identity.sign_in_with_popup(provider_id, provider_token),
            "Signed in with Google successfully",
        )

    def sign_in_with_token(self, token: str) -> bool:
        return self._auth_action(lambda: self.identity.sign_in_with_token(token), None)

    def send_password_reset(self, email: str) -> bool:
        return self._auth_action(
            lambda: self.identity.send_password_reset(email), "Recovery email sent"
        )

    def sign_out(self) -> bool:
        if self.user is None:
            return True
        return self._auth_action(self.identity.sign_out, "Signed out")

    def close(self) -> None:
        self.tracker.stop()
        self._unsubscribe_store()

    def _auth_action(self, action: Callable[[], object], success: Optional[str]) -> bool:
        try:
            action()
        except AuthError as exc:
            logger.warning("Auth %s failed: %s", exc.operation, exc.code)
            self.notifier.error(exc.user_message)
            return False
        if success:
            self.notifier.success(success)
        return True


class SessionRegistry:
    """Maps device ids to their ``ClientSession``.

    Sessions idle longer than ``idle_seconds`` are closed and dropped, and at
    most ``max_sessions`` are kept (least recently used goes first).
    """

    def __init__(
        self,
        identity_client: IdentityClient,
        documents: DocumentStore,
        preference_factory: PreferenceFactory,
        *,
        collection: str = "tasks",
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.identity_client = identity_client
        self.documents = documents
        self.preference_factory = preference_factory
        self.collection = collection
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._sessions: "OrderedDict[str, ClientSession]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_device_id() -> str:
        return uuid.uuid4().hex

    def get(self, device_id: str) -> Optional[ClientSession]:
        with self._lock:
            return self._sessions.get(device_id)

    def get_or_create(self, device_id: str) -> ClientSession:
        with self._lock:
            now = self._clock()
            self._evict_idle(now)
            session = self._sessions.get(device_id)
            if session is None:
                session = ClientSession(
                    device_id,
                    IdentityProvider(self.identity_client),
                    self.documents,
                    self.preference_factory(device_id),
                    collection=self.collection,
                )
                self._sessions[device_id] = session
                logger.info("Created client session for device %s", device_id)
            self._sessions.move_to_end(device_id)
            self._last_seen[device_id] = now
            while len(self._sessions) > self.max_sessions:
                oldest = next(iter(self._sessions))
                self._drop(oldest)
            return session

    def close_all(self) -> None:
        with self._lock:
            for session in self._sessions.values():
                session.close()
            self._sessions.clear()
            self._last_seen.clear()

    def _evict_idle(self, now: float) -> None:
        expired = [
            device_id
            for device_id, seen in self._last_seen.items()
            if now - seen > self.idle_seconds
        ]
        for device_id in expired:
            self._drop(device_id)

    def _drop(self, device_id: str) -> None:
        session = self._sessions.pop(device_id, None)
        self._last_seen.pop(device_id, None)
        if session is not None:
            session.close()
            logger.info("Closed client session for device %s", device_id)

    def __len__(self) -> int:
        return len(self._sessions)


def file_preferences(path: Path) -> PreferenceFactory:
    """Preference factory storing every device's preferences in one JSON file."""

    def factory(device_id: str) -> PreferenceStorage:
        return FilePreferenceStorage(path, namespace=device_id)

    return factory
