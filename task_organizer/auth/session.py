"""Tracks who is signed in on a device and republishes changes."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .identity import AuthUser, IdentityProvider

logger = logging.getLogger(__name__)

UserIdListener = Callable[[Optional[str]], None]


class SessionTracker:
    """Produces the stream of "current user id or None" values.

    Listeners only hear about actual changes; repeated notifications for the
    same user are ignored. Reconnection is the identity provider's job.
    """

    def __init__(self) -> None:
        self._user: Optional[AuthUser] = None
        self._started = False
        self._listeners: List[UserIdListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user.uid if self._user else None

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def start(self, provider: IdentityProvider) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = provider.on_auth_state_changed(self._handle_auth_state)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def subscribe(self, listener: UserIdListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _handle_auth_state(self, user: Optional[AuthUser]) -> None:
        previous = self.current_user_id
        self._user = user
        current = self.current_user_id
        if self._started and previous == current:
            return
        self._started = True

        if previous and not current:
            logger.info("User %s signed out", previous)
        elif current:
            logger.info("Auth state changed to user %s", current)

        for listener in list(self._listeners):
            listener(current)
