"""Request authentication helpers for the HTTP layer."""
from __future__ import annotations

import os
from typing import Optional

from fastapi import HTTPException, status

from ..auth import AuthUser
from ..workspace import ClientSession

DEV_BYPASS_ENV = "TASKORG_DEV_AUTH_BYPASS"
LOGIN_PATH = "/login"


class LoginRequired(HTTPException):
    """401 carrying where the client should send the user."""

    def __init__(self, detail: str = "Sign in required.") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": detail, "redirect": LOGIN_PATH},
        )


def dev_bypass_enabled() -> bool:
    return os.getenv(DEV_BYPASS_ENV) == "1"


def authenticate_request(
    session: ClientSession,
    authorization: Optional[str],
    dev_user: Optional[str],
) -> None:
    """Bring the session's auth state in line with the request credentials.

    During development/testing set TASKORG_DEV_AUTH_BYPASS=1 and supply
    X-User-Id. Otherwise a ``Bearer`` Firebase ID token signs the device in
    when it is not already signed in with that token.
    """

    if dev_bypass_enabled() and dev_user:
        if session.tracker.current_user_id != dev_user:
            session.identity.adopt(AuthUser(uid=dev_user, provider_id="dev"))
        return

    if not authorization:
        return
    if not authorization.startswith("Bearer "):
        raise LoginRequired("Malformed Authorization header.")

    token = authorization.split(" ", 1)[1].strip()
    current = session.user
    if current is not None and current.id_token == token:
        return
    if not session.sign_in_with_token(token):
        raise LoginRequired("Invalid token.")


def require_user(session: ClientSession) -> AuthUser:
    user = session.user
    if user is None:
        raise LoginRequired()
    return user
