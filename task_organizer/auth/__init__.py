"""Authentication package - Firebase identity and session tracking."""
from __future__ import annotations

from .identity import (
    AUTH_ERROR_MESSAGES,
    AuthError,
    AuthUser,
    IdentityClient,
    IdentityProvider,
    message_for_code,
)
from .session import SessionTracker

__all__ = [
    "AUTH_ERROR_MESSAGES",
    "AuthError",
    "AuthUser",
    "IdentityClient",
    "IdentityProvider",
    "SessionTracker",
    "message_for_code",
]
