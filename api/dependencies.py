"""Shared dependencies and helper functions for API routers.

Usage in routers:
    from api.dependencies import get_client_session, get_current_user, respond
"""
from __future__ import annotations

from typing import Any, List, Optional

from fastapi import Depends, Header, Request, Response

from task_organizer.api.auth import authenticate_request, require_user
from task_organizer.auth import AuthUser
from task_organizer.config import Settings
from task_organizer.workspace import ClientSession, SessionRegistry


# =============================================================================
# Configuration Constants
# =============================================================================

DEVICE_COOKIE = "taskorg_device"
DEVICE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365
COLOR_SCHEME_HINT = "Sec-CH-Prefers-Color-Scheme"

DEV_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]


def allowed_origins(settings: Settings) -> List[str]:
    """Local dev origins plus the configured frontend, if any."""
    origins = list(DEV_ORIGINS)
    if settings.allowed_frontend and settings.allowed_frontend not in origins:
        origins.append(settings.allowed_frontend)
    return origins


# =============================================================================
# Session Resolution
# =============================================================================

def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_client_session(
    request: Request,
    response: Response,
    registry: SessionRegistry = Depends(get_registry),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    dev_user: Optional[str] = Header(default=None, alias="X-User-Id"),
    color_scheme: Optional[str] = Header(default=None, alias=COLOR_SCHEME_HINT),
) -> ClientSession:
    """Return the device's session, issuing a device cookie on first visit."""

    device_id = request.cookies.get(DEVICE_COOKIE)
    if not device_id:
        device_id = registry.new_device_id()
        response.set_cookie(
            DEVICE_COOKIE,
            device_id,
            max_age=DEVICE_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
        )

    session = registry.get_or_create(device_id)
    if not session.theme.initialized:
        session.theme.initialize(system_prefers_dark=(color_scheme or "").strip('"') == "dark")

    authenticate_request(session, authorization, dev_user)
    return session


def get_current_user(session: ClientSession = Depends(get_client_session)) -> AuthUser:
    """Signed-in user for protected views; 401 with a login redirect otherwise."""
    return require_user(session)


# =============================================================================
# Response Helpers
# =============================================================================

def respond(session: ClientSession, **payload: Any) -> dict:
    """Attach queued notifications and the current theme to a response body."""
    body = dict(payload)
    body["notifications"] = [n.to_api_dict() for n in session.notifier.drain()]
    body["theme"] = session.theme.theme
    return body
