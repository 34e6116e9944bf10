"""Settings Router - theme preference and account details.

The theme endpoints work signed out (the toggle lives in the navbar);
the settings page itself requires a user.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_client_session, get_current_user, respond
from api.models import ThemeRequest
from task_organizer.auth import AuthUser
from task_organizer.workspace import ClientSession

router = APIRouter()


@router.get("")
def get_settings_page(
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    return respond(
        session,
        account=user.to_api_dict(),
        documentClass=session.theme.document_class,
    )


@router.put("/theme")
def set_theme(
    request: ThemeRequest,
    session: ClientSession = Depends(get_client_session),
) -> dict:
    session.theme.set_theme(request.theme)
    return respond(session, documentClass=session.theme.document_class)


@router.post("/theme/toggle")
def toggle_theme(session: ClientSession = Depends(get_client_session)) -> dict:
    session.theme.toggle_theme()
    return respond(session, documentClass=session.theme.document_class)
