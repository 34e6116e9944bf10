"""Auth Router - sign up, sign in, popup sign in, sign out, password reset.

Identity errors never surface as exceptions: the session turns them into a
notification with a user-facing message and the endpoint answers with
``ok: false`` and a 4xx status.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_client_session, respond
from api.models import PasswordResetRequest, PopupSignInRequest, SignInRequest, SignUpRequest
from task_organizer.workspace import ClientSession

router = APIRouter()

HOME_PATH = "/dashboard"


def _auth_result(
    session: ClientSession, response: Response, ok: bool, failure_status: int
) -> dict:
    if not ok:
        response.status_code = failure_status
    user = session.user
    return respond(
        session,
        ok=ok,
        user=user.to_api_dict() if user else None,
        redirect=HOME_PATH if ok else None,
    )


@router.get("/session")
def get_session(session: ClientSession = Depends(get_client_session)) -> dict:
    """Current auth state for the device."""
    user = session.user
    return respond(
        session,
        authenticated=user is not None,
        user=user.to_api_dict() if user else None,
    )


@router.post("/sign-up")
def sign_up(
    request: SignUpRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
) -> dict:
    ok = session.sign_up(request.email, request.password)
    return _auth_result(session, response, ok, status.HTTP_400_BAD_REQUEST)


@router.post("/sign-in")
def sign_in(
    request: SignInRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
) -> dict:
    ok = session.sign_in(request.email, request.password)
    return _auth_result(session, response, ok, status.HTTP_401_UNAUTHORIZED)


@router.post("/sign-in/popup")
def sign_in_with_popup(
    request: PopupSignInRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
) -> dict:
    ok = session.sign_in_with_popup(request.provider_id, request.id_token)
    return _auth_result(session, response, ok, status.HTTP_401_UNAUTHORIZED)


@router.post("/sign-out")
def sign_out(session: ClientSession = Depends(get_client_session)) -> dict:
    ok = session.sign_out()
    return respond(session, ok=ok, redirect="/")


@router.post("/password-reset")
def send_password_reset(
    request: PasswordResetRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
) -> dict:
    ok = session.send_password_reset(request.email)
    if not ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(session, ok=ok)
