"""Analytics Router - chart data derived from the loaded tasks."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_client_session, get_current_user, respond
from task_organizer.analytics import analytics_view
from task_organizer.auth import AuthUser
from task_organizer.workspace import ClientSession

router = APIRouter()


@router.get("")
def get_analytics(
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    return respond(session, **analytics_view(session.store.tasks))
