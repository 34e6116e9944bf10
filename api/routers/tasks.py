"""Tasks Router - task and subtask management for the signed-in user.

Handles:
- Dashboard listing with search/category/priority filters
- Task CRUD and completion toggling
- Subtask CRUD and completion toggling (embedded in the parent task)

Store operations never raise; a failed write shows up as a queued
notification and a 502 status, a missing task as 404.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from api.dependencies import get_client_session, get_current_user, respond
from api.models import (
    Priority,
    SubtaskCreateRequest,
    SubtaskUpdateRequest,
    TaskCreateRequest,
    TaskUpdateRequest,
)
from task_organizer.auth import AuthUser
from task_organizer.task_store import Task
from task_organizer.views import DashboardFilters, dashboard_view, task_card
from task_organizer.workspace import ClientSession

router = APIRouter()


def _task_or_404(session: ClientSession, task_id: str) -> Task:
    task = session.store.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _subtask_or_404(session: ClientSession, task_id: str, subtask_id: str) -> None:
    if _task_or_404(session, task_id).find_subtask(subtask_id) is None:
        raise HTTPException(status_code=404, detail="Subtask not found")


def _task_body(session: ClientSession, response: Response, task_id: str, ok: bool) -> dict:
    if not ok:
        response.status_code = status.HTTP_502_BAD_GATEWAY
    task = session.store.get_task(task_id)
    return respond(session, ok=ok, task=task_card(task) if task else None)


# =============================================================================
# Task Endpoints
# =============================================================================

@router.get("")
def list_tasks(
    search: str = Query("", description="Case-insensitive title search"),
    category: Optional[str] = Query(None),
    priority: Optional[Priority] = Query(None),
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """Dashboard view over the loaded collection."""
    filters = DashboardFilters(search=search, category=category or None, priority=priority)
    store = session.store
    view = dashboard_view(store.tasks, filters, loading=store.loading, error=store.error)
    return respond(session, **view)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    request: TaskCreateRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    task = session.store.add_task(request.to_fields())
    if task is None:
        response.status_code = status.HTTP_502_BAD_GATEWAY
        return respond(session, ok=False, task=None)
    return respond(session, ok=True, task=task_card(task))


@router.post("/reload")
def reload_tasks(
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """Re-fetch the collection from the document store."""
    session.store.reload()
    store = session.store
    return respond(session, **dashboard_view(store.tasks, loading=store.loading, error=store.error))


@router.get("/{task_id}")
def get_task(
    task_id: str,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    return respond(session, task=task_card(_task_or_404(session, task_id)))


@router.patch("/{task_id}")
def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    _task_or_404(session, task_id)
    updates = request.to_updates()
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    ok = session.store.update_task(task_id, updates)
    return _task_body(session, response, task_id, ok)


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    _task_or_404(session, task_id)
    ok = session.store.delete_task(task_id)
    if not ok:
        response.status_code = status.HTTP_502_BAD_GATEWAY
    return respond(session, ok=ok, deleted=ok, taskId=task_id)


@router.post("/{task_id}/toggle")
def toggle_task(
    task_id: str,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    _task_or_404(session, task_id)
    ok = session.store.toggle_task_complete(task_id)
    return _task_body(session, response, task_id, ok)


# =============================================================================
# Subtask Endpoints
# =============================================================================

@router.post("/{task_id}/subtasks", status_code=status.HTTP_201_CREATED)
def create_subtask(
    task_id: str,
    request: SubtaskCreateRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    _task_or_404(session, task_id)
    subtask = session.store.add_subtask(task_id, request.to_fields())
    body = _task_body(session, response, task_id, subtask is not None)
    body["subtask"] = subtask.to_api_dict() if subtask else None
    return body


@router.patch("/{task_id}/subtasks/{subtask_id}")
def update_subtask(
    task_id: str,
    subtask_id: str,
    request: SubtaskUpdateRequest,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    _subtask_or_404(session, task_id, subtask_id)
    updates = request.to_updates()
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    ok = session.store.update_subtask(task_id, subtask_id, updates)
    return _task_body(session, response, task_id, ok)


@router.delete("/{task_id}/subtasks/{subtask_id}")
def delete_subtask(
    task_id: str,
    subtask_id: str,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    _subtask_or_404(session, task_id, subtask_id)
    ok = session.store.delete_subtask(task_id, subtask_id)
    return _task_body(session, response, task_id, ok)


@router.post("/{task_id}/subtasks/{subtask_id}/toggle")
def toggle_subtask(
    task_id: str,
    subtask_id: str,
    response: Response,
    session: ClientSession = Depends(get_client_session),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    _subtask_or_404(session, task_id, subtask_id)
    ok = session.store.toggle_subtask_complete(task_id, subtask_id)
    return _task_body(session, response, task_id, ok)
