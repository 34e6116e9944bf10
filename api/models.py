"""Shared Pydantic models for API routers.

Request bodies use the web client's camelCase names; ``to_fields`` /
``to_updates`` hand the store snake_case attribute sets.

Usage in routers:
    from api.models import TaskCreateRequest, SignInRequest
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Priority = Literal["high", "medium", "low"]
DateValue = Union[datetime, date]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# =============================================================================
# Auth Models
# =============================================================================

class EmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email")
        return value


class SignInRequest(EmailRequest):
    password: str

    @field_validator("password")
    @classmethod
    def _password_length(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return value


class SignUpRequest(SignInRequest):
    model_config = ConfigDict(populate_by_name=True)

    confirm_password: str = Field(..., alias="confirmPassword")

    @model_validator(mode="after")
    def _passwords_match(self) -> "SignUpRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class PopupSignInRequest(BaseModel):
    """Credential the browser obtained from the provider's popup."""
    model_config = ConfigDict(populate_by_name=True)

    provider_id: str = Field("google.com", alias="providerId")
    id_token: str = Field(..., alias="idToken", min_length=1)


class PasswordResetRequest(EmailRequest):
    pass


# =============================================================================
# Task Models
# =============================================================================

class SubtaskDraft(BaseModel):
    """Subtask entered in the task form before the task exists."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    priority: Optional[Priority] = None
    due_date: Optional[DateValue] = Field(None, alias="dueDate")

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Subtask title is required")
        return value

    def to_fields(self) -> Dict[str, Any]:
        return {"title": self.title, "priority": self.priority, "due_date": self.due_date}


class SubtaskCreateRequest(SubtaskDraft):
    pass


class SubtaskUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    due_date: Optional[DateValue] = Field(None, alias="dueDate")

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Subtask title is required")
        return value.strip() if value is not None else None

    @field_validator("completed")
    @classmethod
    def _completed_not_null(cls, value: Optional[bool]) -> bool:
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    def to_updates(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=False)


class TaskCreateRequest(BaseModel):
    """Request body for creating a new task."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: Optional[str] = None
    priority: Priority = "medium"
    due_date: Optional[DateValue] = Field(None, alias="dueDate")
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    subtasks: List[SubtaskDraft] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    def to_fields(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": _blank_to_none(self.description),
            "completed": False,
            "priority": self.priority,
            "due_date": self.due_date,
            "category": _blank_to_none(self.category),
            "tags": self.tags,
            "subtasks": [s.to_fields() for s in self.subtasks],
        }


class TaskUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are written."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    due_date: Optional[DateValue] = Field(None, alias="dueDate")
    category: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Title is required")
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("completed", "priority")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    def to_updates(self) -> Dict[str, Any]:
        updates = self.model_dump(exclude_unset=True, by_alias=False)
        for key in ("description", "category"):
            if key in updates:
                updates[key] = _blank_to_none(updates[key])
        if updates.get("tags") is None:
            updates.pop("tags", None)
        return updates


# =============================================================================
# Settings Models
# =============================================================================

class ThemeRequest(BaseModel):
    theme: Literal["light", "dark"]
