"""Request and response bodies that exist only at the HTTP boundary."""

from typing import ClassVar, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class _Body(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")


class HealthResponse(BaseModel):
    status: Literal["healthy"]
    version: str


class LoginRequest(_Body):
    username: str
    password: str


class RefreshRequest(_Body):
    refresh_token: str


class LogoutRequest(_Body):
    refresh_token: str


class ChangePasswordRequest(_Body):
    current_password: str
    new_password: str


class StatusChangeRequest(_Body):
    status: str


class AssignRequest(_Body):
    assignee_id: UUID


class ReplyRequest(_Body):
    content: str


class MessageResponse(BaseModel):
    message: str
