"""Pydantic schemas for resource requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from admin_api.db.models import ROLE_USER


# --- Requests ---

class CreateUserRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    username: str = Field(min_length=1)
    email: EmailStr
    name: str | None = None
    password: str | None = Field(default=None, min_length=8)
    role: str = ROLE_USER
    emailVerified: bool = False
    provider: str = "local"


class CreateRoleRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    permissions: dict[str, dict[str, Any]] = Field(default_factory=dict)


class CreateAgentRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    description: str | None = None
    instructions: str | None = None
    provider: str | None = None
    model: str | None = None


class CreateConversationRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    conversationId: str | None = None
    title: str = "New Chat"


class CommandRequest(BaseModel):
    command: str
    namespace: str | None = None


# --- Responses ---

class ListResponse(BaseModel):
    data: list[dict[str, Any]]
    total: int
