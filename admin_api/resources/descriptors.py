"""Declarative description of every CRUD resource the console manages."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from admin_api.db import models
from admin_api.db.client import CollectionStore
from admin_api.resources import hooks
from admin_api.resources.schemas import (
    CreateAgentRequest,
    CreateConversationRequest,
    CreateRoleRequest,
    CreateUserRequest,
)

LIST, GET, CREATE, UPDATE, DELETE = "list", "get", "create", "update", "delete"
ALL_OPERATIONS = frozenset({LIST, GET, CREATE, UPDATE, DELETE})

Prepare = Callable[[dict[str, Any]], dict[str, Any]]
Guard = Callable[[CollectionStore, dict], Awaitable[None]]


@dataclass(frozen=True)
class ResourceDescriptor:
    route: str
    collection: str
    label: str
    # Resource kind written to audit records; None disables auditing
    audit_kind: str | None
    key_field: str = "_id"
    native_fallback: bool = False
    sort_field: str = "createdAt"
    sort_desc: bool = True
    search_fields: tuple[str, ...] = ()
    hidden_fields: frozenset[str] = frozenset()
    timestamps: bool = True
    operations: frozenset[str] = ALL_OPERATIONS
    create_schema: type[BaseModel] | None = None
    prepare_create: Prepare | None = None
    prepare_update: Prepare | None = None
    unique_field: str | None = None
    delete_guard: Guard | None = None
    # Runs before the unique field changes on update
    rename_guard: Guard | None = None

    @property
    def audited(self) -> bool:
        return self.audit_kind is not None


USERS = ResourceDescriptor(
    route="users",
    collection=models.USERS,
    label="User",
    audit_kind="user",
    search_fields=("username", "email", "name"),
    hidden_fields=frozenset({"password"}),
    create_schema=CreateUserRequest,
    prepare_create=hooks.prepare_user,
    prepare_update=hooks.prepare_user,
)

ROLES = ResourceDescriptor(
    route="roles",
    collection=models.ROLES,
    label="Role",
    audit_kind="role",
    sort_field="name",
    sort_desc=False,
    search_fields=("name",),
    timestamps=False,
    create_schema=CreateRoleRequest,
    prepare_create=hooks.prepare_role_create,
    prepare_update=hooks.prepare_role_update,
    unique_field="name",
    delete_guard=hooks.guard_role_delete,
    rename_guard=hooks.guard_role_rename,
)

CONVERSATIONS = ResourceDescriptor(
    route="convos",
    collection=models.CONVERSATIONS,
    label="Conversation",
    audit_kind="conversation",
    key_field="conversationId",
    native_fallback=True,
    search_fields=("title",),
    create_schema=CreateConversationRequest,
    prepare_create=hooks.prepare_conversation_create,
)

MESSAGES = ResourceDescriptor(
    route="messages",
    collection=models.MESSAGES,
    label="Message",
    audit_kind="message",
    search_fields=("text", "sender"),
)

AGENTS = ResourceDescriptor(
    route="agents",
    collection=models.AGENTS,
    label="Agent",
    audit_kind="agent",
    key_field="id",
    search_fields=("name", "description"),
    create_schema=CreateAgentRequest,
    prepare_create=hooks.prepare_agent_create,
)

FILES = ResourceDescriptor(
    route="files",
    collection=models.FILES,
    label="File",
    audit_kind="file",
    search_fields=("filename",),
)

SESSIONS = ResourceDescriptor(
    route="sessions",
    collection=models.SESSIONS,
    label="Session",
    audit_kind="session",
    sort_field="expiration",
)

TOKENS = ResourceDescriptor(
    route="tokens",
    collection=models.TOKENS,
    label="Token",
    audit_kind="token",
    hidden_fields=frozenset({"token"}),
)

TRANSACTIONS = ResourceDescriptor(
    route="transactions",
    collection=models.TRANSACTIONS,
    label="Transaction",
    audit_kind="transaction",
    search_fields=("model", "context", "tokenType"),
)

PROJECTS = ResourceDescriptor(
    route="projects",
    collection=models.PROJECTS,
    label="Project",
    audit_kind="project",
    search_fields=("name",),
)

AUDIT_LOGS = ResourceDescriptor(
    route="audit-logs",
    collection=models.AUDIT_LOGS,
    label="Audit log",
    # Deleting audit entries must not generate new ones
    audit_kind=None,
    sort_field="timestamp",
    search_fields=("resource", "action", "userEmail"),
    timestamps=False,
    operations=frozenset({LIST, GET, DELETE}),
)

RESOURCES: tuple[ResourceDescriptor, ...] = (
    USERS,
    ROLES,
    CONVERSATIONS,
    MESSAGES,
    AGENTS,
    FILES,
    SESSIONS,
    TOKENS,
    TRANSACTIONS,
    PROJECTS,
    AUDIT_LOGS,
)
