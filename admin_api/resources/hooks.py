"""Resource-specific create/update preparation and delete guards."""

import secrets
import string
import uuid
from typing import Any

from fastapi import HTTPException

from admin_api.auth.passwords import hash_password
from admin_api.db.client import CollectionStore
from admin_api.db.models import PERMISSION_SCHEMA, USERS, default_permissions

AGENT_ID_PREFIX = "agent_"
AGENT_ID_LENGTH = 21
_AGENT_ID_ALPHABET = string.ascii_letters + string.digits

AGENT_LIST_FIELDS = ("tools", "tool_kwargs", "agent_ids", "conversation_starters", "projectIds", "versions")
AGENT_FLAG_FIELDS = ("is_promoted", "end_after_tools", "hide_sequential_outputs")


def generate_agent_id() -> str:
    return AGENT_ID_PREFIX + "".join(secrets.choice(_AGENT_ID_ALPHABET) for _ in range(AGENT_ID_LENGTH))


# --- Users ---

def prepare_user(data: dict[str, Any]) -> dict[str, Any]:
    password = data.pop("password", None)
    if password:
        data["password"] = hash_password(password)
    return data


# --- Roles ---

def merge_permissions(supplied: dict[str, Any] | None) -> dict[str, dict[str, bool]]:
    """Overlay supplied flags on the all-false tree, dropping unknown groups and flags."""
    permissions = default_permissions()
    for group, flags in (supplied or {}).items():
        if group not in PERMISSION_SCHEMA or not isinstance(flags, dict):
            continue
        for flag, value in flags.items():
            if flag in PERMISSION_SCHEMA[group]:
                permissions[group][flag] = bool(value)
    return permissions


def prepare_role_create(data: dict[str, Any]) -> dict[str, Any]:
    data["permissions"] = merge_permissions(data.get("permissions"))
    return data


def prepare_role_update(patch: dict[str, Any]) -> dict[str, Any]:
    """Expand a nested permissions patch into dotted paths so other flags survive."""
    supplied = patch.pop("permissions", None)
    if isinstance(supplied, dict):
        for group, flags in supplied.items():
            if group not in PERMISSION_SCHEMA or not isinstance(flags, dict):
                continue
            for flag, value in flags.items():
                if flag in PERMISSION_SCHEMA[group]:
                    patch[f"permissions.{group}.{flag}"] = bool(value)
    return patch


async def _refuse_while_assigned(store: CollectionStore, role: dict, action: str) -> None:
    assigned = await store.count(USERS, {"role": role["name"]})
    if assigned:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot {action} role '{role['name']}': {assigned} user(s) are still assigned to it",
        )


async def guard_role_delete(store: CollectionStore, role: dict) -> None:
    """Refuse to delete a role while users are still assigned to it."""
    await _refuse_while_assigned(store, role, "delete")


async def guard_role_rename(store: CollectionStore, role: dict) -> None:
    """Users reference roles by name, so a rename would orphan them."""
    await _refuse_while_assigned(store, role, "rename")


# --- Agents ---

def prepare_agent_create(data: dict[str, Any]) -> dict[str, Any]:
    data["id"] = generate_agent_id()
    for field in AGENT_LIST_FIELDS:
        if data.get(field) is None:
            data[field] = []
    for field in AGENT_FLAG_FIELDS:
        data[field] = bool(data.get(field, False))
    data.setdefault("category", "general")
    if data.get("support_contact") is None:
        data["support_contact"] = {}
    return data


# --- Conversations ---

def prepare_conversation_create(data: dict[str, Any]) -> dict[str, Any]:
    if not data.get("conversationId"):
        data["conversationId"] = str(uuid.uuid4())
    return data
