"""Append-only audit trail of administrative actions."""

import logging
from enum import Enum
from typing import Any

from admin_api.audit.effects import PostCommitEffects
from admin_api.auth.dependencies import Actor
from admin_api.db.client import CollectionStore
from admin_api.db.models import AUDIT_LOGS, utcnow

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RESTART = "restart"
    EXECUTE = "execute"


class AuditLogger:
    def __init__(self, store: CollectionStore):
        self._store = store

    async def record(
        self,
        action: AuditAction,
        resource: str,
        resource_id: str | None,
        actor_email: str,
        actor_name: str,
        payload: dict[str, Any] | None,
        client_ip: str,
    ) -> None:
        """Insert one audit document. Raises on store failure; see ``after_commit``."""
        await self._store.insert_one(AUDIT_LOGS, {
            "action": AuditAction(action).value,
            "resource": resource,
            "resourceId": resource_id,
            "userEmail": actor_email,
            "userName": actor_name,
            "data": payload,
            "ipAddress": client_ip,
            "timestamp": utcnow(),
        })
        logger.debug("Audit %s %s/%s by %s", action, resource, resource_id, actor_email)

    async def after_commit(
        self,
        action: AuditAction,
        resource: str,
        resource_id: str | None,
        actor: Actor,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Record an audit entry for a mutation that already succeeded, swallowing failures."""
        effects = PostCommitEffects()
        effects.add(
            f"audit:{action}:{resource}",
            lambda: self.record(action, resource, resource_id, actor.email, actor.name, payload, actor.ip),
        )
        await effects.run()
