"""Generic CRUD logic driven by a ResourceDescriptor."""

import logging
import re
from typing import Any

from fastapi import HTTPException
from pydantic import ValidationError

from admin_api.audit.logger import AuditAction, AuditLogger
from admin_api.auth.dependencies import Actor
from admin_api.db.client import CollectionStore, sort_direction
from admin_api.db.models import utcnow
from admin_api.resources.descriptors import ResourceDescriptor
from admin_api.resources.identity import id_filter, normalize, public_id, strip_hidden, to_jsonable

logger = logging.getLogger(__name__)

CLIENT_ID_FIELDS = ("id", "_id")


def _validation_message(errors: list[dict]) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in errors
    )


class ResourceService:
    def __init__(self, descriptor: ResourceDescriptor, store: CollectionStore, audit: AuditLogger):
        self.descriptor = descriptor
        self._store = store
        self._audit = audit

    @property
    def _collection(self) -> str:
        return self.descriptor.collection

    def _not_found(self) -> HTTPException:
        return HTTPException(status_code=404, detail=f"{self.descriptor.label} not found")

    def _search_filter(self, search: str | None) -> dict[str, Any]:
        if not search or not self.descriptor.search_fields:
            return {}
        pattern = {"$regex": re.escape(search), "$options": "i"}
        return {"$or": [{field: pattern} for field in self.descriptor.search_fields]}

    async def _ensure_unique(self, value: Any, exclude_id: Any = None) -> None:
        field = self.descriptor.unique_field
        query: dict[str, Any] = {field: value}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await self._store.find_one(self._collection, query):
            raise HTTPException(
                status_code=400,
                detail=f"{self.descriptor.label} with {field} '{value}' already exists",
            )

    def _validate_patch(self, existing: dict, patch: dict[str, Any]) -> None:
        """Check patched fields against the create schema, applied over the stored document.

        Only errors on fields the patch touches are reported, so older documents
        that predate the schema can still be edited.
        """
        schema = self.descriptor.create_schema
        if schema is None:
            return
        current = {k: v for k, v in to_jsonable(existing).items() if k not in CLIENT_ID_FIELDS}
        try:
            schema.model_validate({**current, **patch})
        except ValidationError as exc:
            errors = [e for e in exc.errors() if e["loc"] and e["loc"][0] in patch]
            if errors:
                raise HTTPException(status_code=400, detail=_validation_message(errors))

    async def _audit_after(self, action: AuditAction, resource_id: str | None, actor: Actor, payload: dict) -> None:
        if not self.descriptor.audited:
            return
        await self._audit.after_commit(action, self.descriptor.audit_kind, resource_id, actor, payload)

    async def list(
        self,
        page: int,
        limit: int,
        order: str | None = None,
        sort: str | None = None,
        search: str | None = None,
    ) -> tuple[list[dict], int]:
        field = sort or self.descriptor.sort_field
        direction = sort_direction(order, self.descriptor.sort_desc)
        items, total = await self._store.find(
            self._collection,
            self._search_filter(search),
            sort=(field, direction),
            skip=(page - 1) * limit,
            limit=limit,
        )
        return [normalize(doc, self.descriptor) for doc in items], total

    async def _load(self, resource_id: str) -> dict:
        doc = await self._store.find_one(self._collection, id_filter(resource_id, self.descriptor))
        if not doc:
            raise self._not_found()
        return doc

    async def get(self, resource_id: str) -> dict:
        return normalize(await self._load(resource_id), self.descriptor)

    async def create(self, body: dict[str, Any], actor: Actor) -> dict:
        data = {k: v for k, v in body.items() if k not in CLIENT_ID_FIELDS}
        if self.descriptor.create_schema is not None:
            try:
                data = self.descriptor.create_schema.model_validate(data).model_dump(exclude_none=True)
            except ValidationError as exc:
                raise HTTPException(status_code=400, detail=_validation_message(exc.errors()))
        if self.descriptor.prepare_create is not None:
            data = self.descriptor.prepare_create(data)
        if self.descriptor.unique_field:
            await self._ensure_unique(data.get(self.descriptor.unique_field))
        if self.descriptor.timestamps:
            now = utcnow()
            data.setdefault("createdAt", now)
            data.setdefault("updatedAt", now)

        data["_id"] = await self._store.insert_one(self._collection, data)
        created = normalize(data, self.descriptor)
        logger.info("Created %s %s", self.descriptor.label.lower(), created["id"])

        payload = strip_hidden(data, self.descriptor)
        payload.pop("_id", None)
        await self._audit_after(AuditAction.CREATE, created["id"], actor, payload)
        return created

    async def update(self, resource_id: str, body: dict[str, Any], actor: Actor) -> dict:
        existing = await self._load(resource_id)
        ignored = set(CLIENT_ID_FIELDS) | {self.descriptor.key_field}
        patch = {k: v for k, v in body.items() if k not in ignored}
        if not patch:
            return normalize(existing, self.descriptor)

        self._validate_patch(existing, patch)
        unique = self.descriptor.unique_field
        if unique and unique in patch and patch[unique] != existing.get(unique):
            await self._ensure_unique(patch[unique], exclude_id=existing["_id"])
            if self.descriptor.rename_guard is not None:
                await self.descriptor.rename_guard(self._store, existing)

        changes = strip_hidden(patch, self.descriptor)
        if self.descriptor.prepare_update is not None:
            patch = self.descriptor.prepare_update(dict(patch))
        if self.descriptor.timestamps:
            patch["updatedAt"] = utcnow()

        updated = await self._store.find_one_and_update(self._collection, {"_id": existing["_id"]}, patch)
        if not updated:
            raise self._not_found()
        result = normalize(updated, self.descriptor)
        await self._audit_after(AuditAction.UPDATE, result["id"], actor, changes)
        return result

    async def delete(self, resource_id: str, actor: Actor) -> dict:
        if not self.descriptor.audited and self.descriptor.delete_guard is None:
            deleted = await self._store.delete_one(self._collection, id_filter(resource_id, self.descriptor))
            if not deleted:
                raise self._not_found()
            return {"id": resource_id}

        snapshot = await self._load(resource_id)
        if self.descriptor.delete_guard is not None:
            await self.descriptor.delete_guard(self._store, snapshot)
        deleted = await self._store.delete_one(self._collection, {"_id": snapshot["_id"]})
        if not deleted:
            raise self._not_found()

        removed_id = public_id(snapshot, self.descriptor)
        logger.info("Deleted %s %s", self.descriptor.label.lower(), removed_id)
        await self._audit_after(AuditAction.DELETE, removed_id, actor, to_jsonable(strip_hidden(snapshot, self.descriptor)))
        return {"id": removed_id}
