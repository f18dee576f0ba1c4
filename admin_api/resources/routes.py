"""Uniform CRUD endpoints, one router per resource descriptor."""

from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Query

from admin_api.audit.logger import AuditLogger
from admin_api.auth.dependencies import Actor, get_actor
from admin_api.db.client import CollectionStore
from admin_api.dependencies import get_audit, get_store
from admin_api.resources.descriptors import CREATE, DELETE, GET, LIST, RESOURCES, UPDATE, ResourceDescriptor
from admin_api.resources.schemas import ListResponse
from admin_api.resources.service import ResourceService


def build_resource_router(descriptor: ResourceDescriptor) -> APIRouter:
    router = APIRouter(prefix=f"/api/{descriptor.route}", tags=[descriptor.label])
    label = descriptor.label.lower()

    def get_service(
        store: CollectionStore = Depends(get_store),
        audit: AuditLogger = Depends(get_audit),
    ) -> ResourceService:
        return ResourceService(descriptor, store, audit)

    if LIST in descriptor.operations:
        @router.get("", response_model=ListResponse, summary=f"List {descriptor.route}")
        async def list_all(
            page: int = Query(1, ge=1),
            limit: int = Query(25, ge=1, le=1000),
            order: Literal["asc", "desc"] | None = Query(None),
            sort: str | None = Query(None, min_length=1),
            search: str | None = Query(None),
            service: ResourceService = Depends(get_service),
        ):
            items, total = await service.list(page, limit, order=order, sort=sort, search=search)
            return ListResponse(data=items, total=total)

    if GET in descriptor.operations:
        @router.get("/{resource_id}", summary=f"Get a {label}")
        async def get(resource_id: str, service: ResourceService = Depends(get_service)):
            return await service.get(resource_id)

    if CREATE in descriptor.operations:
        @router.post("", status_code=201, summary=f"Create a {label}")
        async def create(
            body: dict[str, Any] = Body(...),
            actor: Actor = Depends(get_actor),
            service: ResourceService = Depends(get_service),
        ):
            return await service.create(body, actor)

    if UPDATE in descriptor.operations:
        @router.put("/{resource_id}", summary=f"Update a {label}")
        async def update(
            resource_id: str,
            body: dict[str, Any] = Body(...),
            actor: Actor = Depends(get_actor),
            service: ResourceService = Depends(get_service),
        ):
            return await service.update(resource_id, body, actor)

    if DELETE in descriptor.operations:
        @router.delete("/{resource_id}", summary=f"Delete a {label}")
        async def delete(
            resource_id: str,
            actor: Actor = Depends(get_actor),
            service: ResourceService = Depends(get_service),
        ):
            return await service.delete(resource_id, actor)

    return router


def resource_routers() -> list[APIRouter]:
    return [build_resource_router(descriptor) for descriptor in RESOURCES]
