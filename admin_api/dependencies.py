"""FastAPI dependencies for the shared store and cluster handles."""

from fastapi import HTTPException, Request

from admin_api.audit.logger import AuditLogger
from admin_api.cluster.client import OrchestrationClient
from admin_api.db.client import CollectionStore


def get_store(request: Request) -> CollectionStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return store


def get_audit(request: Request) -> AuditLogger:
    return AuditLogger(get_store(request))


def get_cluster(request: Request) -> OrchestrationClient:
    cluster = getattr(request.app.state, "cluster", None)
    if cluster is None:
        raise HTTPException(status_code=503, detail="Kubernetes client unavailable")
    return cluster
