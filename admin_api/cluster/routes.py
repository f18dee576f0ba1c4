"""Pod, deployment, command and health endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from kubernetes.client.exceptions import ApiException
from starlette.responses import StreamingResponse

from admin_api.audit.logger import AuditAction, AuditLogger
from admin_api.auth.dependencies import Actor, get_actor
from admin_api.cluster.client import OrchestrationClient
from admin_api.cluster.commands import CommandNotAllowed, command_reference, execute_command
from admin_api.cluster.health import system_status
from admin_api.config.settings import Settings, get_settings
from admin_api.db.client import CollectionStore
from admin_api.dependencies import get_audit, get_cluster, get_store
from admin_api.resources.identity import parse_composite_id
from admin_api.resources.schemas import CommandRequest, ListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Cluster"])


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def _namespaces(value: str | None, settings: Settings) -> list[str]:
    if value:
        return [ns.strip() for ns in value.split(",") if ns.strip()]
    return settings.namespaces_list


def _split_id(value: str) -> tuple[str, str]:
    try:
        return parse_composite_id(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _page(items: list[dict], page: int, limit: int) -> ListResponse:
    start = (page - 1) * limit
    return ListResponse(data=items[start:start + limit], total=len(items))


def _not_found_or_raise(exc: ApiException, label: str) -> HTTPException:
    if exc.status == 404:
        return HTTPException(status_code=404, detail=f"{label} not found")
    raise exc


# --- Pods ---

@router.get("/pods", response_model=ListResponse, summary="List pods across namespaces")
async def list_pods(
    request: Request,
    namespaces: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    cluster: OrchestrationClient = Depends(get_cluster),
):
    pods = await cluster.list_pods(_namespaces(namespaces, _settings(request)))
    return _page(pods, page, limit)


@router.get("/pods/{pod_id}", summary="Get a pod by <namespace>::<name>")
async def get_pod(pod_id: str, cluster: OrchestrationClient = Depends(get_cluster)):
    namespace, name = _split_id(pod_id)
    try:
        return await cluster.get_pod(namespace, name)
    except ApiException as exc:
        raise _not_found_or_raise(exc, "Pod")


@router.get("/pods/{namespace}/{pod_name}/logs", summary="Fetch or stream pod logs")
async def pod_logs(
    namespace: str,
    pod_name: str,
    tailLines: int = Query(100, ge=1, le=10000),
    timestamps: bool = Query(True),
    container: str | None = Query(None),
    follow: bool = Query(False),
    cluster: OrchestrationClient = Depends(get_cluster),
):
    try:
        if follow:
            stream = await cluster.stream_pod_logs(
                namespace, pod_name, tail_lines=tailLines, timestamps=timestamps, container=container
            )
            return StreamingResponse(
                stream,
                media_type="text/plain",
                headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
            )
        logs = await cluster.get_pod_logs(
            namespace, pod_name, tail_lines=tailLines, timestamps=timestamps, container=container
        )
    except ApiException as exc:
        raise _not_found_or_raise(exc, "Pod")
    return {"logs": logs, "namespace": namespace, "podName": pod_name, "container": container}


# --- Deployments ---

@router.get("/deployments", response_model=ListResponse, summary="List deployments across namespaces")
async def list_deployments(
    request: Request,
    namespaces: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    cluster: OrchestrationClient = Depends(get_cluster),
):
    deployments = await cluster.list_deployments(_namespaces(namespaces, _settings(request)))
    return _page(deployments, page, limit)


@router.get("/deployments/{deployment_id}", summary="Get a deployment by <namespace>::<name>")
async def get_deployment(deployment_id: str, cluster: OrchestrationClient = Depends(get_cluster)):
    namespace, name = _split_id(deployment_id)
    try:
        return await cluster.get_deployment(namespace, name)
    except ApiException as exc:
        raise _not_found_or_raise(exc, "Deployment")


@router.post("/deployments/{deployment_id}/restart", summary="Trigger a rolling restart")
async def restart_deployment(
    deployment_id: str,
    actor: Actor = Depends(get_actor),
    cluster: OrchestrationClient = Depends(get_cluster),
    audit: AuditLogger = Depends(get_audit),
):
    namespace, name = _split_id(deployment_id)
    try:
        deployment, restarted_at = await cluster.restart_deployment(namespace, name)
    except ApiException as exc:
        raise _not_found_or_raise(exc, "Deployment")
    await audit.after_commit(
        AuditAction.RESTART, "deployment", deployment_id, actor,
        {"namespace": namespace, "name": name, "restartedAt": restarted_at},
    )
    return {"message": f"Deployment {name} restart triggered", "deployment": deployment}


# --- Commands ---

@router.post("/kubectl/execute", summary="Run a read-only kubectl-style command")
async def kubectl_execute(
    body: CommandRequest,
    request: Request,
    actor: Actor = Depends(get_actor),
    cluster: OrchestrationClient = Depends(get_cluster),
    audit: AuditLogger = Depends(get_audit),
):
    settings = _settings(request)
    requested_namespace = body.namespace or settings.KUBECTL_DEFAULT_NAMESPACE
    try:
        result, namespace = await execute_command(
            cluster, body.command.strip(), requested_namespace, settings.allowed_commands_list
        )
    except CommandNotAllowed as exc:
        logger.warning("Rejected command '%s' from %s", body.command, actor.email)
        raise HTTPException(status_code=400, detail=str(exc))

    await audit.after_commit(
        AuditAction.EXECUTE, "kubectl", body.command.strip(), actor,
        {"command": body.command.strip(), "namespace": namespace, "exitCode": result.exitCode},
    )
    return {
        "command": body.command.strip(),
        "namespace": namespace,
        **result.as_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/kubectl/commands", summary="List the commands the console accepts")
async def kubectl_commands(request: Request):
    return {"allowedCommands": command_reference(_settings(request).allowed_commands_list)}


# --- Health ---

@router.get("/system-status", summary="Health rollup for LibreChat, MongoDB and Snow MCP")
async def get_system_status(request: Request, store: CollectionStore = Depends(get_store)):
    cluster: OrchestrationClient | None = getattr(request.app.state, "cluster", None)
    pods = await cluster.list_pods(_settings(request).namespaces_list) if cluster else []
    return await system_status(pods, store.ping)
