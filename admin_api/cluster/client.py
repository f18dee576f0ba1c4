"""Thin async wrapper around the Kubernetes Python client.

Blocking client calls run in worker threads. Results are flattened into plain
dicts shaped for the admin UI.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from datetime import datetime, timezone
from typing import Any

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from admin_api.resources.identity import composite_id

logger = logging.getLogger(__name__)

RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def calculate_age(created: datetime | None, now: datetime | None = None) -> str:
    """Largest whole unit only: ``3d``, ``5h``, ``12m`` or ``40s``."""
    if created is None:
        return "unknown"
    now = now or datetime.now(timezone.utc)
    seconds = max(int((_utc(now) - _utc(created)).total_seconds()), 0)
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}d"
    if hours > 0:
        return f"{hours}h"
    if minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def _isoformat(value: datetime | None) -> str | None:
    return _utc(value).isoformat() if value else None


def _container_state(state) -> str | None:
    if state is None:
        return None
    for name in ("running", "waiting", "terminated"):
        if getattr(state, name, None) is not None:
            return name
    return None


def format_pod(pod, now: datetime | None = None) -> dict[str, Any]:
    statuses = pod.status.container_statuses or []
    conditions = pod.status.conditions or []
    phase = pod.status.phase

    status_reason = ""
    if phase == "Running":
        status = "Running" if all(c.ready for c in statuses) else "Not Ready"
    else:
        status = phase or "Unknown"
        failed = next((c for c in conditions if c.status == "False"), None)
        if failed is not None:
            status_reason = failed.reason or failed.message or ""

    ready = sum(1 for c in statuses if c.ready)
    created = pod.metadata.creation_timestamp
    return {
        "id": composite_id(pod.metadata.namespace, pod.metadata.name),
        "name": pod.metadata.name,
        "namespace": pod.metadata.namespace,
        "status": status,
        "statusReason": status_reason,
        "phase": phase,
        "ready": f"{ready}/{len(statuses)}",
        "restarts": sum(c.restart_count or 0 for c in statuses),
        "age": calculate_age(created, now),
        "createdAt": _isoformat(created),
        "ip": pod.status.pod_ip or "N/A",
        "node": (pod.spec.node_name if pod.spec else None) or "N/A",
        "containers": [
            {
                "name": c.name,
                "ready": bool(c.ready),
                "restartCount": c.restart_count or 0,
                "image": c.image,
                "state": _container_state(c.state),
            }
            for c in statuses
        ],
        "labels": pod.metadata.labels or {},
    }


def deployment_status(desired: int, available: int) -> str:
    if available == desired:
        return "Ready"
    if available > 0:
        return "Partial"
    return "Not Ready"


def format_deployment(deployment, now: datetime | None = None) -> dict[str, Any]:
    spec = deployment.spec
    status = deployment.status
    desired = spec.replicas or 0
    available = status.available_replicas or 0
    containers = spec.template.spec.containers if spec.template and spec.template.spec else []
    created = deployment.metadata.creation_timestamp
    return {
        "id": composite_id(deployment.metadata.namespace, deployment.metadata.name),
        "name": deployment.metadata.name,
        "namespace": deployment.metadata.namespace,
        "status": deployment_status(desired, available),
        "replicas": f"{status.ready_replicas or 0}/{desired}",
        "desiredReplicas": desired,
        "readyReplicas": status.ready_replicas or 0,
        "availableReplicas": available,
        "unavailableReplicas": status.unavailable_replicas or 0,
        "updatedReplicas": status.updated_replicas or 0,
        "age": calculate_age(created, now),
        "createdAt": _isoformat(created),
        "images": [c.image for c in containers],
        "containers": [{"name": c.name, "image": c.image} for c in containers],
        "labels": deployment.metadata.labels or {},
        "selector": (spec.selector.match_labels if spec.selector else None) or {},
    }


def format_service(service, now: datetime | None = None) -> dict[str, Any]:
    ports = service.spec.ports or []
    return {
        "id": composite_id(service.metadata.namespace, service.metadata.name),
        "name": service.metadata.name,
        "namespace": service.metadata.namespace,
        "type": service.spec.type,
        "clusterIP": service.spec.cluster_ip,
        "ports": [f"{p.port}/{p.protocol or 'TCP'}" for p in ports],
        "age": calculate_age(service.metadata.creation_timestamp, now),
    }


class OrchestrationClient:
    def __init__(self, core_v1, apps_v1, custom_objects=None):
        self._core_v1 = core_v1
        self._apps_v1 = apps_v1
        self._custom_objects = custom_objects

    @classmethod
    def from_kubeconfig(cls) -> "OrchestrationClient":
        """Load in-cluster credentials, falling back to the local kubeconfig."""
        try:
            config.load_incluster_config()
            logger.info("Loaded Kubernetes config from cluster")
        except ConfigException:
            config.load_kube_config()
            logger.info("Loaded Kubernetes config from default kubeconfig")
        api_client = client.ApiClient()
        return cls(client.CoreV1Api(api_client), client.AppsV1Api(api_client), client.CustomObjectsApi(api_client))

    @property
    def metrics_available(self) -> bool:
        return self._custom_objects is not None

    async def _collect(self, kind: str, namespaces: Iterable[str], list_fn, formatter) -> list[dict]:
        results: list[dict] = []
        for namespace in namespaces:
            try:
                response = await asyncio.to_thread(list_fn, namespace)
            except Exception as exc:
                # One unreachable namespace must not hide the others
                logger.error("Error listing %s in namespace %s: %s", kind, namespace, exc)
                continue
            results.extend(formatter(item) for item in response.items)
        return results

    async def list_pods(self, namespaces: Iterable[str]) -> list[dict]:
        return await self._collect("pods", namespaces, self._core_v1.list_namespaced_pod, format_pod)

    async def get_pod(self, namespace: str, name: str) -> dict:
        try:
            pod = await asyncio.to_thread(self._core_v1.read_namespaced_pod, name, namespace)
        except Exception as exc:
            logger.error("Error getting pod %s/%s: %s", namespace, name, exc)
            raise
        return format_pod(pod)

    async def get_pod_logs(
        self,
        namespace: str,
        name: str,
        tail_lines: int | None = 100,
        timestamps: bool = True,
        container: str | None = None,
    ) -> str:
        try:
            return await asyncio.to_thread(
                self._core_v1.read_namespaced_pod_log,
                name=name,
                namespace=namespace,
                container=container,
                tail_lines=tail_lines,
                timestamps=timestamps,
            )
        except Exception as exc:
            logger.error("Error getting logs for %s/%s: %s", namespace, name, exc)
            raise

    async def stream_pod_logs(
        self,
        namespace: str,
        name: str,
        tail_lines: int | None = 100,
        timestamps: bool = True,
        container: str | None = None,
    ) -> AsyncIterator[bytes]:
        """Open a follow stream and return an async iterator over its raw bytes."""

        def _open():
            return self._core_v1.read_namespaced_pod_log(
                name=name,
                namespace=namespace,
                container=container,
                follow=True,
                tail_lines=tail_lines,
                timestamps=timestamps,
                _preload_content=False,
            )

        resp = await asyncio.to_thread(_open)

        async def _gen():
            try:
                while True:
                    chunk = await asyncio.to_thread(resp.read, 1024)
                    if not chunk:
                        break
                    yield chunk if isinstance(chunk, bytes) else str(chunk).encode()
            finally:
                # Runs on normal end and on client disconnect
                await asyncio.to_thread(resp.close)

        return _gen()

    async def list_deployments(self, namespaces: Iterable[str]) -> list[dict]:
        return await self._collect(
            "deployments", namespaces, self._apps_v1.list_namespaced_deployment, format_deployment
        )

    async def get_deployment(self, namespace: str, name: str) -> dict:
        try:
            deployment = await asyncio.to_thread(self._apps_v1.read_namespaced_deployment, name, namespace)
        except Exception as exc:
            logger.error("Error getting deployment %s/%s: %s", namespace, name, exc)
            raise
        return format_deployment(deployment)

    async def restart_deployment(self, namespace: str, name: str) -> tuple[dict, str]:
        """Trigger a rollout by stamping the pod template. Returns (deployment, restartedAt)."""
        restarted_at = datetime.now(timezone.utc).isoformat()
        # Dict bodies go out as strategic-merge patches
        body = {"spec": {"template": {"metadata": {"annotations": {RESTARTED_AT_ANNOTATION: restarted_at}}}}}
        try:
            deployment = await asyncio.to_thread(self._apps_v1.patch_namespaced_deployment, name, namespace, body)
        except Exception as exc:
            logger.error("Error restarting deployment %s/%s: %s", namespace, name, exc)
            raise
        logger.info("Restarted deployment %s/%s", namespace, name)
        return format_deployment(deployment), restarted_at

    async def list_services(self, namespace: str) -> list[dict]:
        response = await asyncio.to_thread(self._core_v1.list_namespaced_service, namespace)
        return [format_service(item) for item in response.items]

    async def pod_metrics(self, namespace: str) -> list[dict]:
        """Per-pod CPU/memory usage from the metrics API, one value per container."""
        if self._custom_objects is None:
            raise RuntimeError("Metrics API is not available")
        data = await asyncio.to_thread(
            self._custom_objects.list_namespaced_custom_object,
            "metrics.k8s.io", "v1beta1", namespace, "pods",
        )
        metrics = []
        for item in data.get("items", []):
            containers = item.get("containers", [])
            metrics.append({
                "name": item.get("metadata", {}).get("name"),
                "cpu": ",".join(c.get("usage", {}).get("cpu", "0") for c in containers),
                "memory": ",".join(c.get("usage", {}).get("memory", "0") for c in containers),
            })
        return metrics
