"""Roll pod states up into a per-service health view."""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

HEALTHY = "healthy"
DEGRADED = "degraded"
DOWN = "down"

APP_NAMESPACE = "librechat"
AUX_NAMESPACE = "snow-mcp"


class Bucket(str, Enum):
    LIBRECHAT = "librechat"
    MONGODB = "mongodb"
    SNOW_MCP = "snow-mcp"


LABELS = {
    Bucket.LIBRECHAT: "LibreChat",
    Bucket.MONGODB: "MongoDB",
    Bucket.SNOW_MCP: "Snow MCP",
}


@dataclass
class ServiceHealth:
    name: str
    label: str
    status: str
    message: str
    podCount: int
    runningCount: int

    def as_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


def _app_label(pod: dict) -> str:
    return str((pod.get("labels") or {}).get("app", "")).lower()


def _matches(pod: dict, needle: str) -> bool:
    return needle in pod.get("name", "").lower() or needle in _app_label(pod)


def classify(pod: dict) -> Bucket | None:
    namespace = pod.get("namespace")
    if namespace == AUX_NAMESPACE:
        return Bucket.SNOW_MCP
    if namespace == APP_NAMESPACE:
        if _matches(pod, "mongo"):
            return Bucket.MONGODB
        if _matches(pod, "librechat"):
            return Bucket.LIBRECHAT
    return None


def partition(pods: Iterable[dict]) -> dict[Bucket, list[dict]]:
    buckets: dict[Bucket, list[dict]] = {bucket: [] for bucket in Bucket}
    for pod in pods:
        bucket = classify(pod)
        if bucket is not None:
            buckets[bucket].append(pod)
    return buckets


def reduce_bucket(pods: list[dict]) -> tuple[str, str]:
    if not pods:
        return DOWN, "No pods found"
    running = sum(1 for pod in pods if pod.get("status") == "Running")
    if running == 0:
        return DOWN, "No running pods"
    if running < len(pods):
        return DEGRADED, f"Some pods not running ({running}/{len(pods)})"
    return HEALTHY, "All pods running"


def overall_status(services: list[ServiceHealth]) -> str:
    statuses = {service.status for service in services}
    if statuses == {HEALTHY}:
        return HEALTHY
    if statuses == {DOWN}:
        return DOWN
    return DEGRADED


async def system_status(pods: list[dict], ping: Callable[[], Awaitable[None]]) -> dict[str, Any]:
    """Build the dashboard view. A store ping result overrides the pod-derived store status."""
    services = []
    for bucket, members in partition(pods).items():
        status, message = reduce_bucket(members)
        running = sum(1 for pod in members if pod.get("status") == "Running")
        services.append(ServiceHealth(bucket.value, LABELS[bucket], status, message, len(members), running))

    store = next(s for s in services if s.name == Bucket.MONGODB.value)
    try:
        await ping()
    except Exception as exc:
        store.status, store.message = DOWN, f"Database ping failed: {exc}"
    else:
        store.status, store.message = HEALTHY, "Database connection successful"

    return {
        "services": [service.as_dict() for service in services],
        "overall": overall_status(services),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
