"""Tests for liveness and the service health rollup."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from admin_api.cluster.health import (
    DEGRADED,
    DOWN,
    HEALTHY,
    Bucket,
    ServiceHealth,
    classify,
    overall_status,
    partition,
    reduce_bucket,
    system_status,
)
from admin_api.main import create_app
from tests.factories import make_pod


def pod(name, status="Running", namespace="librechat", app=None):
    return {"name": name, "namespace": namespace, "status": status, "labels": {"app": app} if app else {}}


async def ping_ok():
    return None


async def ping_fail():
    raise ConnectionError("connection refused")


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "mongodb": "connected"}


def test_response_headers(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert client.get("/health").headers["X-Request-ID"]


@pytest.mark.parametrize(
    "statuses, expected",
    [
        ([], (DOWN, "No pods found")),
        (["Pending", "Failed"], (DOWN, "No running pods")),
        (["Running", "Running", "Pending"], (DEGRADED, "Some pods not running (2/3)")),
        (["Running", "Running"], (HEALTHY, "All pods running")),
    ],
)
def test_reduce_bucket(statuses, expected):
    assert reduce_bucket([pod(f"librechat-{i}", s) for i, s in enumerate(statuses)]) == expected


def test_classify():
    assert classify(pod("librechat-api-1")) == Bucket.LIBRECHAT
    assert classify(pod("db-0", app="mongodb")) == Bucket.MONGODB
    assert classify(pod("mongodb-0")) == Bucket.MONGODB
    assert classify(pod("anything", namespace="snow-mcp")) == Bucket.SNOW_MCP
    assert classify(pod("rag-api-1")) is None
    assert classify(pod("librechat-api-1", namespace="default")) is None


def test_partition_keeps_every_bucket():
    buckets = partition([pod("librechat-api-1"), pod("meili-0")])
    assert set(buckets) == set(Bucket)
    assert len(buckets[Bucket.LIBRECHAT]) == 1
    assert buckets[Bucket.SNOW_MCP] == []


def test_overall_status():
    def svc(status):
        return ServiceHealth("x", "X", status, "", 0, 0)

    assert overall_status([svc(HEALTHY), svc(HEALTHY)]) == HEALTHY
    assert overall_status([svc(DOWN), svc(DOWN)]) == DOWN
    assert overall_status([svc(HEALTHY), svc(DOWN)]) == DEGRADED


def test_ping_overrides_store_bucket():
    result = asyncio.run(system_status([], ping_ok))
    services = {s["name"]: s for s in result["services"]}
    assert services["mongodb"]["status"] == HEALTHY
    assert services["mongodb"]["message"] == "Database connection successful"
    assert services["librechat"]["status"] == DOWN
    assert result["overall"] == DEGRADED

    result = asyncio.run(system_status([pod("mongodb-0")], ping_fail))
    services = {s["name"]: s for s in result["services"]}
    assert services["mongodb"]["status"] == DOWN
    assert services["mongodb"]["message"] == "Database ping failed: connection refused"


def test_system_status_endpoint(client, store, core_v1, monkeypatch):
    monkeypatch.setattr(store, "ping", ping_ok)
    core_v1.pods["librechat"].append(make_pod("librechat-api-pending", phase="Pending", ready=False))

    resp = client.get("/api/system-status")
    assert resp.status_code == 200
    body = resp.json()
    services = {s["name"]: s for s in body["services"]}
    assert services["librechat"]["status"] == DEGRADED
    assert services["librechat"]["message"] == "Some pods not running (2/3)"
    assert services["librechat"]["podCount"] == 3
    assert services["librechat"]["runningCount"] == 2
    assert services["mongodb"]["status"] == HEALTHY
    assert services["snow-mcp"]["status"] == HEALTHY
    assert body["overall"] == DEGRADED


def test_system_status_without_cluster(settings, store, monkeypatch):
    monkeypatch.setattr(store, "ping", ping_ok)
    body = TestClient(create_app(settings, store=store, cluster=None)).get("/api/system-status").json()
    services = {s["name"]: s for s in body["services"]}
    assert services["librechat"]["message"] == "No pods found"
    assert services["snow-mcp"]["status"] == DOWN
    assert services["mongodb"]["status"] == HEALTHY
