"""Tests for pod and deployment endpoints."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from kubernetes import client as k8s

from admin_api.cluster.client import RESTARTED_AT_ANNOTATION, calculate_age, deployment_status, format_pod
from admin_api.db.models import AUDIT_LOGS
from admin_api.main import create_app
from admin_api.resources.identity import parse_composite_id
from tests.factories import make_pod

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(days=3, hours=5), "3d"),
        (timedelta(hours=1, minutes=30), "1h"),
        (timedelta(minutes=12, seconds=59), "12m"),
        (timedelta(seconds=40), "40s"),
        (timedelta(seconds=-5), "0s"),
    ],
)
def test_calculate_age(delta, expected):
    assert calculate_age(NOW - delta, now=NOW) == expected


def test_calculate_age_accepts_naive_timestamps():
    assert calculate_age(datetime(2026, 10, 17, 12, 0), now=NOW) == "2d"
    assert calculate_age(None, now=NOW) == "unknown"


def test_format_pod_running_and_not_ready():
    pod = format_pod(make_pod("api-1", restarts=3), now=NOW)
    assert pod["id"] == "librechat::api-1"
    assert pod["status"] == "Running"
    assert pod["ready"] == "1/1"
    assert pod["restarts"] == 3
    assert pod["containers"][0]["state"] == "running"

    not_ready = format_pod(make_pod("api-2", ready=False), now=NOW)
    assert not_ready["status"] == "Not Ready"
    assert not_ready["ready"] == "0/1"


def test_format_pod_pending_reports_failed_condition():
    conditions = [
        k8s.V1PodCondition(type="Initialized", status="True"),
        k8s.V1PodCondition(type="PodScheduled", status="False", reason="Unschedulable", message="0/3 nodes available"),
    ]
    pod = format_pod(make_pod("api-3", phase="Pending", ready=False, conditions=conditions), now=NOW)
    assert pod["status"] == "Pending"
    assert pod["statusReason"] == "Unschedulable"


@pytest.mark.parametrize(
    "desired, available, expected",
    [(2, 2, "Ready"), (0, 0, "Ready"), (3, 1, "Partial"), (1, 0, "Not Ready")],
)
def test_deployment_status(desired, available, expected):
    assert deployment_status(desired, available) == expected


@pytest.mark.parametrize("value", ["my-pod", "librechat::", "::my-pod", "a::b::c", ""])
def test_parse_composite_id_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_composite_id(value)


def test_parse_composite_id():
    assert parse_composite_id("librechat::my-pod-7f8") == ("librechat", "my-pod-7f8")


def test_list_pods_across_namespaces(client):
    resp = client.get("/api/pods")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 4
    assert {p["namespace"] for p in body["data"]} == {"librechat", "snow-mcp"}


def test_list_pods_filtered_and_paged(client):
    resp = client.get("/api/pods?namespaces=librechat&page=2&limit=2")
    body = resp.json()
    assert body["total"] == 3
    assert [p["name"] for p in body["data"]] == ["mongodb-0"]


def test_list_pods_skips_failing_namespace(client, core_v1):
    core_v1.failing.add("snow-mcp")
    body = client.get("/api/pods").json()
    assert body["total"] == 3
    assert all(p["namespace"] == "librechat" for p in body["data"])


def test_get_pod_by_composite_id(client):
    resp = client.get("/api/pods/librechat::librechat-api-7f8c9")
    assert resp.status_code == 200
    assert resp.json()["name"] == "librechat-api-7f8c9"
    assert resp.json()["id"] == "librechat::librechat-api-7f8c9"


def test_get_pod_malformed_id_is_400(client, core_v1):
    resp = client.get("/api/pods/librechat-api-7f8c9")
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert core_v1.calls == []


def test_get_missing_pod_is_404(client):
    resp = client.get("/api/pods/librechat::nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Pod not found"}


def test_pod_logs(client, core_v1):
    resp = client.get("/api/pods/librechat/mongodb-0/logs?tailLines=50&container=app")
    assert resp.status_code == 200
    body = resp.json()
    assert body["namespace"] == "librechat"
    assert body["podName"] == "mongodb-0"
    assert body["container"] == "app"
    assert "ready" in body["logs"]
    assert core_v1.log_requests[-1]["tail_lines"] == 50
    assert core_v1.log_requests[-1]["timestamps"] is True


def test_pod_logs_follow_streams_text(client, core_v1):
    with client.stream("GET", "/api/pods/librechat/mongodb-0/logs?follow=true") as resp:
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        text = "".join(resp.iter_text())

    assert text == "line one\nline two\n"
    assert core_v1.log_requests[-1]["follow"] is True
    assert core_v1.streams[-1].closed


def test_pod_logs_missing_pod_is_404(client):
    assert client.get("/api/pods/librechat/ghost/logs").status_code == 404


def test_list_deployments(client):
    resp = client.get("/api/deployments")
    assert resp.status_code == 200
    statuses = {d["name"]: d["status"] for d in resp.json()["data"]}
    assert statuses == {"librechat-api": "Ready", "rag-api": "Partial", "snow-mcp": "Not Ready"}


def test_get_deployment(client):
    resp = client.get("/api/deployments/librechat::rag-api")
    assert resp.status_code == 200
    body = resp.json()
    assert body["replicas"] == "1/2"
    assert body["images"] == ["ghcr.io/example/app:1.0"]
    assert client.get("/api/deployments/rag-api").status_code == 400


def test_restart_deployment(client, apps_v1, db, admin_headers):
    resp = client.post("/api/deployments/librechat::librechat-api/restart", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["deployment"]["name"] == "librechat-api"

    namespace, name, body = apps_v1.patches[0]
    assert (namespace, name) == ("librechat", "librechat-api")
    annotations = body["spec"]["template"]["metadata"]["annotations"]
    restarted_at = annotations[RESTARTED_AT_ANNOTATION]

    entry = db[AUDIT_LOGS].find_one()
    assert entry["action"] == "restart"
    assert entry["resource"] == "deployment"
    assert entry["resourceId"] == "librechat::librechat-api"
    assert entry["userEmail"] == "admin@example.com"
    assert entry["data"] == {"namespace": "librechat", "name": "librechat-api", "restartedAt": restarted_at}


def test_restart_missing_deployment_is_not_audited(client, db):
    resp = client.post("/api/deployments/librechat::ghost/restart")
    assert resp.status_code == 404
    assert db[AUDIT_LOGS].count_documents({}) == 0


def test_cluster_unavailable_is_503(settings, store):
    client = TestClient(create_app(settings, store=store, cluster=None))
    resp = client.get("/api/pods")
    assert resp.status_code == 503
    assert resp.json() == {"error": "Kubernetes client unavailable"}
