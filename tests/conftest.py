"""Shared test fixtures: in-memory MongoDB and fake Kubernetes APIs."""

from types import SimpleNamespace

import mongomock
import pytest
from fastapi.testclient import TestClient
from kubernetes.client.exceptions import ApiException

from admin_api.cluster.client import OrchestrationClient
from admin_api.config.settings import Settings
from admin_api.db.client import CollectionStore
from admin_api.main import create_app
from tests.factories import make_deployment, make_pod, make_service


class FakeLogStream:
    def __init__(self, chunks):
        self._chunks = list(chunks)
        self.closed = False

    def read(self, amt=None):
        return self._chunks.pop(0) if self._chunks else b""

    def close(self):
        self.closed = True


class FakeCoreV1:
    def __init__(self, pods=None, services=None, failing=()):
        self.pods = pods or {}
        self.services = services or {}
        self.failing = set(failing)
        self.calls = []
        self.log_requests = []
        self.streams = []

    def list_namespaced_pod(self, namespace):
        self.calls.append(("list_namespaced_pod", namespace))
        if namespace in self.failing:
            raise ApiException(status=403, reason="Forbidden")
        return SimpleNamespace(items=self.pods.get(namespace, []))

    def read_namespaced_pod(self, name, namespace):
        self.calls.append(("read_namespaced_pod", namespace, name))
        for pod in self.pods.get(namespace, []):
            if pod.metadata.name == name:
                return pod
        raise ApiException(status=404, reason="Not Found")

    def read_namespaced_pod_log(self, name, namespace, container=None, tail_lines=None, timestamps=None,
                                follow=False, _preload_content=True):
        self.calls.append(("read_namespaced_pod_log", namespace, name))
        self.log_requests.append({
            "name": name, "namespace": namespace, "container": container,
            "tail_lines": tail_lines, "timestamps": timestamps, "follow": follow,
        })
        if not any(p.metadata.name == name for p in self.pods.get(namespace, [])):
            raise ApiException(status=404, reason="Not Found")
        if follow and not _preload_content:
            stream = FakeLogStream([b"line one\n", b"line two\n"])
            self.streams.append(stream)
            return stream
        return "2026-10-19T10:00:00Z started\n2026-10-19T10:00:01Z ready\n"

    def list_namespaced_service(self, namespace):
        self.calls.append(("list_namespaced_service", namespace))
        return SimpleNamespace(items=self.services.get(namespace, []))


class FakeAppsV1:
    def __init__(self, deployments=None, failing=()):
        self.deployments = deployments or {}
        self.failing = set(failing)
        self.calls = []
        self.patches = []

    def list_namespaced_deployment(self, namespace):
        self.calls.append(("list_namespaced_deployment", namespace))
        if namespace in self.failing:
            raise ApiException(status=500, reason="Internal Server Error")
        return SimpleNamespace(items=self.deployments.get(namespace, []))

    def read_namespaced_deployment(self, name, namespace):
        self.calls.append(("read_namespaced_deployment", namespace, name))
        for deployment in self.deployments.get(namespace, []):
            if deployment.metadata.name == name:
                return deployment
        raise ApiException(status=404, reason="Not Found")

    def patch_namespaced_deployment(self, name, namespace, body):
        self.calls.append(("patch_namespaced_deployment", namespace, name))
        deployment = self.read_namespaced_deployment(name, namespace)
        self.patches.append((namespace, name, body))
        return deployment


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        KUBE_NAMESPACES="librechat,snow-mcp,default",
        KUBECTL_ALLOWED_COMMANDS="get,describe,logs,top,explain",
        KUBECTL_DEFAULT_NAMESPACE="librechat",
    )


@pytest.fixture
def db():
    return mongomock.MongoClient()["LibreChat"]


@pytest.fixture
def store(db):
    return CollectionStore(db)


@pytest.fixture
def core_v1():
    return FakeCoreV1(
        pods={
            "librechat": [
                make_pod("librechat-api-7f8c9", labels={"app": "librechat"}),
                make_pod("librechat-api-5d2a1", labels={"app": "librechat"}),
                make_pod("mongodb-0", labels={"app": "mongodb"}),
            ],
            "snow-mcp": [make_pod("snow-mcp-6b7d4", namespace="snow-mcp", labels={"app": "snow-mcp"})],
        },
        services={"librechat": [make_service("librechat-api"), make_service("mongodb")]},
    )


@pytest.fixture
def apps_v1():
    return FakeAppsV1(
        deployments={
            "librechat": [make_deployment("librechat-api"), make_deployment("rag-api", replicas=2, available=1)],
            "snow-mcp": [make_deployment("snow-mcp", namespace="snow-mcp", replicas=1, available=0)],
        }
    )


@pytest.fixture
def cluster(core_v1, apps_v1):
    return OrchestrationClient(core_v1, apps_v1)


@pytest.fixture
def app(settings, store, cluster):
    return create_app(settings, store=store, cluster=cluster)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"X-Forwarded-Email": "admin@example.com", "X-Forwarded-User": "Ada Admin"}
