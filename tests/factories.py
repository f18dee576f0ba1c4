"""Builders for Kubernetes API model objects used by the fakes."""

from datetime import datetime, timedelta, timezone

from kubernetes import client as k8s

CREATED = datetime.now(timezone.utc) - timedelta(days=2, hours=3)


def make_pod(name, namespace="librechat", phase="Running", ready=True, labels=None, conditions=None, restarts=0):
    statuses = [
        k8s.V1ContainerStatus(
            name="app",
            image="ghcr.io/example/app:1.0",
            image_id="sha256:abc",
            ready=ready,
            restart_count=restarts,
            state=k8s.V1ContainerState(running=k8s.V1ContainerStateRunning()) if ready
            else k8s.V1ContainerState(waiting=k8s.V1ContainerStateWaiting(reason="ContainerCreating")),
        )
    ]
    return k8s.V1Pod(
        metadata=k8s.V1ObjectMeta(name=name, namespace=namespace, labels=labels or {}, creation_timestamp=CREATED),
        spec=k8s.V1PodSpec(containers=[k8s.V1Container(name="app", image="ghcr.io/example/app:1.0")], node_name="node-1"),
        status=k8s.V1PodStatus(
            phase=phase,
            pod_ip="10.0.0.12",
            container_statuses=statuses,
            conditions=conditions,
        ),
    )


def make_deployment(name, namespace="librechat", replicas=2, available=2, image="ghcr.io/example/app:1.0"):
    return k8s.V1Deployment(
        metadata=k8s.V1ObjectMeta(name=name, namespace=namespace, labels={"app": name}, creation_timestamp=CREATED),
        spec=k8s.V1DeploymentSpec(
            replicas=replicas,
            selector=k8s.V1LabelSelector(match_labels={"app": name}),
            template=k8s.V1PodTemplateSpec(
                metadata=k8s.V1ObjectMeta(labels={"app": name}),
                spec=k8s.V1PodSpec(containers=[k8s.V1Container(name="app", image=image)]),
            ),
        ),
        status=k8s.V1DeploymentStatus(
            replicas=replicas,
            ready_replicas=available,
            available_replicas=available,
            updated_replicas=replicas,
        ),
    )


def make_service(name, namespace="librechat"):
    return k8s.V1Service(
        metadata=k8s.V1ObjectMeta(name=name, namespace=namespace, creation_timestamp=CREATED),
        spec=k8s.V1ServiceSpec(type="ClusterIP", cluster_ip="10.96.0.10", ports=[k8s.V1ServicePort(port=80, protocol="TCP")]),
    )
