"""Unit tests for kubernetes model conversion helpers."""

from unittest.mock import Mock
from kubernetes_asyncio.client import (
    V1Container,
    V1ContainerState,
    V1ContainerStateWaiting,
    V1ContainerStatus,
    V1LabelSelector,
    V1ObjectMeta,
    V1Pod,
    V1PodCondition,
    V1PodSpec,
    V1PodStatus,
    V1PodTemplateSpec,
    V1StatefulSet,
    V1StatefulSetSpec,
    V1StatefulSetStatus,
)
from keycloak_operator.resources.keycloak_deployment import KeycloakDeployment
from keycloak_operator.types.schemas import KeycloakSpecSchema
from keycloak_operator.utils.objects import dig, to_wire
from keycloak_operator.utils.pods import scan_pods

NAME = "example"
NAMESPACE = "iam"

INSTANCE_LABELS = {
    "app": "keycloak",
    "app.kubernetes.io/managed-by": "keycloak-operator",
    "app.kubernetes.io/instance": NAME,
}


def contains_none(value):
    if value is None:
        return True
    if isinstance(value, dict):
        return any(contains_none(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_none(v) for v in value)
    return False


def stateful_set_model():
    return V1StatefulSet(
        api_version="apps/v1",
        kind="StatefulSet",
        metadata=V1ObjectMeta(name=NAME, namespace=NAMESPACE),
        spec=V1StatefulSetSpec(
            replicas=3,
            service_name=f"{NAME}-discovery",
            selector=V1LabelSelector(match_labels=dict(INSTANCE_LABELS)),
            template=V1PodTemplateSpec(
                metadata=V1ObjectMeta(labels=dict(INSTANCE_LABELS)),
                spec=V1PodSpec(
                    containers=[V1Container(name="keycloak", image="keycloak:25")]
                ),
            ),
        ),
        status=V1StatefulSetStatus(
            replicas=3,
            ready_replicas=2,
            current_revision="rev-1",
            update_revision="rev-2",
        ),
    )


def pod_model():
    return V1Pod(
        metadata=V1ObjectMeta(
            name=f"{NAME}-1",
            namespace=NAMESPACE,
            labels=dict(INSTANCE_LABELS, **{"controller-revision-hash": "rev-2"}),
        ),
        status=V1PodStatus(
            conditions=[V1PodCondition(type="Ready", status="False")],
            container_statuses=[
                V1ContainerStatus(
                    name="keycloak",
                    image="keycloak:25",
                    image_id="",
                    ready=False,
                    restart_count=4,
                    state=V1ContainerState(
                        waiting=V1ContainerStateWaiting(
                            reason="CrashLoopBackOff", message="back-off"
                        )
                    ),
                )
            ],
        ),
    )


class TestToWire:
    def test_none(self):
        assert to_wire(None) is None

    def test_plain_dict_copied(self):
        data = {"spec": {"replicas": 1}}
        wire = to_wire(data)
        assert wire == data
        assert wire is not data

    def test_stateful_set_keys(self):
        wire = to_wire(stateful_set_model())
        assert wire["apiVersion"] == "apps/v1"
        assert wire["spec"]["serviceName"] == f"{NAME}-discovery"
        assert wire["spec"]["selector"]["matchLabels"] == INSTANCE_LABELS
        assert wire["status"]["readyReplicas"] == 2
        assert wire["status"]["updateRevision"] == "rev-2"
        assert "ready_replicas" not in wire["status"]
        assert not contains_none(wire)

    def test_pod_keys(self):
        wire = to_wire(pod_model())
        (container,) = wire["status"]["containerStatuses"]
        assert container["restartCount"] == 4
        assert dig(container, "state", "waiting", "reason") == "CrashLoopBackOff"
        assert "container_statuses" not in wire["status"]
        assert not contains_none(wire)

    def test_live_stateful_set_not_recreated(self):
        deployment = KeycloakDeployment.from_spec(
            NAME,
            NAMESPACE,
            KeycloakSpecSchema().load({"instances": 3}),
            logger=Mock(),
        )
        assert deployment.needs_recreate(to_wire(stateful_set_model())) is False

    def test_pod_errors_found(self):
        errors = scan_pods([to_wire(pod_model())], INSTANCE_LABELS, "rev-2")
        assert errors == [
            f"Waiting for {NAMESPACE}/{NAME}-1 due to CrashLoopBackOff: back-off"
        ]
