"""Unit tests for merging user supplied pod templates."""

import copy
import pytest
from keycloak_operator.utils.overlay import (
    CONTAINER_POLICY,
    WARN_CONTAINER_IMAGE,
    WARN_CONTAINER_NAME,
    WARN_IMAGE_PULL_SECRETS,
    WARN_TEMPLATE_NAME,
    WARN_TEMPLATE_NAMESPACE,
    Presence,
    merge_containers,
    merge_fields,
    merge_list,
    merge_map,
    merge_pod_template,
    replace_value,
    validate_pod_template,
)


@pytest.fixture
def base_template():
    return {
        "metadata": {
            "labels": {"app": "keycloak", "tier": "auth"},
        },
        "spec": {
            "restartPolicy": "Always",
            "terminationGracePeriodSeconds": 30,
            "dnsPolicy": "ClusterFirst",
            "imagePullSecrets": [{"name": "registry"}],
            "containers": [
                {
                    "name": "keycloak",
                    "image": "quay.io/keycloak/keycloak:nightly",
                    "args": ["start"],
                    "ports": [{"containerPort": 8443, "protocol": "TCP"}],
                    "env": [{"name": "KC_HEALTH_ENABLED", "value": "true"}],
                    "resources": {"requests": {"cpu": "500m", "memory": "1Gi"}},
                }
            ],
        },
    }


class TestFieldMergers:
    def test_merge_map_overlay_wins(self):
        assert merge_map({"a": "1", "b": "2"}, {"b": "3", "c": "4"}) == {
            "a": "1",
            "b": "3",
            "c": "4",
        }

    def test_merge_map_without_base(self):
        assert merge_map(None, {"a": "1"}) == {"a": "1"}

    def test_merge_map_ignores_malformed_overlay(self):
        assert merge_map({"a": "1"}, ["a"]) == {"a": "1"}

    def test_merge_list_concatenates_without_dedup(self):
        assert merge_list([1, 2], [2, 3]) == [1, 2, 2, 3]

    def test_merge_list_ignores_malformed_overlay(self):
        assert merge_list([1], {"a": 1}) == [1]

    def test_replace_value(self):
        assert replace_value("base", "overlay") == "overlay"
        assert replace_value("base", None) == "base"
        assert replace_value(["start"], []) == ["start"]
        assert replace_value(False, True) is True
        assert replace_value(30, 0) == 0

    def test_merge_fields_does_not_modify_inputs(self):
        base = {"env": [{"name": "A"}]}
        overlay = {"env": [{"name": "B"}]}
        merged = merge_fields(base, overlay, CONTAINER_POLICY)
        assert merged["env"] == [{"name": "A"}, {"name": "B"}]
        assert base == {"env": [{"name": "A"}]}

    def test_merge_fields_skips_unknown_fields(self):
        merged = merge_fields({}, {"notAField": 1}, CONTAINER_POLICY)
        assert merged == {}


class TestPresence:
    def test_absent(self):
        assert Presence.of({}, "containers") is Presence.ABSENT
        assert Presence.of({"containers": None}, "containers") is Presence.ABSENT
        assert Presence.of(None, "containers") is Presence.ABSENT

    def test_empty(self):
        assert Presence.of({"containers": []}, "containers") is Presence.EMPTY
        assert Presence.of({"labels": {}}, "labels") is Presence.EMPTY

    def test_populated(self):
        assert Presence.of({"containers": [{}]}, "containers") is Presence.POPULATED
        assert Presence.of({"hostNetwork": False}, "hostNetwork") is Presence.POPULATED


class TestMergePodTemplate:
    def test_no_overlay_returns_copy(self, base_template):
        merged = merge_pod_template(base_template, None)
        assert merged == base_template
        assert merged is not base_template

    def test_inputs_are_not_modified(self, base_template):
        original = copy.deepcopy(base_template)
        overlay = {"spec": {"tolerations": [{"key": "a"}]}}
        merge_pod_template(base_template, overlay)
        assert base_template == original
        assert overlay == {"spec": {"tolerations": [{"key": "a"}]}}

    def test_labels_and_annotations_union(self, base_template):
        overlay = {
            "metadata": {
                "labels": {"tier": "iam", "team": "platform"},
                "annotations": {"sidecar.istio.io/inject": "false"},
            }
        }
        merged = merge_pod_template(base_template, overlay)
        assert merged["metadata"]["labels"] == {
            "app": "keycloak",
            "tier": "iam",
            "team": "platform",
        }
        assert merged["metadata"]["annotations"] == {"sidecar.istio.io/inject": "false"}

    def test_metadata_name_and_namespace_not_applied(self, base_template):
        overlay = {"metadata": {"name": "other", "namespace": "elsewhere"}}
        merged = merge_pod_template(base_template, overlay)
        assert "name" not in merged["metadata"]
        assert "namespace" not in merged["metadata"]

    def test_pod_lists_concatenate(self, base_template):
        base_template["spec"]["volumes"] = [{"name": "data"}]
        overlay = {
            "spec": {
                "volumes": [{"name": "data"}, {"name": "cache"}],
                "tolerations": [{"key": "dedicated", "operator": "Exists"}],
            }
        }
        merged = merge_pod_template(base_template, overlay)
        assert merged["spec"]["volumes"] == [
            {"name": "data"},
            {"name": "data"},
            {"name": "cache"},
        ]
        assert merged["spec"]["tolerations"] == [
            {"key": "dedicated", "operator": "Exists"}
        ]

    def test_pod_image_pull_secrets_concatenate(self, base_template):
        overlay = {"spec": {"imagePullSecrets": [{"name": "other"}]}}
        merged = merge_pod_template(base_template, overlay)
        assert merged["spec"]["imagePullSecrets"] == [
            {"name": "registry"},
            {"name": "other"},
        ]

    def test_pod_scalars_replace(self, base_template):
        overlay = {
            "spec": {
                "restartPolicy": "OnFailure",
                "terminationGracePeriodSeconds": 60,
                "serviceAccountName": "keycloak",
                "hostNetwork": False,
                "affinity": {"podAntiAffinity": {}},
                "priority": 10,
            }
        }
        merged = merge_pod_template(base_template, overlay)
        spec = merged["spec"]
        assert spec["restartPolicy"] == "OnFailure"
        assert spec["terminationGracePeriodSeconds"] == 60
        assert spec["serviceAccountName"] == "keycloak"
        assert spec["hostNetwork"] is False
        assert spec["affinity"] == {"podAntiAffinity": {}}
        assert spec["priority"] == 10
        assert spec["dnsPolicy"] == "ClusterFirst"

    def test_pod_maps_union(self, base_template):
        base_template["spec"]["nodeSelector"] = {"zone": "a", "disk": "ssd"}
        overlay = {"spec": {"nodeSelector": {"zone": "b"}, "overhead": {"cpu": "10m"}}}
        merged = merge_pod_template(base_template, overlay)
        assert merged["spec"]["nodeSelector"] == {"zone": "b", "disk": "ssd"}
        assert merged["spec"]["overhead"] == {"cpu": "10m"}

    def test_primary_container_fields(self, base_template):
        overlay = {
            "spec": {
                "containers": [
                    {
                        "args": ["start", "--verbose"],
                        "env": [{"name": "JAVA_OPTS", "value": "-Xmx1g"}],
                        "ports": [{"containerPort": 9000}],
                        "volumeMounts": [{"name": "themes", "mountPath": "/opt/themes"}],
                        "resources": {
                            "requests": {"cpu": "1"},
                            "limits": {"memory": "2Gi"},
                        },
                        "workingDir": "/opt",
                        "imagePullPolicy": "IfNotPresent",
                    }
                ]
            }
        }
        merged = merge_pod_template(base_template, overlay)
        container = merged["spec"]["containers"][0]
        assert container["name"] == "keycloak"
        assert container["args"] == ["start", "--verbose"]
        assert container["env"] == [
            {"name": "KC_HEALTH_ENABLED", "value": "true"},
            {"name": "JAVA_OPTS", "value": "-Xmx1g"},
        ]
        assert container["ports"] == [
            {"containerPort": 8443, "protocol": "TCP"},
            {"containerPort": 9000},
        ]
        assert container["volumeMounts"] == [{"name": "themes", "mountPath": "/opt/themes"}]
        assert container["resources"] == {
            "requests": {"cpu": "1", "memory": "1Gi"},
            "limits": {"memory": "2Gi"},
        }
        assert container["workingDir"] == "/opt"
        assert container["imagePullPolicy"] == "IfNotPresent"

    def test_empty_args_keep_generated_args(self, base_template):
        overlay = {"spec": {"containers": [{"args": []}]}}
        merged = merge_pod_template(base_template, overlay)
        assert merged["spec"]["containers"][0]["args"] == ["start"]

    def test_primary_container_identity_protected(self, base_template):
        overlay = {"spec": {"containers": [{"name": "other", "image": "evil:latest"}]}}
        merged = merge_pod_template(base_template, overlay)
        container = merged["spec"]["containers"][0]
        assert container["name"] == "keycloak"
        assert container["image"] == "quay.io/keycloak/keycloak:nightly"

    def test_sidecars_appended(self, base_template):
        sidecar = {"name": "proxy", "image": "envoy:1"}
        overlay = {"spec": {"containers": [{}, sidecar]}}
        merged = merge_pod_template(base_template, overlay)
        containers = merged["spec"]["containers"]
        assert len(containers) == 2
        assert containers[0] == base_template["spec"]["containers"][0]
        assert containers[1] == sidecar

    def test_empty_spec_runs_pod_merge_only(self, base_template):
        merged = merge_pod_template(base_template, {"spec": {}})
        assert merged == base_template

    @pytest.mark.parametrize(
        "spec",
        [
            {"containers": None},
            {"containers": []},
            {"containers": "malformed"},
        ],
    )
    def test_pod_merge_without_container_merge(self, base_template, spec):
        spec = dict(spec, schedulerName="custom")
        merged = merge_pod_template(base_template, {"spec": spec})
        assert merged["spec"]["schedulerName"] == "custom"
        assert merged["spec"]["containers"] == base_template["spec"]["containers"]

    def test_malformed_sections_skipped_field_by_field(self, base_template):
        overlay = {
            "metadata": "bad",
            "spec": {
                "tolerations": "bad",
                "nodeSelector": ["bad"],
                "affinity": {"nodeAffinity": {}},
            },
        }
        merged = merge_pod_template(base_template, overlay)
        assert merged["metadata"] == base_template["metadata"]
        assert "tolerations" not in merged["spec"]
        assert "nodeSelector" not in merged["spec"]
        assert merged["spec"]["affinity"] == {"nodeAffinity": {}}

    def test_reapplying_overlay_doubles_lists(self, base_template):
        overlay = {
            "spec": {
                "tolerations": [{"key": "a"}],
                "containers": [{"env": [{"name": "X", "value": "1"}]}],
            }
        }
        once = merge_pod_template(base_template, overlay)
        twice = merge_pod_template(once, overlay)
        assert twice["spec"]["tolerations"] == [{"key": "a"}, {"key": "a"}]
        assert twice["spec"]["containers"][0]["env"][-2:] == [
            {"name": "X", "value": "1"},
            {"name": "X", "value": "1"},
        ]


class TestMergeContainers:
    def test_generated_sidecars_kept_before_overlay_sidecars(self):
        base = [{"name": "keycloak"}, {"name": "generated"}]
        overlay = [{"workingDir": "/tmp"}, {"name": "user"}]
        merged = merge_containers(base, overlay)
        assert [c["name"] for c in merged] == ["keycloak", "generated", "user"]
        assert merged[0]["workingDir"] == "/tmp"

    def test_malformed_primary_overlay(self):
        merged = merge_containers([{"name": "keycloak"}], ["bad", {"name": "user"}])
        assert merged == [{"name": "keycloak"}, {"name": "user"}]


class TestValidatePodTemplate:
    def test_no_overlay(self):
        assert validate_pod_template(None) == []

    def test_no_warnings_for_allowed_fields(self):
        overlay = {
            "metadata": {"labels": {"a": "b"}},
            "spec": {"containers": [{"env": []}], "imagePullSecrets": []},
        }
        assert validate_pod_template(overlay) == []

    def test_all_warnings_in_order(self):
        overlay = {
            "metadata": {"name": "x", "namespace": "y"},
            "spec": {
                "imagePullSecrets": [{"name": "registry"}],
                "containers": [{"name": "kc", "image": "kc:1"}],
            },
        }
        assert validate_pod_template(overlay) == [
            WARN_TEMPLATE_NAME,
            WARN_TEMPLATE_NAMESPACE,
            WARN_CONTAINER_NAME,
            WARN_CONTAINER_IMAGE,
            WARN_IMAGE_PULL_SECRETS,
        ]

    def test_sidecar_identity_is_not_reported(self):
        overlay = {"spec": {"containers": [{}, {"name": "proxy", "image": "envoy:1"}]}}
        assert validate_pod_template(overlay) == []
