"""Merging of a user supplied pod template onto the generated one.

The merge is driven by static policy tables keyed by wire (camelCase) field
names. Every table entry says how the overlay value for that field combines
with the generated value:

* ``MAP``: union of both dicts, overlay wins on key collision.
* ``LIST``: base entries followed by overlay entries, no de-duplication.
  Re-applying the same overlay therefore doubles the entries.
* ``REPLACE``: overlay value replaces the base one when present. An empty
  list counts as not present.
* ``PROTECTED``: the base value always wins. Attempts are reported by
  :func:`validate_pod_template`.

A nested dict in a table is a sub-policy for a structured field.

Fields not listed in a table are never taken from the overlay. Malformed
overlay values (wrong JSON type) are skipped field by field.
"""
import copy
from enum import Enum
from typing import Any, Dict, List, Optional

JSON = Dict[str, Any]


class FieldPolicy(Enum):
    MAP = "map"
    LIST = "list"
    REPLACE = "replace"
    PROTECTED = "protected"


class Presence(Enum):
    """Three valued presence of a wire field."""

    ABSENT = "absent"
    EMPTY = "empty"
    POPULATED = "populated"

    @classmethod
    def of(cls, section: Optional[JSON], key: str) -> "Presence":
        if not isinstance(section, dict) or section.get(key) is None:
            return cls.ABSENT
        value = section[key]
        if isinstance(value, (list, dict)) and not value:
            return cls.EMPTY
        return cls.POPULATED


MAP = FieldPolicy.MAP
LIST = FieldPolicy.LIST
REPLACE = FieldPolicy.REPLACE
PROTECTED = FieldPolicy.PROTECTED

METADATA_POLICY = {
    "labels": MAP,
    "annotations": MAP,
    "name": PROTECTED,
    "namespace": PROTECTED,
}

#: Policy for the primary (index 0) container.
CONTAINER_POLICY = {
    "name": PROTECTED,
    "image": PROTECTED,
    "command": REPLACE,
    "args": REPLACE,
    "readinessProbe": REPLACE,
    "livenessProbe": REPLACE,
    "startupProbe": REPLACE,
    "imagePullPolicy": REPLACE,
    "lifecycle": REPLACE,
    "securityContext": REPLACE,
    "workingDir": REPLACE,
    "resources": {
        "requests": MAP,
        "limits": MAP,
    },
    "ports": LIST,
    "envFrom": LIST,
    "env": LIST,
    "volumeMounts": LIST,
    "volumeDevices": LIST,
}

POD_SPEC_POLICY = {
    "activeDeadlineSeconds": REPLACE,
    "affinity": REPLACE,
    "automountServiceAccountToken": REPLACE,
    "dnsConfig": REPLACE,
    "dnsPolicy": REPLACE,
    "enableServiceLinks": REPLACE,
    "hostIPC": REPLACE,
    "hostname": REPLACE,
    "hostNetwork": REPLACE,
    "hostPID": REPLACE,
    "nodeName": REPLACE,
    "preemptionPolicy": REPLACE,
    "priority": REPLACE,
    "priorityClassName": REPLACE,
    "restartPolicy": REPLACE,
    "runtimeClassName": REPLACE,
    "schedulerName": REPLACE,
    "securityContext": REPLACE,
    "serviceAccount": REPLACE,
    "serviceAccountName": REPLACE,
    "setHostnameAsFQDN": REPLACE,
    "shareProcessNamespace": REPLACE,
    "subdomain": REPLACE,
    "terminationGracePeriodSeconds": REPLACE,
    # Concatenated like every other list, the attempt is still reported.
    "imagePullSecrets": LIST,
    "hostAliases": LIST,
    "ephemeralContainers": LIST,
    "initContainers": LIST,
    "readinessGates": LIST,
    "tolerations": LIST,
    "topologySpreadConstraints": LIST,
    "volumes": LIST,
    "nodeSelector": MAP,
    "overhead": MAP,
}

WARN_TEMPLATE_NAME = "The name of the podTemplate cannot be modified"
WARN_TEMPLATE_NAMESPACE = "The namespace of the podTemplate cannot be modified"
WARN_CONTAINER_NAME = "The name of the keycloak container cannot be modified"
WARN_CONTAINER_IMAGE = (
    "The image of the keycloak container cannot be modified using podTemplate"
)
WARN_IMAGE_PULL_SECRETS = (
    "The imagePullSecrets of the keycloak container cannot be modified using podTemplate"
)


def merge_map(base: Any, overlay: Any) -> Optional[JSON]:
    if not isinstance(overlay, dict):
        return base
    merged = dict(base) if isinstance(base, dict) else {}
    merged.update(overlay)
    return merged


def merge_list(base: Any, overlay: Any) -> Optional[List[Any]]:
    if not isinstance(overlay, list):
        return base
    merged = list(base) if isinstance(base, list) else []
    merged.extend(overlay)
    return merged


def replace_value(base: Any, overlay: Any) -> Any:
    if overlay is None or overlay == []:
        return base
    return overlay


_MERGERS = {
    MAP: merge_map,
    LIST: merge_list,
    REPLACE: replace_value,
    PROTECTED: lambda base, overlay: base,
}


def merge_fields(base: JSON, overlay: JSON, policy: Dict[str, Any]) -> JSON:
    """Merge ``overlay`` onto ``base`` following ``policy``.

    Returns a new dict, neither input is modified. Keys absent on both
    sides stay absent in the result.
    """
    merged = dict(base)
    for key, field_policy in policy.items():
        if key not in overlay:
            continue
        overlay_value = overlay[key]
        if isinstance(field_policy, dict):
            if not isinstance(overlay_value, dict):
                continue
            base_value = merged.get(key)
            value = merge_fields(
                base_value if isinstance(base_value, dict) else {},
                overlay_value,
                field_policy,
            )
            if not value and key not in merged:
                continue
        else:
            value = _MERGERS[field_policy](merged.get(key), overlay_value)
            if value is None:
                continue
        merged[key] = value
    return merged


def merge_containers(base: Any, overlay: List[Any]) -> List[JSON]:
    """Merge overlay containers into the generated container list.

    Index 0 of both lists is the keycloak container and is merged field by
    field. Remaining overlay containers are appended after the generated
    sidecars.
    """
    base = base if isinstance(base, list) else []
    primary = base[0] if base and isinstance(base[0], dict) else {}
    overlay_primary = overlay[0] if isinstance(overlay[0], dict) else {}
    containers = [merge_fields(primary, overlay_primary, CONTAINER_POLICY)]
    containers.extend(c for c in base[1:] if isinstance(c, dict))
    containers.extend(c for c in overlay[1:] if isinstance(c, dict))
    return containers


def merge_pod_spec(base: JSON, overlay: JSON) -> JSON:
    merged = merge_fields(base, overlay, POD_SPEC_POLICY)
    if Presence.of(overlay, "containers") is Presence.POPULATED and isinstance(
        overlay["containers"], list
    ):
        merged["containers"] = merge_containers(
            merged.get("containers"), overlay["containers"]
        )
    return merged


def merge_pod_template(template: JSON, overlay: Optional[JSON]) -> JSON:
    """Return ``template`` with the user supplied ``overlay`` merged onto it.

    Both arguments are pod templates in their API (camelCase) dict form.
    The result is a deep copy; no input is modified.

    The pod spec merge runs whenever the overlay carries a ``spec`` section,
    even an empty one, while the container merge additionally requires a
    non-empty ``spec.containers`` list.
    """
    merged = copy.deepcopy(template)
    if not isinstance(overlay, dict):
        return merged
    overlay = copy.deepcopy(overlay)

    metadata = overlay.get("metadata")
    if isinstance(metadata, dict):
        merged["metadata"] = merge_fields(
            merged.get("metadata") or {}, metadata, METADATA_POLICY
        )

    spec = overlay.get("spec")
    if isinstance(spec, dict):
        merged["spec"] = merge_pod_spec(merged.get("spec") or {}, spec)

    return merged


def validate_pod_template(overlay: Optional[JSON]) -> List[str]:
    """Return warnings for overlay fields the operator refuses to apply."""
    warnings: List[str] = []
    if not isinstance(overlay, dict):
        return warnings

    metadata = overlay.get("metadata")
    if Presence.of(metadata, "name") is not Presence.ABSENT:
        warnings.append(WARN_TEMPLATE_NAME)
    if Presence.of(metadata, "namespace") is not Presence.ABSENT:
        warnings.append(WARN_TEMPLATE_NAMESPACE)

    spec = overlay.get("spec")
    containers = spec.get("containers") if isinstance(spec, dict) else None
    if isinstance(containers, list) and containers:
        primary = containers[0]
        if Presence.of(primary, "name") is not Presence.ABSENT:
            warnings.append(WARN_CONTAINER_NAME)
        if Presence.of(primary, "image") is not Presence.ABSENT:
            warnings.append(WARN_CONTAINER_IMAGE)

    if Presence.of(spec, "imagePullSecrets") is Presence.POPULATED:
        warnings.append(WARN_IMAGE_PULL_SECRETS)

    return warnings
