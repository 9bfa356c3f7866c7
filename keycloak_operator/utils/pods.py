from typing import Any, Dict, Iterable, List, Optional
from keycloak_operator.utils.objects import dig


def _matches_labels(pod: Dict[str, Any], labels: Dict[str, str]) -> bool:
    pod_labels = dig(pod, "metadata", "labels") or {}
    return all(pod_labels.get(k) == v for k, v in labels.items())


def _is_ready(pod: Dict[str, Any]) -> bool:
    for condition in dig(pod, "status", "conditions") or []:
        if isinstance(condition, dict) and condition.get("type") == "Ready":
            return condition.get("status") == "True"
    return False


def _is_error_reason(reason: str) -> bool:
    reason = reason.lower()
    return "err" in reason or reason == "crashloopbackoff"


def scan_pods(
    pods: Iterable[Dict[str, Any]],
    instance_labels: Dict[str, str],
    update_revision: Optional[str],
    revision_label: str = "controller-revision-hash",
) -> List[str]:
    """Return error messages for failing containers of the current rollout.

    Only pods labelled with ``instance_labels`` and ``update_revision`` that
    are not ready and report container statuses are inspected. Pods are
    visited by name and their containers by name, so the same cluster state
    always produces the same messages in the same order.
    """
    if not update_revision:
        return []

    selector = {**instance_labels, revision_label: update_revision}
    candidates = [
        pod
        for pod in pods
        if isinstance(pod, dict)
        and _matches_labels(pod, selector)
        and not _is_ready(pod)
        and dig(pod, "status", "containerStatuses")
    ]
    candidates.sort(key=lambda pod: dig(pod, "metadata", "name") or "")

    messages = []
    for pod in candidates:
        namespace = dig(pod, "metadata", "namespace")
        pod_name = dig(pod, "metadata", "name")
        statuses = [
            cs
            for cs in dig(pod, "status", "containerStatuses")
            if isinstance(cs, dict) and not cs.get("ready")
        ]
        statuses.sort(key=lambda cs: cs.get("name") or "")
        for container_status in statuses:
            waiting = dig(container_status, "state", "waiting")
            if not isinstance(waiting, dict):
                continue
            reason = waiting.get("reason")
            if not isinstance(reason, str) or not _is_error_reason(reason):
                continue
            messages.append(
                f"Waiting for {namespace}/{pod_name} due to {reason}: "
                f"{waiting.get('message')}"
            )
    return messages
