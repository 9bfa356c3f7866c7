import os
from typing import Any, Dict

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


def _parse_labels(value: str) -> Dict[str, str]:
    """Parse `key=value` pairs separated by commas into a dict."""
    labels = {}
    for pair in (value or "").split(","):
        if "=" not in pair:
            continue
        key, _, val = pair.partition("=")
        if key.strip():
            labels[key.strip()] = val.strip()
    return labels


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Keycloak image used when the custom resource does not provide one
KEYCLOAK_IMAGE = _getenv("KEYCLOAK_IMAGE", "quay.io/keycloak/keycloak:nightly")

#: Pull policy applied to the keycloak container
KEYCLOAK_IMAGE_PULL_POLICY = _getenv("KEYCLOAK_IMAGE_PULL_POLICY", "Always")

#: Extra labels added to every keycloak pod, e.g. `team=iam,tier=auth`
KEYCLOAK_POD_LABELS = _parse_labels(_getenv("KEYCLOAK_POD_LABELS", ""))

#: Seconds to wait for statefulset deletion to complete prior to recreating it
STATEFULSET_DELETION_TIMEOUT_SECONDS = int(
    _getenv("STATEFULSET_DELETION_TIMEOUT_SECONDS", 5)
)

#: Interval in seconds between periodic status refreshes
STATUS_REFRESH_INTERVAL_SECONDS = float(
    _getenv("STATUS_REFRESH_INTERVAL_SECONDS", 30.0)
)


class Settings:
    """Operator settings"""

    image: str = KEYCLOAK_IMAGE
    image_pull_policy: str = KEYCLOAK_IMAGE_PULL_POLICY
    pod_labels: Dict[str, str] = KEYCLOAK_POD_LABELS
    statefulset_deletion_timeout_seconds: int = STATEFULSET_DELETION_TIMEOUT_SECONDS
    status_refresh_interval_seconds: float = STATUS_REFRESH_INTERVAL_SECONDS

    def __init__(
        self,
        *args,
        image: str = None,
        image_pull_policy: str = None,
        pod_labels: Dict[str, str] = None,
        statefulset_deletion_timeout_seconds: int = None,
        status_refresh_interval_seconds: float = None,
        **kwargs,
    ):
        if image is not None:
            self.image = image

        if image_pull_policy is not None:
            self.image_pull_policy = image_pull_policy

        if pod_labels is not None:
            self.pod_labels = pod_labels

        if statefulset_deletion_timeout_seconds is not None:
            self.statefulset_deletion_timeout_seconds = (
                statefulset_deletion_timeout_seconds
            )

        if status_refresh_interval_seconds is not None:
            self.status_refresh_interval_seconds = status_refresh_interval_seconds
