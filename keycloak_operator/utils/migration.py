import copy
import logging
from typing import Any, Dict, NamedTuple, Optional, Tuple
from keycloak_operator.utils.objects import dig

logger = logging.getLogger(__name__)


class MigrationState(NamedTuple):
    """Outcome of comparing the live statefulset with the desired one.

    Derived again on every reconciliation, never stored.
    """

    in_progress: bool = False
    previous_image: Optional[str] = None
    desired_image: Optional[str] = None


STABLE = MigrationState()


def _primary_image(stateful_set: Dict[str, Any]) -> Optional[str]:
    image = dig(stateful_set, "spec", "template", "spec", "containers", 0, "image")
    return image if isinstance(image, str) and image else None


def coordinate_migration(
    previous: Optional[Dict[str, Any]],
    desired: Dict[str, Any],
    logger: logging.Logger = logger,
) -> Tuple[Dict[str, Any], MigrationState]:
    """Hold back an image upgrade until the cluster is down to one instance.

    When the live statefulset runs more than one replica of a different image,
    the desired statefulset keeps the live image and is scaled to a single
    replica, so the upgrade (and any database migration it performs) happens
    on one instance only. A later reconciliation applies the new image.

    Returns the (possibly rewritten) desired statefulset and the verdict.
    Malformed or missing input leaves the desired statefulset untouched.
    """
    if not isinstance(previous, dict) or not isinstance(desired, dict):
        return desired, STABLE

    previous_image = _primary_image(previous)
    desired_image = _primary_image(desired)
    if previous_image is None or desired_image is None:
        return desired, STABLE
    if previous_image == desired_image:
        return desired, STABLE

    replicas = dig(previous, "status", "replicas")
    if not isinstance(replicas, int) or replicas <= 1:
        return desired, STABLE

    logger.info(
        f"Detected changed Keycloak image from {previous_image} to {desired_image}, "
        "scaling down to a single instance to perform a safe migration"
    )
    migrated = copy.deepcopy(desired)
    migrated["spec"]["template"]["spec"]["containers"][0]["image"] = previous_image
    migrated["spec"]["replicas"] = 1
    return migrated, MigrationState(
        in_progress=True,
        previous_image=previous_image,
        desired_image=desired_image,
    )
