import kopf
from logging import Logger
from typing import Any, Dict, List
from kubernetes_asyncio.client import ApiException, CustomObjectsApi
from keycloak_operator.types.schemas import KeycloakSpecSchema
from keycloak_operator.types.models import KeycloakSpec
from keycloak_operator.resources import KeycloakDeployment, KeycloakStatusAggregator
from keycloak_operator.utils.helpers import upsert_condition
from keycloak_operator.utils.errors import convert_api_exception

KEYCLOAK_KIND = "Keycloak"


def get_sensor():
    """Get sensor from KeycloakDeployment class.

    Returns:
        Sensor instance or None
    """
    return getattr(KeycloakDeployment, "sensor", None)


def on_error(error, meta, status, patch, **_):
    """Record a failed reconciliation on the Keycloak status."""
    gen = meta.get("generation", 0)
    conds = (status or {}).get("conditions", [])
    conds = upsert_condition(
        conds,
        {
            "type": "Ready",
            "status": "False",
            "reason": "Error",
            "message": str(error) if error else "Reconcile failed; see events/logs",
            "observedGeneration": gen,
        },
    )
    patch.status["conditions"] = conds


async def build_deployment(
    name: str, namespace: str, spec: Dict[str, Any], meta, logger: Logger
) -> KeycloakDeployment:
    """Parse the resource and read the state this reconciliation starts from."""
    spec_model: KeycloakSpec = KeycloakSpecSchema().load(spec)
    deployment = KeycloakDeployment.from_spec(
        name,
        namespace,
        spec_model,
        generation=meta.get("generation"),
        logger=logger,
    )
    await deployment.fetch_existing_stateful_set()
    await deployment.resolve_configuration()
    return deployment


async def update_status(
    deployment: KeycloakDeployment, status, patch, logger: Logger
) -> KeycloakStatusAggregator:
    """Observe the live StatefulSet and its pods and write the resource status."""
    aggregator = await deployment.update_status(KeycloakStatusAggregator())
    new_status = aggregator.build(status, deployment.generation)
    for key, value in new_status.items():
        patch.status[key] = value
    sensor = get_sensor()
    if sensor:
        sensor.on_status_update(
            deployment.cluster, deployment.namespace, sorted(new_status.keys())
        )
    logger.debug(f"Status of {deployment.cluster}: {aggregator.as_report()}")
    return aggregator


async def reconcile(
    name,
    namespace,
    spec,
    meta,
    status,
    patch,
    logger: Logger,
    trigger_source: str = "manual",
    **kwargs,
):
    """Reconcile the Keycloak StatefulSet and report the cluster health."""
    sensor = get_sensor()
    generation = meta.get("generation", 0)
    sensor_state = None
    if sensor:
        sensor_state = sensor.on_reconcile_start(name, namespace, generation, trigger_source)

    success = True
    error = None
    try:
        deployment = await build_deployment(name, namespace, spec, meta, logger)
        deployment.unite()
        logger.debug(f"Reconciling {KEYCLOAK_KIND}/{name} in {namespace} namespace.")
        operation = await deployment.synchronize()
        logger.debug(
            f"Reconciled {KEYCLOAK_KIND}/{name} in {namespace} namespace ({operation})."
        )
        await update_status(deployment, status, patch, logger)
    except Exception as e:
        success = False
        error = e
        on_error(e, meta, status, patch, **kwargs)
        if isinstance(e, ApiException):
            convert_api_exception(e)
        if isinstance(e, kopf.TemporaryError):
            logger.warning(f"Reconciliation of {name} postponed: {e}")
        else:
            logger.error(f"Unexpected error during reconcilation: {e}")
        raise
    finally:
        if sensor:
            sensor.on_reconcile_complete(name, namespace, sensor_state, success, error)


@kopf.on.resume(kind=KEYCLOAK_KIND)
@kopf.on.create(kind=KEYCLOAK_KIND)
async def on_create(spec, name, namespace, meta, status, patch, logger: Logger, **kwargs):
    """Creates or adopts the Keycloak StatefulSet."""
    await reconcile(
        name,
        namespace,
        spec,
        meta,
        status,
        patch,
        logger,
        trigger_source="create",
        **kwargs,
    )


@kopf.on.update(kind=KEYCLOAK_KIND, field="spec")
async def on_update(spec, name, namespace, meta, status, patch, logger: Logger, **kwargs):
    await reconcile(
        name,
        namespace,
        spec,
        meta,
        status,
        patch,
        logger,
        trigger_source="update",
        **kwargs,
    )


@kopf.timer(
    kind=KEYCLOAK_KIND,
    interval=KeycloakDeployment.conf.status_refresh_interval_seconds,
    initial_delay=KeycloakDeployment.conf.status_refresh_interval_seconds,
    idle=KeycloakDeployment.conf.status_refresh_interval_seconds,
)
async def refresh_status(spec, name, namespace, meta, status, patch, logger: Logger, **kwargs):
    """Periodically re-run reconciliation so pod health and rollouts are reported."""
    await reconcile(
        name,
        namespace,
        spec,
        meta,
        status,
        patch,
        logger,
        trigger_source="timer",
        **kwargs,
    )


def keycloaks_using_secret(keycloaks: List[Dict[str, Any]], secret_name: str) -> List[str]:
    """Names of the Keycloak resources whose configuration reads ``secret_name``."""
    names = []
    for keycloak in keycloaks:
        secrets = (keycloak.get("status") or {}).get("configSecrets") or []
        if secret_name in secrets:
            names.append(keycloak["metadata"]["name"])
    return sorted(names)


@kopf.on.event("v1", "secrets")
async def on_config_secret_event(event, name, namespace, logger: Logger, **kwargs):
    """Restart the Keycloak pods whose server options read the updated secret."""
    if event.get("type") != "MODIFIED":
        return
    api = CustomObjectsApi(KeycloakDeployment.shared_api_client)
    try:
        keycloaks = await api.list_namespaced_custom_object(
            group=KeycloakDeployment.GROUP_NAME,
            version=KeycloakDeployment.GROUP_VERSION,
            namespace=namespace,
            plural=KeycloakDeployment.PLURAL_NAME,
        )
    except ApiException as e:
        convert_api_exception(e)

    for keycloak_name in keycloaks_using_secret(keycloaks.get("items", []), name):
        logger.info(
            f"Config secret {name} changed, restarting Keycloak {keycloak_name} pods"
        )
        await KeycloakDeployment(keycloak_name, namespace).rolling_restart()
