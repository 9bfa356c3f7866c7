import kopf
import logging
import keycloak_operator.handlers.keycloak as keycloak  # noqa: F401
import keycloak_operator.handlers.probes as probes  # noqa: F401
from keycloak_operator.types.settings import Settings
from keycloak_operator.resources import KeycloakDeployment
from keycloak_operator.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    # In-cluster config for production, local kubeconfig for development
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    memo.conf = Settings()
    KeycloakDeployment.conf = memo.conf

    # One ApiClient shared by all reconciliations to prevent connection leaks
    KeycloakDeployment.shared_api_client = ApiClient()
    logger.info("Shared Kubernetes API client initialized")

    sensor_delegate = SensorDelegate()
    sensor_delegate.add(PrometheusMonitor())
    memo.sensor = sensor_delegate
    KeycloakDeployment.sensor = sensor_delegate
    logger.info("Sensor infrastructure initialized with PrometheusMonitor")

    try:
        init_metrics_server()
    except Exception as e:
        logger.error(f"Failed to start metrics server: {e}")
        # Metrics are optional, the operator keeps running without them
        logger.warning("Continuing without metrics server")

    # Limit the number of concurrent workers to prevent flooding the API
    settings.batching.worker_limit = 2

    # Post only warnings and errors as Kubernetes events
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    if KeycloakDeployment.shared_api_client is not None:
        await KeycloakDeployment.shared_api_client.close()
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")
