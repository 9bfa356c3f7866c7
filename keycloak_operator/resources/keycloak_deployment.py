import asyncio
import kopf
import logging
from logging import Logger
from typing import Any, Dict, List, Optional, Set
from keycloak_operator.utils.objects import cached_property, dig, to_wire
from keycloak_operator.utils.helpers import (
    ensure_trailing_slash,
    now,
    option_env_var_name,
)
from keycloak_operator.utils.overlay import merge_pod_template, validate_pod_template
from keycloak_operator.utils.migration import (
    STABLE,
    MigrationState,
    coordinate_migration,
)
from keycloak_operator.utils.pods import scan_pods
from keycloak_operator.types.settings import Settings
from keycloak_operator.types.models import (
    KeycloakResources,
    KeycloakSpec,
    ValueOrSecret,
)
from keycloak_operator.common.models.labels import Labels
from keycloak_operator.resources.base import BaseResource
from keycloak_operator.resources.config_resolver import ConfigResolver
from keycloak_operator.resources.dist_configurator import KeycloakDistConfigurator
from keycloak_operator.resources.keycloak_service import (
    get_service_port,
    is_tls_configured,
)
from keycloak_operator.resources.status import KeycloakStatusAggregator
from keycloak_operator.sensors import OperatorSensor
from kubernetes_asyncio.client import (
    ApiClient,
    AppsV1Api,
    CoreV1Api,
    V1Container,
    V1ContainerPort,
    V1DeleteOptions,
    V1EnvVar,
    V1EnvVarSource,
    V1HTTPGetAction,
    V1LabelSelector,
    V1LocalObjectReference,
    V1ObjectMeta,
    V1PodSpec,
    V1PodTemplateSpec,
    V1Preconditions,
    V1Probe,
    V1SecretKeySelector,
    V1Secret,
    V1StatefulSet,
    V1StatefulSetSpec,
)

JSON = Dict[str, Any]


class KeycloakDeployment(BaseResource):
    """The Keycloak StatefulSet managed for a Keycloak resource.

    The desired StatefulSet is built in API (camelCase) dict form:

    1. the generated baseline (identity, replicas, image, env, probes),
    2. first-class server options from the distribution configurator,
    3. the user supplied pod template overlay,
    4. the migration safeguard, which may hold back an image upgrade.

    Container index 0 of the pod template is always the keycloak container;
    any other container is a sidecar passed through untouched.
    """

    logger: Logger
    conf: Settings = Settings()
    sensor: OperatorSensor = OperatorSensor()
    shared_api_client: ApiClient = None

    KIND = "Keycloak"
    GROUP_NAME = "k8s.keycloak.org"
    GROUP_VERSION = "v2alpha1"
    PLURAL_NAME = "keycloaks"
    RESOURCE_TYPE = "stateful_set"

    KEYCLOAK_CONTAINER_NAME = "keycloak"
    HTTP_PORT = 8080
    HTTPS_PORT = 8443
    HTTP_RELATIVE_PATH_OPTION = "http-relative-path"
    DEFAULT_RELATIVE_PATH = "/"
    OPTIMIZED_ARG = "--optimized"

    RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"

    #: Server options applied unless the resource declares an option of the same name
    DEFAULT_DIST_CONFIG = (
        ("health-enabled", "true"),
        ("cache", "ispn"),
        ("cache-stack", "kubernetes"),
        ("proxy", "passthrough"),
    )

    READINESS_PROBE = dict(initial_delay_seconds=20, period_seconds=2, failure_threshold=250)
    LIVENESS_PROBE = dict(initial_delay_seconds=20, period_seconds=2, failure_threshold=150)

    RESTART_POLICY = "Always"
    TERMINATION_GRACE_PERIOD_SECONDS = 30
    DNS_POLICY = "ClusterFirst"

    spec: KeycloakSpec
    generation: Optional[int]
    existing_stateful_set: Optional[JSON]
    config_resolver: ConfigResolver
    relative_path: str
    option_secret_names: Set[str]

    _migration_state: MigrationState = STABLE
    _api_client: ApiClient = None
    _apps_v1_api: AppsV1Api = None
    _core_v1_api: CoreV1Api = None

    def __init__(self, name: str, namespace: str):
        labels = Labels.generate_instance_labels(name, self.KEYCLOAK_OPERATOR_NAME)
        super().__init__(cluster=name, namespace=namespace, labels=labels)
        self.stateful_set_name = KeycloakResources.stateful_set_name(name)
        self.discovery_service_name = KeycloakResources.discovery_service_name(name)
        self.admin_secret_name = KeycloakResources.admin_secret_name(name)

    @classmethod
    def from_spec(
        self,
        name: str,
        namespace: str,
        spec: KeycloakSpec,
        existing_stateful_set: Optional[JSON] = None,
        generation: Optional[int] = None,
        logger: Logger = None,
    ) -> "KeycloakDeployment":
        deployment = KeycloakDeployment(name, namespace)
        deployment.logger = logger or logging.getLogger(__name__)
        deployment.spec = spec
        deployment.generation = generation
        deployment.existing_stateful_set = existing_stateful_set
        deployment.relative_path = self.DEFAULT_RELATIVE_PATH
        deployment.option_secret_names = set()
        deployment.config_resolver = ConfigResolver(
            spec.additional_options, namespace, deployment.read_secret
        )
        return deployment

    async def read_secret(self, name: str, namespace: str) -> Optional[V1Secret]:
        return await self.fetch_secret(self.core_v1_api, name, namespace)

    async def fetch_existing_stateful_set(self) -> Optional[JSON]:
        """Read the live StatefulSet, kept as the previous state of this cycle."""
        stateful_set = await self.fetch_stateful_set(
            self.apps_v1_api, self.stateful_set_name, self.namespace
        )
        self.existing_stateful_set = to_wire(stateful_set)
        return self.existing_stateful_set

    async def resolve_configuration(self) -> "KeycloakDeployment":
        """Resolve the server options the generated StatefulSet depends on.

        Raises a ConfigurationError subclass when a referenced secret or
        secret key is missing.
        """
        relative_path = await self.config_resolver.resolve(self.HTTP_RELATIVE_PATH_OPTION)
        self.relative_path = ensure_trailing_slash(relative_path or self.DEFAULT_RELATIVE_PATH)
        return self

    # =============================================================================
    # Desired state
    # =============================================================================

    def prepare_image(self) -> str:
        return self.spec.image or self.conf.image

    def prepare_args(self) -> List[str]:
        args = ["start"]
        if self.spec.image:
            args.append(self.OPTIMIZED_ARG)
        return args

    def prepare_server_options(self) -> List[ValueOrSecret]:
        """Default options, each replaced as a whole by a declared option of the same name."""
        declared = list(self.spec.additional_options or [])
        names = {option.name for option in declared}
        defaults = [
            ValueOrSecret(name=name, value=value, secret=None)
            for name, value in self.DEFAULT_DIST_CONFIG
            if name not in names
        ]
        return defaults + declared

    def prepare_env_vars(self) -> List[V1EnvVar]:
        env_vars = []
        secret_names = set()
        for option in self.prepare_server_options():
            env_name = option_env_var_name(option.name)
            if option.secret is not None:
                secret_names.add(option.secret.name)
                env_vars.append(
                    V1EnvVar(
                        name=env_name,
                        value_from=V1EnvVarSource(
                            secret_key_ref=V1SecretKeySelector(
                                name=option.secret.name,
                                key=option.secret.key,
                                optional=option.secret.optional,
                            )
                        ),
                    )
                )
            else:
                env_vars.append(V1EnvVar(name=env_name, value=option.value))
        self.option_secret_names = secret_names
        if secret_names:
            self.logger.info(f"Found config secrets names: {sorted(secret_names)}")

        env_vars.append(self.prepare_admin_env_var("KEYCLOAK_ADMIN", "username"))
        env_vars.append(self.prepare_admin_env_var("KEYCLOAK_ADMIN_PASSWORD", "password"))
        env_vars.append(
            V1EnvVar(
                name="jgroups.dns.query",
                value=KeycloakResources.discovery_dns_query(self.cluster, self.namespace),
            )
        )
        return env_vars

    def prepare_admin_env_var(self, name: str, key: str) -> V1EnvVar:
        return V1EnvVar(
            name=name,
            value_from=V1EnvVarSource(
                secret_key_ref=V1SecretKeySelector(
                    name=self.admin_secret_name, key=key, optional=False
                )
            ),
        )

    def prepare_container_ports(self) -> List[V1ContainerPort]:
        return [
            V1ContainerPort(container_port=self.HTTPS_PORT, protocol="TCP"),
            V1ContainerPort(container_port=self.HTTP_PORT, protocol="TCP"),
        ]

    def prepare_probe(self, endpoint: str, timing: Dict[str, int]) -> V1Probe:
        scheme = "HTTPS" if is_tls_configured(self.spec) else "HTTP"
        return V1Probe(
            http_get=V1HTTPGetAction(
                scheme=scheme,
                port=get_service_port(self.spec),
                path=f"{self.relative_path}health/{endpoint}",
            ),
            **timing,
        )

    def prepare_keycloak_container(self) -> V1Container:
        return V1Container(
            name=self.KEYCLOAK_CONTAINER_NAME,
            image=self.prepare_image(),
            image_pull_policy=self.conf.image_pull_policy,
            args=self.prepare_args(),
            ports=self.prepare_container_ports(),
            env=self.prepare_env_vars(),
            readiness_probe=self.prepare_probe("ready", self.READINESS_PROBE),
            liveness_probe=self.prepare_probe("live", self.LIVENESS_PROBE),
        )

    def prepare_pod_labels(self) -> Dict[str, str]:
        labels = self.labels.as_dict()
        labels.update(self.conf.pod_labels or {})
        return labels

    def prepare_pod_spec(self) -> V1PodSpec:
        image_pull_secrets = None
        if self.spec.image_pull_secrets:
            image_pull_secrets = [
                V1LocalObjectReference(name=secret.get("name"))
                for secret in self.spec.image_pull_secrets
            ]
        return V1PodSpec(
            restart_policy=self.RESTART_POLICY,
            termination_grace_period_seconds=self.TERMINATION_GRACE_PERIOD_SECONDS,
            dns_policy=self.DNS_POLICY,
            image_pull_secrets=image_pull_secrets,
            containers=[self.prepare_keycloak_container()],
        )

    def prepare_base_stateful_set(self) -> V1StatefulSet:
        """Build the generated StatefulSet before options and overlay are applied."""
        return V1StatefulSet(
            api_version="apps/v1",
            kind="StatefulSet",
            metadata=V1ObjectMeta(
                name=self.stateful_set_name,
                namespace=self.namespace,
                labels=self.labels.as_dict(),
            ),
            spec=V1StatefulSetSpec(
                replicas=self.spec.instances,
                service_name=self.discovery_service_name,
                selector=V1LabelSelector(match_labels=self.labels.as_dict()),
                template=V1PodTemplateSpec(
                    metadata=V1ObjectMeta(labels=self.prepare_pod_labels()),
                    spec=self.prepare_pod_spec(),
                ),
            ),
        )

    def prepare_stateful_set(self) -> JSON:
        """Build the desired StatefulSet for this reconciliation cycle."""
        stateful_set = to_wire(self.prepare_base_stateful_set())
        self.dist_configurator.apply(stateful_set)
        stateful_set["spec"]["template"] = merge_pod_template(
            stateful_set["spec"]["template"], self.spec.pod_template
        )
        if self.existing_stateful_set is None:
            self.logger.info("No existing StatefulSet found, using the default")
        stateful_set, self._migration_state = coordinate_migration(
            self.existing_stateful_set, stateful_set, logger=self.logger
        )
        if self._migration_state.in_progress:
            self.sensor.on_migration_started(
                self.cluster,
                self.namespace,
                self._migration_state.previous_image,
                self._migration_state.desired_image,
            )
        stateful_set["metadata"]["annotations"] = self.prepare_hash_annotation(
            self.prepare_stateful_set_hash(stateful_set)
        )
        return stateful_set

    def prepare_stateful_set_hash(self, stateful_set: JSON) -> str:
        """Compute hash for the fields the operator owns."""
        return self.compute_hash(stateful_set["spec"])

    def prepare_stateful_set_patch(self, stateful_set: JSON, existing: JSON) -> List[JSON]:
        """JSON patch bringing ``existing`` to the desired ``stateful_set``.

        Only replicas, the pod template and the hash annotation are updated;
        the selector of a StatefulSet cannot be patched.
        """
        patch = [
            {
                "op": "replace",
                "path": "/spec/replicas",
                "value": stateful_set["spec"]["replicas"],
            },
            {
                "op": "replace",
                "path": "/spec/template",
                "value": stateful_set["spec"]["template"],
            },
        ]
        annotations = stateful_set["metadata"]["annotations"]
        if isinstance(dig(existing, "metadata", "annotations"), dict):
            key = self.HASH_ANNOTATION.replace("~", "~0").replace("/", "~1")
            patch.append(
                {
                    "op": "add",
                    "path": f"/metadata/annotations/{key}",
                    "value": annotations[self.HASH_ANNOTATION],
                }
            )
        else:
            patch.append(
                {"op": "add", "path": "/metadata/annotations", "value": annotations}
            )
        return patch

    def prepare_stateful_set_drift(self, existing: JSON) -> List[str]:
        """Fields of ``existing`` that differ from the desired StatefulSet."""
        drift = []
        desired_hash = dig(self.stateful_set, "metadata", "annotations", self.HASH_ANNOTATION)
        if dig(existing, "metadata", "annotations", self.HASH_ANNOTATION) != desired_hash:
            drift.append("spec.template")
        if dig(existing, "spec", "replicas") != self.stateful_set["spec"]["replicas"]:
            drift.append("spec.replicas")
        return drift

    def has_expected_match_labels(self, stateful_set: Optional[JSON]) -> bool:
        if stateful_set is None:
            return True
        return self.labels.matches(dig(stateful_set, "spec", "selector", "matchLabels"))

    def needs_recreate(self, stateful_set: Optional[JSON]) -> bool:
        """True when the live StatefulSet selector differs from the instance labels.

        The selector is immutable, such a StatefulSet must be deleted and
        created again instead of patched.
        """
        if stateful_set is None:
            return False
        if dig(stateful_set, "metadata", "deletionTimestamp"):
            return False
        return not self.has_expected_match_labels(stateful_set)

    @property
    def config_secrets_names(self) -> Set[str]:
        """Secrets the server configuration depends on."""
        if not type(self).stateful_set.is_set(self):
            self.prepare_env_vars()
        return set(self.option_secret_names) | set(self.dist_configurator.secret_names)

    @property
    def migration_state(self) -> MigrationState:
        self.stateful_set
        return self._migration_state

    @property
    def migration_in_progress(self) -> bool:
        return self.migration_state.in_progress

    # =============================================================================
    # Synchronization
    # =============================================================================

    def unite(self):
        """Ensure the StatefulSet is owned by the Keycloak resource."""
        kopf.adopt(self.stateful_set)

    async def synchronize(self) -> str:
        """Create, recreate or patch the live StatefulSet as needed.

        Returns the operation performed.
        """
        existing = self.existing_stateful_set
        if existing is not None and dig(existing, "metadata", "deletionTimestamp"):
            raise kopf.TemporaryError(
                f"StatefulSet {self.stateful_set_name} is being deleted",
                delay=self.conf.statefulset_deletion_timeout_seconds,
            )

        if self.needs_recreate(existing):
            self.logger.info(
                "Existing StatefulSet found with old label selector, it will be recreated"
            )
            await self.with_sensor("recreate", self.recreate_stateful_set(existing))
            return "recreate"

        if existing is None:
            await self.with_sensor(
                "create",
                self.create_stateful_set(self.apps_v1_api, self.namespace, self.stateful_set),
            )
            return "create"

        drift = self.prepare_stateful_set_drift(existing)
        if not drift:
            return "no-op"

        self.sensor.on_resource_drift_detected(
            self.cluster, self.stateful_set_name, self.namespace, self.RESOURCE_TYPE, drift
        )
        await self.with_sensor(
            "patch",
            self.patch_stateful_set(
                self.apps_v1_api,
                self.stateful_set_name,
                self.namespace,
                stateful_set=self.prepare_stateful_set_patch(self.stateful_set, existing),
            ),
        )
        return "patch"

    async def with_sensor(self, operation: str, coro):
        sensor_state = self.sensor.on_resource_sync_start(
            self.cluster, self.stateful_set_name, self.namespace, self.RESOURCE_TYPE
        )
        success, error = True, None
        try:
            return await coro
        except Exception as ex:
            success, error = False, ex
            raise
        finally:
            self.sensor.on_resource_sync_complete(
                self.cluster,
                self.stateful_set_name,
                self.namespace,
                self.RESOURCE_TYPE,
                sensor_state,
                operation,
                success,
                error,
            )

    async def recreate_stateful_set(self, existing: JSON):
        """Delete the live StatefulSet and create the desired one."""
        await self.delete_stateful_set(
            self.apps_v1_api,
            self.stateful_set_name,
            self.namespace,
            delete_options=V1DeleteOptions(
                preconditions=V1Preconditions(
                    resource_version=dig(existing, "metadata", "resourceVersion")
                )
            ),
        )
        # Give k8s time to execute the deletion before creating again.
        await asyncio.sleep(self.conf.statefulset_deletion_timeout_seconds)
        await self.create_stateful_set(self.apps_v1_api, self.namespace, self.stateful_set)

    async def rolling_restart(self):
        """Restart all Keycloak pods, one at a time."""
        await self.patch_stateful_set(
            self.apps_v1_api,
            self.stateful_set_name,
            self.namespace,
            stateful_set={
                "spec": {
                    "template": {
                        "metadata": {"annotations": {self.RESTARTED_AT_ANNOTATION: now()}}
                    }
                }
            },
        )

    # =============================================================================
    # Status
    # =============================================================================

    async def fetch_pods(self) -> List[JSON]:
        """Pods of this instance that belong to the update revision."""
        update_revision = dig(self.existing_stateful_set, "status", "updateRevision")
        selector = Labels(self.labels.as_dict()).include_revision_hash(update_revision)
        pods = await self.list_pods(self.core_v1_api, self.namespace, selector.as_dict())
        return [to_wire(pod) for pod in pods.items or []]

    async def check_for_pod_errors(self, status: KeycloakStatusAggregator):
        update_revision = dig(self.existing_stateful_set, "status", "updateRevision")
        if not update_revision:
            self.sensor.on_pod_errors_detected(self.cluster, self.namespace, 0)
            return
        errors = scan_pods(
            await self.fetch_pods(), self.labels.as_dict(), update_revision
        )
        for error in errors:
            self.logger.info(f"Found unhealthy container: {error}")
        self.sensor.on_pod_errors_detected(self.cluster, self.namespace, len(errors))
        status.add_errors(errors)

    async def update_status(self, status: KeycloakStatusAggregator) -> KeycloakStatusAggregator:
        """Record the observed health of the Keycloak cluster in ``status``."""
        status.set_selector(self.labels.as_str())
        status.add_warnings(validate_pod_template(self.spec.pod_template))
        self.dist_configurator.validate_options(status)
        status.set_config_secrets(self.config_secrets_names)

        existing = self.existing_stateful_set
        if existing is None:
            status.add_not_ready_message(
                "No existing StatefulSet found, waiting for creating a new one"
            )
            return status

        existing_status = existing.get("status")
        if existing_status is None:
            status.add_not_ready_message("Waiting for deployment status")
            return status

        ready = existing_status.get("readyReplicas") or 0
        status.set_ready_instances(ready)
        if ready < self.spec.instances:
            status.add_not_ready_message("Waiting for more replicas")
            await self.check_for_pod_errors(status)
        else:
            self.sensor.on_pod_errors_detected(self.cluster, self.namespace, 0)

        current_revision = existing_status.get("currentRevision")
        update_revision = existing_status.get("updateRevision")
        if self.migration_in_progress:
            status.add_not_ready_message(
                "Performing Keycloak upgrade, scaling down the deployment"
            )
        elif current_revision and update_revision and current_revision != update_revision:
            status.add_rolling_update_message("Rolling out deployment update")
        return status

    # =============================================================================
    # Cached
    # =============================================================================

    @cached_property
    def dist_configurator(self) -> KeycloakDistConfigurator:
        return KeycloakDistConfigurator(self.spec).configure()

    @cached_property
    def stateful_set(self) -> JSON:
        return self.prepare_stateful_set()

    @cached_property
    def api_client(self) -> ApiClient:
        if self._api_client is None:
            if self.shared_api_client is not None:
                self._api_client = self.shared_api_client
            else:
                self._api_client = ApiClient()
        return self._api_client

    @cached_property
    def apps_v1_api(self) -> AppsV1Api:
        if self._apps_v1_api is None:
            self._apps_v1_api = AppsV1Api(self.api_client)
        return self._apps_v1_api

    @cached_property
    def core_v1_api(self) -> CoreV1Api:
        if self._core_v1_api is None:
            self._core_v1_api = CoreV1Api(self.api_client)
        return self._core_v1_api
