import keycloak_operator
import mmh3
import hashlib
from typing import Any, Dict, List, Optional, Union
from keycloak_operator.utils.helpers import canonicalize_dict
from keycloak_operator.common.models.labels import Labels
from keycloak_operator.utils.errors import already_exists_error, not_found_error
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    V1DeleteOptions,
    V1PodList,
    V1Secret,
    V1StatefulSet,
)

JSON = Dict[str, Any]


class BaseResource:
    """Base resource model."""

    KEYCLOAK_OPERATOR_NAME = "keycloak-operator"

    HASH_ANNOTATION = "k8s.keycloak.org/resource-hash"

    _cluster: str
    _namespace: str
    _labels: Labels

    def __init__(self, cluster: str, namespace: str, labels: Labels):
        self._cluster = cluster
        self._namespace = namespace
        self._labels = labels

    @property
    def cluster(self) -> str:
        return self._cluster

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def labels(self) -> Labels:
        return self._labels

    @property
    def operator_version(self) -> str:
        return keycloak_operator.__version__

    def compute_hash(self, data: Any) -> str:
        """Compute a murmur3 hash."""
        if isinstance(data, dict):
            _data = canonicalize_dict(data)
        elif isinstance(data, str):
            _data = data.encode()
        else:
            raise ValueError(f"Hash of {type(data)} is not supported.")
        mumur_str = str(mmh3.hash128(_data))

        hash_obj = hashlib.sha256(mumur_str.encode("utf-8"))
        full_hash = hash_obj.hexdigest()

        # First 16 characters keep annotations readable
        return full_hash[:16]

    def prepare_hash_annotation(self, hash: Union[str, int]) -> Dict[str, str]:
        """Prepare hash annotation for k8s resources."""
        return {self.HASH_ANNOTATION: str(hash)}

    async def fetch_stateful_set(
        self, apps_v1_api: AppsV1Api, name: str, namespace: str
    ) -> Optional[V1StatefulSet]:
        try:
            return await apps_v1_api.read_namespaced_stateful_set(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        namespace: str,
        stateful_set: JSON,
    ):
        try:
            await apps_v1_api.create_namespaced_stateful_set(
                namespace=namespace, body=stateful_set
            )
        except ApiException as ex:
            if already_exists_error(ex):
                await self.replace_stateful_set(
                    apps_v1_api,
                    name=stateful_set["metadata"]["name"],
                    namespace=namespace,
                    stateful_set=stateful_set,
                )
            else:
                raise

    async def replace_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        name: str,
        namespace: str,
        stateful_set: JSON,
    ):
        await apps_v1_api.replace_namespaced_stateful_set(
            name=name, namespace=namespace, body=stateful_set
        )

    async def patch_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        name: str,
        namespace: str,
        stateful_set: Union[JSON, List[JSON]],
    ):
        """Patch a statefulset.

        A list body is sent as a JSON patch, a dict body as a strategic merge patch.
        """
        await apps_v1_api.patch_namespaced_stateful_set(
            name=name, namespace=namespace, body=stateful_set
        )

    async def delete_stateful_set(
        self,
        apps_v1_api: AppsV1Api,
        name: str,
        namespace: str,
        delete_options: V1DeleteOptions,
    ):
        try:
            await apps_v1_api.delete_namespaced_stateful_set(
                name, namespace, body=delete_options
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise

    async def fetch_secret(
        self, core_v1_api: CoreV1Api, name: str, namespace: str
    ) -> Optional[V1Secret]:
        try:
            return await core_v1_api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def list_pods(
        self, core_v1_api: CoreV1Api, namespace: str, label_selector: Dict[str, str] = None
    ) -> V1PodList:
        """List pods in namespace, optionally filtered by label selector.

        Args:
            core_v1_api: CoreV1Api instance
            namespace: Namespace to list pods in
            label_selector: Dictionary of label key-value pairs to filter pods
        """
        label_selector_str = None
        if label_selector:
            label_selector_str = ",".join(
                f"{k}={v}" for k, v in sorted(label_selector.items())
            )

        return await core_v1_api.list_namespaced_pod(
            namespace=namespace, label_selector=label_selector_str
        )
