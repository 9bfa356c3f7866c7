from typing import Dict


class ResourceLabels:
    KEYCLOAK_APP_LABEL = "app"

    KEYCLOAK_APP_NAME = "keycloak"

    CONTROLLER_REVISION_HASH_LABEL = "controller-revision-hash"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = labels if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def as_str(self) -> str:
        """Return labels as a selector string, e.g. `a=1,b=2`.

        Keys are sorted so the string is identical across reconciliations.
        """
        return ",".join(f"{k}={v}" for k, v in sorted(self._labels.items()))

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_app(self, app: str) -> "Labels":
        return self.include(self.KEYCLOAK_APP_LABEL, app)

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(self.KUBERNETES_INSTANCE_LABEL, instance_name)

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    def include_revision_hash(self, revision: str) -> "Labels":
        return self.include(self.CONTROLLER_REVISION_HASH_LABEL, revision)

    def matches(self, labels: Dict[str, str]) -> bool:
        """Returns True if `labels` is exactly this label set."""
        return dict(labels or {}) == self._labels

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Labels):
            return self._labels == other._labels
        return NotImplemented

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def generate_instance_labels(cls, instance_name: str, managed_by: str) -> "Labels":
        """Canonical labels identifying every object owned by one Keycloak instance."""
        return (
            Labels()
            .include_app(cls.KEYCLOAK_APP_NAME)
            .include_kubernetes_managed_by(managed_by)
            .include_kubernetes_instance(instance_name)
        )
