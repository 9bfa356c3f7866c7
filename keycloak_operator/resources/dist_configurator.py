import logging
from typing import Any, Dict, List, Optional, Set, Union
from keycloak_operator.types.models import KeycloakSpec, SecretKeySelector
from keycloak_operator.utils.helpers import option_env_var_name, to_option_value
from keycloak_operator.utils.objects import dig

logger = logging.getLogger(__name__)

JSON = Dict[str, Any]
OptionValue = Union[str, int, bool, List[str], SecretKeySelector]


class KeycloakDistConfigurator:
    """Translates first-class Keycloak resource fields into server options.

    Every configured option becomes a `KC_*` environment variable on the
    keycloak container. Options backed by secrets are referenced through
    `secretKeyRef` and their secrets are collected in `secret_names`.
    """

    TLS_VOLUME_NAME = "keycloak-tls-certificates"
    CERTIFICATES_FOLDER = "/mnt/certificates"

    spec: KeycloakSpec
    options: Dict[str, OptionValue]
    secret_names: Set[str]

    def __init__(self, spec: KeycloakSpec):
        self.spec = spec
        self.options = {}
        self.secret_names = set()
        self.volumes: List[JSON] = []
        self.volume_mounts: List[JSON] = []

    def configure(self) -> "KeycloakDistConfigurator":
        self.configure_hostname()
        self.configure_features()
        self.configure_transactions()
        self.configure_http()
        self.configure_database()
        return self

    def _set(self, option: str, value: Optional[OptionValue]):
        if value is None:
            return
        if isinstance(value, list) and not value:
            return
        if isinstance(value, SecretKeySelector):
            self.secret_names.add(value.name)
        self.options[option] = value

    def configure_hostname(self):
        hostname = self.spec.hostname
        if hostname is None:
            return
        self._set("hostname", hostname.hostname)
        self._set("hostname-admin", hostname.admin)
        self._set("hostname-admin-url", hostname.admin_url)
        self._set("hostname-strict", hostname.strict)
        self._set("hostname-strict-backchannel", hostname.strict_backchannel)

    def configure_features(self):
        features = self.spec.features
        if features is None:
            return
        self._set("features", features.enabled)
        self._set("features-disabled", features.disabled)

    def configure_transactions(self):
        transaction = self.spec.transaction
        if transaction is None:
            return
        self._set("transaction-xa-enabled", transaction.xa_enabled)

    def configure_http(self):
        http = self.spec.http
        if http is None:
            return
        self._set("http-enabled", http.http_enabled)
        self._set("http-port", http.http_port)
        self._set("https-port", http.https_port)
        if http.tls_secret:
            self._set("https-certificate-file", f"{self.CERTIFICATES_FOLDER}/tls.crt")
            self._set("https-certificate-key-file", f"{self.CERTIFICATES_FOLDER}/tls.key")
            self.secret_names.add(http.tls_secret)
            self.volumes.append(
                {
                    "name": self.TLS_VOLUME_NAME,
                    "secret": {"secretName": http.tls_secret, "optional": False},
                }
            )
            self.volume_mounts.append(
                {"name": self.TLS_VOLUME_NAME, "mountPath": self.CERTIFICATES_FOLDER}
            )

    def configure_database(self):
        db = self.spec.db
        if db is None:
            return
        self._set("db", db.vendor)
        self._set("db-url-host", db.host)
        self._set("db-url-port", db.port)
        self._set("db-url-database", db.database)
        self._set("db-schema", db.db_schema)
        self._set("db-url", db.url)
        self._set("db-username", db.username_secret)
        self._set("db-password", db.password_secret)
        self._set("db-pool-initial-size", db.pool_initial_size)
        self._set("db-pool-min-size", db.pool_min_size)
        self._set("db-pool-max-size", db.pool_max_size)

    def env_vars(self) -> List[JSON]:
        env = []
        for option, value in self.options.items():
            entry: JSON = {"name": option_env_var_name(option)}
            if isinstance(value, SecretKeySelector):
                ref = {"name": value.name, "key": value.key}
                if value.optional is not None:
                    ref["optional"] = value.optional
                entry["valueFrom"] = {"secretKeyRef": ref}
            else:
                entry["value"] = to_option_value(value)
            env.append(entry)
        return env

    def apply(self, stateful_set: JSON) -> JSON:
        """Add the configured options, volumes and mounts to ``stateful_set``.

        Option env vars replace any env var of the same name already present
        on the keycloak container. ``stateful_set`` is modified in place.
        """
        pod_spec = dig(stateful_set, "spec", "template", "spec")
        container = dig(pod_spec, "containers", 0)
        if container is None:
            return stateful_set

        env_vars = self.env_vars()
        replaced = {e["name"] for e in env_vars}
        container["env"] = [
            e for e in container.get("env") or [] if e.get("name") not in replaced
        ] + env_vars

        if self.volume_mounts:
            container["volumeMounts"] = (container.get("volumeMounts") or []) + self.volume_mounts
        if self.volumes:
            pod_spec["volumes"] = (pod_spec.get("volumes") or []) + self.volumes
        return stateful_set

    def validate_options(self, status) -> None:
        """Warn about first-class options also given as additional options."""
        declared = {o.name for o in self.spec.additional_options or []}
        duplicated = sorted(declared & set(self.options))
        if duplicated:
            logger.debug(f"Options set both first-class and as additional options: {duplicated}")
            status.add_warning_message(
                "You need to specify these fields as the first-class citizen of the CR: "
                + ",".join(duplicated)
            )
