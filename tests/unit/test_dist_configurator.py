"""Unit tests for first-class Keycloak server options."""

import pytest
from unittest.mock import Mock
from keycloak_operator.resources.dist_configurator import KeycloakDistConfigurator
from keycloak_operator.resources.keycloak_service import get_service_port, is_tls_configured
from keycloak_operator.types.schemas import KeycloakSpecSchema


def configurator(**spec):
    spec.setdefault("instances", 1)
    return KeycloakDistConfigurator(KeycloakSpecSchema().load(spec)).configure()


def stateful_set(env=None):
    return {
        "spec": {
            "template": {
                "spec": {"containers": [{"name": "keycloak", "env": env or []}]}
            }
        }
    }


class TestConfigure:
    def test_nothing_configured(self):
        dist = configurator()
        assert dist.options == {}
        assert dist.env_vars() == []
        assert dist.secret_names == set()

    def test_hostname_and_features(self):
        dist = configurator(
            hostname={"hostname": "sso.example.com", "strict": False},
            features={"enabled": ["docker", "token-exchange"], "disabled": []},
            transaction={"xaEnabled": True},
        )
        env = {e["name"]: e["value"] for e in dist.env_vars()}
        assert env == {
            "KC_HOSTNAME": "sso.example.com",
            "KC_HOSTNAME_STRICT": "false",
            "KC_FEATURES": "docker,token-exchange",
            "KC_TRANSACTION_XA_ENABLED": "true",
        }

    def test_database_secrets(self):
        dist = configurator(
            db={
                "vendor": "postgres",
                "host": "pg",
                "port": 5432,
                "usernameSecret": {"name": "db-creds", "key": "user"},
                "passwordSecret": {"name": "db-creds", "key": "password"},
            }
        )
        env = {e["name"]: e for e in dist.env_vars()}
        assert env["KC_DB"] == {"name": "KC_DB", "value": "postgres"}
        assert env["KC_DB_URL_PORT"] == {"name": "KC_DB_URL_PORT", "value": "5432"}
        assert env["KC_DB_PASSWORD"]["valueFrom"] == {
            "secretKeyRef": {"name": "db-creds", "key": "password"}
        }
        assert dist.secret_names == {"db-creds"}

    def test_tls(self):
        dist = configurator(http={"tlsSecret": "example-tls"})
        assert dist.options["https-certificate-file"] == "/mnt/certificates/tls.crt"
        assert dist.options["https-certificate-key-file"] == "/mnt/certificates/tls.key"
        assert dist.secret_names == {"example-tls"}
        assert dist.volumes == [
            {
                "name": "keycloak-tls-certificates",
                "secret": {"secretName": "example-tls", "optional": False},
            }
        ]


class TestApply:
    def test_replaces_env_of_same_name(self):
        dist = configurator(hostname={"hostname": "sso.example.com"})
        sts = stateful_set(
            [{"name": "KC_HOSTNAME", "value": "old"}, {"name": "KC_CACHE", "value": "ispn"}]
        )
        dist.apply(sts)
        env = sts["spec"]["template"]["spec"]["containers"][0]["env"]
        assert env == [
            {"name": "KC_CACHE", "value": "ispn"},
            {"name": "KC_HOSTNAME", "value": "sso.example.com"},
        ]

    def test_mounts_tls_secret(self):
        dist = configurator(http={"tlsSecret": "example-tls"})
        sts = dist.apply(stateful_set())
        pod_spec = sts["spec"]["template"]["spec"]
        assert pod_spec["volumes"][0]["secret"]["secretName"] == "example-tls"
        assert pod_spec["containers"][0]["volumeMounts"] == [
            {"name": "keycloak-tls-certificates", "mountPath": "/mnt/certificates"}
        ]

    def test_without_container(self):
        dist = configurator(hostname={"hostname": "sso.example.com"})
        sts = {"spec": {"template": {"spec": {"containers": []}}}}
        assert dist.apply(sts) == {"spec": {"template": {"spec": {"containers": []}}}}


class TestValidateOptions:
    def test_duplicated_options(self):
        dist = configurator(
            hostname={"hostname": "sso.example.com"},
            db={"vendor": "postgres"},
            additionalOptions=[
                {"name": "hostname", "value": "x"},
                {"name": "db", "value": "mysql"},
                {"name": "log-level", "value": "debug"},
            ],
        )
        status = Mock()
        dist.validate_options(status)
        status.add_warning_message.assert_called_once_with(
            "You need to specify these fields as the first-class citizen of the CR: db,hostname"
        )

    def test_no_duplicates(self):
        dist = configurator(additionalOptions=[{"name": "log-level", "value": "debug"}])
        status = Mock()
        dist.validate_options(status)
        status.add_warning_message.assert_not_called()


class TestServicePort:
    @pytest.mark.parametrize(
        "http,tls,port",
        [
            (None, False, 8080),
            ({"httpPort": 8081}, False, 8081),
            ({"tlsSecret": "example-tls"}, True, 8443),
            ({"tlsSecret": "example-tls", "httpsPort": 9443}, True, 9443),
            ({"tlsSecret": "  "}, False, 8080),
        ],
    )
    def test_port(self, http, tls, port):
        raw = {"instances": 1}
        if http is not None:
            raw["http"] = http
        spec = KeycloakSpecSchema().load(raw)
        assert is_tls_configured(spec) is tls
        assert get_service_port(spec) == port
