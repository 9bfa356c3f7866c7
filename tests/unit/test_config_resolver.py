"""Unit tests for resolving Keycloak server options."""

import asyncio
import base64
import kopf
import pytest
from unittest.mock import AsyncMock
from kubernetes_asyncio.client import V1Secret
from keycloak_operator.resources.config_resolver import ConfigResolver
from keycloak_operator.types.schemas import ValueOrSecretSchema
from keycloak_operator.utils.errors import (
    ConfigurationError,
    OptionNotDefined,
    SecretKeyNotFound,
    SecretNotFound,
)


def options(*raw):
    return [ValueOrSecretSchema().load(option) for option in raw]


def secret(**data):
    return V1Secret(
        data={k: base64.b64encode(v.encode()).decode() for k, v in data.items()}
    )


class TestConfigResolver:
    def test_literal_value(self):
        read_secret = AsyncMock()
        resolver = ConfigResolver(options({"name": "x", "value": "hello"}), "iam", read_secret)

        assert asyncio.run(resolver.resolve("x")) == "hello"
        read_secret.assert_not_called()

    def test_undeclared_option_is_absent(self):
        resolver = ConfigResolver([], "iam", AsyncMock())
        assert asyncio.run(resolver.resolve("x")) is None

    def test_secret_value_is_decoded(self):
        read_secret = AsyncMock(return_value=secret(path="/auth"))
        resolver = ConfigResolver(
            options({"name": "http-relative-path", "secretRef": {"name": "kc-config", "key": "path"}}),
            "iam",
            read_secret,
        )

        assert asyncio.run(resolver.resolve("http-relative-path")) == "/auth"
        read_secret.assert_awaited_once_with("kc-config", "iam")

    def test_secret_is_read_on_every_call(self):
        read_secret = AsyncMock(return_value=secret(path="/auth"))
        resolver = ConfigResolver(
            options({"name": "p", "secretRef": {"name": "kc-config", "key": "path"}}),
            "iam",
            read_secret,
        )
        asyncio.run(resolver.resolve("p"))
        asyncio.run(resolver.resolve("p"))
        assert read_secret.await_count == 2

    def test_legacy_secret_field(self):
        read_secret = AsyncMock(return_value=secret(path="/auth"))
        resolver = ConfigResolver(
            options({"name": "p", "secret": {"name": "kc-config", "key": "path"}}),
            "iam",
            read_secret,
        )
        assert asyncio.run(resolver.resolve("p")) == "/auth"

    def test_missing_secret(self):
        resolver = ConfigResolver(
            options({"name": "p", "secretRef": {"name": "missing", "key": "path"}}),
            "iam",
            AsyncMock(return_value=None),
        )
        with pytest.raises(SecretNotFound) as exc_info:
            asyncio.run(resolver.resolve("p"))
        assert exc_info.value.secret_name == "missing"
        assert exc_info.value.namespace == "iam"

    def test_missing_secret_key(self):
        resolver = ConfigResolver(
            options({"name": "p", "secretRef": {"name": "kc-config", "key": "path"}}),
            "iam",
            AsyncMock(return_value=secret(other="x")),
        )
        with pytest.raises(SecretKeyNotFound) as exc_info:
            asyncio.run(resolver.resolve("p"))
        assert exc_info.value.key == "path"

    def test_secret_without_data(self):
        resolver = ConfigResolver(
            options({"name": "p", "secretRef": {"name": "kc-config", "key": "path"}}),
            "iam",
            AsyncMock(return_value=V1Secret()),
        )
        with pytest.raises(SecretKeyNotFound):
            asyncio.run(resolver.resolve("p"))

    def test_option_without_value_or_secret(self):
        resolver = ConfigResolver(options({"name": "p"}), "iam", AsyncMock())
        with pytest.raises(OptionNotDefined):
            asyncio.run(resolver.resolve("p"))

    def test_errors_are_retried_by_kopf(self):
        assert issubclass(SecretNotFound, ConfigurationError)
        assert issubclass(SecretKeyNotFound, kopf.TemporaryError)
        assert issubclass(OptionNotDefined, kopf.TemporaryError)
