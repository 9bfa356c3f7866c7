from .value_or_secret import SecretKeySelectorSchema, ValueOrSecretSchema
from .http import HttpSpecSchema
from .hostname import HostnameSpecSchema
from .database import DatabaseSpecSchema
from .features import FeatureSpecSchema, TransactionsSpecSchema
from .keycloak_spec import KeycloakSpecSchema, UnsupportedSpecSchema

__all__ = [
    "SecretKeySelectorSchema",
    "ValueOrSecretSchema",
    "HttpSpecSchema",
    "HostnameSpecSchema",
    "DatabaseSpecSchema",
    "FeatureSpecSchema",
    "TransactionsSpecSchema",
    "KeycloakSpecSchema",
    "UnsupportedSpecSchema",
]
