from .value_or_secret import SecretKeySelector, ValueOrSecret
from .http import HttpSpec
from .hostname import HostnameSpec
from .database import DatabaseSpec
from .features import FeatureSpec, TransactionsSpec
from .keycloak_spec import KeycloakSpec, UnsupportedSpec
from .keycloak_resources import KeycloakResources

__all__ = [
    "SecretKeySelector",
    "ValueOrSecret",
    "HttpSpec",
    "HostnameSpec",
    "DatabaseSpec",
    "FeatureSpec",
    "TransactionsSpec",
    "KeycloakSpec",
    "UnsupportedSpec",
    "KeycloakResources",
]
