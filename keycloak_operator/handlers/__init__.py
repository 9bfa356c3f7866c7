from . import keycloak
from . import probes

__all__ = [
    "keycloak",
    "probes",
]
