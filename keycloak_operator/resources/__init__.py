from .keycloak_deployment import KeycloakDeployment
from .status import KeycloakStatusAggregator, StatusCategory

__all__ = ["KeycloakDeployment", "KeycloakStatusAggregator", "StatusCategory"]
