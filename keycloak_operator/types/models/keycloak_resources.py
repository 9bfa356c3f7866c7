class KeycloakResources:
    """Encapsulates the naming scheme used for the resources which the operator manages
    for a Keycloak cluster."""

    DISCOVERY_SERVICE_SUFFIX = "-discovery"

    @classmethod
    def stateful_set_name(self, cluster_name: str):
        """Returns the name of the Keycloak `StatefulSet` for a cluster of the given name."""
        return cluster_name

    @classmethod
    def discovery_service_name(self, cluster_name: str):
        """Returns the name of the headless service used for cluster member discovery."""
        return f"{cluster_name}{self.DISCOVERY_SERVICE_SUFFIX}"

    @classmethod
    def discovery_dns_query(self, cluster_name: str, namespace: str):
        """Returns the DNS query cluster members use to find each other."""
        return f"{self.discovery_service_name(cluster_name)}.{namespace}"

    @classmethod
    def admin_secret_name(self, cluster_name: str):
        """Returns the name of the secret holding the initial admin credentials."""
        return f"{cluster_name}-initial-admin"
