from keycloak_operator.types.models import KeycloakSpec

DEFAULT_HTTP_PORT = 8080
DEFAULT_HTTPS_PORT = 8443


def is_tls_configured(spec: KeycloakSpec) -> bool:
    """True when the resource names a TLS secret for the server certificate."""
    http = spec.http
    return http is not None and isinstance(http.tls_secret, str) and bool(http.tls_secret.strip())


def get_service_port(spec: KeycloakSpec) -> int:
    """The port Keycloak serves on: https when TLS is configured, http otherwise."""
    http = spec.http
    if is_tls_configured(spec):
        return http.https_port or DEFAULT_HTTPS_PORT
    if http is not None and http.http_port:
        return http.http_port
    return DEFAULT_HTTP_PORT
