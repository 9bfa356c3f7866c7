from typing import Optional
from keycloak_operator.types.base import BaseModel


class HttpSpec(BaseModel):
    http_enabled: Optional[bool]
    http_port: Optional[int]
    https_port: Optional[int]
    #: Name of a `kubernetes.io/tls` secret holding the server certificate.
    tls_secret: Optional[str]
