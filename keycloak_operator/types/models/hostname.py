from typing import Optional
from keycloak_operator.types.base import BaseModel


class HostnameSpec(BaseModel):
    hostname: Optional[str]
    admin: Optional[str]
    admin_url: Optional[str]
    strict: Optional[bool]
    strict_backchannel: Optional[bool]
