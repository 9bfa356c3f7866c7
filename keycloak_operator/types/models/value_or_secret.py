from typing import Optional
from keycloak_operator.types.base import BaseModel


class SecretKeySelector(BaseModel):
    """Reference to a key of a secret in the resource's namespace."""

    name: str
    key: str
    optional: Optional[bool]


class ValueOrSecret(BaseModel):
    """A named server option holding either a literal value or a secret reference."""

    name: str
    value: Optional[str]
    secret: Optional[SecretKeySelector]

    @property
    def is_secret(self) -> bool:
        return self.value is None and self.secret is not None
