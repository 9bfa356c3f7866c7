from typing import List, Optional
from keycloak_operator.types.base import BaseModel


class FeatureSpec(BaseModel):
    enabled: Optional[List[str]]
    disabled: Optional[List[str]]


class TransactionsSpec(BaseModel):
    xa_enabled: Optional[bool]
