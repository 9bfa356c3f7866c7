from typing import Optional
from keycloak_operator.types.base import BaseModel
from keycloak_operator.types.models.value_or_secret import SecretKeySelector


class DatabaseSpec(BaseModel):
    vendor: Optional[str]
    host: Optional[str]
    port: Optional[int]
    database: Optional[str]
    db_schema: Optional[str]
    url: Optional[str]
    username_secret: Optional[SecretKeySelector]
    password_secret: Optional[SecretKeySelector]
    pool_initial_size: Optional[int]
    pool_min_size: Optional[int]
    pool_max_size: Optional[int]
