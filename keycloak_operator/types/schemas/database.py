from marshmallow import fields
from keycloak_operator.types.base import BaseSchema
from keycloak_operator.types.models import DatabaseSpec
from keycloak_operator.types.schemas.value_or_secret import SecretKeySelectorSchema


class DatabaseSpecSchema(BaseSchema):
    __model__ = DatabaseSpec

    vendor = fields.Str(data_key="vendor", allow_none=True, load_default=None)
    host = fields.Str(data_key="host", allow_none=True, load_default=None)
    port = fields.Int(data_key="port", allow_none=True, load_default=None)
    database = fields.Str(data_key="database", allow_none=True, load_default=None)
    db_schema = fields.Str(data_key="schema", allow_none=True, load_default=None)
    url = fields.Str(data_key="url", allow_none=True, load_default=None)
    username_secret = fields.Nested(
        SecretKeySelectorSchema(),
        data_key="usernameSecret",
        allow_none=True,
        load_default=None,
    )
    password_secret = fields.Nested(
        SecretKeySelectorSchema(),
        data_key="passwordSecret",
        allow_none=True,
        load_default=None,
    )
    pool_initial_size = fields.Int(
        data_key="poolInitialSize", allow_none=True, load_default=None
    )
    pool_min_size = fields.Int(data_key="poolMinSize", allow_none=True, load_default=None)
    pool_max_size = fields.Int(data_key="poolMaxSize", allow_none=True, load_default=None)
