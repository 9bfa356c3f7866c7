from marshmallow import fields
from keycloak_operator.types.base import BaseSchema
from keycloak_operator.types.models import HttpSpec


class HttpSpecSchema(BaseSchema):
    __model__ = HttpSpec

    http_enabled = fields.Bool(data_key="httpEnabled", allow_none=True, load_default=None)
    http_port = fields.Int(data_key="httpPort", allow_none=True, load_default=None)
    https_port = fields.Int(data_key="httpsPort", allow_none=True, load_default=None)
    tls_secret = fields.Str(data_key="tlsSecret", allow_none=True, load_default=None)
