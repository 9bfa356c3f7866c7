from marshmallow import fields
from keycloak_operator.types.base import BaseSchema
from keycloak_operator.types.models import HostnameSpec


class HostnameSpecSchema(BaseSchema):
    __model__ = HostnameSpec

    hostname = fields.Str(data_key="hostname", allow_none=True, load_default=None)
    admin = fields.Str(data_key="admin", allow_none=True, load_default=None)
    admin_url = fields.Str(data_key="adminUrl", allow_none=True, load_default=None)
    strict = fields.Bool(data_key="strict", allow_none=True, load_default=None)
    strict_backchannel = fields.Bool(
        data_key="strictBackchannel", allow_none=True, load_default=None
    )
