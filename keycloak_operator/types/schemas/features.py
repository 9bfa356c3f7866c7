from marshmallow import fields
from keycloak_operator.types.base import BaseSchema
from keycloak_operator.types.models import FeatureSpec, TransactionsSpec


class FeatureSpecSchema(BaseSchema):
    __model__ = FeatureSpec

    enabled = fields.List(fields.Str(), data_key="enabled", allow_none=True, load_default=None)
    disabled = fields.List(fields.Str(), data_key="disabled", allow_none=True, load_default=None)


class TransactionsSpecSchema(BaseSchema):
    __model__ = TransactionsSpec

    xa_enabled = fields.Bool(data_key="xaEnabled", allow_none=True, load_default=None)
