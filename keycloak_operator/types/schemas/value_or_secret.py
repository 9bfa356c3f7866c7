from marshmallow import ValidationError, fields, pre_load, validates_schema
from keycloak_operator.types.base import BaseSchema
from keycloak_operator.types.models import SecretKeySelector, ValueOrSecret


class SecretKeySelectorSchema(BaseSchema):
    __model__ = SecretKeySelector

    name = fields.Str(data_key="name", required=True)
    key = fields.Str(data_key="key", required=True)
    optional = fields.Bool(data_key="optional", allow_none=True, load_default=None)


class ValueOrSecretSchema(BaseSchema):
    __model__ = ValueOrSecret

    name = fields.Str(data_key="name", required=True)
    value = fields.Str(data_key="value", allow_none=True, load_default=None)
    secret = fields.Nested(
        SecretKeySelectorSchema(),
        data_key="secretRef",
        allow_none=True,
        load_default=None,
    )

    @pre_load
    def accept_legacy_secret_key(self, data, **kwargs):
        """Older resources reference secrets under `secret` instead of `secretRef`."""
        if isinstance(data, dict) and "secret" in data and "secretRef" not in data:
            data = dict(data)
            data["secretRef"] = data.pop("secret")
        return data

    @validates_schema
    def validate_single_source(self, data, **kwargs):
        if data.get("value") is not None and data.get("secret") is not None:
            raise ValidationError(
                "Option '%s' sets both value and secretRef" % data.get("name")
            )
