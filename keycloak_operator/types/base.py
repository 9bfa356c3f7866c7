from types import SimpleNamespace
from typing import Any, Dict
from marshmallow import INCLUDE, EXCLUDE, Schema, post_load

EXCLUDE = EXCLUDE
JSON = Dict[str, Any]
MAX_REPR_LEN = 80


class BaseModel(SimpleNamespace):
    """BaseModel that all CR models inherit from.

    Every loaded field becomes an instance attribute. Nested models are built
    by their own schemas, raw wire sections (e.g. pod templates) stay as dicts.
    """

    def __init__(self, **kwargs: Any) -> None:
        self.__dict__.update(kwargs)

    def __repr__(self) -> str:
        repr_ = super().__repr__()
        if len(repr_) > MAX_REPR_LEN:
            return repr_[:MAX_REPR_LEN] + " ...)"
        return repr_

    def as_dict(self) -> Dict[str, Any]:
        result = {}
        for key, value in self.__dict__.items():
            if isinstance(value, BaseModel):
                result[key] = value.as_dict()
            elif isinstance(value, list):
                result[key] = [
                    item.as_dict() if isinstance(item, BaseModel) else item
                    for item in value
                ]
            else:
                result[key] = value
        return result


class UnknownModel(BaseModel):
    """Model used when a schema does not declare `__model__`."""


class BaseSchema(Schema):
    """The default schema for all models."""

    __model__: Any = UnknownModel
    """Object created when the load method is called."""

    class Meta:
        unknown = INCLUDE
        ordered = True

    @post_load
    def make_object(self, data: JSON, **kwargs: Any) -> "__model__":
        """Build model for the given `__model__` class attribute."""
        return self.__model__(**data)
