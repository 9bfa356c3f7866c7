from functools import lru_cache
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Optional,
    Type,
    TypeVar,
    cast,
)
from kubernetes_asyncio.client import ApiClient

RT = TypeVar("RT")


class cached_property(Generic[RT]):
    """Cached property.

    A property descriptor that caches the return value
    of the get function.

    Examples:
        .. sourcecode:: python

            @cached_property
            def stateful_set(self):
                return self.prepare_stateful_set()
    """

    def __init__(
        self,
        fget: Callable[[Any], RT],
        doc: str = None,
    ) -> None:
        self.__get: Callable[[Any], RT] = fget
        self.__doc__ = doc or fget.__doc__
        self.__name__ = fget.__name__
        self.__module__ = fget.__module__

    def is_set(self, obj: Any) -> bool:
        return self.__name__ in obj.__dict__

    def __get__(self, obj: Any, type: Type = None) -> RT:
        if obj is None:
            return cast(RT, self)
        try:
            return cast(RT, obj.__dict__[self.__name__])
        except KeyError:
            value = obj.__dict__[self.__name__] = self.__get(obj)
            return value

    def __set__(self, obj: Any, value: RT) -> None:
        obj.__dict__[self.__name__] = value

    def __delete__(self, obj: Any) -> None:
        obj.__dict__.pop(self.__name__, None)


class WireSerializer(ApiClient):
    """ApiClient used only for its model serialization.

    It never talks to the API server, so no REST client (and no aiohttp
    session) is created.
    """

    def __init__(self) -> None:
        pass


@lru_cache(maxsize=1)
def _serializer() -> WireSerializer:
    return WireSerializer()


def to_wire(obj: Any) -> Optional[Dict[str, Any]]:
    """Convert a kubernetes model into its API (camelCase) dict representation.

    Keys come from each model's `attribute_map` and unset (None) attributes
    are dropped. Plain dicts and lists are sanitized recursively and
    returned as new objects.
    """
    if obj is None:
        return None
    return _serializer().sanitize_for_serialization(obj)


def dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    for key in path:
        if isinstance(key, int):
            if not isinstance(data, list) or not -len(data) <= key < len(data):
                return None
        elif not isinstance(data, dict):
            return None
        data = data[key] if isinstance(key, int) else data.get(key)
        if data is None:
            return None
    return data
