import base64
from typing import Awaitable, Callable, List, Optional
from kubernetes_asyncio.client import V1Secret
from keycloak_operator.types.models import ValueOrSecret
from keycloak_operator.utils.errors import (
    OptionNotDefined,
    SecretKeyNotFound,
    SecretNotFound,
)

SecretReader = Callable[[str, str], Awaitable[Optional[V1Secret]]]


class ConfigResolver:
    """Resolves server options declared on a Keycloak resource to their values.

    Secrets are read through ``read_secret(name, namespace)``, which returns
    None when the secret does not exist. Nothing is cached, every call reads
    the secret again.
    """

    def __init__(
        self,
        options: List[ValueOrSecret],
        namespace: str,
        read_secret: SecretReader,
    ):
        self.options = list(options or [])
        self.namespace = namespace
        self.read_secret = read_secret

    def find(self, name: str) -> Optional[ValueOrSecret]:
        return next((o for o in self.options if o.name == name), None)

    async def resolve(self, name: str) -> Optional[str]:
        """Return the value of option ``name``, or None if it is not declared.

        Raises:
            OptionNotDefined: the option has neither a value nor a secret.
            SecretNotFound: the referenced secret does not exist.
            SecretKeyNotFound: the referenced secret lacks the key.
        """
        option = self.find(name)
        if option is None:
            return None
        if option.value is not None:
            return option.value
        selector = option.secret
        if selector is None:
            raise OptionNotDefined(option.name)

        secret = await self.read_secret(selector.name, self.namespace)
        if secret is None:
            raise SecretNotFound(selector.name, self.namespace)
        data = secret.data or {}
        if selector.key not in data:
            raise SecretKeyNotFound(selector.name, selector.key)
        return base64.b64decode(data[selector.key]).decode("utf-8")
