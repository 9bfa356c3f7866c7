import json
import kopf
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_NOT_FOUND = "notfound"

#: Seconds kopf waits before retrying a cycle aborted by a configuration error
CONFIGURATION_RETRY_DELAY = 30


class ConfigurationError(kopf.TemporaryError):
    """A configuration option could not be resolved; the cycle is retried later."""

    def __init__(self, message: str, delay: float = CONFIGURATION_RETRY_DELAY):
        super().__init__(message, delay=delay)


class OptionNotDefined(ConfigurationError):
    """An option is declared with neither a value nor a secret reference."""

    def __init__(self, option: str):
        self.option = option
        super().__init__(f"Secret {option} not defined")


class SecretNotFound(ConfigurationError):
    def __init__(self, secret_name: str, namespace: str):
        self.secret_name = secret_name
        self.namespace = namespace
        super().__init__(f"Secret {secret_name} not found in namespace {namespace}")


class SecretKeyNotFound(ConfigurationError):
    def __init__(self, secret_name: str, key: str):
        self.secret_name = secret_name
        self.key = key
        super().__init__(
            f"Secret {secret_name} doesn't contain the expected key {key}"
        )


def _reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    try:
        err = json.loads(ex.body)
    except (TypeError, ValueError):
        return ""
    return (err.get("reason") or "").lower()


def already_exists_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return _reason(ex) == _ALREADY_EXISTS


def not_found_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404 or _reason(ex) == _NOT_FOUND


def convert_api_exception(ex: kubernetes_asyncio.client.ApiException, permanent: bool = None):
    """
    Convert kubernetes ApiException to a Kopf-friendly exception.

    Args:
        ex: The ApiException to convert
        permanent: If True, raises PermanentError (won't retry). If False, raises TemporaryError (will retry).
                   If None, automatically determines based on status code.

    Raises:
        kopf.TemporaryError or kopf.PermanentError with serializable error details
    """
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        raise ex

    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"

    try:
        if ex.body:
            body = json.loads(ex.body)
            if "message" in body:
                error_msg = f"{error_msg} - {body['message']}"
    except (json.JSONDecodeError, AttributeError, TypeError):
        pass

    # 4xx errors (except 408, 429) are not worth retrying
    if permanent is None:
        status = ex.status or 0
        is_permanent = 400 <= status < 500 and status not in [408, 429]
    else:
        is_permanent = permanent

    if is_permanent:
        raise kopf.PermanentError(error_msg) from ex
    else:
        raise kopf.TemporaryError(error_msg, delay=30) from ex
