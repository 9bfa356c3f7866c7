import re
import jsonpickle
from datetime import datetime, timezone

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


def option_env_var_name(option_name: str) -> str:
    """Return the environment variable a Keycloak server option is read from.

    For example, `http-relative-path` maps to `KC_HTTP_RELATIVE_PATH`.
    """
    return "KC_" + _NON_ALPHANUMERIC.sub("_", option_name).upper()


def ensure_trailing_slash(path: str) -> str:
    return path if path.endswith("/") else path + "/"


def to_option_value(value) -> str:
    """Render a CR value the way the Keycloak server expects it in env vars."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {
            key: sort_dict_keys(value)
            for key, value in sorted(d.items())
        }
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data):
    """
    Returns a canonical JSON representation of a dictionary.

    Keys are sorted recursively so the representation stays the same
    even when key order varies.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def upsert_condition(conds, newc):
    """In-memory merge by .type. Only bump lastTransitionTime when status flips."""
    conds = list(conds or [])
    for i, c in enumerate(conds):
        if c.get("type") == newc["type"]:
            ltt = c.get("lastTransitionTime") or now()
            if c.get("status") != newc["status"]:
                ltt = now()
            merged = {**c, **newc, "lastTransitionTime": ltt}
            conds[i] = merged
            break
    else:
        conds.append({**newc, "lastTransitionTime": now()})
    return conds
