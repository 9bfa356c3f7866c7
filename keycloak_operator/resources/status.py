from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
from keycloak_operator.utils.helpers import upsert_condition


class StatusCategory(str, Enum):
    NOT_READY = "NotReady"
    ROLLING_UPDATE = "RollingUpdate"
    WARNING = "Warning"
    ERROR = "Error"


class ConditionType:
    READY = "Ready"
    HAS_ERRORS = "HasErrors"
    ROLLING_UPDATE = "RollingUpdate"


class KeycloakStatusAggregator:
    """Collects categorized health messages for a Keycloak resource.

    Messages keep their insertion order, so the same observations always
    render the same status.
    """

    selector: Optional[str]
    ready_instances: int
    messages: List[Tuple[StatusCategory, str]]

    def __init__(self):
        self.selector = None
        self.ready_instances = 0
        self.messages = []
        self.config_secrets: List[str] = []

    def add(self, category: StatusCategory, message: str) -> "KeycloakStatusAggregator":
        self.messages.append((category, message))
        return self

    def add_not_ready_message(self, message: str):
        return self.add(StatusCategory.NOT_READY, message)

    def add_rolling_update_message(self, message: str):
        return self.add(StatusCategory.ROLLING_UPDATE, message)

    def add_warning_message(self, message: str):
        return self.add(StatusCategory.WARNING, message)

    def add_error_message(self, message: str):
        return self.add(StatusCategory.ERROR, message)

    def add_warnings(self, messages: Iterable[str]):
        for message in messages:
            self.add_warning_message(message)
        return self

    def add_errors(self, messages: Iterable[str]):
        for message in messages:
            self.add_error_message(message)
        return self

    def set_ready_instances(self, ready_instances: int):
        self.ready_instances = ready_instances
        return self

    def set_selector(self, selector: str):
        self.selector = selector
        return self

    def set_config_secrets(self, names: Iterable[str]):
        self.config_secrets = sorted(set(names))
        return self

    def messages_of(self, *categories: StatusCategory) -> List[str]:
        return [m for c, m in self.messages if c in categories]

    @property
    def is_ready(self) -> bool:
        return not self.messages_of(StatusCategory.NOT_READY, StatusCategory.ERROR)

    def as_report(self) -> Dict[str, Any]:
        """Status in the shape `{selector, readyInstances, messages}`."""
        return {
            "selector": self.selector,
            "readyInstances": self.ready_instances,
            "messages": [(c.value, m) for c, m in self.messages],
        }

    def build(
        self, previous_status: Optional[Dict[str, Any]] = None, generation: int = None
    ) -> Dict[str, Any]:
        """Render the status subresource of the Keycloak resource.

        Conditions are merged into those of ``previous_status`` so their
        `lastTransitionTime` only moves when their status flips.
        """
        error_lines = [
            m if c is StatusCategory.ERROR else f"warning: {m}"
            for c, m in self.messages
            if c in (StatusCategory.ERROR, StatusCategory.WARNING)
        ]
        has_errors = bool(self.messages_of(StatusCategory.ERROR))
        rolling = self.messages_of(StatusCategory.ROLLING_UPDATE)

        conditions = list((previous_status or {}).get("conditions") or [])
        conditions = upsert_condition(
            conditions,
            {
                "type": ConditionType.READY,
                "status": "True" if self.is_ready else "False",
                "message": "\n".join(self.messages_of(StatusCategory.NOT_READY)),
                "observedGeneration": generation,
            },
        )
        conditions = upsert_condition(
            conditions,
            {
                "type": ConditionType.HAS_ERRORS,
                "status": "True" if has_errors else "False",
                "message": "\n".join(error_lines),
                "observedGeneration": generation,
            },
        )
        conditions = upsert_condition(
            conditions,
            {
                "type": ConditionType.ROLLING_UPDATE,
                "status": "True" if rolling else "False",
                "message": "\n".join(rolling),
                "observedGeneration": generation,
            },
        )
        return {
            "selector": self.selector,
            "instances": self.ready_instances,
            "observedGeneration": generation,
            "configSecrets": self.config_secrets,
            "conditions": conditions,
        }
