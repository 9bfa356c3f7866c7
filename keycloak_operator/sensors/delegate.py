"""Sensor delegation for fan-out pattern.

SensorDelegate routes every event to all registered sensors. A failing
sensor is logged and never interrupts reconciliation or the other sensors.
"""

from typing import Any, Dict, List, Optional, Set
import logging

from keycloak_operator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    Start hooks return a dict mapping each sensor to its own state, and the
    complete hooks hand every sensor back its own entry.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("sso", "default", 5, "update")
        delegate.on_reconcile_complete("sso", "default", state, True)
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def _dispatch(self, hook: str, *args: Any) -> Optional[Dict[OperatorSensor, Any]]:
        states = {}
        for sensor in self._sensors:
            try:
                state = getattr(sensor, hook)(*args)
                if state is not None:
                    states[sensor] = state
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return states if states else None

    def _dispatch_with_state(
        self,
        hook: str,
        state: Optional[Dict[OperatorSensor, Any]],
        head: tuple,
        tail: tuple,
    ) -> None:
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                getattr(sensor, hook)(*head, sensor_state, *tail)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._dispatch(
            "on_reconcile_start", name, namespace, generation, trigger_source
        )

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[OperatorSensor, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._dispatch_with_state(
            "on_reconcile_complete", state, (name, namespace), (success, error)
        )

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[OperatorSensor, Any]]:
        return self._dispatch(
            "on_resource_sync_start", name, resource_name, namespace, resource_type
        )

    def on_resource_sync_complete(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[OperatorSensor, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        self._dispatch_with_state(
            "on_resource_sync_complete",
            state,
            (name, resource_name, namespace, resource_type),
            (operation, success, error),
        )

    def on_resource_drift_detected(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        self._dispatch(
            "on_resource_drift_detected",
            name,
            resource_name,
            namespace,
            resource_type,
            drift_fields,
        )

    # =============================================================================
    # Cluster Health Hooks
    # =============================================================================

    def on_migration_started(
        self,
        name: str,
        namespace: str,
        previous_image: str,
        desired_image: str,
    ) -> None:
        self._dispatch(
            "on_migration_started", name, namespace, previous_image, desired_image
        )

    def on_pod_errors_detected(self, name: str, namespace: str, error_count: int) -> None:
        self._dispatch("on_pod_errors_detected", name, namespace, error_count)

    def on_status_update(self, name: str, namespace: str, update_fields: List[str]) -> None:
        self._dispatch("on_status_update", name, namespace, update_fields)

    def asdict(self) -> Dict[str, Any]:
        return {
            sensor.__class__.__name__: sensor.asdict() for sensor in self._sensors
        }
