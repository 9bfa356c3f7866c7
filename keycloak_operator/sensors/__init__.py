"""Keycloak Operator Sensor Framework.

Hook based instrumentation of operator lifecycle events. Sensors observe
reconciliations, statefulset synchronization, upgrade migrations and pod
failures without the reconciliation code knowing who is listening.

Key components:
- OperatorSensor: Base class defining lifecycle hooks, all no-ops
- SensorDelegate: Fan-out of events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter

Usage:
    from keycloak_operator.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from keycloak_operator.sensors.base import OperatorSensor
from keycloak_operator.sensors.delegate import SensorDelegate
from keycloak_operator.sensors.prometheus import PrometheusMonitor
from keycloak_operator.sensors.server import init_metrics_server

__all__ = [
    'OperatorSensor',
    'SensorDelegate',
    'PrometheusMonitor',
    'init_metrics_server',
]
