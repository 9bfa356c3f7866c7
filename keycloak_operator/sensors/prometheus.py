"""Prometheus monitoring backend for the Keycloak operator.

Metric families:

1. keycloakop_reconcile_* - Reconciliation loop duration, throughput, errors
2. keycloakop_resource_* - StatefulSet synchronization and drift
3. keycloakop_migrations_* / keycloakop_pod_errors - Cluster health
"""

from typing import Any, Dict, List, Optional
import time
import logging

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from keycloak_operator.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor for the Keycloak operator.

    Metrics are registered on ``registry`` (the process wide default
    registry unless given) and served by :func:`init_metrics_server`.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        self.reconcile_duration = Histogram(
            'keycloakop_reconcile_duration_seconds',
            'Time spent in reconciliation loop',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            'keycloakop_reconcile_total',
            'Total number of reconciliation attempts',
            labelnames=['name', 'namespace', 'trigger_source', 'result'],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            'keycloakop_reconcile_errors_total',
            'Total number of reconciliation errors',
            labelnames=['name', 'namespace', 'error_type'],
            registry=registry,
        )

        self.resource_sync_duration = Histogram(
            'keycloakop_resource_sync_duration_seconds',
            'Time spent syncing Kubernetes resources',
            labelnames=['name', 'resource_name', 'namespace', 'resource_type', 'operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            'keycloakop_resource_sync_total',
            'Total number of resource sync operations',
            labelnames=['name', 'resource_name', 'namespace', 'resource_type', 'operation', 'result'],
            registry=registry,
        )

        self.resource_sync_errors = Counter(
            'keycloakop_resource_sync_errors_total',
            'Total number of resource sync errors',
            labelnames=['name', 'resource_name', 'namespace', 'resource_type', 'error_type'],
            registry=registry,
        )

        self.resource_drift_detected = Counter(
            'keycloakop_resource_drift_detected_total',
            'Total number of resource drift detections',
            labelnames=['name', 'resource_name', 'namespace', 'resource_type', 'drift_field'],
            registry=registry,
        )

        self.migrations_started = Counter(
            'keycloakop_migrations_started_total',
            'Total number of image upgrades held back to scale down first',
            labelnames=['name', 'namespace'],
            registry=registry,
        )

        self.pod_errors = Gauge(
            'keycloakop_pod_errors',
            'Failing containers found in the current rollout at the last status refresh',
            labelnames=['name', 'namespace'],
            registry=registry,
        )

        self.status_updates = Counter(
            'keycloakop_status_updates_total',
            'Total number of status updates',
            labelnames=['name', 'namespace', 'update_field'],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        generation: int,
        trigger_source: str,
    ) -> Optional[Dict[str, Any]]:
        return {
            'start_time': time.time(),
            'trigger_source': trigger_source,
        }

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record reconciliation duration and result."""
        if not state:
            return
        duration = time.time() - state['start_time']
        labels = dict(
            name=name,
            namespace=namespace,
            trigger_source=state['trigger_source'],
            result='success' if success else 'failure',
        )
        self.reconcile_duration.labels(**labels).observe(duration)
        self.reconcile_total.labels(**labels).inc()
        if error:
            self.reconcile_errors.labels(
                name=name,
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        return {'start_time': time.time()}

    def on_resource_sync_complete(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record resource sync duration and result."""
        if not state:
            return
        duration = time.time() - state['start_time']
        labels = dict(
            name=name,
            resource_name=resource_name,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result='success' if success else 'failure',
        )
        self.resource_sync_duration.labels(**labels).observe(duration)
        self.resource_sync_total.labels(**labels).inc()
        if error:
            self.resource_sync_errors.labels(
                name=name,
                resource_name=resource_name,
                namespace=namespace,
                resource_type=resource_type,
                error_type=error.__class__.__name__,
            ).inc()

    def on_resource_drift_detected(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        for field in drift_fields:
            self.resource_drift_detected.labels(
                name=name,
                resource_name=resource_name,
                namespace=namespace,
                resource_type=resource_type,
                drift_field=field,
            ).inc()

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
        self.migrations_started.labels(name=name, namespace=namespace).inc()

    def on_pod_errors_detected(self, name: str, namespace: str, error_count: int) -> None:
        self.pod_errors.labels(name=name, namespace=namespace).set(error_count)

    def on_status_update(self, name: str, namespace: str, update_fields: List[str]) -> None:
        for field in update_fields:
            self.status_updates.labels(
                name=name, namespace=namespace, update_field=field
            ).inc()
