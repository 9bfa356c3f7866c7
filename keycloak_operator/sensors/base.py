"""Base sensor class for operator monitoring.

Hooks come in pairs where an operation has a duration: the start hook may
return a state dict which is handed back to the matching complete hook.
All hooks are no-ops, subclasses override only what they need.
"""

from typing import Any, Dict, List, Optional


class OperatorSensor:
    """Base sensor class for Keycloak operator monitoring.

    Hook categories:
    1. Reconciliation lifecycle
    2. StatefulSet synchronization
    3. Cluster health (upgrade migrations, failing pods)
    """

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
        """Called when a reconciliation begins.

        Args:
            name: Keycloak resource name
            namespace: Kubernetes namespace
            generation: Resource generation number
            trigger_source: What triggered reconciliation (create, update, resume, timer)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a reconciliation completes, successfully or not."""
        pass

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
        """Called when synchronization of a managed object begins.

        Returns:
            Optional state dict passed to on_resource_sync_complete
        """
        pass

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
        """Called when synchronization of a managed object completes.

        Args:
            operation: Operation performed (created, patched, recreated, no-op)
        """
        pass

    def on_resource_drift_detected(
        self,
        name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        drift_fields: List[str],
    ) -> None:
        """Called when a managed object differs from the desired one."""
        pass

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
        """Called when an image upgrade is held back to scale down first."""
        pass

    def on_pod_errors_detected(
        self,
        name: str,
        namespace: str,
        error_count: int,
    ) -> None:
        """Called after pods of the current rollout were scanned for failures."""
        pass

    def on_status_update(
        self,
        name: str,
        namespace: str,
        update_fields: List[str],
    ) -> None:
        """Called when the status of a Keycloak resource is written."""
        pass

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary."""
        return {}
