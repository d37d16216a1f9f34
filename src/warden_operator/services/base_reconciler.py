"""
Base reconciler class providing common patterns for resource reconciliation.

This module defines the BaseReconciler class that implements standard
patterns for status management, error handling and metrics. Reconcilers do
not retry on their own: every failure is converted into a kopf error and
kopf schedules the next attempt.
"""

import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Protocol

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..constants import (
    CONDITION_AVAILABLE,
    CONDITION_DEGRADED,
    CONDITION_FALSE,
    CONDITION_PROGRESSING,
    CONDITION_READY,
    CONDITION_RECONCILING,
    CONDITION_TRUE,
    PHASE_FAILED,
    PHASE_READY,
    PHASE_RECONCILING,
)
from ..errors import (
    KubernetesAPIError,
    OperatorError,
    TemporaryError,
)
from ..observability.logging import OperatorLogger


class StatusProtocol(Protocol):
    """Protocol for kopf Status objects that allow dynamic attribute assignment."""

    def __setattr__(self, name: str, value: Any) -> None: ...
    def __getattr__(self, name: str) -> Any: ...


class BaseReconciler(ABC):
    """
    Base class for all resource reconcilers.

    Provides common patterns for:
    - Status management with conditions
    - Error categorization into kopf temporary/permanent errors
    - Kubernetes client management
    - Reconciliation logging and metrics
    """

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize base reconciler.

        Args:
            k8s_client: Kubernetes API client, will be created if not provided
        """
        self.k8s_client = k8s_client
        self.logger = OperatorLogger(self.__class__.__name__)

    @property
    def kubernetes_client(self) -> client.ApiClient:
        """Get or create Kubernetes API client."""
        if self.k8s_client is None:
            from ..utils.kubernetes import get_kubernetes_client

            self.k8s_client = get_kubernetes_client()
        return self.k8s_client

    async def reconcile(
        self,
        spec: dict[str, Any],
        name: str,
        namespace: str,
        status: StatusProtocol,
        **kwargs,
    ) -> dict[str, Any]:
        """
        Main reconciliation entry point with metrics tracking.

        Args:
            spec: Resource specification
            name: Resource name
            namespace: Namespace the reconciliation acts on
            status: Resource status object
            **kwargs: Additional handler arguments

        Returns:
            Status dictionary for the resource
        """
        from ..observability.metrics import metrics_collector

        resource_type = self.__class__.__name__.replace("Reconciler", "").lower()
        start_time = time.time()

        self.logger.log_reconciliation_start(
            resource_type=resource_type, resource_name=name, namespace=namespace
        )

        generation = (kwargs.get("meta") or {}).get("generation", 0)

        async with metrics_collector.track_reconciliation(
            resource_type=resource_type,
            namespace=namespace,
            name=name,
            operation="reconcile",
        ):
            try:
                self.update_status_reconciling(
                    status, "Starting reconciliation", generation
                )
                metrics_collector.update_resource_status(
                    resource_type=resource_type,
                    namespace=namespace,
                    phase=PHASE_RECONCILING,
                )

                result = await self.do_reconcile(
                    spec, name, namespace, status, **kwargs
                )

                self.update_status_ready(
                    status, "Reconciliation completed successfully", generation
                )
                metrics_collector.update_resource_status(
                    resource_type=resource_type, namespace=namespace, phase=PHASE_READY
                )

                duration = time.time() - start_time
                self.logger.log_reconciliation_success(
                    resource_type=resource_type,
                    resource_name=name,
                    namespace=namespace,
                    duration=duration,
                )

                return result

            except OperatorError as e:
                self._record_failure(
                    resource_type, name, namespace, status, e, start_time, generation
                )
                raise e.as_kopf_error() from e

            except ApiException as e:
                http_status = getattr(e, "status", None)
                error = KubernetesAPIError(
                    message=str(e),
                    reason=getattr(e, "reason", None),
                    retryable=http_status is not None
                    and http_status >= 500,  # 5xx errors are retryable
                )
                self._record_failure(
                    resource_type, name, namespace, status, error, start_time, generation
                )
                raise error.as_kopf_error() from e

            except Exception as e:
                # Wrap unexpected errors as temporary to allow retry
                error = TemporaryError(
                    f"Unexpected error during reconciliation: {str(e)}"
                )
                self._record_failure(
                    resource_type, name, namespace, status, error, start_time, generation
                )
                raise error.as_kopf_error() from e

    def _record_failure(
        self,
        resource_type: str,
        name: str,
        namespace: str,
        status: StatusProtocol,
        error: OperatorError,
        start_time: float,
        generation: int,
    ) -> None:
        from ..observability.metrics import metrics_collector

        self.logger.log_reconciliation_error(
            resource_type=resource_type,
            resource_name=name,
            namespace=namespace,
            error=error,
            duration=time.time() - start_time,
        )
        self.update_status_failed(status, str(error), generation)
        metrics_collector.update_resource_status(
            resource_type=resource_type, namespace=namespace, phase=PHASE_FAILED
        )

    @abstractmethod
    async def do_reconcile(
        self,
        spec: dict[str, Any],
        name: str,
        namespace: str,
        status: StatusProtocol,
        **kwargs,
    ) -> dict[str, Any]:
        """
        Perform the actual reconciliation logic.

        This method must be implemented by subclasses to provide
        resource-specific reconciliation logic.
        """
        raise NotImplementedError("Subclasses must implement do_reconcile method")

    def update_status_reconciling(
        self, status: StatusProtocol, message: str, generation: int = 0
    ) -> None:
        """Update status to indicate reconciliation is in progress."""
        status.phase = PHASE_RECONCILING
        status.message = message
        status.lastUpdated = datetime.now(UTC).isoformat()
        status.observedGeneration = generation
        self._add_condition(
            status,
            CONDITION_RECONCILING,
            CONDITION_TRUE,
            "ReconciliationInProgress",
            message,
            generation,
        )
        self._add_condition(
            status,
            CONDITION_PROGRESSING,
            CONDITION_TRUE,
            "ReconciliationInProgress",
            f"Resource is progressing: {message}",
            generation,
        )
        self._remove_condition(status, CONDITION_READY)
        self._remove_condition(status, CONDITION_AVAILABLE)
        self._remove_condition(status, CONDITION_DEGRADED)

    def update_status_ready(
        self,
        status: StatusProtocol,
        message: str = "Resource is ready",
        generation: int = 0,
    ) -> None:
        """Update status to indicate resource is ready."""
        status.phase = PHASE_READY
        status.message = message
        status.lastUpdated = datetime.now(UTC).isoformat()
        status.observedGeneration = generation
        self._add_condition(
            status,
            CONDITION_READY,
            CONDITION_TRUE,
            "ReconciliationSucceeded",
            message,
            generation,
        )
        self._add_condition(
            status,
            CONDITION_AVAILABLE,
            CONDITION_TRUE,
            "ReconciliationSucceeded",
            f"Resource is available: {message}",
            generation,
        )
        self._remove_condition(status, CONDITION_RECONCILING)
        self._remove_condition(status, CONDITION_PROGRESSING)
        self._remove_condition(status, CONDITION_DEGRADED)

    def update_status_failed(
        self, status: StatusProtocol, message: str, generation: int = 0
    ) -> None:
        """Update status to indicate reconciliation failed."""
        status.phase = PHASE_FAILED
        status.message = message
        status.lastUpdated = datetime.now(UTC).isoformat()
        status.observedGeneration = generation
        self._add_condition(
            status,
            CONDITION_READY,
            CONDITION_FALSE,
            "ReconciliationFailed",
            message,
            generation,
        )
        self._add_condition(
            status,
            CONDITION_AVAILABLE,
            CONDITION_FALSE,
            "ReconciliationFailed",
            f"Resource unavailable: {message}",
            generation,
        )
        self._add_condition(
            status,
            CONDITION_DEGRADED,
            CONDITION_TRUE,
            "ReconciliationFailed",
            f"Resource degraded: {message}",
            generation,
        )
        self._remove_condition(status, CONDITION_RECONCILING)
        self._remove_condition(status, CONDITION_PROGRESSING)

    def _add_condition(
        self,
        status: StatusProtocol,
        condition_type: str,
        condition_status: str,
        reason: str,
        message: str,
        generation: int = 0,
    ) -> None:
        """Add or update a status condition with observedGeneration tracking."""
        existing = getattr(status, "conditions", None)
        conditions = [
            c
            for c in (existing if isinstance(existing, list) else [])
            if isinstance(c, dict) and c.get("type") != condition_type
        ]
        conditions.append(
            {
                "type": condition_type,
                "status": condition_status,
                "reason": reason,
                "message": message,
                "lastTransitionTime": datetime.now(UTC).isoformat(),
                "observedGeneration": generation,
            }
        )
        status.conditions = conditions

    def _remove_condition(self, status: StatusProtocol, condition_type: str) -> None:
        """Remove a status condition."""
        existing = getattr(status, "conditions", None)
        if not existing:
            return
        status.conditions = [
            c for c in existing if isinstance(c, dict) and c.get("type") != condition_type
        ]

    def get_condition(
        self, status: StatusProtocol, condition_type: str
    ) -> dict[str, Any] | None:
        """Get a specific status condition."""
        for condition in getattr(status, "conditions", None) or []:
            if condition.get("type") == condition_type:
                return condition
        return None

    def is_ready(self, status: StatusProtocol) -> bool:
        """Check if resource is in ready state."""
        ready_condition = self.get_condition(status, CONDITION_READY)
        return ready_condition is not None and ready_condition.get("status") == "True"
