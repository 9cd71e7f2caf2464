"""Abstract Kubernetes controller interface.

Defines the contract for the cluster operations the deployment pipeline
needs, implemented by different backends (kubectl subprocess, kr8s library).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .utils import run_sync

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


@dataclass
class WorkloadStatus:
    """Normalized status snapshot of a Deployment or Argo Rollout.

    Replica counts default to 0 when the API server has not reported them
    yet. ``phase``, ``aborted``, ``stable_rs`` and ``current_pod_hash`` are
    only populated for Rollout resources.
    """

    kind: str
    name: str
    namespace: str
    generation: int = 0
    observed_generation: int | None = None
    desired_replicas: int = 1
    replicas: int = 0
    updated_replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0
    conditions: list[dict[str, Any]] = field(default_factory=list)
    phase: str | None = None
    aborted: bool = False
    paused: bool = False
    stable_rs: str | None = None
    current_pod_hash: str | None = None
    message: str = ""
    has_status: bool = False

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> WorkloadStatus:
        """Build a status snapshot from a raw resource dict.

        Args:
            resource: Resource as returned by the API server

        Returns:
            WorkloadStatus for the resource
        """
        metadata = resource.get("metadata") or {}
        spec = resource.get("spec") or {}
        status = resource.get("status") or {}

        observed = status.get("observedGeneration")
        try:
            observed_generation = int(observed) if observed is not None else None
        except (TypeError, ValueError):
            # Older Argo Rollouts report a hash here instead of a number
            observed_generation = None

        desired = spec.get("replicas")
        return cls(
            kind=str(resource.get("kind", "")),
            name=str(metadata.get("name", "")),
            namespace=str(metadata.get("namespace", "")),
            generation=int(metadata.get("generation") or 0),
            observed_generation=observed_generation,
            desired_replicas=1 if desired is None else int(desired),
            replicas=int(status.get("replicas") or 0),
            updated_replicas=int(status.get("updatedReplicas") or 0),
            ready_replicas=int(status.get("readyReplicas") or 0),
            available_replicas=int(status.get("availableReplicas") or 0),
            conditions=list(status.get("conditions") or []),
            phase=status.get("phase"),
            aborted=bool(status.get("abort", False)),
            paused=bool(spec.get("paused", False)),
            stable_rs=status.get("stableRS"),
            current_pod_hash=status.get("currentPodHash"),
            message=str(status.get("message") or ""),
            has_status=bool(status),
        )

    def condition(self, condition_type: str) -> dict[str, Any] | None:
        """Return the condition of the given type, if reported."""
        for condition in self.conditions:
            if condition.get("type") == condition_type:
                return condition
        return None

    def summary(self) -> str:
        """One-line description for logs and error details."""
        parts = [
            f"{self.kind}/{self.name}",
            f"ready {self.ready_replicas}/{self.desired_replicas}",
            f"updated {self.updated_replicas}",
            f"available {self.available_replicas}",
        ]
        if self.phase:
            parts.append(f"phase {self.phase}")
        if self.message:
            parts.append(self.message)
        return ", ".join(parts)


class StatusReadError(RuntimeError):
    """Raised when a workload or namespace cannot be read from the cluster."""


# =============================================================================
# Abstract Controller
# =============================================================================


class KubernetesController(ABC):
    """Abstract base class for Kubernetes operations.

    All methods are async to support both sync (kubectl) and async (kr8s)
    implementations. Use `run_sync()` or KubernetesControllerSync to call
    from synchronous code.
    """

    # =========================================================================
    # Cluster Context
    # =========================================================================

    @abstractmethod
    async def get_current_context(self) -> str:
        """Get the current kubectl context name.

        Returns:
            Context name, or "unknown" if detection fails
        """
        ...

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    @abstractmethod
    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists.

        Args:
            namespace: Namespace to check

        Returns:
            True if the namespace exists, False otherwise

        Raises:
            StatusReadError: If existence could not be determined
        """
        ...

    @abstractmethod
    async def create_namespace(self, namespace: str) -> CommandResult:
        """Create a namespace.

        Args:
            namespace: Namespace to create

        Returns:
            CommandResult; stderr mentions "AlreadyExists" on a conflict
        """
        ...

    # =========================================================================
    # Resource Operations
    # =========================================================================

    @abstractmethod
    async def apply_resource(self, resource: dict[str, Any]) -> CommandResult:
        """Apply a single resource document.

        Args:
            resource: Parsed resource manifest

        Returns:
            CommandResult with apply status
        """
        ...

    @abstractmethod
    async def get_workload_status(
        self,
        kind: str,
        name: str,
        namespace: str,
    ) -> WorkloadStatus | None:
        """Read the current status of a Deployment or Rollout.

        Args:
            kind: "Deployment" or "Rollout"
            name: Workload name
            namespace: Workload namespace

        Returns:
            WorkloadStatus, or None if the workload does not exist yet

        Raises:
            StatusReadError: If the status could not be read
        """
        ...


class KubernetesControllerSync:
    """Synchronous facade over an async KubernetesController.

    Every method delegates to the wrapped controller through run_sync().
    """

    def __init__(self, controller: KubernetesController) -> None:
        """Initialize the sync wrapper.

        Args:
            controller: Async controller to delegate to
        """
        self._controller = controller

    @property
    def controller(self) -> KubernetesController:
        return self._controller

    def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        return run_sync(self._controller.get_current_context())

    def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        return run_sync(self._controller.namespace_exists(namespace))

    def create_namespace(self, namespace: str) -> CommandResult:
        """Create a namespace."""
        return run_sync(self._controller.create_namespace(namespace))

    def apply_resource(self, resource: dict[str, Any]) -> CommandResult:
        """Apply a single resource document."""
        return run_sync(self._controller.apply_resource(resource))

    def get_workload_status(
        self, kind: str, name: str, namespace: str
    ) -> WorkloadStatus | None:
        """Read the current status of a Deployment or Rollout."""
        return run_sync(self._controller.get_workload_status(kind, name, namespace))
