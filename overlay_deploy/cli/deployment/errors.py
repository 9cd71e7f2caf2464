"""Error taxonomy for the deployment pipeline.

Every failure raised by a pipeline phase is a DeploymentError subclass, so the
CLI layer can report it uniformly (message plus optional details panel).

- ValidationError: bad or contradictory input, raised before any side effect
- BuildError: the overlay could not be mutated, rendered or parsed
- GitOpsError: staging, committing or pushing failed
- KubectlError: the API server rejected an operation
- RolloutFailure / RolloutTimeout: the primary workload did not become ready
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from overlay_deploy.infra.k8s.controller import WorkloadStatus


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(DeploymentError):
    """Raised when deployment inputs are invalid or contradictory."""


class BuildError(DeploymentError):
    """Raised when the overlay cannot be mutated or rendered."""


class GitOpsError(DeploymentError):
    """Raised when changes cannot be committed or pushed."""


class KubectlError(DeploymentError):
    """Raised when the cluster rejects an apply or namespace operation."""


class RolloutError(DeploymentError):
    """Base class for rollouts that did not reach a ready state."""

    def __init__(
        self,
        message: str,
        details: str | None = None,
        status: WorkloadStatus | None = None,
    ):
        super().__init__(message, details)
        self.status = status


class RolloutFailure(RolloutError):
    """Raised when the workload reports a definitively failed rollout."""


class RolloutTimeout(RolloutError):
    """Raised when the wait timeout elapses before the rollout completes."""
