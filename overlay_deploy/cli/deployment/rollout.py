"""Rollout waiting for kubectl-mode deployments.

Polls the primary workload until it reaches a terminal state or the wait
timeout elapses. Deployment classification mirrors what
``kubectl rollout status`` reports; Argo Rollouts are classified from
their ``status.phase``.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from overlay_deploy.infra.k8s.controller import StatusReadError, WorkloadStatus

from .constants import DeploymentConstants

if TYPE_CHECKING:
    from rich.console import Console

    from overlay_deploy.infra.k8s.controller import KubernetesControllerSync

    from .inspector import RenderedWorkload


class RolloutState(Enum):
    """Observed state of a workload rollout."""

    PENDING = "Pending"
    PROGRESSING = "Progressing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"

    @property
    def is_terminal(self) -> bool:
        return self in (
            RolloutState.SUCCEEDED,
            RolloutState.FAILED,
            RolloutState.TIMED_OUT,
        )


@dataclass
class RolloutResult:
    """Final state of a wait, with the last status observed."""

    state: RolloutState
    last_status: WorkloadStatus | None = None
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state is RolloutState.SUCCEEDED


# =============================================================================
# Classification
# =============================================================================


def classify(status: WorkloadStatus | None) -> RolloutState:
    """Classify a workload status snapshot.

    Args:
        status: Latest status, or None if the workload was not found

    Returns:
        Pending, Progressing, Succeeded or Failed (never TimedOut)
    """
    if status is None:
        return RolloutState.PENDING
    if status.kind == DeploymentConstants.ROLLOUT_KIND:
        return _classify_rollout(status)
    return _classify_deployment(status)


def _classify_deployment(status: WorkloadStatus) -> RolloutState:
    if not status.has_status:
        return RolloutState.PENDING

    progressing = status.condition("Progressing")
    if progressing and progressing.get("reason") == "ProgressDeadlineExceeded":
        return RolloutState.FAILED

    if (
        status.observed_generation is None
        or status.observed_generation < status.generation
    ):
        return RolloutState.PROGRESSING
    if status.updated_replicas < status.desired_replicas:
        return RolloutState.PROGRESSING
    # Old replicas are still terminating
    if status.replicas > status.updated_replicas:
        return RolloutState.PROGRESSING
    if status.available_replicas < status.updated_replicas:
        return RolloutState.PROGRESSING
    return RolloutState.SUCCEEDED


def _classify_rollout(status: WorkloadStatus) -> RolloutState:
    if status.aborted or status.phase == "Degraded":
        return RolloutState.FAILED
    if not status.phase:
        return RolloutState.PENDING
    # Phase and hashes still describe the previous spec
    if (
        status.observed_generation is not None
        and status.observed_generation < status.generation
    ):
        return RolloutState.PROGRESSING

    if status.phase == "Healthy" and status.ready_replicas >= status.desired_replicas:
        if (
            status.stable_rs
            and status.current_pod_hash
            and status.stable_rs != status.current_pod_hash
        ):
            # Healthy, but the new revision has not been promoted yet
            return RolloutState.PROGRESSING
        return RolloutState.SUCCEEDED
    return RolloutState.PROGRESSING


# =============================================================================
# Waiter
# =============================================================================


class RolloutWaiter:
    """Polls the primary workload until its rollout settles."""

    def __init__(
        self,
        k8s: KubernetesControllerSync,
        console: Console,
        *,
        poll_interval: float = DeploymentConstants.DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the waiter.

        Args:
            k8s: Synchronous Kubernetes controller
            console: Rich console for output
            poll_interval: Seconds between status reads
            clock: Monotonic clock, replaceable in tests
            sleep: Sleep function, replaceable in tests
        """
        self.k8s = k8s
        self.console = console
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

    def poll(self, workload: RenderedWorkload) -> WorkloadStatus | None:
        """Read the workload's status once.

        Raises:
            StatusReadError: If the status could not be read
        """
        return self.k8s.get_workload_status(
            workload.kind, workload.name, workload.namespace
        )

    def wait(self, workload: RenderedWorkload, timeout: float) -> RolloutResult:
        """Wait for the workload to finish rolling out.

        The workload is polled at least once, even with a zero timeout.

        Args:
            workload: Primary workload to watch
            timeout: Seconds to wait before giving up

        Returns:
            RolloutResult in state Succeeded, Failed or TimedOut
        """
        start = self.clock()
        deadline = start + timeout
        last_status: WorkloadStatus | None = None
        last_state: RolloutState | None = None

        with self.console.status(
            f"[cyan]Waiting for {workload.ref} to roll out...[/cyan]"
        ):
            while True:
                try:
                    last_status = self.poll(workload)
                except StatusReadError as e:
                    logger.warning("Could not read status of {}: {}", workload.ref, e)
                else:
                    state = classify(last_status)
                    if state is not last_state:
                        logger.info("{} is {}", workload.ref, state.value)
                        last_state = state
                    if last_status is not None:
                        logger.debug("Observed {}", last_status.summary())
                    if state.is_terminal:
                        return RolloutResult(
                            state=state,
                            last_status=last_status,
                            elapsed=self.clock() - start,
                        )

                remaining = deadline - self.clock()
                if remaining <= 0:
                    logger.info("{} did not settle within {}s", workload.ref, timeout)
                    return RolloutResult(
                        state=RolloutState.TIMED_OUT,
                        last_status=last_status,
                        elapsed=self.clock() - start,
                    )
                self.sleep(min(self.poll_interval, remaining))
