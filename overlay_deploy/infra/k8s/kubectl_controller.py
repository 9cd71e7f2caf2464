"""Kubectl-based implementation of KubernetesController.

Uses subprocess calls to kubectl for all operations.
"""

from __future__ import annotations

import asyncio
import json
import subprocess
from typing import Any

import yaml  # type: ignore[import-untyped]

from .controller import (
    CommandResult,
    KubernetesController,
    StatusReadError,
    WorkloadStatus,
)

# kubectl resource names for the workload kinds we track
RESOURCE_NAMES: dict[str, str] = {
    "Deployment": "deployment",
    "Rollout": "rollouts.argoproj.io",
}


class KubectlController(KubernetesController):
    """Kubernetes controller using kubectl subprocess calls.

    All methods are async but internally use asyncio.to_thread()
    to run blocking subprocess calls without blocking the event loop.
    """

    def __init__(self, kubectl_bin: str = "kubectl") -> None:
        """Initialize the controller.

        Args:
            kubectl_bin: kubectl executable to invoke
        """
        self.kubectl_bin = kubectl_bin

    async def _run_kubectl(
        self,
        args: list[str],
        *,
        capture_output: bool = True,
        input_data: str | None = None,
    ) -> CommandResult:
        """Run a kubectl command asynchronously.

        Args:
            args: Command arguments (without 'kubectl' prefix)
            capture_output: Whether to capture stdout/stderr
            input_data: Optional input to send to stdin

        Returns:
            CommandResult with execution results
        """
        cmd = [self.kubectl_bin, *args]

        def _run() -> CommandResult:
            result = subprocess.run(
                cmd,
                capture_output=capture_output,
                text=True,
                input=input_data,
            )
            return CommandResult(
                success=result.returncode == 0,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                returncode=result.returncode,
            )

        return await asyncio.to_thread(_run)

    # =========================================================================
    # Cluster Context
    # =========================================================================

    async def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        result = await self._run_kubectl(["config", "current-context"])
        return result.stdout.strip() if result.success else "unknown"

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        result = await self._run_kubectl(["get", "namespace", namespace])
        if result.success:
            return True
        if "NotFound" in result.stderr or "not found" in result.stderr:
            return False
        raise StatusReadError(
            result.stderr.strip() or f"kubectl get namespace {namespace} failed"
        )

    async def create_namespace(self, namespace: str) -> CommandResult:
        """Create a namespace."""
        return await self._run_kubectl(["create", "namespace", namespace])

    # =========================================================================
    # Resource Operations
    # =========================================================================

    async def apply_resource(self, resource: dict[str, Any]) -> CommandResult:
        """Apply a single resource document via stdin."""
        manifest = yaml.safe_dump(resource, default_flow_style=False, sort_keys=False)
        return await self._run_kubectl(["apply", "-f", "-"], input_data=manifest)

    async def get_workload_status(
        self,
        kind: str,
        name: str,
        namespace: str,
    ) -> WorkloadStatus | None:
        """Read a workload's status with kubectl get -o json."""
        resource = RESOURCE_NAMES.get(kind, kind.lower())
        result = await self._run_kubectl(
            ["get", resource, name, "-n", namespace, "-o", "json"]
        )
        if not result.success:
            if "NotFound" in result.stderr or "not found" in result.stderr:
                return None
            raise StatusReadError(
                result.stderr.strip() or f"kubectl get {resource} {name} failed"
            )

        try:
            raw = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise StatusReadError(f"Unparsable kubectl output: {e}") from e
        return WorkloadStatus.from_resource(raw)
