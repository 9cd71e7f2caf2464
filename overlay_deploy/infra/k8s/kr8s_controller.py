"""Kr8s-based implementation of KubernetesController.

Uses the kr8s library for native async Kubernetes operations.
"""

from __future__ import annotations

import asyncio
import subprocess
from typing import Any

import httpx
import kr8s
import yaml  # type: ignore[import-untyped]
from kr8s.asyncio.objects import Deployment, Namespace, new_class

from .controller import (
    CommandResult,
    KubernetesController,
    StatusReadError,
    WorkloadStatus,
)

# Argo Rollouts progressive-delivery resource
Rollout = new_class(
    kind="Rollout",
    version="argoproj.io/v1alpha1",
    namespaced=True,
    asyncio=True,
)


class Kr8sController(KubernetesController):
    """Kubernetes controller using kr8s library.

    All methods are natively async, leveraging kr8s's async API.

    Note: The kr8s API client is NOT cached because it's tied to the event loop
    that was running when created. When using run_sync() which calls asyncio.run(),
    each call creates a new event loop, making the cached API unusable.
    """

    def __init__(self, kubectl_bin: str = "kubectl") -> None:
        """Initialize the kr8s controller.

        Args:
            kubectl_bin: kubectl executable used for server-side apply
        """
        self.kubectl_bin = kubectl_bin

    async def _get_api(self) -> Any:  # Returns kr8s._api.Api
        """Create a kr8s API client bound to the current event loop."""
        return await kr8s.asyncio.api()

    # =========================================================================
    # Cluster Context
    # =========================================================================

    async def get_current_context(self) -> str:
        """Get the current kubectl context name."""
        try:
            api = await self._get_api()
            return api.auth.active_context or "unknown"
        except Exception:
            return "unknown"

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    async def namespace_exists(self, namespace: str) -> bool:
        """Check if a namespace exists."""
        try:
            api = await self._get_api()
            ns = await Namespace.get(namespace, api=api)
            return ns is not None
        except kr8s.NotFoundError:
            return False
        except (kr8s.ServerError, httpx.HTTPError) as e:
            raise StatusReadError(f"Cannot read namespace {namespace}: {e}") from e

    async def create_namespace(self, namespace: str) -> CommandResult:
        """Create a namespace."""
        try:
            api = await self._get_api()
            ns = Namespace({"metadata": {"name": namespace}}, api=api)
            await ns.create()
            return CommandResult(success=True, stdout=f"namespace/{namespace} created")
        except kr8s.ServerError as e:
            stderr = str(e)
            response = getattr(e, "response", None)
            if response is not None and response.status_code == 409:
                stderr = f"AlreadyExists: {stderr}"
            return CommandResult(success=False, stderr=stderr, returncode=1)

    # =========================================================================
    # Resource Operations
    # =========================================================================

    async def apply_resource(self, resource: dict[str, Any]) -> CommandResult:
        """Apply a single resource document.

        Note: kr8s doesn't have a direct 'apply' equivalent, so we use
        kubectl subprocess for this operation.
        """
        manifest = yaml.safe_dump(resource, default_flow_style=False, sort_keys=False)

        def _run() -> CommandResult:
            result = subprocess.run(
                [self.kubectl_bin, "apply", "-f", "-"],
                capture_output=True,
                text=True,
                input=manifest,
            )
            return CommandResult(
                success=result.returncode == 0,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                returncode=result.returncode,
            )

        return await asyncio.to_thread(_run)

    async def get_workload_status(
        self,
        kind: str,
        name: str,
        namespace: str,
    ) -> WorkloadStatus | None:
        """Read a Deployment or Rollout status through the API server."""
        object_class = Rollout if kind == "Rollout" else Deployment
        try:
            api = await self._get_api()
            workload = await object_class.get(name, namespace=namespace, api=api)
        except kr8s.NotFoundError:
            return None
        except (kr8s.ServerError, httpx.HTTPError) as e:
            # API errors and transport failures (connect, timeout) alike
            raise StatusReadError(str(e) or type(e).__name__) from e
        return WorkloadStatus.from_resource(workload.raw)
