"""Direct delivery: apply rendered resources to the cluster."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from .errors import KubectlError

if TYPE_CHECKING:
    from rich.console import Console

    from overlay_deploy.infra.k8s.controller import KubernetesControllerSync


def resource_ref(resource: dict[str, Any]) -> str:
    """Return ``Kind/name`` for a resource document."""
    metadata = resource.get("metadata") or {}
    return f"{resource.get('kind', '?')}/{metadata.get('name', '?')}"


class KubectlApplier:
    """Applies rendered resource documents one at a time."""

    def __init__(self, k8s: KubernetesControllerSync, console: Console) -> None:
        self.k8s = k8s
        self.console = console

    def apply(self, documents: list[dict[str, Any]]) -> int:
        """Apply every document in render order.

        Resources applied before a failure are left in place.

        Args:
            documents: Rendered resource documents

        Returns:
            Number of resources applied

        Raises:
            KubectlError: If the API server rejects a resource
        """
        applied = 0
        for resource in documents:
            ref = resource_ref(resource)
            result = self.k8s.apply_resource(resource)
            if not result.success:
                raise KubectlError(
                    f"Failed to apply {ref}",
                    details=(result.stderr.strip() or f"exit code {result.returncode}")
                    + (
                        f"\n\n{applied} resource(s) applied before the failure "
                        "were not rolled back."
                        if applied
                        else ""
                    ),
                )
            logger.debug("Applied {}: {}", ref, result.stdout.strip())
            applied += 1

        self.console.print(f"[green]✓ Applied {applied} resource(s)[/green]")
        return applied
