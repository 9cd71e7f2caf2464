"""Target namespace provisioning for kubectl deployments."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from overlay_deploy.infra.k8s.controller import StatusReadError

from .errors import KubectlError

if TYPE_CHECKING:
    from rich.console import Console

    from overlay_deploy.infra.k8s.controller import KubernetesControllerSync


class NamespaceProvisioner:
    """Makes sure the target namespace exists before applying resources."""

    def __init__(self, k8s: KubernetesControllerSync, console: Console) -> None:
        """Initialize the provisioner.

        Args:
            k8s: Synchronous Kubernetes controller
            console: Rich console for output
        """
        self.k8s = k8s
        self.console = console

    def ensure(self, namespace: str, create: bool = True) -> bool:
        """Ensure the namespace exists, creating it when allowed.

        Args:
            namespace: Namespace to check
            create: Whether a missing namespace may be created

        Returns:
            True if the namespace was created by this call

        Raises:
            KubectlError: If the namespace cannot be checked, or creation fails
                for a reason other than the namespace appearing concurrently
        """
        try:
            exists = self.k8s.namespace_exists(namespace)
        except StatusReadError as e:
            raise KubectlError(
                f"Cannot check whether namespace {namespace} exists", details=str(e)
            ) from e
        if exists:
            logger.debug("Namespace {} already exists", namespace)
            return False

        if not create:
            self.console.print(
                f"[yellow]⚠ Namespace {namespace} does not exist and "
                "namespace creation is disabled[/yellow]"
            )
            return False

        result = self.k8s.create_namespace(namespace)
        if result.success:
            self.console.print(f"[green]✓ Created namespace {namespace}[/green]")
            return True

        if "AlreadyExists" in result.stderr or "already exists" in result.stderr:
            # Created by someone else between the check and the create
            logger.info("Namespace {} appeared concurrently", namespace)
            return False

        raise KubectlError(
            f"Failed to create namespace {namespace}",
            details=result.stderr.strip() or f"exit code {result.returncode}",
        )
