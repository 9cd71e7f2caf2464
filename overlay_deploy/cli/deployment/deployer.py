"""Overlay deployer.

This module provides the OverlayDeployer class which orchestrates one
deployment of a service from its kustomize overlay. It coordinates
specialized components for:
- Resolving image and env patch inputs
- Mutating the overlay sources
- Rendering and inspecting the overlay
- Choosing between GitOps and direct delivery
- Committing and pushing (GitOps) or applying and waiting (kubectl)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from overlay_deploy.infra.k8s import get_k8s_controller_sync
from overlay_deploy.infra.k8s.controller import KubernetesControllerSync

from .applier import KubectlApplier
from .base import BaseDeployer
from .config import DeployConfig
from .constants import DeploymentConstants
from .errors import BuildError, RolloutFailure, RolloutTimeout
from .gitops import GitOpsCommitter, default_commit_message
from .inspector import DeploymentTarget, OverlayInspector
from .mode import DeployMode, ForceMode, select_mode
from .mutator import ManifestMutator, OverlayMutation
from .namespace import NamespaceProvisioner
from .resolver import resolve_env_patches, resolve_images
from .rollout import RolloutResult, RolloutState, RolloutWaiter
from .shell_commands import ShellCommands


@dataclass
class DeploymentOutputs:
    """Values reported back to the caller after a deployment.

    Attributes:
        mode: Delivery mode that was used
        namespace: Target namespace
        deployment: Name of the primary workload
        managed_by: managed-by label of the primary workload ("" if absent)
        changed: Whether the overlay (or repository) changed
        commit_sha: Commit pushed in gitops mode
    """

    mode: DeployMode
    namespace: str
    deployment: str
    managed_by: str
    changed: bool = False
    commit_sha: str | None = None

    def as_dict(self) -> dict[str, str]:
        return {
            "mode": self.mode.value,
            "namespace": self.namespace,
            "deployment": self.deployment,
            "managed_by": self.managed_by,
            "changed": "true" if self.changed else "false",
            "commit_sha": self.commit_sha or "",
        }

    def write(self, output_file: Path) -> None:
        """Append the outputs as ``key=value`` lines (GitHub Actions format)."""
        with open(output_file, "a") as f:
            for key, value in self.as_dict().items():
                f.write(f"{key}={value}\n")


class OverlayDeployer(BaseDeployer):
    """Deployer for a service described by a kustomize overlay.

    The deployment workflow consists of:
    1. Resolve image and env patch inputs
    2. Write images, version label, annotations and env patches to the overlay
    3. Render the overlay and identify the primary workload and namespace
    4. Select the delivery mode
    5a. GitOps: commit the touched files and push
    5b. Kubectl: ensure the namespace, apply every resource, wait for rollout

    Attributes:
        constants: Deployment configuration constants
        commands: Shell command executor (kustomize, git)
        inspector: Rendered overlay inspector
    """

    def __init__(
        self,
        console: Console,
        overlay_dir: Path,
        *,
        commands: ShellCommands | None = None,
        k8s: KubernetesControllerSync | None = None,
        constants: DeploymentConstants | None = None,
        kubectl_backend: str = "kr8s",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the overlay deployer.

        Args:
            console: Rich console for output
            overlay_dir: Path to the kustomize overlay directory
            commands: Shell command executor (built for overlay_dir if omitted)
            k8s: Kubernetes controller (created on first use if omitted)
            constants: Optional deployment constants
            kubectl_backend: Backend used when k8s is not given
            clock: Monotonic clock for the rollout waiter
            sleep: Sleep function for the rollout waiter
        """
        super().__init__(console, overlay_dir)

        self.constants = constants or DeploymentConstants()
        self.commands = commands or ShellCommands(self.overlay_dir, self.constants)
        self.kubectl_backend = kubectl_backend
        self.clock = clock
        self.sleep = sleep
        self._k8s = k8s

        self.inspector = OverlayInspector(
            renderer=self.commands.kustomize,
            constants=self.constants,
        )

    @property
    def k8s(self) -> KubernetesControllerSync:
        """Kubernetes controller, only created once kubectl mode needs it."""
        if self._k8s is None:
            self._k8s = get_k8s_controller_sync(self.kubectl_backend)
        return self._k8s

    # =========================================================================
    # Public Interface
    # =========================================================================

    def deploy(self, config: DeployConfig) -> DeploymentOutputs:
        """Deploy the overlay.

        Args:
            config: Validated deployment inputs

        Returns:
            DeploymentOutputs describing what was deployed

        Raises:
            ValidationError: If inputs are invalid (before any side effect)
            BuildError: If the overlay cannot be mutated or rendered
            GitOpsError: If committing or pushing fails
            KubectlError: If applying resources fails
            RolloutFailure: If the primary workload rollout fails
            RolloutTimeout: If the rollout does not finish within wait_timeout
        """
        # Phase 1: Resolve inputs
        images = resolve_images(config.image, config.tag, config.images_json)
        env_patches = resolve_env_patches(config.env_patches)
        metadata = config.run_metadata()

        # Phase 2: Mutate the overlay
        self.phase(
            f"📝 Updating overlay for {config.service_name} "
            f"({config.environment}) to {images.primary_tag}"
        )
        mutator = ManifestMutator(self.overlay_dir, config.service_name, self.constants)
        mutation = OverlayMutation.build(images, env_patches, metadata, self.constants)
        mutation_result = mutator.apply(mutation)
        if mutation_result.changed:
            for path in mutation_result.touched_files:
                self.console.print(f"[green]✓ Updated {self.relative(path)}[/green]")
        else:
            self.console.print("[dim]Overlay already up to date[/dim]")

        # Phase 3: Render and inspect
        with self.step("Rendering overlay..."):
            target = self.inspector.inspect(
                self.overlay_dir, config.service_name, env_patches
            )
        if mutation_result.unresolved_selectors:
            # Values were already present in the rendered output
            self.warning(
                "Env selectors without a patch container in this overlay: "
                + ", ".join(mutation_result.unresolved_selectors)
            )

        # Phase 4: Select delivery mode
        mode = select_mode(config.force_mode, config.detect_gitops, target.managed_by)
        self._show_target(target, mode)

        outputs = DeploymentOutputs(
            mode=mode,
            namespace=target.namespace,
            deployment=target.primary_workload_name,
            managed_by=target.managed_by or "",
            changed=mutation_result.changed,
        )

        if config.dry_run:
            self.info("Dry run: stopping before commit/apply")
            return outputs

        # Phase 5: Deliver
        if mode is DeployMode.GITOPS:
            self.phase("🔀 Delivering via GitOps")
            committer = GitOpsCommitter(
                self.commands.git, self.console, remote=config.git_remote
            )
            message = config.commit_message or default_commit_message(
                metadata, images.primary_tag
            )
            commit = committer.commit_and_push(mutation_result.touched_files, message)
            outputs.changed = commit.changed
            outputs.commit_sha = commit.sha
            self.success(
                f"Overlay pushed for {target.primary.ref}; Argo CD will sync it"
                if commit.changed
                else "Nothing to push; repository already matches"
            )
            return outputs

        context = self.k8s.get_current_context()
        self.phase(f"🚀 Applying to namespace {target.namespace} (context {context})")
        NamespaceProvisioner(self.k8s, self.console).ensure(
            target.namespace, create=config.create_namespace
        )
        KubectlApplier(self.k8s, self.console).apply(target.documents)

        waiter = RolloutWaiter(
            self.k8s,
            self.console,
            poll_interval=config.poll_interval,
            clock=self.clock,
            sleep=self.sleep,
        )
        result = waiter.wait(target.primary, config.wait_timeout)
        self._check_rollout(result, target, config.wait_timeout)

        self.success(f"{target.primary.ref} rolled out in {result.elapsed:.0f}s")
        return outputs

    def inspect(
        self,
        service_name: str,
        force_mode: str | ForceMode = ForceMode.AUTO,
        detect_gitops: bool = True,
    ) -> tuple[DeploymentTarget, DeployMode]:
        """Render the overlay as-is and report the target and delivery mode.

        Args:
            service_name: Service whose workload is the primary one
            force_mode: auto, gitops or kubectl
            detect_gitops: Whether auto mode may pick gitops from the label

        Returns:
            Tuple of (DeploymentTarget, DeployMode)
        """
        if not self.overlay_dir.is_dir():
            raise BuildError(f"Overlay directory not found: {self.overlay_dir}")
        target = self.inspector.inspect(self.overlay_dir, service_name)
        mode = select_mode(force_mode, detect_gitops, target.managed_by)
        self._show_target(target, mode)
        return target, mode

    # =========================================================================
    # Private Helpers
    # =========================================================================

    def _check_rollout(
        self, result: RolloutResult, target: DeploymentTarget, timeout: float
    ) -> None:
        """Raise if the rollout did not succeed."""
        status = result.last_status
        observed = None if status else "No status was observed for the workload"
        if result.state is RolloutState.FAILED:
            raise RolloutFailure(
                f"Rollout of {target.primary.ref} failed",
                details=f"Inspect with: kubectl -n {target.namespace} "
                f"describe {target.primary.kind.lower()} {target.primary.name}",
                status=status,
            )
        if result.state is RolloutState.TIMED_OUT:
            raise RolloutTimeout(
                f"Rollout of {target.primary.ref} did not finish within {timeout}s",
                details=observed,
                status=status,
            )

    def _show_target(self, target: DeploymentTarget, mode: DeployMode) -> None:
        self.console.print(
            f"[bold]Target:[/bold] {target.primary.ref} in "
            f"[cyan]{target.namespace}[/cyan] via [magenta]{mode.value}[/magenta]"
        )
