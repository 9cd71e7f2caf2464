"""Shell command abstractions for overlay deployment.

This package provides a small, well-documented interface for the external
tools the deployment pipeline shells out to:

- kustomize: Rendering overlays into resource documents
- git: Staging, committing and pushing overlay changes

Cluster operations live in overlay_deploy.infra.k8s instead.

Usage:
    from overlay_deploy.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(working_dir=Path("deploy/overlays/prod"))
    rendered = commands.kustomize.build(Path("deploy/overlays/prod"))
"""

from pathlib import Path

from overlay_deploy.infra.k8s.controller import CommandResult

from ..constants import DeploymentConstants
from .git import GitCommands
from .kustomize import KustomizeCommands
from .runner import CommandRunner


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        kustomize: Overlay rendering commands
        git: Git repository commands

    Example:
        >>> commands = ShellCommands(Path("."))
        >>> if commands.git.current_branch() is None:
        ...     print("detached HEAD")
    """

    def __init__(
        self,
        working_dir: Path,
        constants: DeploymentConstants | None = None,
    ) -> None:
        """Initialize the shell commands executor.

        Args:
            working_dir: Directory commands run in by default (normally the
                overlay directory, which must sit inside the git checkout)
            constants: Optional deployment constants
        """
        constants = constants or DeploymentConstants()
        self._working_dir = Path(working_dir)
        self._runner = CommandRunner(self._working_dir)

        self.kustomize = KustomizeCommands(
            self._runner,
            kustomize_bin=constants.KUSTOMIZE_BIN,
            kubectl_bin=constants.KUBECTL_BIN,
        )
        self.git = GitCommands(self._runner)

    @property
    def working_dir(self) -> Path:
        """Get the default working directory."""
        return self._working_dir


__all__ = [
    "ShellCommands",
    "CommandResult",
    "KustomizeCommands",
    "GitCommands",
    "CommandRunner",
]
