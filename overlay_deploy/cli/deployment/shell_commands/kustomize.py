"""Kustomize command abstractions.

Renders an overlay directory into a multi-document YAML stream, using the
standalone ``kustomize`` binary when available and ``kubectl kustomize``
otherwise.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from overlay_deploy.infra.k8s.controller import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class KustomizeCommands:
    """Kustomize-related shell commands."""

    def __init__(
        self,
        runner: CommandRunner,
        kustomize_bin: str = "kustomize",
        kubectl_bin: str = "kubectl",
    ) -> None:
        """Initialize kustomize commands.

        Args:
            runner: Command runner for executing shell commands
            kustomize_bin: Standalone kustomize executable
            kubectl_bin: kubectl executable used as a fallback renderer
        """
        self._runner = runner
        self.kustomize_bin = kustomize_bin
        self.kubectl_bin = kubectl_bin

    def build_command(self, overlay_dir: Path) -> list[str]:
        """Return the render command for an overlay directory."""
        if shutil.which(self.kustomize_bin):
            return [self.kustomize_bin, "build", str(overlay_dir)]
        return [self.kubectl_bin, "kustomize", str(overlay_dir)]

    def build(self, overlay_dir: Path) -> CommandResult:
        """Render the overlay.

        Args:
            overlay_dir: Directory containing a kustomization file

        Returns:
            CommandResult whose stdout is the rendered YAML stream
        """
        return self._runner.run(self.build_command(overlay_dir))
