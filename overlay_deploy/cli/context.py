"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from overlay_deploy.cli.deployment.constants import DeploymentConstants
from overlay_deploy.cli.deployment.deployer import OverlayDeployer
from overlay_deploy.cli.shared.console import CLIConsole, console


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    constants: DeploymentConstants
    verbose: bool = False

    def deployer(
        self, overlay_dir: Path, kubectl_backend: str = "kr8s"
    ) -> OverlayDeployer:
        """Build a deployer for the given overlay."""
        return OverlayDeployer(
            self.console.console,
            overlay_dir,
            constants=self.constants,
            kubectl_backend=kubectl_backend,
        )


def build_cli_context(verbose: bool = False) -> CLIContext:
    """Build a fresh CLIContext."""
    return CLIContext(
        console=console,
        constants=DeploymentConstants(),
        verbose=verbose,
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
