"""Console output, log routing and error reporting for CLI commands."""

import sys
from collections.abc import Callable
from functools import wraps

import typer
from loguru import logger
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel
from rich.status import Status

from overlay_deploy.cli.deployment.errors import (
    BuildError,
    DeploymentError,
    GitOpsError,
    KubectlError,
    RolloutError,
    ValidationError,
)

# Headline used for each error family in the failure report
ERROR_TITLES: dict[type[DeploymentError], str] = {
    ValidationError: "Invalid input",
    BuildError: "Overlay build failed",
    GitOpsError: "GitOps delivery failed",
    KubectlError: "Cluster apply failed",
    RolloutError: "Rollout did not complete",
}


def error_title(error: DeploymentError) -> str:
    """Return the report headline for an error, walking up its class hierarchy."""
    for cls in type(error).__mro__:
        if cls in ERROR_TITLES:
            return ERROR_TITLES[cls]
    return "Deployment failed"


class CLIConsole:
    """Rich console wrapper shared by all commands."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def status(self, status: str) -> Status:
        return self.console.status(status)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def print_header(self, title: str, subtitle: str | None = None) -> None:
        """Print the run banner.

        Args:
            title: Banner text
            subtitle: Optional second line, shown dimmed
        """
        body = f"[bold blue]{title}[/bold blue]"
        if subtitle:
            body += f"\n[dim]{subtitle}[/dim]"
        self.console.print(Panel.fit(body, border_style="blue"))

    def report_failure(self, error: DeploymentError) -> None:
        """Print a failure report for a pipeline error.

        The headline names the error family, the message follows, and any
        details (stderr, candidates, last rollout status) go into a panel.
        """
        self.console.print(
            f"\n[bold red]❌ Deployment failed: {error_title(error)}[/bold red]"
        )
        self.console.print(f"   {error.message}\n")

        sections = [error.details] if error.details else []
        if isinstance(error, RolloutError) and error.status is not None:
            sections.append(f"Last observed status: {error.status.summary()}")
        if sections:
            self.console.print(
                Panel("\n\n".join(sections), title="Details", border_style="red")
            )


def configure_logging(verbose: bool = False) -> None:
    """Route loguru diagnostics to stderr.

    Args:
        verbose: Emit DEBUG and above instead of WARNING and above
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format="<dim>{time:HH:mm:ss}</dim> <level>{level: <7}</level> {message}",
    )


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Report pipeline errors and map them to exit codes.

    A DeploymentError prints a failure report and exits with 1; Ctrl-C exits
    with 130. Anything else propagates with its traceback.
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except DeploymentError as e:
            logger.debug("{} raised {}", func.__name__, type(e).__name__)
            console.report_failure(e)
            raise typer.Exit(1) from None
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


console = CLIConsole()
