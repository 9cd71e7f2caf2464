"""Base deployer class with shared console helpers."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn


class BaseDeployer(ABC):
    """Abstract base class for deployers operating on one overlay directory."""

    def __init__(self, console: Console, overlay_dir: Path):
        """Initialize the deployer.

        Args:
            console: Rich console for output
            overlay_dir: Path to the kustomize overlay directory
        """
        self.console = console
        self.overlay_dir = Path(overlay_dir)

    @abstractmethod
    def deploy(self, *args: Any, **kwargs: Any) -> Any:
        """Run the deployment pipeline."""

    @abstractmethod
    def inspect(self, *args: Any, **kwargs: Any) -> Any:
        """Describe what a deployment would target, without side effects."""

    @contextmanager
    def step(self, description: str) -> Iterator[None]:
        """Show a transient spinner while the wrapped block runs."""
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True,
        ) as progress:
            progress.add_task(description, total=None)
            yield

    def relative(self, path: Path) -> str:
        """Render a path relative to the overlay when it lives inside it."""
        try:
            return str(path.relative_to(self.overlay_dir))
        except ValueError:
            return str(path)

    def phase(self, message: str) -> None:
        self.console.print(f"\n[bold cyan]{message}[/bold cyan]")

    def success(self, message: str) -> None:
        self.console.print(f"[green]✅ {message}[/green]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠️  {message}[/yellow]")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ {message}[/blue]")
