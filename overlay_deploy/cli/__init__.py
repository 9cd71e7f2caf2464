"""Main CLI application module.

This module provides the main entry point for the overlay-deploy CLI.

Commands:
- deploy: Update an overlay and deliver it (GitOps or kubectl)
- inspect: Render an overlay and show the detected target
"""

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from .context import build_cli_context
from .deploy_commands import deploy, inspect
from .shared.console import configure_logging

# Create the main CLI application
app = typer.Typer(
    help="🚀 Overlay Deploy - Kustomize overlay deployment tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def root(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logs on stderr"),
    ] = False,
) -> None:
    """Configure logging and the shared CLI context."""
    configure_logging(verbose)
    ctx.obj = build_cli_context(verbose=verbose)


# Register commands
app.command("deploy")(deploy)
app.command("inspect")(inspect)


def main() -> None:
    """Main entry point for the CLI."""
    # Existing environment variables win over .env entries
    load_dotenv(Path.cwd() / ".env", override=False)
    app()


if __name__ == "__main__":
    main()
