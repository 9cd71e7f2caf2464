"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
the git and kustomize command modules.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from overlay_deploy.infra.k8s.controller import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    All specialized command modules (git, kustomize) use this runner for
    actual command execution, so tests can replace it with a mock.
    """

    def __init__(self, working_dir: Path) -> None:
        """Initialize the command runner.

        Args:
            working_dir: Directory commands run in by default
        """
        self.working_dir = working_dir

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        """Execute a command and return a structured result.

        A missing executable is reported as a failed result (return code 127)
        instead of raising, matching what a shell would do.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to working_dir)
            capture_output: Whether to capture stdout/stderr

        Returns:
            CommandResult with success status, output, and return code
        """
        logger.debug("Running: {}", " ".join(cmd))
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.working_dir,
                capture_output=capture_output,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(
                success=False,
                stderr=f"{cmd[0]}: command not found ({e})",
                returncode=127,
            )

        if result.returncode != 0:
            logger.debug("Command exited with {}: {}", result.returncode, result.stderr)
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )
