"""Git command abstractions.

This module provides the git operations the GitOps committer needs:
branch lookup, staging, committing and pushing specific paths.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from overlay_deploy.infra.k8s.controller import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class GitCommands:
    """Git-related shell commands.

    Provides operations for:
    - Branch and HEAD lookup
    - Staging and committing specific paths
    - Pushing the checked-out branch
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Git commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def current_branch(self) -> str | None:
        """Return the checked-out branch, or None for a detached HEAD."""
        result = self._runner.run(["git", "symbolic-ref", "--quiet", "--short", "HEAD"])
        if not result.success:
            return None
        return result.stdout.strip() or None

    def add(self, paths: Sequence[Path]) -> CommandResult:
        """Stage the given paths."""
        return self._runner.run(["git", "add", "--", *(str(p) for p in paths)])

    def has_staged_changes(self, paths: Sequence[Path]) -> bool:
        """Check whether any of the given paths differ between index and HEAD.

        ``git diff --cached --quiet`` exits 1 when there are differences.
        """
        result = self._runner.run(
            ["git", "diff", "--cached", "--quiet", "--", *(str(p) for p in paths)]
        )
        return result.returncode == 1

    def commit(self, message: str, paths: Sequence[Path]) -> CommandResult:
        """Commit only the given paths."""
        return self._runner.run(
            ["git", "commit", "-m", message, "--", *(str(p) for p in paths)]
        )

    def head_sha(self) -> str | None:
        """Return the full SHA of HEAD."""
        result = self._runner.run(["git", "rev-parse", "HEAD"])
        return result.stdout.strip() if result.success else None

    def push(self, remote: str, branch: str) -> CommandResult:
        """Push HEAD to the given branch on the remote."""
        return self._runner.run(["git", "push", remote, f"HEAD:refs/heads/{branch}"])
