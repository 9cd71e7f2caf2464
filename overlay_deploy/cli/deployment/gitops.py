"""GitOps delivery: commit and push overlay changes.

The reconciling controller (Argo CD) picks the change up from the
repository; nothing is applied to the cluster from here.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .config import RunMetadata
from .errors import GitOpsError

if TYPE_CHECKING:
    from rich.console import Console

    from .shell_commands import GitCommands

# Markers git prints when the remote has moved ahead of the local branch
_REJECTED_MARKERS = (
    "[rejected]",
    "[remote rejected]",
    "non-fast-forward",
    "fetch first",
)
_AUTH_MARKERS = (
    "authentication failed",
    "permission denied",
    "could not read username",
    "access denied",
    "403",
)


class CommitOutcome(Enum):
    """Result of a GitOps commit attempt."""

    COMMITTED = "committed"
    NO_CHANGES = "no_changes"


@dataclass
class CommitResult:
    """Outcome plus the commit pushed, if any."""

    outcome: CommitOutcome
    sha: str | None = None
    branch: str | None = None

    @property
    def changed(self) -> bool:
        return self.outcome is CommitOutcome.COMMITTED


def default_commit_message(metadata: RunMetadata, tag: str) -> str:
    """Build the generated commit message for a deployment."""
    message = f"deploy({metadata.environment}): {metadata.service_name} {tag}"
    if metadata.run_id:
        message += f"\n\nRun: {metadata.run_id}"
    return message


class GitOpsCommitter:
    """Stages, commits and pushes the files touched by the mutator."""

    def __init__(
        self,
        git: GitCommands,
        console: Console,
        remote: str = "origin",
    ) -> None:
        """Initialize the committer.

        Args:
            git: Git command executor
            console: Rich console for output
            remote: Remote to push to
        """
        self.git = git
        self.console = console
        self.remote = remote

    def commit_and_push(self, files: Sequence[Path], message: str) -> CommitResult:
        """Commit exactly the given files and push the current branch.

        Args:
            files: Files changed by the mutator
            message: Commit message

        Returns:
            CommitResult; NO_CHANGES when there was nothing to commit

        Raises:
            GitOpsError: If staging, committing or pushing fails
        """
        if not files:
            self.console.print("[dim]No overlay changes to commit[/dim]")
            return CommitResult(outcome=CommitOutcome.NO_CHANGES)

        branch = self.git.current_branch()
        if branch is None:
            raise GitOpsError(
                "Cannot push from a detached HEAD",
                details="Check out the branch the GitOps controller tracks "
                "before deploying.",
            )

        result = self.git.add(files)
        if not result.success:
            raise GitOpsError(
                "Failed to stage overlay changes", details=result.stderr.strip()
            )

        if not self.git.has_staged_changes(files):
            self.console.print(
                "[dim]Overlay already matches HEAD, nothing to commit[/dim]"
            )
            return CommitResult(outcome=CommitOutcome.NO_CHANGES, branch=branch)

        result = self.git.commit(message, files)
        if not result.success:
            raise GitOpsError(
                "git commit failed",
                details=result.stderr.strip() or result.stdout.strip(),
            )
        sha = self.git.head_sha()
        logger.info("Committed {} on {}", sha, branch)

        with self.console.status(f"[cyan]Pushing to {self.remote}/{branch}...[/cyan]"):
            result = self.git.push(self.remote, branch)
        if not result.success:
            raise self._push_error(result.stderr, branch)

        short_sha = sha[:7] if sha else "commit"
        self.console.print(
            f"[green]✓ Pushed {short_sha} to {self.remote}/{branch}[/green]"
        )
        return CommitResult(outcome=CommitOutcome.COMMITTED, sha=sha, branch=branch)

    def _push_error(self, stderr: str, branch: str) -> GitOpsError:
        """Classify a failed push."""
        target = f"{self.remote}/{branch}"
        if any(marker in stderr for marker in _REJECTED_MARKERS):
            return GitOpsError(
                f"Push to {target} was rejected: the remote has new commits",
                details=stderr.strip()
                + "\n\nAnother run likely pushed first. Re-run the deployment "
                "from an up-to-date checkout.",
            )
        if any(marker in stderr.lower() for marker in _AUTH_MARKERS):
            return GitOpsError(
                f"Not allowed to push to {target}", details=stderr.strip()
            )
        return GitOpsError(f"git push to {target} failed", details=stderr.strip())
