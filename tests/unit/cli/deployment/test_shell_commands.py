"""Unit tests for the git and kustomize shell command wrappers."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from overlay_deploy.cli.deployment.shell_commands import (
    CommandRunner,
    GitCommands,
    KustomizeCommands,
    ShellCommands,
)
from overlay_deploy.infra.k8s.controller import CommandResult


@pytest.fixture
def mock_runner() -> MagicMock:
    """Create a mock command runner that succeeds by default."""
    runner = MagicMock()
    runner.run.return_value = CommandResult(success=True, stdout="")
    return runner


class TestGitCommands:
    """Tests for GitCommands."""

    def test_current_branch(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="main\n")

        assert GitCommands(mock_runner).current_branch() == "main"
        mock_runner.run.assert_called_once_with(
            ["git", "symbolic-ref", "--quiet", "--short", "HEAD"]
        )

    def test_detached_head_has_no_branch(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=False, returncode=1)

        assert GitCommands(mock_runner).current_branch() is None

    def test_add_and_commit_limit_to_paths(self, mock_runner: MagicMock) -> None:
        git = GitCommands(mock_runner)
        paths = [Path("/repo/k.yaml"), Path("/repo/p.yaml")]

        git.add(paths)
        git.commit("deploy(prod): api v1", paths)

        assert mock_runner.run.call_args_list[0].args[0] == [
            "git",
            "add",
            "--",
            "/repo/k.yaml",
            "/repo/p.yaml",
        ]
        assert mock_runner.run.call_args_list[1].args[0] == [
            "git",
            "commit",
            "-m",
            "deploy(prod): api v1",
            "--",
            "/repo/k.yaml",
            "/repo/p.yaml",
        ]

    @pytest.mark.parametrize(("returncode", "expected"), [(1, True), (0, False)])
    def test_has_staged_changes(
        self, mock_runner: MagicMock, returncode: int, expected: bool
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=returncode == 0, returncode=returncode
        )

        assert GitCommands(mock_runner).has_staged_changes([Path("k.yaml")]) is expected

    def test_push_targets_branch_ref(self, mock_runner: MagicMock) -> None:
        GitCommands(mock_runner).push("origin", "main")

        mock_runner.run.assert_called_once_with(
            ["git", "push", "origin", "HEAD:refs/heads/main"]
        )


class TestKustomizeCommands:
    """Tests for KustomizeCommands."""

    @patch("overlay_deploy.cli.deployment.shell_commands.kustomize.shutil.which")
    def test_prefers_standalone_kustomize(
        self, mock_which: MagicMock, mock_runner: MagicMock
    ) -> None:
        mock_which.return_value = "/usr/local/bin/kustomize"

        KustomizeCommands(mock_runner).build(Path("overlays/prod"))

        mock_runner.run.assert_called_once_with(
            ["kustomize", "build", "overlays/prod"]
        )

    @patch("overlay_deploy.cli.deployment.shell_commands.kustomize.shutil.which")
    def test_falls_back_to_kubectl(
        self, mock_which: MagicMock, mock_runner: MagicMock
    ) -> None:
        mock_which.return_value = None

        command = KustomizeCommands(mock_runner).build_command(Path("overlays/prod"))

        assert command == ["kubectl", "kustomize", "overlays/prod"]


class TestCommandRunner:
    """Tests for CommandRunner."""

    @patch("overlay_deploy.cli.deployment.shell_commands.runner.subprocess.run")
    def test_missing_executable_is_failed_result(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        mock_run.side_effect = FileNotFoundError("kustomize")

        result = CommandRunner(tmp_path).run(["kustomize", "build", "."])

        assert result.success is False
        assert result.returncode == 127

    @patch("overlay_deploy.cli.deployment.shell_commands.runner.subprocess.run")
    def test_nonzero_exit_is_failed_result(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        mock_run.return_value = subprocess.CompletedProcess(
            ["git", "status"], 128, stdout="", stderr="not a git repository"
        )

        result = CommandRunner(tmp_path).run(["git", "status"])

        assert result.success is False
        assert result.returncode == 128
        assert result.stderr == "not a git repository"
        assert mock_run.call_args.kwargs["cwd"] == tmp_path


def test_shell_commands_share_working_dir(tmp_path: Path) -> None:
    commands = ShellCommands(tmp_path)

    assert commands.working_dir == tmp_path
    assert isinstance(commands.git, GitCommands)
    assert isinstance(commands.kustomize, KustomizeCommands)
