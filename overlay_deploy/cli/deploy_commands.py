"""Deployment CLI commands.

Every input of ``deploy`` can also be supplied through an environment
variable, so the command runs unchanged from a CI job step.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from overlay_deploy.infra.k8s import BACKENDS

from .context import CLIContext, get_cli_context
from .deployment.config import DeployConfig
from .deployment.constants import DeploymentConstants
from .deployment.deployer import DeploymentOutputs
from .deployment.errors import ValidationError
from .deployment.inspector import DeploymentTarget
from .deployment.mode import DeployMode, parse_force_mode
from .shared.console import with_error_handling

# ---------------------------------------------------------------------------
# Shared Options
# ---------------------------------------------------------------------------

OverlayDirOption = Annotated[
    Path,
    typer.Option(
        "--overlay-dir",
        envvar="DEPLOY_OVERLAY_DIR",
        help="Kustomize overlay directory for the target environment",
    ),
]
ServiceNameOption = Annotated[
    str,
    typer.Option(
        "--service-name",
        envvar="DEPLOY_SERVICE_NAME",
        help="Service whose workload is being deployed",
    ),
]
ForceModeOption = Annotated[
    str,
    typer.Option(
        "--force-mode",
        envvar="DEPLOY_FORCE_MODE",
        help="Delivery mode: auto, gitops or kubectl",
    ),
]
DetectGitopsOption = Annotated[
    bool,
    typer.Option(
        "--detect-gitops/--no-detect-gitops",
        help="Let auto mode pick gitops when the workload is managed by Argo CD",
    ),
]


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def _print_outputs(cli: CLIContext, outputs: DeploymentOutputs) -> None:
    table = Table(title="Deployment Outputs", show_header=True)
    table.add_column("Output", style="cyan")
    table.add_column("Value")
    for key, value in outputs.as_dict().items():
        table.add_row(key, value or "[dim]-[/dim]")
    cli.console.print(table)


def _print_target(
    cli: CLIContext, target: DeploymentTarget, mode: DeployMode
) -> None:
    table = Table(title="Deployment Target", show_header=True)
    table.add_column("Workload", style="cyan")
    table.add_column("Namespace")
    table.add_column("Managed By")
    table.add_column("Primary", justify="center")
    for workload in target.workloads:
        table.add_row(
            workload.ref,
            workload.namespace,
            workload.labels.get(DeploymentConstants.MANAGED_BY_LABEL, "-"),
            "✓" if workload == target.primary else "",
        )
    cli.console.print(table)
    cli.console.info(f"Mode that would be selected: [bold]{mode.value}[/bold]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@with_error_handling
def deploy(
    ctx: typer.Context,
    overlay_dir: OverlayDirOption,
    service_name: ServiceNameOption,
    environment: Annotated[
        str,
        typer.Option(
            "--environment",
            "-e",
            envvar="DEPLOY_ENVIRONMENT",
            help="Target environment (e.g. staging, production)",
        ),
    ],
    image: Annotated[
        str | None,
        typer.Option(
            "--image",
            envvar="DEPLOY_IMAGE",
            help="Image repository to deploy (with --tag)",
        ),
    ] = None,
    tag: Annotated[
        str | None,
        typer.Option("--tag", envvar="DEPLOY_TAG", help="Image tag to deploy"),
    ] = None,
    images_json: Annotated[
        str | None,
        typer.Option(
            "--images-json",
            envvar="DEPLOY_IMAGES_JSON",
            help='JSON array of {"name": ..., "newTag": ...} (replaces --image/--tag)',
        ),
    ] = None,
    env_patches: Annotated[
        str | None,
        typer.Option(
            "--env-patches",
            envvar="DEPLOY_ENV_PATCHES",
            help='JSON object like {"app.env": {"LOG_LEVEL": "debug"}}',
        ),
    ] = None,
    actor: Annotated[
        str,
        typer.Option(
            "--actor", envvar="GITHUB_ACTOR", help="Who triggered the deployment"
        ),
    ] = "",
    run_id: Annotated[
        str,
        typer.Option("--run-id", envvar="GITHUB_RUN_ID", help="CI run identifier"),
    ] = "",
    detect_gitops: DetectGitopsOption = True,
    force_mode: ForceModeOption = "auto",
    commit_message: Annotated[
        str | None,
        typer.Option(
            "--commit-message",
            envvar="DEPLOY_COMMIT_MESSAGE",
            help="Commit message for gitops mode (generated if omitted)",
        ),
    ] = None,
    create_namespace: Annotated[
        bool,
        typer.Option(
            "--create-namespace/--no-create-namespace",
            help="Create the target namespace if it is missing (kubectl mode)",
        ),
    ] = True,
    wait_timeout: Annotated[
        int,
        typer.Option(
            "--wait-timeout",
            envvar="DEPLOY_WAIT_TIMEOUT",
            help="Seconds to wait for the rollout (kubectl mode)",
        ),
    ] = DeploymentConstants.DEFAULT_WAIT_TIMEOUT,
    poll_interval: Annotated[
        float,
        typer.Option("--poll-interval", help="Seconds between rollout status reads"),
    ] = DeploymentConstants.DEFAULT_POLL_INTERVAL,
    git_remote: Annotated[
        str,
        typer.Option("--git-remote", help="Remote to push to (gitops mode)"),
    ] = DeploymentConstants.DEFAULT_GIT_REMOTE,
    kubectl_backend: Annotated[
        str,
        typer.Option("--kubectl-backend", help="Cluster client: kr8s or kubectl"),
    ] = "kr8s",
    output_file: Annotated[
        Path | None,
        typer.Option(
            "--output-file",
            envvar="GITHUB_OUTPUT",
            help="Append outputs as key=value lines to this file",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Stop after selecting the delivery mode"),
    ] = False,
) -> None:
    """
    🚀 Deploy a service by updating its kustomize overlay.

    The overlay is delivered through GitOps (commit and push) when the
    primary workload is managed by Argo CD, and applied directly with a
    rollout wait otherwise.
    """
    cli = get_cli_context(ctx)

    if kubectl_backend not in BACKENDS:
        raise ValidationError(
            f"Unknown kubectl backend '{kubectl_backend}'",
            details="Expected one of: " + ", ".join(BACKENDS),
        )

    config = DeployConfig.create(
        overlay_dir=overlay_dir,
        service_name=service_name,
        environment=environment,
        image=image,
        tag=tag,
        images_json=images_json,
        env_patches=env_patches,
        actor=actor,
        run_id=run_id,
        detect_gitops=detect_gitops,
        force_mode=parse_force_mode(force_mode),
        commit_message=commit_message,
        create_namespace=create_namespace,
        wait_timeout=wait_timeout,
        poll_interval=poll_interval,
        git_remote=git_remote,
        dry_run=dry_run,
    )

    cli.console.print_header(
        f"🚀 Deploying {config.service_name} to {config.environment}",
        subtitle=str(config.overlay_dir),
    )
    deployer = cli.deployer(config.overlay_dir, kubectl_backend)
    outputs = deployer.deploy(config)

    _print_outputs(cli, outputs)
    if output_file is not None:
        outputs.write(output_file)


@with_error_handling
def inspect(
    ctx: typer.Context,
    overlay_dir: OverlayDirOption,
    service_name: ServiceNameOption,
    force_mode: ForceModeOption = "auto",
    detect_gitops: DetectGitopsOption = True,
) -> None:
    """
    🔍 Render an overlay and show what a deployment would target.

    Nothing is modified: the overlay is rendered as it is on disk.
    """
    cli = get_cli_context(ctx)
    mode = parse_force_mode(force_mode)

    deployer = cli.deployer(overlay_dir)
    target, selected = deployer.inspect(service_name, mode, detect_gitops)
    _print_target(cli, target, selected)
