"""Deployment package for kustomize overlay deployments.

This package provides the OverlayDeployer, which follows the BaseDeployer
interface and runs one deployment end to end:

- resolver: Image and env patch inputs
- mutator: Overlay source edits
- inspector: Rendered overlay inspection
- mode: GitOps vs kubectl selection
- gitops / applier / namespace / rollout: Delivery

The package is organized into subpackages for modularity:
- shell_commands: Abstractions for shell command execution
"""

from .config import DeployConfig, RunMetadata
from .deployer import DeploymentOutputs, OverlayDeployer
from .errors import DeploymentError

__all__ = [
    "DeployConfig",
    "RunMetadata",
    "OverlayDeployer",
    "DeploymentOutputs",
    "DeploymentError",
]
