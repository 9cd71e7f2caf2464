"""Kubernetes infrastructure abstraction layer.

This module provides a clean abstraction over Kubernetes operations,
supporting multiple backends (kubectl subprocess, kr8s library).

Example:
    from overlay_deploy.infra.k8s import KubectlController, run_sync

    controller = KubectlController()
    exists = run_sync(controller.namespace_exists("my-namespace"))
    status = run_sync(controller.get_workload_status("Deployment", "api", "prod"))
"""

from .controller import (
    CommandResult,
    KubernetesController,
    KubernetesControllerSync,
    StatusReadError,
    WorkloadStatus,
)
from .helpers import BACKENDS, get_k8s_controller, get_k8s_controller_sync
from .kubectl_controller import KubectlController
from .utils import run_sync

__all__ = [
    # Controller classes
    "KubernetesController",
    "KubernetesControllerSync",
    "KubectlController",
    # Data classes
    "CommandResult",
    "WorkloadStatus",
    "StatusReadError",
    # Factories
    "BACKENDS",
    "get_k8s_controller",
    "get_k8s_controller_sync",
    # Utilities
    "run_sync",
]
