"""Deployment constants and configuration.

This module centralizes all magic strings and default values used
throughout the deployment pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DeploymentConstants:
    """Constants for overlay deployment.

    All attributes are class-level and immutable.
    """

    # Workload kinds tracked by the inspector and rollout waiter
    DEPLOYMENT_KIND: str = "Deployment"
    ROLLOUT_KIND: str = "Rollout"
    WORKLOAD_KINDS: tuple[str, ...] = ("Deployment", "Rollout")

    # Kustomization file names, in kustomize's lookup order
    KUSTOMIZATION_FILES: tuple[str, ...] = (
        "kustomization.yaml",
        "kustomization.yml",
        "Kustomization",
    )

    # Labels
    VERSION_LABEL: str = "app.kubernetes.io/version"
    MANAGED_BY_LABEL: str = "app.kubernetes.io/managed-by"
    GITOPS_MANAGER: str = "argocd"

    # Tracking annotations written on every deploy
    ANNOTATION_PREFIX: str = "overlay-deploy"
    DEFAULT_NAMESPACE: str = "default"

    # Env patch selectors
    ENV_SELECTOR_SUFFIX: str = ".env"
    PRIMARY_CONTAINER_ALIAS: str = "container"

    # Timeouts and polling
    DEFAULT_WAIT_TIMEOUT: int = 120
    DEFAULT_POLL_INTERVAL: float = 5.0

    # Renderer binaries
    KUSTOMIZE_BIN: str = "kustomize"
    KUBECTL_BIN: str = "kubectl"

    # Git
    DEFAULT_GIT_REMOTE: str = "origin"

    @property
    def last_deployed_by_annotation(self) -> str:
        """Annotation recording the deploying actor."""
        return f"{self.ANNOTATION_PREFIX}/last-deployed-by"

    @property
    def deployment_id_annotation(self) -> str:
        """Annotation recording the deployment id (tag plus run id)."""
        return f"{self.ANNOTATION_PREFIX}/deployment-id"

    @property
    def run_id_annotation(self) -> str:
        """Annotation recording the CI run identifier."""
        return f"{self.ANNOTATION_PREFIX}/run-id"

    @property
    def environment_annotation(self) -> str:
        """Annotation recording the target environment."""
        return f"{self.ANNOTATION_PREFIX}/environment"

    @property
    def deployed_at_annotation(self) -> str:
        """Annotation recording the mutation timestamp."""
        return f"{self.ANNOTATION_PREFIX}/deployed-at"
