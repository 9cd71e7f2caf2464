"""Delivery mode selection."""

from __future__ import annotations

from enum import Enum

from loguru import logger

from .constants import DeploymentConstants
from .errors import ValidationError


class ForceMode(str, Enum):
    """Requested delivery mode; AUTO defers to detection."""

    AUTO = "auto"
    GITOPS = "gitops"
    KUBECTL = "kubectl"


class DeployMode(str, Enum):
    """Resolved delivery mode."""

    GITOPS = "gitops"
    KUBECTL = "kubectl"


def parse_force_mode(value: str | ForceMode) -> ForceMode:
    """Parse a force mode string.

    Raises:
        ValidationError: If the value is not auto, gitops or kubectl
    """
    if isinstance(value, ForceMode):
        return value
    try:
        return ForceMode(value.strip().lower())
    except ValueError as e:
        raise ValidationError(
            f"Invalid force_mode '{value}'",
            details="Expected one of: auto, gitops, kubectl",
        ) from e


def select_mode(
    force_mode: str | ForceMode,
    detect_gitops: bool,
    managed_by: str | None,
) -> DeployMode:
    """Decide how the overlay gets delivered.

    An explicit gitops/kubectl request always wins. Under auto, GitOps is
    chosen only when detection is enabled and the primary workload is labelled
    as managed by Argo CD (exact, case-sensitive match).

    Args:
        force_mode: auto, gitops or kubectl
        detect_gitops: Whether auto mode may pick gitops from the label
        managed_by: Value of the primary workload's managed-by label, if any

    Returns:
        The concrete DeployMode
    """
    mode = parse_force_mode(force_mode)

    if mode is ForceMode.GITOPS:
        logger.info("Delivery mode forced to gitops")
        return DeployMode.GITOPS
    if mode is ForceMode.KUBECTL:
        logger.info("Delivery mode forced to kubectl")
        return DeployMode.KUBECTL

    if detect_gitops and managed_by == DeploymentConstants.GITOPS_MANAGER:
        logger.info(
            "Detected managed-by={} on primary workload, using gitops", managed_by
        )
        return DeployMode.GITOPS

    logger.info(
        "Using kubectl (detect_gitops={}, managed_by={})", detect_gitops, managed_by
    )
    return DeployMode.KUBECTL
