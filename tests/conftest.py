"""Shared fixtures for overlay-deploy tests."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from overlay_deploy.cli.deployment.config import RunMetadata
from tests.fakes import write_yaml

BASE_KUSTOMIZATION = {
    "apiVersion": "kustomize.config.k8s.io/v1beta1",
    "kind": "Kustomization",
    "namespace": "prod",
    "resources": ["../../base"],
    "images": [{"name": "ghcr.io/acme/api", "newTag": "v0.9.0"}],
    "patches": [{"path": "deployment-patch.yaml"}],
}

DEPLOYMENT_PATCH = {
    "apiVersion": "apps/v1",
    "kind": "Deployment",
    "metadata": {"name": "api"},
    "spec": {
        "template": {
            "spec": {
                "containers": [
                    {
                        "name": "api",
                        "env": [
                            {"name": "LOG_LEVEL", "value": "info"},
                            {"name": "KEEP_ME", "value": "1"},
                        ],
                    },
                    {"name": "worker", "env": [{"name": "QUEUE", "value": "jobs"}]},
                ]
            }
        }
    },
}


@pytest.fixture
def overlay_dir(tmp_path: Path) -> Path:
    """A production overlay with one image and one strategic-merge patch."""
    overlay = tmp_path / "overlays" / "prod"
    overlay.mkdir(parents=True)
    write_yaml(overlay / "kustomization.yaml", BASE_KUSTOMIZATION)
    write_yaml(overlay / "deployment-patch.yaml", DEPLOYMENT_PATCH)
    return overlay


@pytest.fixture
def run_metadata() -> RunMetadata:
    """Run metadata with a fixed timestamp."""
    return RunMetadata(
        service_name="api",
        environment="production",
        actor="octocat",
        run_id="4242",
        timestamp=datetime(2024, 5, 1, 12, 30, 0, tzinfo=UTC),
    )


@pytest.fixture
def mock_console() -> MagicMock:
    """Create a mock Rich console."""
    return MagicMock()
