"""Unit tests for the kubectl applier."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from overlay_deploy.cli.deployment.applier import KubectlApplier, resource_ref
from overlay_deploy.cli.deployment.errors import KubectlError
from tests.fakes import FakeCluster, service_doc, workload_doc


class TestKubectlApplier:
    """Tests for KubectlApplier.apply."""

    def test_applies_every_document_in_order(self, mock_console: MagicMock) -> None:
        cluster = FakeCluster()
        documents = [service_doc("api"), workload_doc("api"), workload_doc("worker")]

        applied = KubectlApplier(cluster, mock_console).apply(documents)

        assert applied == 3
        assert cluster.applied == documents

    def test_rejection_names_resource_and_stops(
        self, mock_console: MagicMock
    ) -> None:
        """Earlier resources stay applied; later ones are not attempted."""
        cluster = FakeCluster(rejected={"api"})
        documents = [service_doc("svc"), workload_doc("api"), workload_doc("worker")]

        with pytest.raises(KubectlError) as excinfo:
            KubectlApplier(cluster, mock_console).apply(documents)

        assert excinfo.value.message == "Failed to apply Deployment/api"
        assert 'The Deployment "api" is invalid' in (excinfo.value.details or "")
        assert "not rolled back" in (excinfo.value.details or "")
        assert [d["metadata"]["name"] for d in cluster.applied] == ["svc"]


def test_resource_ref_handles_missing_fields() -> None:
    assert resource_ref({"kind": "ConfigMap", "metadata": {"name": "cfg"}}) == (
        "ConfigMap/cfg"
    )
    assert resource_ref({}) == "?/?"
