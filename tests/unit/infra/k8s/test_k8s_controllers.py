"""Unit tests for the Kubernetes controller layer."""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import kr8s
import pytest

from overlay_deploy.infra.k8s import (
    KubectlController,
    KubernetesControllerSync,
    StatusReadError,
    WorkloadStatus,
    get_k8s_controller,
    run_sync,
)
from overlay_deploy.infra.k8s.controller import CommandResult
from overlay_deploy.infra.k8s.kr8s_controller import Kr8sController

ROLLOUT = {
    "apiVersion": "argoproj.io/v1alpha1",
    "kind": "Rollout",
    "metadata": {"name": "api", "namespace": "prod", "generation": 4},
    "spec": {"replicas": 3},
    "status": {
        "phase": "Healthy",
        "observedGeneration": "7d9f8c6b5",
        "readyReplicas": 3,
        "stableRS": "7d9f8c6b5",
        "currentPodHash": "7d9f8c6b5",
    },
}


class TestWorkloadStatus:
    """Tests for WorkloadStatus.from_resource."""

    def test_parses_rollout(self) -> None:
        status = WorkloadStatus.from_resource(ROLLOUT)

        assert status.kind == "Rollout"
        assert status.phase == "Healthy"
        assert status.desired_replicas == 3
        assert status.ready_replicas == 3
        assert status.stable_rs == status.current_pod_hash == "7d9f8c6b5"
        # Hash-valued observedGeneration is not a generation number
        assert status.observed_generation is None
        assert status.has_status

    def test_missing_status(self) -> None:
        status = WorkloadStatus.from_resource(
            {"kind": "Deployment", "metadata": {"name": "api"}, "spec": {}}
        )

        assert not status.has_status
        assert status.desired_replicas == 1
        assert status.replicas == 0

    def test_condition_lookup_and_summary(self) -> None:
        status = WorkloadStatus(
            kind="Deployment",
            name="api",
            namespace="prod",
            desired_replicas=2,
            ready_replicas=1,
            conditions=[{"type": "Available", "status": "False"}],
        )

        assert status.condition("Available") == {"type": "Available", "status": "False"}
        assert status.condition("Progressing") is None
        assert status.summary().startswith("Deployment/api, ready 1/2")


class TestKubectlController:
    """Tests for KubectlController with kubectl calls stubbed."""

    @pytest.fixture
    def controller(self) -> KubectlController:
        return KubectlController()

    def test_get_workload_status_parses_json(
        self, controller: KubectlController
    ) -> None:
        with patch.object(
            controller,
            "_run_kubectl",
            AsyncMock(
                return_value=CommandResult(success=True, stdout=json.dumps(ROLLOUT))
            ),
        ) as mock_run:
            status = run_sync(controller.get_workload_status("Rollout", "api", "prod"))

        assert status is not None
        assert status.phase == "Healthy"
        mock_run.assert_awaited_once_with(
            ["get", "rollouts.argoproj.io", "api", "-n", "prod", "-o", "json"]
        )

    def test_not_found_returns_none(self, controller: KubectlController) -> None:
        result = CommandResult(
            success=False,
            stderr='Error from server (NotFound): deployments.apps "api" not found',
            returncode=1,
        )
        with patch.object(controller, "_run_kubectl", AsyncMock(return_value=result)):
            status = run_sync(
                controller.get_workload_status("Deployment", "api", "prod")
            )

        assert status is None

    def test_other_failure_raises(self, controller: KubectlController) -> None:
        result = CommandResult(
            success=False, stderr="Unable to connect to the server", returncode=1
        )
        with patch.object(controller, "_run_kubectl", AsyncMock(return_value=result)):
            with pytest.raises(StatusReadError, match="Unable to connect"):
                run_sync(controller.get_workload_status("Deployment", "api", "prod"))

    def test_forbidden_namespace_read_raises(
        self, controller: KubectlController
    ) -> None:
        result = CommandResult(
            success=False,
            stderr='Error from server (Forbidden): namespaces "prod" is forbidden',
            returncode=1,
        )
        with patch.object(controller, "_run_kubectl", AsyncMock(return_value=result)):
            with pytest.raises(StatusReadError, match="forbidden"):
                run_sync(controller.namespace_exists("prod"))

    def test_missing_namespace_is_false(self, controller: KubectlController) -> None:
        result = CommandResult(
            success=False,
            stderr='Error from server (NotFound): namespaces "prod" not found',
            returncode=1,
        )
        with patch.object(controller, "_run_kubectl", AsyncMock(return_value=result)):
            assert run_sync(controller.namespace_exists("prod")) is False

    def test_apply_sends_manifest_on_stdin(
        self, controller: KubectlController
    ) -> None:
        with patch.object(
            controller,
            "_run_kubectl",
            AsyncMock(return_value=CommandResult(success=True)),
        ) as mock_run:
            run_sync(controller.apply_resource({"kind": "ConfigMap"}))

        args, kwargs = mock_run.await_args
        assert args[0] == ["apply", "-f", "-"]
        assert "kind: ConfigMap" in kwargs["input_data"]


class TestKr8sController:
    """Tests for Kr8sController with the API client stubbed."""

    @pytest.fixture
    def controller(self) -> Iterator[Kr8sController]:
        controller = Kr8sController()
        with patch.object(
            Kr8sController, "_get_api", AsyncMock(return_value=MagicMock())
        ):
            yield controller

    def test_missing_workload_is_none(self, controller: Kr8sController) -> None:
        with patch(
            "overlay_deploy.infra.k8s.kr8s_controller.Deployment.get",
            AsyncMock(side_effect=kr8s.NotFoundError("not found")),
        ):
            status = run_sync(
                controller.get_workload_status("Deployment", "api", "prod")
            )

        assert status is None

    def test_connection_error_is_status_read_error(
        self, controller: Kr8sController
    ) -> None:
        with patch(
            "overlay_deploy.infra.k8s.kr8s_controller.Deployment.get",
            AsyncMock(side_effect=httpx.ConnectError("connection refused")),
        ):
            with pytest.raises(StatusReadError, match="connection refused"):
                run_sync(controller.get_workload_status("Deployment", "api", "prod"))

    def test_forbidden_namespace_read_raises(self, controller: Kr8sController) -> None:
        with patch(
            "overlay_deploy.infra.k8s.kr8s_controller.Namespace.get",
            AsyncMock(side_effect=kr8s.ServerError("namespaces is forbidden")),
        ):
            with pytest.raises(StatusReadError, match="namespaces is forbidden"):
                run_sync(controller.namespace_exists("prod"))

    def test_missing_namespace_is_false(self, controller: Kr8sController) -> None:
        with patch(
            "overlay_deploy.infra.k8s.kr8s_controller.Namespace.get",
            AsyncMock(side_effect=kr8s.NotFoundError("not found")),
        ):
            assert run_sync(controller.namespace_exists("prod")) is False

    def test_rollout_status_read(self, controller: Kr8sController) -> None:
        workload = MagicMock()
        workload.raw = ROLLOUT
        with patch(
            "overlay_deploy.infra.k8s.kr8s_controller.Rollout.get",
            AsyncMock(return_value=workload),
        ):
            status = run_sync(controller.get_workload_status("Rollout", "api", "prod"))

        assert status is not None
        assert status.kind == "Rollout"


class TestFactories:
    """Tests for controller factories and the sync facade."""

    def test_kubectl_backend(self) -> None:
        assert isinstance(get_k8s_controller("kubectl"), KubectlController)

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown Kubernetes backend"):
            get_k8s_controller("helm")

    def test_sync_facade_delegates(self) -> None:
        controller = MagicMock()
        controller.namespace_exists = AsyncMock(return_value=True)
        controller.create_namespace = AsyncMock(
            return_value=CommandResult(success=True)
        )

        k8s = KubernetesControllerSync(controller)

        assert k8s.namespace_exists("prod") is True
        assert k8s.create_namespace("prod").success
        controller.namespace_exists.assert_awaited_once_with("prod")
