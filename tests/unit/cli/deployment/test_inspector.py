"""Unit tests for the overlay inspector."""

from __future__ import annotations

from pathlib import Path

import pytest

from overlay_deploy.cli.deployment.errors import BuildError, ValidationError
from overlay_deploy.cli.deployment.inspector import OverlayInspector
from overlay_deploy.cli.deployment.resolver import resolve_env_patches
from tests.fakes import FakeRenderer, render, service_doc, workload_doc


def _inspector(*documents: dict) -> OverlayInspector:
    return OverlayInspector(FakeRenderer(render(*documents)))


class TestRender:
    """Tests for rendering and parsing."""

    def test_render_failure_carries_stderr(self, tmp_path: Path) -> None:
        renderer = FakeRenderer(success=False, stderr="accumulating resources: boom")
        inspector = OverlayInspector(renderer)

        with pytest.raises(BuildError) as excinfo:
            inspector.render(tmp_path)

        assert excinfo.value.details == "accumulating resources: boom"

    def test_parse_skips_empty_documents(self) -> None:
        docs = OverlayInspector.parse_documents("---\nkind: A\n---\n---\nkind: B\n")
        assert docs == [{"kind": "A"}, {"kind": "B"}]

    def test_parse_rejects_non_mapping(self) -> None:
        with pytest.raises(BuildError, match="not a resource mapping"):
            OverlayInspector.parse_documents("kind: A\n---\n- a\n- b\n")

    def test_parse_rejects_invalid_yaml(self) -> None:
        with pytest.raises(BuildError, match="not valid YAML"):
            OverlayInspector.parse_documents("a: [b\n")


class TestInspect:
    """Tests for target extraction."""

    def test_extracts_primary_namespace_and_managed_by(self, tmp_path: Path) -> None:
        inspector = _inspector(
            service_doc(),
            workload_doc(
                "api", labels={"app.kubernetes.io/managed-by": "argocd"}
            ),
            workload_doc("api-worker"),
        )

        target = inspector.inspect(tmp_path, "api")

        assert target.primary.ref == "Deployment/api"
        assert target.primary_workload_name == "api"
        assert target.namespace == "prod"
        assert target.managed_by == "argocd"
        assert [w.name for w in target.workloads] == ["api", "api-worker"]
        assert len(target.documents) == 3

    def test_managed_by_absent(self, tmp_path: Path) -> None:
        target = _inspector(workload_doc("api")).inspect(tmp_path, "api")
        assert target.managed_by is None

    def test_prefixed_name_matches(self, tmp_path: Path) -> None:
        """Overlays commonly add a name prefix like 'prod-'."""
        inspector = _inspector(workload_doc("prod-api", kind="Rollout"))

        target = inspector.inspect(tmp_path, "api")

        assert target.primary.ref == "Rollout/prod-api"

    def test_no_match_lists_workloads(self, tmp_path: Path) -> None:
        inspector = _inspector(workload_doc("web"))

        with pytest.raises(ValidationError) as excinfo:
            inspector.inspect(tmp_path, "api")

        assert "No workload matches" in excinfo.value.message
        assert "Deployment/web" in (excinfo.value.details or "")

    def test_ambiguous_match_rejected(self, tmp_path: Path) -> None:
        inspector = _inspector(workload_doc("api-v1"), workload_doc("api-v2"))

        with pytest.raises(ValidationError, match="Several workloads"):
            inspector.inspect(tmp_path, "api")

    def test_missing_namespace_defaults(self, tmp_path: Path) -> None:
        target = _inspector(workload_doc("api", namespace=None)).inspect(
            tmp_path, "api"
        )
        assert target.namespace == "default"

    def test_mixed_namespaces_rejected(self, tmp_path: Path) -> None:
        inspector = _inspector(
            workload_doc("api", namespace="prod"),
            workload_doc("worker", namespace="jobs"),
        )

        with pytest.raises(ValidationError, match="different namespaces"):
            inspector.inspect(tmp_path, "api")


class TestVerifyEnvPatches:
    """Tests for rendered env patch verification."""

    def _with_env(self, env: list[dict[str, str]]) -> OverlayInspector:
        return _inspector(
            workload_doc(
                "api",
                containers=[
                    {"name": "api", "env": env},
                    {"name": "sidecar"},
                ],
            )
        )

    def test_rendered_values_pass(self, tmp_path: Path) -> None:
        inspector = self._with_env([{"name": "LOG_LEVEL", "value": "debug"}])

        inspector.inspect(
            tmp_path, "api", resolve_env_patches('{"api.env": {"LOG_LEVEL": "debug"}}')
        )

    def test_container_alias_uses_first_primary_container(
        self, tmp_path: Path
    ) -> None:
        inspector = self._with_env([{"name": "A", "value": "1"}])

        inspector.inspect(
            tmp_path, "api", resolve_env_patches('{"container.env": {"A": "1"}}')
        )

    def test_unknown_container_raises(self, tmp_path: Path) -> None:
        inspector = self._with_env([])

        with pytest.raises(BuildError, match="does not match any container") as exc:
            inspector.inspect(
                tmp_path, "api", resolve_env_patches('{"ghost.env": {"A": "1"}}')
            )

        assert "api, sidecar" in (exc.value.details or "")

    def test_values_not_rendered_raise(self, tmp_path: Path) -> None:
        inspector = self._with_env([{"name": "LOG_LEVEL", "value": "info"}])

        with pytest.raises(BuildError, match="was not applied"):
            inspector.inspect(
                tmp_path,
                "api",
                resolve_env_patches('{"api.env": {"LOG_LEVEL": "debug"}}'),
            )
