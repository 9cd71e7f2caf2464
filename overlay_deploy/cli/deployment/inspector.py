"""Rendered overlay inspection.

Renders the (mutated) overlay and extracts what the later phases need:
the workloads it contains, the primary workload for the service, the
target namespace and the managed-by label used for GitOps detection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]
from loguru import logger

from .constants import DeploymentConstants
from .errors import BuildError, ValidationError
from .resolver import EnvPatchSet

if TYPE_CHECKING:
    from .shell_commands import KustomizeCommands


@dataclass(frozen=True)
class RenderedWorkload:
    """A Deployment or Rollout found in the rendered output."""

    kind: str
    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict, compare=False)
    document: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def ref(self) -> str:
        return f"{self.kind}/{self.name}"

    def containers(self) -> list[dict[str, Any]]:
        template = (self.document.get("spec") or {}).get("template") or {}
        spec = template.get("spec") or {}
        return [c for c in spec.get("containers") or [] if isinstance(c, dict)]


@dataclass
class DeploymentTarget:
    """Everything the inspector learned about the rendered overlay.

    Attributes:
        namespace: Namespace shared by all workloads
        primary: The workload matching the service name
        workloads: All Deployment/Rollout workloads
        managed_by: Value of the managed-by label on the primary workload
        documents: Every rendered resource, in render order
    """

    namespace: str
    primary: RenderedWorkload
    workloads: list[RenderedWorkload]
    managed_by: str | None
    documents: list[dict[str, Any]]

    @property
    def primary_workload_name(self) -> str:
        return self.primary.name


class OverlayInspector:
    """Renders an overlay and identifies the deployment target."""

    def __init__(
        self,
        renderer: KustomizeCommands,
        constants: DeploymentConstants | None = None,
    ) -> None:
        """Initialize the inspector.

        Args:
            renderer: Renders an overlay directory to a YAML stream
            constants: Optional deployment constants
        """
        self.renderer = renderer
        self.constants = constants or DeploymentConstants()

    # =========================================================================
    # Public Interface
    # =========================================================================

    def render(self, overlay_dir: Path) -> list[dict[str, Any]]:
        """Render the overlay into resource documents.

        Raises:
            BuildError: If rendering fails or the output is not valid YAML
        """
        result = self.renderer.build(overlay_dir)
        if not result.success:
            raise BuildError(
                f"Failed to render overlay {overlay_dir}",
                details=result.stderr.strip() or f"exit code {result.returncode}",
            )
        documents = self.parse_documents(result.stdout)
        logger.debug("Rendered {} documents from {}", len(documents), overlay_dir)
        return documents

    @staticmethod
    def parse_documents(text: str) -> list[dict[str, Any]]:
        """Parse a multi-document YAML stream, skipping empty documents.

        Raises:
            BuildError: If the stream is not valid YAML or holds non-mappings
        """
        try:
            raw = list(yaml.safe_load_all(text))
        except yaml.YAMLError as e:
            raise BuildError("Rendered output is not valid YAML", details=str(e)) from e

        documents: list[dict[str, Any]] = []
        for index, doc in enumerate(raw):
            if doc is None:
                continue
            if not isinstance(doc, dict):
                raise BuildError(
                    f"Rendered document {index} is not a resource mapping",
                    details=f"Got {type(doc).__name__}",
                )
            documents.append(doc)
        return documents

    def inspect(
        self,
        overlay_dir: Path,
        service_name: str,
        env_patches: EnvPatchSet | None = None,
    ) -> DeploymentTarget:
        """Render the overlay and extract the deployment target.

        Args:
            overlay_dir: Overlay to render
            service_name: Service whose workload is the primary one
            env_patches: Env patches that must appear in the rendered output

        Returns:
            DeploymentTarget for the overlay

        Raises:
            BuildError: If rendering fails or an env patch did not land
            ValidationError: If the primary workload or namespace is ambiguous
        """
        documents = self.render(overlay_dir)
        workloads = self.extract_workloads(documents)
        primary = self.select_primary(workloads, service_name)
        namespace = self.resolve_namespace(workloads)
        managed_by = primary.labels.get(self.constants.MANAGED_BY_LABEL)

        if env_patches:
            self.verify_env_patches(env_patches, workloads, primary)

        logger.info(
            "Primary workload {} in namespace {} (managed-by={})",
            primary.ref,
            namespace,
            managed_by,
        )
        return DeploymentTarget(
            namespace=namespace,
            primary=primary,
            workloads=workloads,
            managed_by=managed_by,
            documents=documents,
        )

    # =========================================================================
    # Extraction
    # =========================================================================

    def extract_workloads(
        self, documents: list[dict[str, Any]]
    ) -> list[RenderedWorkload]:
        """Collect Deployment and Rollout resources."""
        workloads = []
        for doc in documents:
            if doc.get("kind") not in self.constants.WORKLOAD_KINDS:
                continue
            metadata = doc.get("metadata") or {}
            workloads.append(
                RenderedWorkload(
                    kind=doc["kind"],
                    name=str(metadata.get("name", "")),
                    namespace=str(
                        metadata.get("namespace") or self.constants.DEFAULT_NAMESPACE
                    ),
                    labels=dict(metadata.get("labels") or {}),
                    document=doc,
                )
            )
        return workloads

    def select_primary(
        self, workloads: list[RenderedWorkload], service_name: str
    ) -> RenderedWorkload:
        """Pick the workload that corresponds to the service.

        An exact name match wins; otherwise exactly one workload whose name
        starts or ends with the service name (overlay name prefixes/suffixes).

        Raises:
            ValidationError: If zero or several workloads match
        """
        exact = [w for w in workloads if w.name == service_name]
        if len(exact) == 1:
            return exact[0]

        candidates = exact or [
            w
            for w in workloads
            if w.name.startswith(service_name) or w.name.endswith(service_name)
        ]
        if len(candidates) == 1:
            return candidates[0]

        found = ", ".join(w.ref for w in workloads) or "none"
        if not candidates:
            raise ValidationError(
                f"No workload matches service '{service_name}'",
                details=f"Deployment/Rollout workloads in the overlay: {found}",
            )
        raise ValidationError(
            f"Several workloads match service '{service_name}'",
            details="Candidates: " + ", ".join(w.ref for w in candidates),
        )

    def resolve_namespace(self, workloads: list[RenderedWorkload]) -> str:
        """Return the namespace shared by all workloads.

        Raises:
            ValidationError: If workloads span several namespaces
        """
        namespaces = sorted({w.namespace for w in workloads})
        if len(namespaces) > 1:
            raise ValidationError(
                "Workloads in the overlay use different namespaces",
                details="\n".join(f"  • {w.ref}: {w.namespace}" for w in workloads),
            )
        return namespaces[0]

    # =========================================================================
    # Env Patch Verification
    # =========================================================================

    def verify_env_patches(
        self,
        env_patches: EnvPatchSet,
        workloads: list[RenderedWorkload],
        primary: RenderedWorkload,
    ) -> None:
        """Check that every env patch shows up in the rendered output.

        Raises:
            BuildError: If a selector matches no container, or the values
                were not rendered onto it
        """
        for selector, values in env_patches.items():
            target = EnvPatchSet.container_for(selector)
            containers = [
                c for w in workloads for c in w.containers() if c.get("name") == target
            ]
            if not containers and target == self.constants.PRIMARY_CONTAINER_ALIAS:
                containers = primary.containers()[:1]
            if not containers:
                raise BuildError(
                    f"Env patch selector '{selector}' does not match any container",
                    details="Container names in rendered workloads: "
                    + ", ".join(sorted(_container_names(workloads))),
                )

            if not any(_has_env(c, values) for c in containers):
                raise BuildError(
                    f"Env patch '{selector}' was not applied to the rendered output",
                    details="Make sure the overlay has a patch file for the target "
                    "container, referenced from the kustomization's patches.",
                )


def _has_env(container: dict[str, Any], values: dict[str, str]) -> bool:
    rendered = {
        e.get("name"): e.get("value")
        for e in container.get("env") or []
        if isinstance(e, dict)
    }
    return all(rendered.get(name) == value for name, value in values.items())


def _container_names(workloads: list[RenderedWorkload]) -> set[str]:
    return {str(c.get("name")) for w in workloads for c in w.containers()}
