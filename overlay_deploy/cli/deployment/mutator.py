"""Kustomize overlay mutation.

This module writes a deployment's image substitutions, version label,
tracking annotations and env var upserts into the overlay source files:

- ``images:`` entries in the kustomization, keyed by image name
- the version label under the ``labels:`` transformer
- tracking annotations under ``commonAnnotations:``
- ``env`` entries of containers in the strategic-merge patch files the
  kustomization references

Files are only rewritten when their parsed content actually changes, so
applying the same mutation twice leaves the overlay untouched.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger

from .config import RunMetadata
from .constants import DeploymentConstants
from .errors import BuildError
from .resolver import EnvPatchSet, ImageSpec


@dataclass(frozen=True)
class OverlayMutation:
    """The full set of edits for one deployment.

    Attributes:
        images: Image substitutions (first entry is the primary image)
        labels: Labels applied to all resources
        annotations: Tracking annotations applied to all resources
        env_patches: Env var upserts keyed by selector
    """

    images: ImageSpec
    labels: dict[str, str]
    annotations: dict[str, str]
    env_patches: EnvPatchSet = field(default_factory=EnvPatchSet)

    @classmethod
    def build(
        cls,
        images: ImageSpec,
        env_patches: EnvPatchSet,
        metadata: RunMetadata,
        constants: DeploymentConstants | None = None,
    ) -> OverlayMutation:
        """Derive labels and annotations from the primary image and run metadata."""
        constants = constants or DeploymentConstants()
        tag = images.primary_tag
        deployment_id = f"{tag}-{metadata.run_id}" if metadata.run_id else tag

        annotations = {constants.deployment_id_annotation: deployment_id}
        if metadata.actor:
            annotations[constants.last_deployed_by_annotation] = metadata.actor
        if metadata.run_id:
            annotations[constants.run_id_annotation] = metadata.run_id
        annotations[constants.environment_annotation] = metadata.environment
        annotations[constants.deployed_at_annotation] = metadata.timestamp_iso

        return cls(
            images=images,
            labels={constants.VERSION_LABEL: tag},
            annotations=annotations,
            env_patches=env_patches,
        )


@dataclass
class MutationResult:
    """Outcome of applying an OverlayMutation.

    Attributes:
        touched_files: Files whose content changed, in write order
        unresolved_selectors: Env selectors that matched no patch container
    """

    touched_files: list[Path] = field(default_factory=list)
    unresolved_selectors: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.touched_files)


class ManifestMutator:
    """Applies OverlayMutations to a kustomize overlay directory."""

    def __init__(
        self,
        overlay_dir: Path,
        service_name: str,
        constants: DeploymentConstants | None = None,
    ) -> None:
        """Initialize the mutator.

        Args:
            overlay_dir: Directory holding the kustomization file
            service_name: Service name, used to pick the primary patch target
            constants: Optional deployment constants
        """
        self.overlay_dir = Path(overlay_dir)
        self.service_name = service_name
        self.constants = constants or DeploymentConstants()

    # =========================================================================
    # Public Interface
    # =========================================================================

    def find_kustomization(self) -> Path:
        """Locate the overlay's kustomization file.

        Raises:
            BuildError: If no kustomization file exists
        """
        for name in self.constants.KUSTOMIZATION_FILES:
            candidate = self.overlay_dir / name
            if candidate.is_file():
                return candidate
        raise BuildError(
            f"No kustomization file found in {self.overlay_dir}",
            details="Expected one of: "
            + ", ".join(self.constants.KUSTOMIZATION_FILES),
        )

    def apply(self, mutation: OverlayMutation) -> MutationResult:
        """Write the mutation into the overlay.

        Args:
            mutation: Edits to apply

        Returns:
            MutationResult listing the touched files

        Raises:
            BuildError: If the kustomization or a referenced patch file is
                missing or cannot be parsed
        """
        result = MutationResult()
        kustomization_path = self.find_kustomization()
        original = _load_document(kustomization_path)
        if not isinstance(original, dict):
            raise BuildError(
                f"{kustomization_path.name} must contain a YAML mapping",
                details=f"File: {kustomization_path}",
            )

        kustomization = copy.deepcopy(original)
        self._set_images(kustomization, mutation.images, kustomization_path)
        self._set_labels(kustomization, mutation.labels, kustomization_path)
        self._set_annotations(kustomization, mutation.annotations, kustomization_path)

        if kustomization != original:
            _write_document(kustomization_path, kustomization)
            result.touched_files.append(kustomization_path)
            logger.debug("Updated {}", kustomization_path)

        if mutation.env_patches:
            touched, unresolved = self._apply_env_patches(
                kustomization, mutation.env_patches
            )
            result.touched_files.extend(touched)
            result.unresolved_selectors.extend(unresolved)

        return result

    # =========================================================================
    # Kustomization Edits
    # =========================================================================

    def _set_images(
        self, kustomization: dict[str, Any], images: ImageSpec, path: Path
    ) -> None:
        # An empty key loads as None and means the same as a missing one
        entries = kustomization.get("images") or []
        kustomization["images"] = entries
        if not isinstance(entries, list):
            raise BuildError(f"'images' in {path.name} must be a list")

        for ref in images.images:
            existing = next(
                (
                    e
                    for e in entries
                    if isinstance(e, dict) and e.get("name") == ref.name
                ),
                None,
            )
            if existing is None:
                entries.append({"name": ref.name, "newTag": ref.new_tag})
                continue
            existing["newTag"] = ref.new_tag
            existing.pop("digest", None)

    def _set_labels(
        self, kustomization: dict[str, Any], labels: dict[str, str], path: Path
    ) -> None:
        common = kustomization.get("commonLabels")
        had_labels = kustomization.get("labels") is not None
        entries = kustomization.get("labels") or []
        kustomization["labels"] = entries
        if not isinstance(entries, list):
            raise BuildError(f"'labels' in {path.name} must be a list")

        for key, value in labels.items():
            # Keep a label where the overlay already declares it
            if isinstance(common, dict) and key in common:
                common[key] = value
                continue
            owner = next(
                (
                    e
                    for e in entries
                    if isinstance(e, dict)
                    and isinstance(e.get("pairs"), dict)
                    and key in e["pairs"]
                ),
                None,
            )
            if owner is None:
                entries.append({"pairs": {key: value}, "includeSelectors": False})
            else:
                owner["pairs"][key] = value

        if not entries and not had_labels:
            del kustomization["labels"]

    def _set_annotations(
        self, kustomization: dict[str, Any], annotations: dict[str, str], path: Path
    ) -> None:
        common = kustomization.get("commonAnnotations") or {}
        kustomization["commonAnnotations"] = common
        if not isinstance(common, dict):
            raise BuildError(f"'commonAnnotations' in {path.name} must be a mapping")
        common.update(annotations)

    # =========================================================================
    # Env Patches
    # =========================================================================

    def patch_files(self, kustomization: dict[str, Any]) -> list[Path]:
        """List the strategic-merge patch files referenced by the kustomization."""
        paths: list[str] = []
        for entry in kustomization.get("patches") or []:
            if isinstance(entry, dict) and isinstance(entry.get("path"), str):
                paths.append(entry["path"])
        for entry in kustomization.get("patchesStrategicMerge") or []:
            # Inline patches are YAML text, not file references
            if isinstance(entry, str) and "\n" not in entry:
                paths.append(entry)

        files: list[Path] = []
        for relative in paths:
            resolved = self.overlay_dir / relative
            if not resolved.is_file():
                raise BuildError(
                    f"Patch file referenced by kustomization not found: {relative}",
                    details=f"Resolved to {resolved}",
                )
            if resolved not in files:
                files.append(resolved)
        return files

    def _apply_env_patches(
        self, kustomization: dict[str, Any], env_patches: EnvPatchSet
    ) -> tuple[list[Path], list[str]]:
        loaded: list[tuple[Path, list[Any], list[Any]]] = []
        for patch_file in self.patch_files(kustomization):
            original = _load_documents(patch_file)
            loaded.append((patch_file, original, copy.deepcopy(original)))

        unresolved: list[str] = []
        for selector, values in env_patches.items():
            containers = self._resolve_containers(
                selector, [docs for _, _, docs in loaded]
            )
            if not containers:
                logger.warning("Env selector '{}' matched no patch container", selector)
                unresolved.append(selector)
                continue
            for container in containers:
                _upsert_env(container, values)

        touched: list[Path] = []
        for patch_file, original, docs in loaded:
            if docs != original:
                _write_documents(patch_file, docs)
                touched.append(patch_file)
                logger.debug("Updated env patch {}", patch_file)
        return touched, unresolved

    def _resolve_containers(
        self, selector: str, documents: list[list[Any]]
    ) -> list[dict[str, Any]]:
        target = EnvPatchSet.container_for(selector)
        workloads = [
            doc
            for docs in documents
            for doc in docs
            if isinstance(doc, dict)
            and doc.get("kind") in self.constants.WORKLOAD_KINDS
        ]

        matches = [
            container
            for workload in workloads
            for container in _containers(workload)
            if container.get("name") == target
        ]
        if matches or target != self.constants.PRIMARY_CONTAINER_ALIAS:
            return matches

        primary = self._primary_patch(workloads)
        if primary is None:
            return []
        containers = _containers(primary)
        return containers[:1]

    def _primary_patch(self, workloads: list[dict[str, Any]]) -> dict[str, Any] | None:
        def name_of(doc: dict[str, Any]) -> str:
            return str((doc.get("metadata") or {}).get("name", ""))

        exact = [w for w in workloads if name_of(w) == self.service_name]
        if exact:
            return exact[0]
        partial = [
            w
            for w in workloads
            if name_of(w).startswith(self.service_name)
            or name_of(w).endswith(self.service_name)
        ]
        if len(partial) == 1:
            return partial[0]
        if len(workloads) == 1:
            return workloads[0]
        return None


# =============================================================================
# Helpers
# =============================================================================


def _containers(workload: dict[str, Any]) -> list[dict[str, Any]]:
    spec = (((workload.get("spec") or {}).get("template") or {}).get("spec")) or {}
    containers = spec.get("containers") or []
    return [c for c in containers if isinstance(c, dict)]


def _upsert_env(container: dict[str, Any], values: dict[str, str]) -> None:
    env = container.get("env")
    if not isinstance(env, list):
        env = []
        container["env"] = env

    for name, value in values.items():
        for index, entry in enumerate(env):
            if isinstance(entry, dict) and entry.get("name") == name:
                if entry.get("value") != value or "valueFrom" in entry:
                    env[index] = {"name": name, "value": value}
                break
        else:
            env.append({"name": name, "value": value})


def _load_document(path: Path) -> Any:
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise BuildError(f"Failed to parse {path.name}", details=str(e)) from e


def _load_documents(path: Path) -> list[Any]:
    try:
        with open(path) as f:
            return [doc for doc in yaml.safe_load_all(f) if doc is not None]
    except (OSError, yaml.YAMLError) as e:
        raise BuildError(f"Failed to parse patch {path.name}", details=str(e)) from e


def _write_document(path: Path, data: Any) -> None:
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def _write_documents(path: Path, documents: list[Any]) -> None:
    with open(path, "w") as f:
        yaml.safe_dump_all(documents, f, default_flow_style=False, sort_keys=False)
