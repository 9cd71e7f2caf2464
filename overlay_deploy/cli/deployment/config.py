"""Run configuration and metadata for a deployment."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .constants import DeploymentConstants
from .errors import ValidationError
from .mode import ForceMode


@dataclass(frozen=True)
class RunMetadata:
    """Per-run context stamped onto the overlay.

    Captured once when the run starts and passed explicitly to every phase,
    so re-applying a mutation within the same run is a no-op.

    Attributes:
        service_name: Name of the service being deployed
        environment: Target environment (e.g. staging, production)
        actor: Who triggered the deployment
        run_id: CI run identifier
        timestamp: Wall-clock time of the run (UTC)
    """

    service_name: str
    environment: str
    actor: str = ""
    run_id: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def timestamp_iso(self) -> str:
        return self.timestamp.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class DeployConfig(BaseModel):
    """Validated inputs for one deployment run."""

    model_config = ConfigDict(frozen=True)

    overlay_dir: Path
    service_name: str = Field(min_length=1)
    environment: str = Field(min_length=1)
    image: str | None = None
    tag: str | None = None
    images_json: str | None = None
    env_patches: str | None = None
    actor: str = ""
    run_id: str = ""
    detect_gitops: bool = True
    force_mode: ForceMode = ForceMode.AUTO
    commit_message: str | None = None
    create_namespace: bool = True
    wait_timeout: int = Field(default=DeploymentConstants.DEFAULT_WAIT_TIMEOUT, ge=0)
    poll_interval: float = Field(
        default=DeploymentConstants.DEFAULT_POLL_INTERVAL, gt=0
    )
    git_remote: str = DeploymentConstants.DEFAULT_GIT_REMOTE
    dry_run: bool = False

    @field_validator("overlay_dir")
    @classmethod
    def _overlay_dir_exists(cls, value: Path) -> Path:
        if not value.is_dir():
            raise ValueError(f"overlay directory not found: {value}")
        return value.resolve()

    @field_validator("service_name", "environment")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @classmethod
    def create(cls, **values: Any) -> DeployConfig:
        """Build a config, translating pydantic errors into ValidationError."""
        try:
            return cls(**values)
        except PydanticValidationError as e:
            problems = "\n".join(
                f"  • {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ValidationError("Invalid deployment inputs", details=problems) from e

    def run_metadata(self) -> RunMetadata:
        return RunMetadata(
            service_name=self.service_name,
            environment=self.environment,
            actor=self.actor,
            run_id=self.run_id,
        )
