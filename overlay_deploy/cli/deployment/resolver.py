"""Image and env patch input resolution.

This module turns the loosely-typed deployment inputs (discrete image/tag
strings, an images JSON array and an env patches JSON object) into typed
structures. All shape checks happen here so later phases never see raw JSON.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic import ValidationError as PydanticValidationError

from .constants import DeploymentConstants
from .errors import ValidationError


class ImageRef(BaseModel):
    """One image substitution target.

    Attributes:
        name: Full image repository path without a tag
        new_tag: Tag to deploy (serialized as ``newTag``)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: StrictStr = Field(min_length=1)
    new_tag: StrictStr = Field(alias="newTag", min_length=1)


class ImageSpec(BaseModel):
    """Ordered, non-empty set of image substitutions.

    The first entry is the primary image: its tag drives the version label,
    the deployment id and the generated commit message.
    """

    model_config = ConfigDict(frozen=True)

    images: tuple[ImageRef, ...]

    @property
    def primary(self) -> ImageRef:
        return self.images[0]

    @property
    def primary_tag(self) -> str:
        return self.images[0].new_tag


class EnvPatchSet(BaseModel):
    """Environment variable upserts keyed by target selector.

    A selector has the form ``<target>.env`` where ``<target>`` is a container
    name, or the alias ``container`` for the primary workload's first container.
    """

    model_config = ConfigDict(frozen=True)

    patches: dict[str, dict[StrictStr, StrictStr]] = Field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.patches)

    def items(self) -> Iterator[tuple[str, dict[str, str]]]:
        return iter(self.patches.items())

    @staticmethod
    def container_for(selector: str) -> str:
        """Return the container part of a selector (``app.env`` -> ``app``)."""
        suffix = DeploymentConstants.ENV_SELECTOR_SUFFIX
        return selector[: -len(suffix)]


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def resolve_images(
    image: str | None = None,
    tag: str | None = None,
    images_json: str | None = None,
) -> ImageSpec:
    """Resolve the image inputs into an ImageSpec.

    Args:
        image: Image repository (used together with ``tag``)
        tag: Image tag (used together with ``image``)
        images_json: JSON array of ``{"name", "newTag"}`` objects

    Returns:
        ImageSpec with at least one entry

    Raises:
        ValidationError: If both or neither input forms are given, or the
            images JSON is malformed
    """
    has_pair = not _blank(image) or not _blank(tag)
    has_json = not _blank(images_json)

    if has_pair and has_json:
        raise ValidationError(
            "Provide either image/tag or images_json, not both",
            details="images_json replaces the image and tag inputs entirely.",
        )
    if not has_pair and not has_json:
        raise ValidationError(
            "Nothing to deploy: provide image and tag, or images_json",
        )

    if has_pair:
        if _blank(image) or _blank(tag):
            raise ValidationError("image and tag must be provided together")
        assert image is not None and tag is not None
        return ImageSpec(images=(ImageRef(name=image.strip(), new_tag=tag.strip()),))

    assert images_json is not None
    return ImageSpec(images=tuple(_parse_images_json(images_json)))


def _parse_images_json(raw: str) -> list[ImageRef]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError("images_json is not valid JSON", details=str(e)) from e

    if not isinstance(data, list):
        raise ValidationError(
            "images_json must be a JSON array of {name, newTag} objects",
            details=f"Got {type(data).__name__}",
        )
    if not data:
        raise ValidationError("images_json is empty: nothing to deploy")

    images: list[ImageRef] = []
    seen: dict[str, int] = {}
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValidationError(
                f"images_json[{index}] must be an object with name and newTag"
            )
        try:
            ref = ImageRef.model_validate(entry)
        except PydanticValidationError as e:
            raise ValidationError(
                f"images_json[{index}] is invalid: name and newTag must be "
                "non-empty strings",
                details=str(e),
            ) from e
        if ref.name in seen:
            raise ValidationError(
                f"images_json[{index}] duplicates image '{ref.name}' "
                f"from images_json[{seen[ref.name]}]"
            )
        seen[ref.name] = index
        images.append(ref)
    return images


def resolve_env_patches(env_patches: str | Mapping[str, Any] | None) -> EnvPatchSet:
    """Resolve the env patches input into an EnvPatchSet.

    Args:
        env_patches: JSON text (or an already-decoded mapping) of
            ``selector -> {NAME: value}``

    Returns:
        EnvPatchSet, empty when no patches were given

    Raises:
        ValidationError: If the input is not a two-level string mapping or a
            selector has an unsupported shape
    """
    if env_patches is None:
        return EnvPatchSet()

    if isinstance(env_patches, str):
        if not env_patches.strip():
            return EnvPatchSet()
        try:
            data = json.loads(env_patches)
        except json.JSONDecodeError as e:
            raise ValidationError(
                "env_patches is not valid JSON", details=str(e)
            ) from e
    else:
        data = env_patches

    if not isinstance(data, Mapping):
        raise ValidationError(
            "env_patches must be a JSON object of selector -> {NAME: value}",
            details=f"Got {type(data).__name__}",
        )

    suffix = DeploymentConstants.ENV_SELECTOR_SUFFIX
    for selector, values in data.items():
        if (
            not isinstance(selector, str)
            or not selector.endswith(suffix)
            or len(selector) == len(suffix)
        ):
            raise ValidationError(
                f"env_patches selector '{selector}' is not supported",
                details="Selectors look like '<container>.env', "
                "or 'container.env' for the primary container.",
            )
        if not isinstance(values, Mapping):
            raise ValidationError(
                f"env_patches['{selector}'] must be an object of NAME -> value"
            )
        for name, value in values.items():
            if not isinstance(value, str):
                raise ValidationError(
                    f"env_patches['{selector}']['{name}'] must be a string, "
                    f"got {type(value).__name__}"
                )
            if not name:
                raise ValidationError(
                    f"env_patches['{selector}'] contains an empty variable name"
                )

    try:
        return EnvPatchSet(patches=dict(data))
    except PydanticValidationError as e:
        raise ValidationError("env_patches is invalid", details=str(e)) from e
