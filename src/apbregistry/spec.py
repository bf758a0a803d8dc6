"""
Bundle spec model.

A spec is the service-bundle metadata an image carries, base64-encoded YAML
in the ``com.redhat.apb.spec`` label of its manifest. Catalog entries are
built from these. Payloads come from third-party images, so unknown keys are
ignored and empty (null) YAML values fall back to defaults.
"""

from __future__ import annotations

from typing import Any, Literal

import orjson
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class _SpecModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """Treat ``key:`` with no value as absent."""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class ParameterDescriptor(_SpecModel):
    """A user-facing parameter of a plan."""

    name: str = Field(..., min_length=1, description="Parameter name")
    title: str = Field(default="", description="Display title")
    type: str = Field(default="", description="Parameter type (string, int, enum, ...)")
    description: str = Field(default="", description="Help text")
    default: Any = Field(default=None, description="Default value")
    required: bool = Field(default=False, description="Must be supplied by the user")
    updatable: bool = Field(default=False, description="Can change after provisioning")
    pattern: str = Field(default="", description="Regex the value must match")
    enum: list[str] = Field(default_factory=list, description="Allowed values")
    max_length: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("max_length", "maxlength"),
        description="Maximum string length",
    )
    min_length: int | None = Field(default=None, ge=0, description="Minimum string length")
    minimum: float | None = Field(default=None, description="Inclusive lower bound")
    maximum: float | None = Field(default=None, description="Inclusive upper bound")
    exclusive_minimum: float | None = Field(default=None, description="Exclusive lower bound")
    exclusive_maximum: float | None = Field(default=None, description="Exclusive upper bound")
    display_type: str = Field(default="", description="UI widget hint")
    display_group: str = Field(default="", description="UI grouping hint")


class Plan(_SpecModel):
    """A provisioning plan offered by a bundle."""

    name: str = Field(..., min_length=1, description="Plan name")
    description: str = Field(default="", description="Plan description")
    free: bool = Field(default=False, description="Plan is free of charge")
    bindable: bool = Field(default=False, description="Plan supports binding")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form metadata")
    parameters: list[ParameterDescriptor] = Field(
        default_factory=list, description="Provision parameters"
    )
    bind_parameters: list[ParameterDescriptor] = Field(
        default_factory=list, description="Bind parameters"
    )
    updates_to: list[str] = Field(default_factory=list, description="Plans this can update to")


class Spec(_SpecModel):
    """
    Bundle spec decoded from an image label.

    Attributes:
        id: Catalog id (assigned downstream; empty when freshly decoded).
        runtime: Bundle runtime version from the runtime label.
        version: Spec format version.
        name: Fully qualified bundle name.
        image: Image reference the spec was read from ("host/name:tag").
        tags: Catalog tags.
        bindable: Bundle supports binding.
        description: Bundle description.
        metadata: Free-form display metadata.
        async_: Async provisioning support ("async" on the wire).
        plans: Offered plans.
    """

    id: str = Field(default="", description="Catalog id")
    runtime: int = Field(default=1, ge=1, description="Bundle runtime version")
    version: str = Field(default="1.0", description="Spec format version")
    name: str = Field(..., min_length=1, description="Fully qualified bundle name")
    image: str = Field(default="", description="Source image reference")
    tags: list[str] = Field(default_factory=list, description="Catalog tags")
    bindable: bool = Field(default=False, description="Bundle supports binding")
    description: str = Field(default="", description="Bundle description")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Display metadata")
    async_: Literal["required", "optional", "unsupported"] = Field(
        default="optional", alias="async", description="Async provisioning support"
    )
    plans: list[Plan] = Field(default_factory=list, description="Offered plans")

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> str:
        """YAML reads ``version: 1.0`` as a float."""
        return str(v)

    def to_json(self) -> bytes:
        """Serialize to JSON bytes using orjson."""
        return orjson.dumps(self.model_dump(mode="json", by_alias=True))

    @classmethod
    def from_json(cls, data: bytes | str) -> Spec:
        """Deserialize from JSON."""
        if isinstance(data, str):
            data = data.encode()
        return cls.model_validate(orjson.loads(data))
