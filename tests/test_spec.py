"""Tests for the bundle spec model."""

from __future__ import annotations

import orjson
import pytest
from pydantic import ValidationError

from apbregistry.spec import ParameterDescriptor, Plan, Spec


class TestSpec:
    """Spec validation and serialization."""

    def test_minimal_spec(self) -> None:
        spec = Spec.model_validate({"name": "db-apb"})
        assert spec.runtime == 1
        assert spec.version == "1.0"
        assert spec.async_ == "optional"
        assert spec.plans == []

    def test_name_required(self) -> None:
        with pytest.raises(ValidationError):
            Spec.model_validate({"description": "nameless"})

    def test_async_alias(self) -> None:
        spec = Spec.model_validate({"name": "db-apb", "async": "required"})
        assert spec.async_ == "required"

    def test_invalid_async_value(self) -> None:
        with pytest.raises(ValidationError):
            Spec.model_validate({"name": "db-apb", "async": "sometimes"})

    def test_null_values_use_defaults(self) -> None:
        spec = Spec.model_validate({"name": "db-apb", "description": None, "tags": None})
        assert spec.description == ""
        assert spec.tags == []

    def test_unknown_keys_ignored(self) -> None:
        spec = Spec.model_validate({"name": "db-apb", "alpha": {"dashboard_redirect": True}})
        assert not hasattr(spec, "alpha")

    def test_spec_is_frozen(self) -> None:
        spec = Spec(name="db-apb")
        with pytest.raises(ValidationError):
            spec.name = "other"  # type: ignore[misc]

    def test_json_uses_wire_names(self) -> None:
        spec = Spec.model_validate({"name": "db-apb", "async": "unsupported"})
        data = orjson.loads(spec.to_json())
        assert data["async"] == "unsupported"
        assert "async_" not in data

    def test_json_roundtrip(self) -> None:
        spec = Spec.model_validate(
            {
                "name": "db-apb",
                "runtime": 2,
                "image": "reg/db-apb:latest",
                "plans": [{"name": "dev", "parameters": [{"name": "size", "type": "int", "minimum": 1}]}],
            }
        )
        assert Spec.from_json(spec.to_json()) == spec
        assert Spec.from_json(spec.to_json().decode()) == spec


class TestPlan:
    """Plan and parameter descriptors."""

    def test_plan_name_required(self) -> None:
        with pytest.raises(ValidationError):
            Plan.model_validate({"description": "no name"})

    def test_deprecated_maxlength_alias(self) -> None:
        param = ParameterDescriptor.model_validate({"name": "db", "maxlength": 63})
        assert param.max_length == 63

    def test_max_length(self) -> None:
        param = ParameterDescriptor.model_validate({"name": "db", "max_length": 10})
        assert param.max_length == 10

    def test_enum_parameter(self) -> None:
        param = ParameterDescriptor.model_validate(
            {"name": "version", "type": "enum", "enum": ["9.5", "9.6"], "default": "9.6"}
        )
        assert param.enum == ["9.5", "9.6"]
        assert param.default == "9.6"
