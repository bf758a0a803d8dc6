"""Tests for AdapterConfig validation and loading."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from unittest import mock

import pytest

from apbregistry.config import (
    DEFAULT_TAG,
    AdapterConfig,
    config_from_mapping,
    effective_tag,
    load_config,
)


class TestAdapterConfig:
    """AdapterConfig.__post_init__ validation."""

    def test_default_config_valid(self) -> None:
        config = AdapterConfig()
        assert config.type == "ecr"
        assert config.tag == ""
        assert config.page_size == 100
        assert config.display_name == "ecr"

    def test_config_is_frozen(self) -> None:
        config = AdapterConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.tag = "latest"  # type: ignore[misc]

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="type"):
            AdapterConfig(type="quay")

    def test_apiv2_requires_url(self) -> None:
        with pytest.raises(ValueError, match="url"):
            AdapterConfig(type="apiv2")

    def test_url_scheme(self) -> None:
        with pytest.raises(ValueError, match="url"):
            AdapterConfig(type="apiv2", url="registry.example.com")

    def test_page_size_bounds(self) -> None:
        with pytest.raises(ValueError, match="page_size"):
            AdapterConfig(page_size=0)
        with pytest.raises(ValueError, match="page_size"):
            AdapterConfig(page_size=5000)

    def test_timeout_positive(self) -> None:
        with pytest.raises(ValueError, match="timeout_s"):
            AdapterConfig(timeout_s=0)

    def test_org_without_slashes(self) -> None:
        with pytest.raises(ValueError, match="org"):
            AdapterConfig(org="myorg/")

    def test_repr_hides_password(self) -> None:
        config = AdapterConfig(type="apiv2", url="https://r.example.com", user="bot", password="hunter2")
        assert "hunter2" not in repr(config)


class TestEffectiveTag:
    """effective_tag() defaulting."""

    def test_empty_tag_is_latest(self) -> None:
        config = AdapterConfig(tag="")
        assert effective_tag(config) == DEFAULT_TAG == "latest"
        assert config.tag == ""

    def test_explicit_tag(self) -> None:
        assert effective_tag(AdapterConfig(tag="v1.2")) == "v1.2"


class TestLoading:
    """config_from_mapping() and load_config()."""

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown"):
            config_from_mapping({"type": "ecr", "colour": "blue"})

    def test_credentials_from_env(self) -> None:
        env = {"REGISTRY_USER": "bot", "REGISTRY_PASSWORD": "secret"}
        with mock.patch.dict(os.environ, env):
            config = config_from_mapping({"type": "apiv2", "url": "https://r.example.com"})
        assert config.user == "bot"
        assert config.password == "secret"

    def test_explicit_credentials_win(self) -> None:
        with mock.patch.dict(os.environ, {"REGISTRY_USER": "env-user"}):
            config = config_from_mapping({"type": "apiv2", "url": "https://r.example.com", "user": "me"})
        assert config.user == "me"

    def test_numeric_tag_coerced(self) -> None:
        assert config_from_mapping({"tag": 1.0}).tag == "1.0"

    def test_load_nested_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.yaml"
        path.write_text(
            "registry:\n"
            "  type: apiv2\n"
            "  name: internal\n"
            "  url: https://registry.example.com\n"
            "  org: myorg\n"
            "  page_size: 50\n"
        )

        config = load_config(path)

        assert config.type == "apiv2"
        assert config.display_name == "internal"
        assert config.org == "myorg"
        assert config.page_size == 50

    def test_load_flat_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.yaml"
        path.write_text("type: ecr\nregion: eu-west-1\ntag: stable\n")

        config = load_config(path)

        assert config.region == "eu-west-1"
        assert config.tag == "stable"

    def test_load_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.yaml"
        path.write_text("- ecr\n- apiv2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_load_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.yaml"
        path.write_text("type: [ecr\n")
        with pytest.raises(ValueError, match="YAML"):
            load_config(path)

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")
