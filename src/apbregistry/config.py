"""
Registry adapter configuration.

An AdapterConfig is immutable for the lifetime of an adapter. The tag
default is never written back into the config: callers use
``effective_tag(config)`` at the point of use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

DEFAULT_TAG = "latest"

# Registry kinds understood by apbregistry.adapters.factory
REGISTRY_TYPES = frozenset({"ecr", "apiv2"})

# Env vars consulted when credentials are absent from a config file
USER_ENV_VAR = "REGISTRY_USER"
PASSWORD_ENV_VAR = "REGISTRY_PASSWORD"


@dataclass(frozen=True)
class AdapterConfig:
    """
    Configuration for a single registry adapter.

    Attributes:
        type: Registry kind ("ecr" or "apiv2").
        name: Label used in logs and metrics (defaults to the type).
        org: Namespace filter; only repositories under "{org}/" are listed.
        tag: Image tag to fetch. Empty means "latest".
        url: Registry base URL (required for apiv2).
        user: Basic-auth user (apiv2).
        password: Basic-auth password (apiv2).
        region: AWS region for ECR (ambient discovery when empty).
        registry_id: AWS account id owning the ECR registry (optional).
        page_size: Repositories requested per listing page.
        timeout_s: Total timeout per HTTP request.
        verify_tls: Verify registry TLS certificates.
    """

    type: str = "ecr"
    name: str = ""
    org: str = ""
    tag: str = ""
    url: str = ""
    user: str = ""
    password: str = ""
    region: str = ""
    registry_id: str = ""
    page_size: int = 100
    timeout_s: float = 30.0
    verify_tls: bool = True

    def __post_init__(self) -> None:
        if self.type not in REGISTRY_TYPES:
            raise ValueError(
                f"type must be one of {sorted(REGISTRY_TYPES)}, got {self.type!r}"
            )
        if self.type == "apiv2" and not self.url:
            raise ValueError("url required for apiv2 registries")
        if self.url and not self.url.startswith(("http://", "https://")):
            raise ValueError(f"url must start with http:// or https://, got {self.url!r}")
        if not 1 <= self.page_size <= 1000:
            raise ValueError(f"page_size must be in [1, 1000], got {self.page_size}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")
        if self.org.strip("/") != self.org:
            raise ValueError(f"org must not start or end with '/', got {self.org!r}")

    @property
    def display_name(self) -> str:
        return self.name or self.type

    def __repr__(self) -> str:
        # Keep credentials out of reprs that end up in logs and tracebacks
        password = "***" if self.password else ""
        return (
            f"AdapterConfig(type={self.type!r}, name={self.display_name!r}, org={self.org!r}, "
            f"tag={self.tag!r}, url={self.url!r}, user={self.user!r}, password={password!r})"
        )


def effective_tag(config: AdapterConfig) -> str:
    """Tag to fetch for ``config``: the configured one, or "latest"."""
    return config.tag or DEFAULT_TAG


def config_from_mapping(data: Mapping[str, Any]) -> AdapterConfig:
    """
    Build an AdapterConfig from a plain mapping.

    Unknown keys are rejected. Missing credentials fall back to the
    REGISTRY_USER / REGISTRY_PASSWORD environment variables.

    Raises:
        ValueError: On unknown keys or invalid values.
    """
    known = {f.name for f in fields(AdapterConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown registry config keys: {sorted(unknown)}")

    values = {k: v for k, v in data.items() if v is not None}
    # YAML renders bare numeric tags (e.g. 1.0) as numbers
    if "tag" in values:
        values["tag"] = str(values["tag"])
    values.setdefault("user", os.environ.get(USER_ENV_VAR, ""))
    values.setdefault("password", os.environ.get(PASSWORD_ENV_VAR, ""))
    return AdapterConfig(**values)


def load_config(path: Path) -> AdapterConfig:
    """
    Load an AdapterConfig from a YAML file.

    The file is either a flat mapping of AdapterConfig fields or holds
    them under a top-level ``registry:`` key.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file isn't valid YAML, isn't a mapping, or holds invalid values.
    """
    with path.open() as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Registry config is not valid YAML: {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Registry config must be a mapping: {path}")
    if "registry" in data:
        data = data["registry"]
        if not isinstance(data, dict):
            raise ValueError(f"'registry' section must be a mapping: {path}")

    return config_from_mapping(data)
