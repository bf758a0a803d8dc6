"""Adapter construction from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from apbregistry.adapters.adapter import RegistryAdapter
from apbregistry.adapters.apiv2 import APIV2_NAME, DockerV2Client
from apbregistry.adapters.ecr import ECR_NAME, ECRClient

if TYPE_CHECKING:
    from apbregistry.adapters.base import RegistryClient
    from apbregistry.adapters.metrics import AdapterMetrics
    from apbregistry.config import AdapterConfig


def create_client(config: AdapterConfig) -> RegistryClient:
    """
    Build the vendor client selected by ``config.type``.

    Raises:
        ValueError: For an unknown registry type.
    """
    if config.type == ECR_NAME:
        return ECRClient(config)
    if config.type == APIV2_NAME:
        return DockerV2Client(config)
    raise ValueError(f"Unknown registry type: {config.type!r}")


def create_adapter(
    config: AdapterConfig,
    *,
    metrics: AdapterMetrics | None = None,
    client: RegistryClient | None = None,
) -> RegistryAdapter:
    """
    Build a RegistryAdapter for ``config``.

    Args:
        config: Adapter configuration.
        metrics: Optional Prometheus counters.
        client: Vendor client override (default: selected by config.type).
    """
    return RegistryAdapter(config, client or create_client(config), metrics=metrics)
