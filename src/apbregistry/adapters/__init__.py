"""
Registry adapters.

An adapter enumerates the images of one container registry and extracts
the bundle spec embedded in each image's manifest:
- connect once, lazily
- list repositories page by page
- obtain a short-lived token per fetch batch
- fetch manifests sequentially, stopping at the first failure
"""

from apbregistry.adapters.adapter import RegistryAdapter
from apbregistry.adapters.apiv2 import APIV2_NAME, DockerV2Client
from apbregistry.adapters.base import Adapter, AuthorizationToken, RegistryClient
from apbregistry.adapters.ecr import ECR_NAME, ECRClient
from apbregistry.adapters.errors import (
    AuthError,
    DecodeError,
    FetchError,
    ListingError,
    RegistryConnectionError,
    RegistryError,
)
from apbregistry.adapters.factory import create_adapter, create_client
from apbregistry.adapters.manifest import (
    RUNTIME_LABEL,
    SPEC_LABEL,
    ManifestFetcher,
    manifest_to_spec,
)
from apbregistry.adapters.metrics import AdapterMetrics

__all__ = [
    "APIV2_NAME",
    "ECR_NAME",
    "RUNTIME_LABEL",
    "SPEC_LABEL",
    "Adapter",
    "AdapterMetrics",
    "AuthError",
    "AuthorizationToken",
    "DecodeError",
    "DockerV2Client",
    "ECRClient",
    "FetchError",
    "ListingError",
    "ManifestFetcher",
    "RegistryAdapter",
    "RegistryClient",
    "RegistryConnectionError",
    "RegistryError",
    "create_adapter",
    "create_client",
    "manifest_to_spec",
]
