"""
Registry adapter: drives a vendor RegistryClient and a ManifestFetcher.

Lifecycle is Disconnected -> Connected, one way. The first operation that
needs the registry connects; later calls reuse the same client. A failed
connect leaves the adapter disconnected so the next call tries again.

The adapter runs every registry call sequentially and is not safe for
concurrent ``fetch_specs`` / ``get_image_names`` calls on one instance;
only connect is guarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from apbregistry.adapters.base import Adapter
from apbregistry.adapters.errors import (
    AuthError,
    DecodeError,
    FetchError,
    ListingError,
    RegistryConnectionError,
)
from apbregistry.adapters.manifest import ManifestFetcher
from apbregistry.config import effective_tag

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from apbregistry.adapters.base import RegistryClient
    from apbregistry.adapters.metrics import AdapterMetrics
    from apbregistry.config import AdapterConfig
    from apbregistry.spec import Spec

logger = logging.getLogger(__name__)


class RegistryAdapter(Adapter):
    """
    Lists images and fetches their specs from one registry.

    Usage:
        async with create_adapter(config) as adapter:
            names = await adapter.get_image_names()
            specs = await adapter.fetch_specs(names)
    """

    def __init__(
        self,
        config: AdapterConfig,
        client: RegistryClient,
        *,
        fetcher: ManifestFetcher | None = None,
        metrics: AdapterMetrics | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            config: Adapter configuration (not modified).
            client: Vendor control-plane client.
            fetcher: Manifest fetcher (default: one built from config).
            metrics: Optional Prometheus counters.
        """
        self._config = config
        self._client = client
        self._fetcher = fetcher or ManifestFetcher(
            timeout_s=config.timeout_s, verify_tls=config.verify_tls
        )
        self._metrics = metrics
        self._connected = False
        self._connect_lock = asyncio.Lock()

    @property
    def config(self) -> AdapterConfig:
        return self._config

    @property
    def registry_name(self) -> str:
        return self._client.name

    @property
    def connected(self) -> bool:
        return self._connected

    def _record_error(self, error: Exception) -> None:
        if self._metrics is not None:
            self._metrics.record_error(self._config.display_name, error)

    def _in_org(self, image_name: str) -> bool:
        return not self._config.org or image_name.startswith(f"{self._config.org}/")

    async def connect(self) -> None:
        """
        Establish the registry session once. Later calls are no-ops.

        Raises:
            RegistryConnectionError: If the session can't be created.
        """
        if self._connected:
            return

        async with self._connect_lock:
            if self._connected:
                return
            try:
                await self._client.connect()
            except RegistryConnectionError as e:
                logger.error(
                    "Error creating registry session",
                    extra={"registry": self._config.display_name, "error": str(e)},
                )
                self._record_error(e)
                raise
            self._connected = True

        logger.info(
            "Connected to registry",
            extra={"registry": self._config.display_name, "kind": self.registry_name},
        )

    async def get_image_names(self) -> list[str]:
        """
        List every image name in the registry, in registry order.

        Walks all listing pages. If a page fails the walk stops and the
        names gathered so far are attached to the error.

        Raises:
            RegistryConnectionError: If the registry session can't be created.
            ListingError: If a page fails; ``error.partial`` holds the names so far.
        """
        logger.debug(
            "Loading image list",
            extra={"registry": self._config.display_name, "org": self._config.org},
        )
        await self.connect()

        image_names: list[str] = []
        try:
            async for page in self._client.iter_repository_pages():
                matched = [name for name in page if self._in_org(name)]
                image_names.extend(matched)
                if self._metrics is not None:
                    self._metrics.record_page(self._config.display_name, len(matched))
        except ListingError as e:
            logger.error(
                "Encountered an error while loading images, the catalog may be incomplete",
                extra={
                    "registry": self._config.display_name,
                    "loaded": len(image_names),
                    "error": str(e),
                },
            )
            self._record_error(e)
            e.partial = list(image_names)
            raise

        logger.info(
            "Loaded image list",
            extra={"registry": self._config.display_name, "count": len(image_names)},
        )
        return image_names

    async def fetch_specs(self, image_names: Sequence[str]) -> list[Spec]:
        """
        Fetch the spec of each image, in order.

        One fresh token is obtained per call. Images without a spec label
        are skipped. The first failing image stops the batch; images after
        it are never requested.

        Raises:
            RegistryConnectionError: If the registry session can't be created.
            AuthError: If no token could be obtained.
            FetchError: If a manifest request fails; ``error.partial`` holds the specs so far.
            DecodeError: If a manifest or label is malformed; ``error.partial`` as above.
        """
        await self.connect()

        tag = effective_tag(self._config)
        try:
            token = await self._client.get_token()
        except AuthError as e:
            logger.error(
                "Unable to obtain registry authorization token",
                extra={"registry": self._config.display_name, "error": str(e)},
            )
            self._record_error(e)
            raise

        specs: list[Spec] = []
        for image_name in image_names:
            try:
                spec = await self._fetcher.fetch_spec(image_name, tag, token)
            except (FetchError, DecodeError) as e:
                logger.error(
                    "Unable to retrieve spec data for image",
                    extra={"registry": self._config.display_name, "image": image_name, "error": str(e)},
                )
                self._record_error(e)
                e.partial = list(specs)
                raise

            if spec is None:
                if self._metrics is not None:
                    self._metrics.record_spec(self._config.display_name, skipped=True)
                continue

            specs.append(spec)
            if self._metrics is not None:
                self._metrics.record_spec(self._config.display_name)

        logger.info(
            "Fetched specs",
            extra={
                "registry": self._config.display_name,
                "requested": len(image_names),
                "found": len(specs),
                "tag": tag,
            },
        )
        return specs

    async def close(self) -> None:
        """Release the fetcher's and the client's resources."""
        await self._fetcher.close()
        await self._client.close()
        self._connected = False

    async def __aenter__(self) -> RegistryAdapter:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(registry={self._config.display_name!r}, kind={self.registry_name!r})"
