"""
Generic Docker Registry HTTP API v2 client.

Listing walks the catalog endpoint, following RFC 5988 ``Link`` headers:

    GET /v2/_catalog?n=100
    Link: </v2/_catalog?last=b&n=100>; rel="next"
    {"repositories": ["a", "b"]}

The "token" for manifest access is the configured basic credential,
base64("user:password"), valid against the configured URL.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from apbregistry.adapters.base import AuthorizationToken, RegistryClient
from apbregistry.adapters.errors import AuthError, ListingError, RegistryConnectionError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from apbregistry.config import AdapterConfig

logger = logging.getLogger(__name__)

APIV2_NAME = "apiv2"


class DockerV2Client(RegistryClient):
    """Docker Registry v2 client over a memoized aiohttp session."""

    def __init__(self, config: AdapterConfig) -> None:
        self._config = config
        self._base_url = config.url.rstrip("/")
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        return APIV2_NAME

    def _auth(self) -> aiohttp.BasicAuth | None:
        if not self._config.user:
            return None
        return aiohttp.BasicAuth(self._config.user, self._config.password)

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            raise RegistryConnectionError("Registry client used before connect()")
        return self._session

    async def connect(self) -> None:
        if self._session is not None and not self._session.closed:
            return

        timeout = aiohttp.ClientTimeout(total=self._config.timeout_s)
        connector = None if self._config.verify_tls else aiohttp.TCPConnector(ssl=False)
        session = aiohttp.ClientSession(timeout=timeout, connector=connector, auth=self._auth())

        # The version check doubles as a credential check
        try:
            async with session.get(f"{self._base_url}/v2/") as response:
                status = response.status
        except (aiohttp.ClientError, TimeoutError) as e:
            await session.close()
            raise RegistryConnectionError(f"Registry {self._base_url} unreachable: {e!r}") from e

        if status == 401:
            await session.close()
            raise RegistryConnectionError(f"Registry {self._base_url} rejected the credentials")
        if status >= 400:
            await session.close()
            raise RegistryConnectionError(
                f"Registry {self._base_url} does not speak API v2 (HTTP {status})"
            )

        self._session = session
        logger.debug("Connected to v2 registry", extra={"url": self._base_url})

    async def iter_repository_pages(self) -> AsyncIterator[list[str]]:
        session = self._require_session()
        url: str | None = f"{self._base_url}/v2/_catalog"
        params: dict[str, Any] | None = {"n": str(self._config.page_size)}
        page_number = 0

        while url is not None:
            try:
                async with session.get(url, params=params) as response:
                    if response.status >= 400:
                        text = await response.text(errors="replace")
                        logger.error(
                            "Catalog request failed",
                            extra={"url": url, "status": response.status, "body": text},
                        )
                        raise ListingError(
                            f"Catalog page {page_number + 1} failed: HTTP {response.status}"
                        )
                    data = await response.json(content_type=None)
                    next_link = response.links.get("next")
                    url = str(response.url.join(next_link["url"])) if next_link else None
            except (aiohttp.ClientError, TimeoutError, ValueError) as e:
                raise ListingError(f"Catalog page {page_number + 1} failed: {e!r}") from e

            # The next-link URL already carries its own query string
            params = None
            page_number += 1

            repositories = data.get("repositories") if isinstance(data, dict) else None
            if repositories is None:
                repositories = []
            if not isinstance(repositories, list):
                raise ListingError(
                    f"Catalog page {page_number} failed: repositories is a {type(repositories).__name__}"
                )
            yield [name for name in repositories if isinstance(name, str)]

    async def get_token(self) -> AuthorizationToken:
        self._require_session()
        if not self._config.user:
            raise AuthError(f"No credentials configured for {self._base_url}")

        credential = f"{self._config.user}:{self._config.password}".encode()
        return AuthorizationToken(
            token=base64.b64encode(credential).decode("ascii"),
            endpoint=self._base_url,
        )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
