"""
Amazon Elastic Container Registry client.

Uses boto3 for the ECR control plane (repository listing and token
issuance). boto3 is blocking, so every call runs in a worker thread and
listing pulls exactly one page per await.

Credentials and region come from the standard AWS discovery chain
(environment, shared config, instance metadata) unless the config names a
region.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from apbregistry.adapters.base import AuthorizationToken, RegistryClient
from apbregistry.adapters.errors import AuthError, ListingError, RegistryConnectionError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from apbregistry.config import AdapterConfig

logger = logging.getLogger(__name__)

ECR_NAME = "ecr"


class ECRClient(RegistryClient):
    """ECR control-plane client backed by a memoized boto3 ``ecr`` client."""

    def __init__(
        self,
        config: AdapterConfig,
        session_factory: Callable[[], boto3.Session] | None = None,
    ) -> None:
        """
        Initialize the client. No AWS call happens until ``connect()``.

        Args:
            config: Adapter configuration (region, registry_id, page_size).
            session_factory: Builds the boto3 session (default: boto3.Session
                for the configured region).
        """
        self._config = config
        self._session_factory = session_factory or self._default_session
        self._ecr: Any = None

    @property
    def name(self) -> str:
        return ECR_NAME

    def _default_session(self) -> boto3.Session:
        return boto3.Session(region_name=self._config.region or None)

    def _create_client(self) -> Any:
        session = self._session_factory()
        if session.get_credentials() is None:
            raise RegistryConnectionError("No AWS credentials found for ECR session")
        return session.client("ecr")

    def _require_client(self) -> Any:
        if self._ecr is None:
            raise RegistryConnectionError("ECR client used before connect()")
        return self._ecr

    async def connect(self) -> None:
        if self._ecr is not None:
            return

        try:
            ecr = await asyncio.to_thread(self._create_client)
        except (BotoCoreError, ClientError) as e:
            raise RegistryConnectionError(f"Error creating AWS session: {e}") from e

        self._ecr = ecr
        logger.debug("Created ECR client", extra={"region": self._config.region or "default"})

    async def iter_repository_pages(self) -> AsyncIterator[list[str]]:
        ecr = self._require_client()

        params: dict[str, Any] = {"PaginationConfig": {"PageSize": self._config.page_size}}
        if self._config.registry_id:
            params["registryId"] = self._config.registry_id

        try:
            pages = iter(ecr.get_paginator("describe_repositories").paginate(**params))
        except (BotoCoreError, ClientError) as e:
            raise ListingError(f"Failed to start ECR repository listing: {e}") from e

        page_number = 0
        while True:
            try:
                page = await asyncio.to_thread(next, pages, None)
            except (BotoCoreError, ClientError) as e:
                raise ListingError(
                    f"Failed to list ECR repositories (page {page_number + 1}): {e}"
                ) from e
            if page is None:
                return

            page_number += 1
            yield [
                repo["repositoryName"]
                for repo in page.get("repositories", [])
                if repo.get("repositoryName")
            ]

    async def get_token(self) -> AuthorizationToken:
        ecr = self._require_client()

        params: dict[str, Any] = {}
        if self._config.registry_id:
            params["registryIds"] = [self._config.registry_id]

        try:
            response = await asyncio.to_thread(ecr.get_authorization_token, **params)
        except (BotoCoreError, ClientError) as e:
            raise AuthError(f"ECR refused to issue an authorization token: {e}") from e

        data = response.get("authorizationData") or []
        if not data:
            raise AuthError("ECR returned no authorization data")

        entry = data[0]
        token = entry.get("authorizationToken")
        endpoint = entry.get("proxyEndpoint")
        if not token or not endpoint:
            raise AuthError("ECR authorization data is missing the token or proxy endpoint")

        return AuthorizationToken(token=token, endpoint=endpoint, expires_at=entry.get("expiresAt"))

    async def close(self) -> None:
        self._ecr = None
