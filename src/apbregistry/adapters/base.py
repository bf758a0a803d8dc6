"""
Adapter and registry client contracts.

``Adapter`` is what a catalog consumes: a name, a listing and a spec fetch.
``RegistryClient`` is the vendor binding an adapter drives: a one-time
connect, a lazy sequence of repository pages, and token issuance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from datetime import datetime

    from apbregistry.spec import Spec


@dataclass(frozen=True)
class AuthorizationToken:
    """
    Short-lived registry credential.

    Attributes:
        token: Value placed verbatim after "Basic " in the Authorization header.
        endpoint: Registry base URL the token is valid for.
        expires_at: Expiry reported by the registry, if any.
    """

    token: str
    endpoint: str
    expires_at: datetime | None = None

    def __repr__(self) -> str:
        return f"AuthorizationToken(endpoint={self.endpoint!r}, expires_at={self.expires_at!r})"


class RegistryClient(ABC):
    """Vendor-specific control-plane binding."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry kind served by this client."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish the vendor session.

        Raises:
            RegistryConnectionError: If the session can't be created.
        """
        ...

    @abstractmethod
    def iter_repository_pages(self) -> AsyncIterator[list[str]]:
        """
        Yield repository names one page at a time, in registry order.

        Names already yielded stay valid if a later page fails.

        Raises:
            ListingError: On the first page that can't be retrieved.
        """
        ...

    @abstractmethod
    async def get_token(self) -> AuthorizationToken:
        """
        Obtain a fresh authorization token.

        Raises:
            AuthError: If the registry rejects the request.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release any resources held by this client."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class Adapter(ABC):
    """Registry adapter as seen by a catalog."""

    @property
    @abstractmethod
    def registry_name(self) -> str:
        """Constant identifying the registry kind."""
        ...

    @abstractmethod
    async def get_image_names(self) -> list[str]:
        """List every image name in the registry."""
        ...

    @abstractmethod
    async def fetch_specs(self, image_names: Sequence[str]) -> list[Spec]:
        """Retrieve the specs embedded in the given images."""
        ...
