"""
Registry adapter error taxonomy.

Every failure carries enough context to log or retry from the caller:
the image name where one applies, the chained cause, and in ``partial``
whatever the operation had gathered before it stopped (image names for a
listing, specs for a fetch batch).
"""

from __future__ import annotations

from typing import Any


class RegistryError(Exception):
    """Base exception for registry adapter operations."""

    def __init__(self, message: str, *, image: str | None = None) -> None:
        super().__init__(message)
        self.image = image
        self.partial: list[Any] = []


class RegistryConnectionError(RegistryError):
    """Session or control-plane client could not be established."""


class ListingError(RegistryError):
    """Repository enumeration failed part way through."""


class AuthError(RegistryError):
    """The registry refused to issue an authorization token."""


class FetchError(RegistryError):
    """Manifest retrieval failed for one image."""

    def __init__(self, message: str, *, image: str | None = None, status: int | None = None) -> None:
        super().__init__(message, image=image)
        self.status = status


class DecodeError(RegistryError):
    """A manifest or its embedded spec label could not be parsed."""
