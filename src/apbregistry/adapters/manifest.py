"""
Manifest retrieval and spec extraction.

Bundle images carry their spec in the image config labels, which a Docker
Registry v2 server exposes through the schema 1 manifest:

    GET {endpoint}/v2/{image}/manifests/{tag}
    Authorization: Basic {token}

    {
        "schemaVersion": 1,
        "history": [
            {"v1Compatibility": "{\"config\": {\"Labels\": {
                \"com.redhat.apb.spec\": \"<base64 YAML>\",
                \"com.redhat.apb.runtime\": \"2\"}}}"},
            ...
        ]
    }

An image without the spec label is not a bundle; that is a normal outcome
(``None``), not an error.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import aiohttp
import orjson
import yaml
from pydantic import ValidationError

from apbregistry.adapters.errors import DecodeError, FetchError
from apbregistry.spec import Spec

if TYPE_CHECKING:
    from apbregistry.adapters.base import AuthorizationToken

logger = logging.getLogger(__name__)

SPEC_LABEL = "com.redhat.apb.spec"
RUNTIME_LABEL = "com.redhat.apb.runtime"
MANIFEST_V1_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v1+json"


def manifest_url(endpoint: str, image_name: str, tag: str) -> str:
    """Build the v2 manifest URL for an image."""
    return f"{endpoint.rstrip('/')}/v2/{image_name}/manifests/{tag}"


def image_reference(endpoint: str, image_name: str, tag: str) -> str:
    """Pullable reference ("host/name:tag") for an image behind ``endpoint``."""
    host = urlsplit(endpoint).netloc or endpoint.rstrip("/")
    return f"{host}/{image_name}:{tag}"


def parse_runtime(value: str, image_name: str) -> int:
    """Runtime version from the runtime label. Missing means runtime 1."""
    if not value:
        return 1
    try:
        return int(value)
    except ValueError as e:
        raise DecodeError(
            f"Invalid runtime label {value!r} on {image_name}", image=image_name
        ) from e


def extract_labels(manifest: bytes, image_name: str) -> dict[str, Any] | None:
    """
    Pull the image config labels out of a schema 1 manifest body.

    Returns:
        Label mapping, or None when the manifest carries no v1 config.

    Raises:
        DecodeError: If the manifest or its v1Compatibility blob isn't JSON.
    """
    try:
        document = orjson.loads(manifest)
    except orjson.JSONDecodeError as e:
        raise DecodeError(f"Malformed manifest for {image_name}: {e}", image=image_name) from e

    history = document.get("history") if isinstance(document, dict) else None
    if history is not None and not isinstance(history, list):
        raise DecodeError(
            f"Malformed manifest for {image_name}: history is a {type(history).__name__}",
            image=image_name,
        )
    if not history or not isinstance(history[0], dict):
        logger.info("Schema 1 manifest history not found, skipping image", extra={"image": image_name})
        return None

    compat_raw = history[0].get("v1Compatibility")
    if not compat_raw:
        logger.info("No v1Compatibility entry in manifest history", extra={"image": image_name})
        return None

    try:
        compat = orjson.loads(compat_raw)
    except orjson.JSONDecodeError as e:
        raise DecodeError(
            f"Malformed v1Compatibility blob for {image_name}: {e}", image=image_name
        ) from e

    config = compat.get("config") if isinstance(compat, dict) else None
    if not isinstance(config, dict):
        logger.info("Did not find v1 config in image history, skipping image", extra={"image": image_name})
        return None

    labels = config.get("Labels")
    return labels if isinstance(labels, dict) else {}


def decode_spec(encoded: str, *, runtime: str, image_name: str, reference: str) -> Spec:
    """
    Decode a base64 YAML spec label into a Spec.

    Raises:
        DecodeError: On bad base64, bad YAML, or a payload that isn't a valid spec.
    """
    try:
        # Labels produced by the base64 CLI are wrapped at 76 columns
        raw = base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Spec label on {image_name} is not valid base64", image=image_name) from e

    try:
        payload = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise DecodeError(f"Spec label on {image_name} is not valid YAML: {e}", image=image_name) from e

    if not isinstance(payload, dict):
        raise DecodeError(
            f"Spec label on {image_name} must decode to a mapping, got {type(payload).__name__}",
            image=image_name,
        )

    payload["runtime"] = parse_runtime(runtime, image_name)
    payload["image"] = reference
    try:
        return Spec.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(
            f"Spec label on {image_name} failed validation: {e.error_count()} error(s)",
            image=image_name,
        ) from e


def manifest_to_spec(manifest: bytes, *, image_name: str, reference: str) -> Spec | None:
    """Decode a manifest body into a Spec, or None for a non-bundle image."""
    labels = extract_labels(manifest, image_name)
    if labels is None:
        return None

    encoded = labels.get(SPEC_LABEL)
    if not encoded:
        logger.info("No spec label found, image is not a bundle", extra={"image": image_name})
        return None

    spec = decode_spec(
        str(encoded),
        runtime=str(labels.get(RUNTIME_LABEL) or ""),
        image_name=image_name,
        reference=reference,
    )
    logger.debug(
        "Decoded spec",
        extra={"image": image_name, "spec_name": spec.name, "plans": len(spec.plans)},
    )
    return spec


class ManifestFetcher:
    """
    Fetches one image manifest per call and decodes it into a Spec.

    Holds a lazily created aiohttp session; call ``close()`` when done.
    """

    def __init__(self, timeout_s: float = 30.0, verify_tls: bool = True) -> None:
        self._timeout_s = timeout_s
        self._verify_tls = verify_tls
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            connector = None if self._verify_tls else aiohttp.TCPConnector(ssl=False)
            self._session = aiohttp.ClientSession(timeout=timeout, connector=connector)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def fetch_spec(
        self,
        image_name: str,
        tag: str,
        token: AuthorizationToken,
    ) -> Spec | None:
        """
        Retrieve and decode the manifest of ``image_name:tag``.

        Returns:
            The embedded Spec, or None if the image carries no spec label.

        Raises:
            FetchError: On transport failure or a non-2xx response.
            DecodeError: If the manifest or spec label can't be parsed.
        """
        url = manifest_url(token.endpoint, image_name, tag)
        headers = {
            "Authorization": f"Basic {token.token}",
            "Accept": MANIFEST_V1_MEDIA_TYPE,
        }

        try:
            session = await self._get_session()
            async with session.get(url, headers=headers) as response:
                if not 200 <= response.status < 300:
                    text = await response.text(errors="replace")
                    logger.error(
                        "Manifest request failed",
                        extra={"image": image_name, "tag": tag, "status": response.status, "body": text},
                    )
                    raise FetchError(
                        f"Manifest request for {image_name}:{tag} failed: HTTP {response.status}",
                        image=image_name,
                        status=response.status,
                    )
                body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error(
                "Manifest request error",
                extra={"image": image_name, "tag": tag, "error": str(e)},
            )
            raise FetchError(
                f"Manifest request for {image_name}:{tag} failed: {e!r}", image=image_name
            ) from e

        return manifest_to_spec(
            body,
            image_name=image_name,
            reference=image_reference(token.endpoint, image_name, tag),
        )
