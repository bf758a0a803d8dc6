#!/usr/bin/env python3
"""
CLI script for listing the bundle specs published in a registry.

Lists every image in the registry (or only the names given with --image),
fetches each image's manifest and prints the decoded specs as JSON.

Usage:
    # ECR with ambient AWS credentials:
    python scripts/list_specs.py --type ecr --region us-east-1 --org myorg

    # Generic v2 registry from a config file, credentials from env:
    REGISTRY_USER=bot REGISTRY_PASSWORD=... python scripts/list_specs.py --config registry.yaml

    # Specific images only, written to a file:
    python scripts/list_specs.py --config registry.yaml --image myorg/db-apb --output specs.json

Exit codes: 0 on success, 1 on a registry error (partial results are still
written), 2 on invalid configuration.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

import orjson

from apbregistry.adapters import RegistryError, create_adapter
from apbregistry.config import AdapterConfig, config_from_mapping, load_config
from apbregistry.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Flags that map 1:1 onto AdapterConfig fields
_CONFIG_FLAGS = ("type", "org", "tag", "url", "region", "registry_id", "page_size", "timeout_s")


def build_config(args: argparse.Namespace) -> AdapterConfig:
    """
    Merge a --config file with command-line overrides.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    data: dict[str, Any] = {}
    if args.config is not None:
        data = asdict(load_config(args.config))

    for key in _CONFIG_FLAGS:
        value = getattr(args, key)
        if value is not None:
            data[key] = value
    if args.insecure:
        data["verify_tls"] = False

    return config_from_mapping(data)


def write_specs(specs: list[Any], output: Path | None) -> None:
    """Write specs as a JSON array to ``output`` or stdout."""
    payload = orjson.dumps(
        [spec.model_dump(mode="json", by_alias=True) for spec in specs],
        option=orjson.OPT_INDENT_2,
    )
    if output is None:
        sys.stdout.write(payload.decode() + "\n")
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(payload)


async def run(config: AdapterConfig, image_names: list[str], output: Path | None) -> int:
    """List images (unless given) and fetch their specs. Returns an exit code."""
    async with create_adapter(config) as adapter:
        try:
            if not image_names:
                image_names = await adapter.get_image_names()
            specs = await adapter.fetch_specs(image_names)
        except RegistryError as e:
            logger.error(
                "Registry operation failed",
                extra={"registry": config.display_name, "error": str(e), "partial": len(e.partial)},
            )
            # Listing errors carry names, fetch errors carry specs
            partial_specs = [s for s in e.partial if not isinstance(s, str)]
            write_specs(partial_specs, output)
            return 1

    write_specs(specs, output)
    logger.info(
        "Spec listing complete",
        extra={"registry": config.display_name, "images": len(image_names), "specs": len(specs)},
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="List bundle specs published in a container registry.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="YAML registry config (flat mapping or under a 'registry:' key)",
    )
    parser.add_argument("--type", choices=["ecr", "apiv2"], default=None, help="Registry type")
    parser.add_argument("--org", default=None, help="Only list images under this namespace")
    parser.add_argument("--tag", default=None, help="Image tag to inspect (default: latest)")
    parser.add_argument("--url", default=None, help="Registry URL (apiv2)")
    parser.add_argument("--region", default=None, help="AWS region (ecr)")
    parser.add_argument("--registry-id", default=None, help="AWS account id of the registry (ecr)")
    parser.add_argument("--page-size", type=int, default=None, help="Listing page size")
    parser.add_argument("--timeout-s", type=float, default=None, help="HTTP request timeout")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification",
    )
    parser.add_argument(
        "--image",
        action="append",
        default=[],
        help="Fetch only this image (repeatable); skips listing",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write specs JSON here (default: stdout)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_format=args.json_logs,
    )

    try:
        config = build_config(args)
    except (ValueError, FileNotFoundError) as e:
        logger.error("Invalid registry configuration", extra={"error": str(e)})
        return 2

    return asyncio.run(run(config, list(args.image), args.output))


if __name__ == "__main__":
    sys.exit(main())
