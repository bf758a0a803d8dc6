"""
Prometheus counters for registry adapters.

Labels stay low-cardinality: the registry display name and, for errors, the
error class. Image names and tags never become labels.
"""

from __future__ import annotations

from prometheus_client import Counter
from prometheus_client.registry import CollectorRegistry


class AdapterMetrics:
    """
    Counters for listing and spec fetching.

    Usage:
        registry = CollectorRegistry()
        metrics = AdapterMetrics(registry=registry)
        adapter = create_adapter(config, metrics=metrics)
        # generate_latest(registry) -> bytes for a /metrics endpoint
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._pages_listed = Counter(
            "apbregistry_pages_listed",
            "Repository listing pages retrieved",
            ["registry"],
            registry=self._registry,
        )
        self._images_listed = Counter(
            "apbregistry_images_listed",
            "Image names returned by listing",
            ["registry"],
            registry=self._registry,
        )
        self._specs_fetched = Counter(
            "apbregistry_specs_fetched",
            "Specs decoded from image manifests",
            ["registry"],
            registry=self._registry,
        )
        self._specs_skipped = Counter(
            "apbregistry_specs_skipped",
            "Images whose manifest carried no spec label",
            ["registry"],
            registry=self._registry,
        )
        self._errors = Counter(
            "apbregistry_errors",
            "Adapter failures by error kind",
            ["registry", "kind"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_page(self, registry: str, count: int) -> None:
        self._pages_listed.labels(registry=registry).inc()
        self._images_listed.labels(registry=registry).inc(count)

    def record_spec(self, registry: str, *, skipped: bool = False) -> None:
        if skipped:
            self._specs_skipped.labels(registry=registry).inc()
        else:
            self._specs_fetched.labels(registry=registry).inc()

    def record_error(self, registry: str, error: Exception) -> None:
        self._errors.labels(registry=registry, kind=type(error).__name__).inc()
