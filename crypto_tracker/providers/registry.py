"""Registry and factory for price sources."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List

from .base import BasePriceSource, ProviderError

SourceFactory = Callable[[Mapping[str, Any]], BasePriceSource]

_SOURCE_FACTORIES: Dict[str, SourceFactory] = {}


def _default_factories() -> Iterable[tuple[str, SourceFactory]]:
    from .coinpaprika_source import CoinPaprikaPriceSource
    from .mock import MockPriceSource

    return [
        (MockPriceSource.name, lambda _config: MockPriceSource()),
        (CoinPaprikaPriceSource.name, CoinPaprikaPriceSource.from_config),
    ]


def register_source(name: str, factory: SourceFactory) -> None:
    """Register a price source factory under the given name."""

    if not name:
        raise ValueError("Source name cannot be empty.")
    _SOURCE_FACTORIES[name.lower()] = factory


def list_sources() -> List[str]:
    """Return the list of registered source identifiers."""

    return sorted(_SOURCE_FACTORIES.keys())


def create_source(name: str, config: Mapping[str, Any] | None = None) -> BasePriceSource:
    """Build a new price source instance; each call returns a fresh instance."""

    source_name = (name or "").lower()
    try:
        factory = _SOURCE_FACTORIES[source_name]
    except KeyError as exc:
        available = ", ".join(list_sources()) or "none registered"
        raise ProviderError(
            f"Unknown price source '{source_name}'. Available sources: {available}"
        ) from exc
    return factory(config or {})


def init_price_source(app) -> BasePriceSource:
    """Build the configured price source and attach it to the Flask app."""

    source = create_source(app.config.get("PRICE_SOURCE", "mock"), app.config)
    app.extensions["price_source"] = source
    return source


def reset_registry(default_factories: Iterable[tuple[str, SourceFactory]] | None = None) -> None:
    """Reset the source registry; useful for tests."""

    _SOURCE_FACTORIES.clear()

    factories = default_factories or _default_factories()
    for name, factory in factories:
        register_source(name, factory)


reset_registry()
