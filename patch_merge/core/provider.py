"""Engine factory.

``create`` returns the engine supplied by the first installed provider in
the ``patch_merge.providers`` entry-point group, or a default Engine.

Registering a provider::

    [project.entry-points."patch_merge.providers"]
    tracing = "my_package.engines:TracingEngineProvider"
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Any, Protocol, runtime_checkable

from patch_merge.core.config import MergeConfig
from patch_merge.core.engine import Engine
from patch_merge.core.exceptions import ProviderError

LOGGER = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "patch_merge.providers"


@runtime_checkable
class EngineProvider(Protocol):
    """Supplies engine implementations to ``create``."""

    def create(self, config: MergeConfig) -> Any:
        """Return an engine configured with ``config``."""
        ...


def _load_provider(entry_point: Any) -> EngineProvider:
    try:
        provider = entry_point.load()
        if isinstance(provider, type):
            provider = provider()
    except Exception as e:
        raise ProviderError(entry_point.name, str(e)) from e

    if not isinstance(provider, EngineProvider):
        raise ProviderError(entry_point.name, "object has no create(config) method")
    return provider


def create(config: MergeConfig | None = None) -> Engine:
    """Create an update engine.

    Args:
        config: Engine configuration. Defaults to ``MergeConfig.defaults()``.

    Raises:
        ProviderError: If the discovered provider cannot be loaded.
    """
    config = config or MergeConfig.defaults()
    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        LOGGER.info("Using engine provider '%s'", entry_point.name)
        return _load_provider(entry_point).create(config)  # type: ignore[no-any-return]
    return Engine(config)
