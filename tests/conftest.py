"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from patch_merge.core.config import MergeConfig
from patch_merge.core.engine import Engine
from patch_merge.core.enums import AccessStrategy
from patch_merge.core.introspection import TypeIntrospector


@pytest.fixture
def engine() -> Engine:
    """Engine with the default configuration."""
    return Engine()


@pytest.fixture
def make_engine() -> Callable[..., Engine]:
    """Helper to build engines with custom settings.

    Usage:
        make_engine(access_strategy=AccessStrategy.FIELD, ignore_null=False)
    """

    def _make(**settings: Any) -> Engine:
        return Engine(MergeConfig(**settings))

    return _make


@pytest.fixture(params=list(AccessStrategy), ids=lambda strategy: strategy.value)
def strategy(request: pytest.FixtureRequest) -> AccessStrategy:
    """Every access strategy, one test run each."""
    return request.param  # type: ignore[no-any-return]


@pytest.fixture
def strategy_engine(strategy: AccessStrategy) -> Engine:
    """Engine configured with each access strategy in turn."""
    return Engine(MergeConfig(access_strategy=strategy))


@pytest.fixture
def introspector() -> TypeIntrospector:
    """Fresh introspection cache."""
    return TypeIntrospector()
