"""Pytest fixtures for StashCache tests.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from pathlib import Path

import pytest

from stashcache_core.cache.engine import CacheConfig, CacheEngine


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock: FakeClock) -> CacheEngine:
    """In-memory engine on a fake clock, janitor disabled."""
    return CacheEngine(CacheConfig(cleanup_interval=0), clock=clock)


@pytest.fixture
def file_engine(tmp_path: Path, clock: FakeClock) -> CacheEngine:
    """File-backed engine on a fake clock, janitor disabled."""
    config = CacheConfig(storage="file", cache_dir=tmp_path / "cache", cleanup_interval=0)
    return CacheEngine(config, clock=clock)


@pytest.fixture(params=["memory", "file", "tiered"])
def any_engine(request, tmp_path: Path, clock: FakeClock) -> CacheEngine:
    """Engine for each storage kind."""
    config = CacheConfig(
        storage=request.param,
        cache_dir=None if request.param == "memory" else tmp_path / "cache",
        cleanup_interval=0,
    )
    return CacheEngine(config, clock=clock)
