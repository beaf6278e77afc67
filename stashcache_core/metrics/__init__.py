"""Metrics module - Entry statistics and operation counters."""

from stashcache_core.metrics.collector import (
    CacheStats,
    StatsCollector,
    CacheMetrics,
    MetricsCollector,
)

__all__ = [
    "CacheStats",
    "StatsCollector",
    "CacheMetrics",
    "MetricsCollector",
]
