"""Metrics hook protocol and no-op default implementation.

mdbridge emits counters and timings at key points (API requests, uploaded
blocks, skipped figures, failed metric fetches).  By default a
:class:`NoopMetricsHook` is used so there is zero overhead.  Callers can
supply any object satisfying :class:`MetricsHook` through
``MdBridgeConfig(metrics=...)``.

Emitted metric names:

* ``mdbridge.requests_total``              -- counter
* ``mdbridge.request_duration_ms``         -- timing
* ``mdbridge.rate_limit_wait_ms``          -- timing
* ``mdbridge.blocks_uploaded_total``       -- counter
* ``mdbridge.figures_skipped_total``       -- counter
* ``mdbridge.metric_fetch_failures_total`` -- counter
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict whose keys and values are
    strings.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that silently discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
