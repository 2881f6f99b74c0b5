"""Telemetry module for tracking request performance with PostHog."""

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from posthog import Posthog

logger = logging.getLogger(__name__)

DISTINCT_ID = "artist-song-lookup-service"


@dataclass
class StepResult:
    """Result of a tracked step."""

    duration_ms: float
    success: bool = True
    error_type: str | None = None


@dataclass
class RequestTelemetry:
    """Tracks performance metrics for a single request."""

    steps: dict[str, StepResult] = field(default_factory=dict)
    start_time: float = field(default_factory=time.perf_counter)

    @contextmanager
    def track_step(self, step_name: str):
        """Context manager to time a step.

        Args:
            step_name: Name of the step being tracked

        Yields:
            None
        """
        step_start = time.perf_counter()
        error_type = None

        try:
            yield
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            duration_ms = (time.perf_counter() - step_start) * 1000
            self.steps[step_name] = StepResult(
                duration_ms=duration_ms,
                success=error_type is None,
                error_type=error_type,
            )

    def get_total_duration_ms(self) -> float:
        """Get total elapsed time since telemetry was created."""
        return (time.perf_counter() - self.start_time) * 1000

    def get_step_timings(self) -> dict[str, float]:
        """Get timing for each step in milliseconds."""
        return {f"{name}_ms": step.duration_ms for name, step in self.steps.items()}

    def send_to_posthog(
        self,
        posthog_client: Posthog,
        extra_properties: dict[str, Any] | None = None,
    ) -> None:
        """Send the lookup summary event to PostHog.

        Args:
            posthog_client: PostHog client instance
            extra_properties: Additional properties to include in the completed event
        """
        extra_properties = extra_properties or {}

        cache_data = get_cache_stats()
        cache_props = cache_data.copy() if cache_data else _empty_stats()

        posthog_client.capture(
            distinct_id=DISTINCT_ID,
            event="lookup_completed",
            properties={
                "total_duration_ms": round(self.get_total_duration_ms(), 2),
                "steps": self.get_step_timings(),
                "failed_steps": [
                    name for name, step in self.steps.items() if not step.success
                ],
                "cache": cache_props,
                **extra_properties,
            },
        )

        logger.debug(
            f"Sent telemetry: {len(self.steps)} steps, total {self.get_total_duration_ms():.1f}ms"
        )


# ---------------------------------------------------------------------------
# Per-request cache stats via ContextVar
# ---------------------------------------------------------------------------

_cache_stats_var: ContextVar[dict | None] = ContextVar("cache_stats", default=None)


def _empty_stats() -> dict:
    return {
        "mapping_hits": 0,
        "mapping_misses": 0,
        "page_hits": 0,
        "page_misses": 0,
        "cache_errors": 0,
        "api_calls": 0,
        "cache_time_ms": 0.0,
        "api_time_ms": 0.0,
    }


def init_cache_stats() -> None:
    """Initialize cache stats for the current request context."""
    _cache_stats_var.set(_empty_stats())


def _increment(key: str, amount: float = 1) -> None:
    stats = _cache_stats_var.get()
    if stats is not None:
        stats[key] += amount


def record_cache_hit(tier: str) -> None:
    """Record a cache hit for a tier ("mapping" or "page")."""
    _increment(f"{tier}_hits")


def record_cache_miss(tier: str) -> None:
    """Record a cache miss for a tier ("mapping" or "page")."""
    _increment(f"{tier}_misses")


def record_cache_error() -> None:
    """Record a cache store fault absorbed at the cache boundary."""
    _increment("cache_errors")


def record_api_call() -> None:
    """Record a Genius API call in the current request context."""
    _increment("api_calls")


def record_cache_time(ms: float) -> None:
    """Accumulate cache store time in the current request context."""
    _increment("cache_time_ms", ms)


def record_api_time(ms: float) -> None:
    """Accumulate Genius API call time in the current request context."""
    _increment("api_time_ms", ms)


def get_cache_stats() -> dict | None:
    """Get cache stats for the current request context, or None if not initialized."""
    return _cache_stats_var.get()
