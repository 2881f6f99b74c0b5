"""Unit tests for core/telemetry.py."""

import pytest

from core.telemetry import (
    DISTINCT_ID,
    RequestTelemetry,
    get_cache_stats,
    init_cache_stats,
    record_api_call,
    record_api_time,
    record_cache_error,
    record_cache_hit,
    record_cache_miss,
    record_cache_time,
)

# ---------------------------------------------------------------------------
# RequestTelemetry
# ---------------------------------------------------------------------------


class TestRequestTelemetry:
    def test_track_step_records_duration(self):
        t = RequestTelemetry()
        with t.track_step("test_step"):
            pass
        assert "test_step" in t.steps
        assert t.steps["test_step"].duration_ms >= 0
        assert t.steps["test_step"].success is True

    def test_track_step_records_exception(self):
        t = RequestTelemetry()
        with pytest.raises(ValueError):
            with t.track_step("failing_step"):
                raise ValueError("boom")
        assert t.steps["failing_step"].success is False
        assert t.steps["failing_step"].error_type == "ValueError"

    def test_get_total_duration_ms(self):
        t = RequestTelemetry()
        assert t.get_total_duration_ms() >= 0

    def test_get_step_timings(self):
        t = RequestTelemetry()
        with t.track_step("resolve"):
            pass
        with t.track_step("fetch_songs"):
            pass
        timings = t.get_step_timings()
        assert set(timings) == {"resolve_ms", "fetch_songs_ms"}

    def test_send_to_posthog_summary_event(self, mock_posthog_client):
        t = RequestTelemetry()
        with t.track_step("resolve"):
            pass
        t.send_to_posthog(mock_posthog_client, {"outcome": "fresh"})

        mock_posthog_client.capture.assert_called_once()
        kwargs = mock_posthog_client.capture.call_args.kwargs
        assert kwargs["distinct_id"] == DISTINCT_ID
        assert kwargs["event"] == "lookup_completed"
        assert kwargs["properties"]["outcome"] == "fresh"
        assert "resolve_ms" in kwargs["properties"]["steps"]
        assert kwargs["properties"]["failed_steps"] == []

    def test_send_to_posthog_lists_failed_steps(self, mock_posthog_client):
        t = RequestTelemetry()
        with pytest.raises(RuntimeError):
            with t.track_step("fetch_songs"):
                raise RuntimeError("down")
        t.send_to_posthog(mock_posthog_client)

        props = mock_posthog_client.capture.call_args.kwargs["properties"]
        assert props["failed_steps"] == ["fetch_songs"]

    def test_send_to_posthog_with_cache_stats(self, mock_posthog_client):
        init_cache_stats()
        record_cache_hit("page")
        t = RequestTelemetry()
        t.send_to_posthog(mock_posthog_client)

        props = mock_posthog_client.capture.call_args.kwargs["properties"]
        assert props["cache"]["page_hits"] == 1

    def test_send_to_posthog_without_cache_stats(self, mock_posthog_client):
        t = RequestTelemetry()
        t.send_to_posthog(mock_posthog_client)

        props = mock_posthog_client.capture.call_args.kwargs["properties"]
        assert props["cache"]["page_hits"] == 0
        assert props["cache"]["api_calls"] == 0


# ---------------------------------------------------------------------------
# Cache stats (ContextVar)
# ---------------------------------------------------------------------------


class TestCacheStats:
    def test_get_cache_stats_before_init(self):
        assert get_cache_stats() is None

    def test_init_cache_stats(self):
        init_cache_stats()
        stats = get_cache_stats()
        assert stats is not None
        assert all(v == 0 for v in stats.values())

    def test_record_tier_hits_and_misses(self):
        init_cache_stats()
        record_cache_hit("mapping")
        record_cache_miss("mapping")
        record_cache_miss("page")
        stats = get_cache_stats()
        assert stats["mapping_hits"] == 1
        assert stats["mapping_misses"] == 1
        assert stats["page_misses"] == 1

    def test_record_errors_and_api_calls(self):
        init_cache_stats()
        record_cache_error()
        record_api_call()
        record_api_call()
        stats = get_cache_stats()
        assert stats["cache_errors"] == 1
        assert stats["api_calls"] == 2

    def test_record_times(self):
        init_cache_stats()
        record_cache_time(1.5)
        record_api_time(20.0)
        record_api_time(5.0)
        stats = get_cache_stats()
        assert stats["cache_time_ms"] == pytest.approx(1.5)
        assert stats["api_time_ms"] == pytest.approx(25.0)

    def test_record_functions_noop_without_init(self):
        record_cache_hit("page")
        record_api_call()
        record_cache_error()
        assert get_cache_stats() is None
