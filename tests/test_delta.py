"""
Unit tests for cumulative-counter delta extraction.
"""

from ai_usage_ledger.core.delta import (
    UNKNOWN_MODEL,
    DeltaRecord,
    aggregate_deltas_by_date,
    extract_deltas,
    parse_session_lines,
)


def counter(timestamp, input_tokens, output_tokens, cached=0):
    return {
        "timestamp": timestamp,
        "payload": {
            "type": "token_count",
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cached_input_tokens": cached,
        },
    }


def model_marker(model):
    return {"turn_context": {"model": model}}


class TestParseSessionLines:
    """Test JSON-lines parsing."""

    def test_skips_blank_and_malformed(self):
        """Verify bad lines are skipped without raising."""
        lines = ['{"a": 1}', "", "not json", "   ", '{"b": 2}', "[1, 2]"]
        assert list(parse_session_lines(lines)) == [{"a": 1}, {"b": 2}]


class TestExtractDeltas:
    """Test per-request delta computation."""

    def test_deltas_from_cumulative_values(self):
        """Verify each event yields its difference from the previous one."""
        entries = [
            model_marker("gpt-5-codex"),
            counter("2026-02-17T10:00:00.000Z", 1000, 100, 500),
            counter("2026-02-17T10:05:00.000Z", 2500, 300, 1500),
        ]
        records = extract_deltas(entries)
        assert [(r.input_tokens, r.output_tokens, r.cached_input_tokens) for r in records] == [
            (1000, 100, 500),
            (1500, 200, 1000),
        ]
        assert all(r.model == "gpt-5-codex" for r in records)

    def test_model_is_sticky_until_next_marker(self):
        """Verify the model applies until a new marker changes it."""
        entries = [
            counter("2026-02-17T10:00:00.000Z", 10, 1),
            model_marker("model-a"),
            counter("2026-02-17T10:01:00.000Z", 20, 2),
            counter("2026-02-17T10:02:00.000Z", 30, 3),
            model_marker("model-b"),
            counter("2026-02-17T10:03:00.000Z", 40, 4),
        ]
        models = [r.model for r in extract_deltas(entries)]
        assert models == [UNKNOWN_MODEL, "model-a", "model-a", "model-b"]

    def test_zero_delta_skipped(self):
        """Verify repeated cumulative values produce no record."""
        entries = [
            counter("2026-02-17T10:00:00.000Z", 10, 1),
            counter("2026-02-17T10:01:00.000Z", 10, 1),
        ]
        assert len(extract_deltas(entries)) == 1

    def test_other_events_ignored(self):
        """Verify non-counter payloads and events without timestamps are skipped."""
        entries = [
            {"timestamp": "2026-02-17T10:00:00.000Z", "payload": {"type": "message"}},
            {"payload": {"type": "token_count", "input_tokens": 99}},
            counter("2026-02-17T10:01:00.000Z", 10, 1),
        ]
        (record,) = extract_deltas(entries)
        assert record.input_tokens == 10

    def test_date_in_timezone(self):
        """Verify the date follows the requested timezone."""
        entries = [counter("2026-02-17T20:00:00.000Z", 10, 1)]
        assert extract_deltas(entries, timezone="UTC")[0].date == "2026-02-17"
        assert extract_deltas(entries, timezone="Asia/Shanghai")[0].date == "2026-02-18"

    def test_filter_applies_after_state_update(self):
        """Verify filtered-out events still advance the cumulative baseline."""
        entries = [
            counter("2026-02-16T23:00:00.000Z", 1000, 100),
            counter("2026-02-17T01:00:00.000Z", 1200, 150),
        ]
        (record,) = extract_deltas(entries, date_filter=["2026-02-17"])
        assert (record.input_tokens, record.output_tokens) == (200, 50)


class TestAggregateDeltas:
    """Test grouping deltas by date and model."""

    def test_groups_and_counts_requests(self):
        """Verify sums per model and one request per delta."""
        records = [
            DeltaRecord("2026-02-17", "t1", "m", 10, 1, 5),
            DeltaRecord("2026-02-17", "t2", "m", 20, 2, 0),
            DeltaRecord("2026-02-18", "t3", "n", 1, 1, 1),
        ]
        days = aggregate_deltas_by_date(records)

        assert list(days) == ["2026-02-17", "2026-02-18"]
        usage = days["2026-02-17"].models["m"]
        assert usage.input_tokens == 30
        assert usage.cached_input_tokens == 5
        assert usage.total_tokens == 38
        assert usage.requests == 2

    def test_usage_records(self):
        """Verify cached input becomes cache reads in raw records."""
        records = [
            DeltaRecord("2026-02-17", "t1", "zeta", 10, 1, 5),
            DeltaRecord("2026-02-17", "t2", "alpha", 1, 1, 0),
        ]
        day = aggregate_deltas_by_date(records)["2026-02-17"]
        raw = day.to_usage_records()
        assert [r.model for r in raw] == ["alpha", "zeta"]
        assert raw[1].cache_read_tokens == 5
        assert raw[1].total_tokens == 16
        assert raw[1].requests == 1
