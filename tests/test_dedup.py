"""
Unit tests for snapshot deduplication.
"""

from ai_usage_ledger.core.dedup import dedup_files
from ai_usage_ledger.storage.models import SYNTHETIC_MODEL

from conftest import make_file, make_record


class TestDedupFiles:
    """Test latest-wins deduplication."""

    def test_empty_input(self):
        """Verify empty input gives empty output."""
        assert dedup_files([]) == []

    def test_latest_collection_wins(self):
        """Verify the later collectedAt snapshot is kept whole."""
        older = make_file(collected_at="2026-02-17T10:00:00.000Z",
                          records=[make_record("claude-opus-4-6", input_tokens=5000)])
        newer = make_file(collected_at="2026-02-17T22:00:00.000Z",
                          records=[make_record("claude-opus-4-6", input_tokens=8000)])

        result = dedup_files([newer, older])

        assert result == [newer]

    def test_input_order_does_not_matter(self):
        """Verify the winner is the same whichever snapshot comes first."""
        older = make_file(collected_at="2026-02-17T10:00:00.000Z")
        newer = make_file(collected_at="2026-02-17T22:00:00.000Z")
        assert dedup_files([older, newer]) == dedup_files([newer, older])

    def test_equal_collection_time_is_order_independent(self):
        """Verify a tie on collectedAt picks the same snapshot in any order."""
        first = make_file(collected_at="2026-02-17T22:00:00.000Z",
                          records=[make_record("claude-opus-4-6", input_tokens=1)])
        second = make_file(collected_at="2026-02-17T22:00:00.000Z",
                           records=[make_record("claude-opus-4-6", input_tokens=2)])

        forward = dedup_files([first, second])
        backward = dedup_files([second, first])

        assert forward == backward
        assert len(forward) == 1

    def test_no_record_merging(self):
        """Verify records of the superseded snapshot never leak into the winner."""
        older = make_file(collected_at="2026-02-17T10:00:00.000Z",
                          records=[make_record("claude-haiku-4-5", input_tokens=1)])
        newer = make_file(collected_at="2026-02-17T22:00:00.000Z",
                          records=[make_record("claude-opus-4-6", input_tokens=2)])

        (result,) = dedup_files([older, newer])

        assert [r.model for r in result.records] == ["claude-opus-4-6"]

    def test_distinct_keys_are_kept(self):
        """Verify different provider, date or machine are separate snapshots."""
        files = [
            make_file(provider="claude-code"),
            make_file(provider="codex"),
            make_file(date="2026-02-18"),
            make_file(machine="laptop"),
        ]
        assert len(dedup_files(files)) == 4

    def test_output_sorted_by_key(self):
        """Verify output is ordered by date, provider, machine."""
        files = [
            make_file(provider="codex", date="2026-02-18"),
            make_file(provider="claude-code", date="2026-02-18", machine="b"),
            make_file(provider="claude-code", date="2026-02-18", machine="a"),
            make_file(provider="codex", date="2026-02-17"),
        ]
        keys = [(f.date, f.provider, f.machine) for f in dedup_files(files)]
        assert keys == sorted(keys)

    def test_idempotent(self, sample_files):
        """Verify deduplicating twice is a no-op."""
        once = dedup_files(sample_files)
        assert dedup_files(once) == once


class TestSyntheticFiltering:
    """Test removal of synthetic placeholder records."""

    def test_zero_token_synthetic_removed(self):
        """Verify a zero-token synthetic record is dropped."""
        file = make_file(records=[
            make_record(SYNTHETIC_MODEL, total=0),
            make_record("claude-opus-4-6", input_tokens=10),
        ])
        (result,) = dedup_files([file])
        assert [r.model for r in result.records] == ["claude-opus-4-6"]

    def test_synthetic_with_tokens_kept(self):
        """Verify a synthetic record carrying tokens is kept."""
        file = make_file(records=[make_record(SYNTHETIC_MODEL, total=42)])
        (result,) = dedup_files([file])
        assert len(result.records) == 1

    def test_zero_token_real_model_kept(self):
        """Verify only the synthetic marker triggers removal."""
        file = make_file(records=[make_record("claude-opus-4-6", total=0)])
        (result,) = dedup_files([file])
        assert len(result.records) == 1
