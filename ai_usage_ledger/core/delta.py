"""
Per-request usage from cumulative token counters.

Some session logs report running totals instead of per-request counts.
The extractor walks one log's events in order, carrying the previous
cumulative values and the current model, and emits the difference for
each counter event.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ai_usage_ledger.storage.models import RawUsageRecord
from ai_usage_ledger.utils.dates import to_local_date

logger = logging.getLogger(__name__)

UNKNOWN_MODEL = "unknown"
TOKEN_COUNT_EVENT = "token_count"


@dataclass(frozen=True)
class DeltaRecord:
    """Tokens consumed by one request, attributed to the model in context."""
    date: str
    timestamp: str
    model: str
    input_tokens: int
    output_tokens: int
    cached_input_tokens: int


@dataclass
class _StreamState:
    """Fold state threaded through one log's event sequence."""
    prev_input: int = 0
    prev_output: int = 0
    prev_cached: int = 0
    model: str = UNKNOWN_MODEL


def parse_session_lines(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """Yield JSON objects from a JSON-lines log, skipping blank or bad lines."""
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed line %d", line_no)
            continue
        if isinstance(obj, dict):
            yield obj


def extract_deltas(
    entries: Iterable[Mapping[str, Any]],
    timezone: str = "UTC",
    date_filter: Optional[Iterable[str]] = None,
) -> List[DeltaRecord]:
    """Turn cumulative counter events into per-request deltas.

    A `turn_context.model` marker sets the model for every following
    counter event until the next marker. Counter events whose three
    deltas are all zero are dropped. The date filter applies after the
    cumulative state has advanced.

    Args:
        entries: Parsed events of a single log, in log order
        timezone: IANA timezone used to assign calendar dates
        date_filter: Optional set of dates to keep

    Returns:
        One DeltaRecord per counter event with a non-zero delta
    """
    date_filter = set(date_filter) if date_filter is not None else None
    state = _StreamState()
    records: List[DeltaRecord] = []

    for entry in entries:
        turn_context = entry.get("turn_context")
        if isinstance(turn_context, dict) and turn_context.get("model"):
            state.model = turn_context["model"]

        payload = entry.get("payload")
        if not isinstance(payload, dict) or payload.get("type") != TOKEN_COUNT_EVENT:
            continue

        timestamp = entry.get("timestamp")
        if not timestamp:
            continue

        cum_input = payload.get("input_tokens") or 0
        cum_output = payload.get("output_tokens") or 0
        cum_cached = payload.get("cached_input_tokens") or 0

        delta_input = cum_input - state.prev_input
        delta_output = cum_output - state.prev_output
        delta_cached = cum_cached - state.prev_cached

        state.prev_input = cum_input
        state.prev_output = cum_output
        state.prev_cached = cum_cached

        if delta_input == 0 and delta_output == 0 and delta_cached == 0:
            continue

        date = to_local_date(timestamp, timezone)
        if date_filter is not None and date not in date_filter:
            continue

        records.append(DeltaRecord(
            date=date,
            timestamp=timestamp,
            model=state.model,
            input_tokens=delta_input,
            output_tokens=delta_output,
            cached_input_tokens=delta_cached,
        ))

    return records


@dataclass
class ModelUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cached_input_tokens: int = 0
    total_tokens: int = 0
    requests: int = 0


@dataclass
class DeltaDay:
    """Per-model usage of one day."""
    date: str
    models: Dict[str, ModelUsage] = field(default_factory=dict)

    def to_usage_records(self) -> List[RawUsageRecord]:
        """One raw record per model; cached input counts as cache reads."""
        return [
            RawUsageRecord(
                model=model,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                cache_read_tokens=usage.cached_input_tokens,
                total_tokens=usage.total_tokens,
                requests=usage.requests,
            )
            for model, usage in sorted(self.models.items())
        ]


def aggregate_deltas_by_date(records: Iterable[DeltaRecord]) -> Dict[str, DeltaDay]:
    """Group delta records by date and model; each record is one request."""
    days: Dict[str, DeltaDay] = {}

    for record in records:
        day = days.setdefault(record.date, DeltaDay(date=record.date))
        usage = day.models.setdefault(record.model, ModelUsage())
        usage.input_tokens += record.input_tokens
        usage.output_tokens += record.output_tokens
        usage.cached_input_tokens += record.cached_input_tokens
        usage.total_tokens += record.input_tokens + record.output_tokens + record.cached_input_tokens
        usage.requests += 1

    return {date: days[date] for date in sorted(days)}
