"""
Token estimation from indirect telemetry.

Some tools expose no token counters, only request timing and request
payload sizes. Output tokens are estimated from generation time (total
server time minus time to first streamed event) at a fixed token rate,
with p95 replacement of outliers. Input tokens are estimated from request
body length. Both estimates are kept per day.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ai_usage_ledger.storage.models import RawUsageRecord
from ai_usage_ledger.utils.dates import to_local_date

_TIMING_KEYS = ("timestamp", "configName", "serverProcessingTime", "firstSseEventTime")


@dataclass(frozen=True)
class EstimationConfig:
    """Tunable constants of the estimator."""
    output_token_rate: float = 100.0       # Generated tokens per second
    body_content_ratio: float = 0.5        # Share of request body that is prompt text
    bytes_per_token: float = 4.0           # Average bytes per prompt token
    outlier_threshold_ms: float = 60_000   # Generation times above this get p95

    def __post_init__(self):
        """Validate all constants are positive."""
        for name in ("output_token_rate", "body_content_ratio",
                     "bytes_per_token", "outlier_threshold_ms"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")


DEFAULT_ESTIMATION_CONFIG = EstimationConfig()


@dataclass(frozen=True)
class TimingEvent:
    """One LLM call's timing, in milliseconds."""
    timestamp: str
    date: str
    config_name: str
    server_processing_time: float
    first_sse_event_time: float
    provider_model_name: Optional[str] = None
    is_retry: bool = False
    session_id: Optional[str] = None
    message_id: Optional[str] = None

    @property
    def generation_ms(self) -> float:
        """Time spent streaming output, never negative."""
        return max(0, self.server_processing_time - self.first_sse_event_time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], timezone: str = "UTC") -> "TimingEvent":
        """Parse a timing event; `date` defaults to the timestamp's local date.

        Raises:
            ValueError: If a required key is missing or not numeric
        """
        missing = [k for k in _TIMING_KEYS if k not in data]
        if missing:
            raise ValueError(f"Timing event missing keys: {missing}")
        try:
            return cls(
                timestamp=str(data["timestamp"]),
                date=str(data.get("date") or to_local_date(data["timestamp"], timezone)),
                config_name=str(data["configName"]),
                server_processing_time=float(data["serverProcessingTime"]),
                first_sse_event_time=float(data["firstSseEventTime"]),
                provider_model_name=data.get("providerModelName"),
                is_retry=bool(data.get("isRetry", False)),
                session_id=data.get("sessionId"),
                message_id=data.get("messageId"),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid timing event: {e}")


class BodyLenKind(Enum):
    CREATE_AGENT_TASK = "create_agent_task"
    COMMIT_TOOLCALL_RESULT = "commit_toolcall_result"


@dataclass(frozen=True)
class BodyLenEvent:
    """Size in bytes of one request body sent to the model backend."""
    timestamp: str
    date: str
    body_len: int
    kind: BodyLenKind = BodyLenKind.CREATE_AGENT_TASK

    @classmethod
    def from_dict(cls, data: Dict[str, Any], timezone: str = "UTC") -> "BodyLenEvent":
        if "timestamp" not in data or "bodyLen" not in data:
            raise ValueError("Body length event needs 'timestamp' and 'bodyLen'")
        try:
            return cls(
                timestamp=str(data["timestamp"]),
                date=str(data.get("date") or to_local_date(data["timestamp"], timezone)),
                body_len=int(data["bodyLen"]),
                kind=BodyLenKind(data.get("kind", BodyLenKind.CREATE_AGENT_TASK.value)),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid body length event: {e}")


@dataclass(frozen=True)
class DailyEstimate:
    date: str
    est_output: int = 0
    est_input: int = 0

    @property
    def est_total(self) -> int:
        return self.est_output + self.est_input


@dataclass(frozen=True)
class EstimationResult:
    """Per-day estimates plus run-wide diagnostics.

    Totals are sums of the already-rounded per-day values.
    """
    daily: Dict[str, DailyEstimate]
    total_est_output: int
    total_est_input: int
    outlier_count: int
    p95_generation_ms: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile of an ascending sequence.

    Index is floor(N * p) clamped to the last element; empty input gives 0.

    Args:
        sorted_values: Values in ascending order
        p: Fraction between 0 and 1

    Returns:
        The selected element, or 0 for empty input
    """
    if not sorted_values:
        return 0
    index = min(int(math.floor(len(sorted_values) * p)), len(sorted_values) - 1)
    return sorted_values[index]


def _in_filter(date: str, date_filter: Optional[Iterable[str]]) -> bool:
    return date_filter is None or date in date_filter


def estimate_tokens(
    timing_events: Sequence[TimingEvent],
    body_len_events: Sequence[BodyLenEvent],
    date_filter: Optional[Iterable[str]] = None,
    config: EstimationConfig = DEFAULT_ESTIMATION_CONFIG,
) -> EstimationResult:
    """Estimate output and input tokens per day.

    Each event whose generation time exceeds the outlier threshold is
    counted as an outlier and its generation time is replaced with the
    p95 of the filtered period before conversion. The replacement is not
    compared against the threshold again.

    Args:
        timing_events: Timing telemetry for LLM calls
        body_len_events: Request body sizes
        date_filter: Optional set of dates to keep
        config: Estimator constants

    Returns:
        EstimationResult with per-day rounded estimates
    """
    date_filter = set(date_filter) if date_filter is not None else None

    timing = [e for e in timing_events if _in_filter(e.date, date_filter)]
    generation_times = [e.generation_ms for e in timing]
    p95 = percentile(sorted(generation_times), 0.95)

    outlier_count = 0
    daily_output: Dict[str, float] = defaultdict(float)
    for event, generation_ms in zip(timing, generation_times):
        if generation_ms > config.outlier_threshold_ms:
            generation_ms = p95
            outlier_count += 1
        daily_output[event.date] += (generation_ms / 1000) * config.output_token_rate

    daily_input: Dict[str, float] = defaultdict(float)
    for event in body_len_events:
        if not _in_filter(event.date, date_filter):
            continue
        daily_input[event.date] += (
            event.body_len * config.body_content_ratio / config.bytes_per_token
        )

    daily = {
        date: DailyEstimate(
            date=date,
            est_output=round_half_up(daily_output.get(date, 0.0)),
            est_input=round_half_up(daily_input.get(date, 0.0)),
        )
        for date in sorted(set(daily_output) | set(daily_input))
    }

    return EstimationResult(
        daily=daily,
        total_est_output=sum(d.est_output for d in daily.values()),
        total_est_input=sum(d.est_input for d in daily.values()),
        outlier_count=outlier_count,
        p95_generation_ms=round_half_up(p95),
    )


@dataclass
class EstimatedDay:
    """One day of estimated usage for a timing-only source."""
    date: str
    llm_calls: int = 0
    models: Dict[str, int] = field(default_factory=dict)
    est_input_tokens: int = 0
    est_output_tokens: int = 0
    est_total_tokens: int = 0

    def to_usage_records(self) -> List[RawUsageRecord]:
        """Express the day as a single raw record attributed to its busiest model."""
        if not self.llm_calls and not self.est_total_tokens:
            return []
        model = None
        if self.models:
            # Most calls first, then alphabetical
            model = sorted(self.models.items(), key=lambda item: (-item[1], item[0]))[0][0]
        return [RawUsageRecord(
            model=model,
            input_tokens=self.est_input_tokens,
            output_tokens=self.est_output_tokens,
            total_tokens=self.est_total_tokens,
            requests=self.llm_calls,
            note="estimated from request timing and body size",
        )]


def aggregate_by_date(
    timing_events: Sequence[TimingEvent],
    body_len_events: Sequence[BodyLenEvent],
    date_filter: Optional[Iterable[str]] = None,
    config: EstimationConfig = DEFAULT_ESTIMATION_CONFIG,
) -> Dict[str, EstimatedDay]:
    """Combine call counts and token estimates into one entry per day."""
    date_filter = set(date_filter) if date_filter is not None else None
    estimation = estimate_tokens(timing_events, body_len_events, date_filter, config)

    days: Dict[str, EstimatedDay] = {}

    def get_or_create(date: str) -> EstimatedDay:
        if date not in days:
            days[date] = EstimatedDay(date=date)
        return days[date]

    for event in timing_events:
        if not _in_filter(event.date, date_filter):
            continue
        day = get_or_create(event.date)
        day.llm_calls += 1
        day.models[event.config_name] = day.models.get(event.config_name, 0) + 1

    for date, estimate in estimation.daily.items():
        day = get_or_create(date)
        day.est_input_tokens = estimate.est_input
        day.est_output_tokens = estimate.est_output
        day.est_total_tokens = estimate.est_total

    return {date: days[date] for date in sorted(days)}
