"""
Summary entities derived from raw snapshots.

All summaries are values recomputed on every run. Each one serializes to
the camelCase JSON shape read by the dashboard via `to_dict()`.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ai_usage_ledger.storage.models import DataQuality

from .pricing import CostAmount
from .token_counter import CostBreakdown, TokenTotals


@dataclass(frozen=True)
class DateRange:
    start: str
    end: str

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class DailyTrendEntry:
    """One point of a trend line; cost is in USD."""
    date: str
    total_tokens: int
    cost: float

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "totalTokens": self.total_tokens, "cost": self.cost}


@dataclass(frozen=True)
class ProviderSummary:
    """One provider's share of an aggregation window.

    `cost` is in the provider's native `currency`; `cost_usd` is the same
    amount converted.
    """
    provider: str
    data_quality: DataQuality
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0
    cost_usd: float = 0.0
    currency: str = "USD"
    requests: int = 0

    def merge(self, other: "ProviderSummary") -> "ProviderSummary":
        """Sum two entries for the same provider; tag and currency are last-wins."""
        return ProviderSummary(
            provider=self.provider,
            data_quality=other.data_quality,
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_creation_tokens=self.cache_creation_tokens + other.cache_creation_tokens,
            cache_read_tokens=self.cache_read_tokens + other.cache_read_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cost=self.cost + other.cost,
            cost_usd=self.cost_usd + other.cost_usd,
            currency=other.currency,
            requests=self.requests + other.requests,
        )

    def as_totals(self) -> TokenTotals:
        return TokenTotals(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_creation_tokens=self.cache_creation_tokens,
            cache_read_tokens=self.cache_read_tokens,
            total_tokens=self.total_tokens,
            cost=CostBreakdown(
                total_usd=self.cost_usd,
                by_provider={self.provider: CostAmount(self.cost, self.currency)},
            ),
            requests=self.requests,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "dataQuality": self.data_quality.value,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cacheCreationTokens": self.cache_creation_tokens,
            "cacheReadTokens": self.cache_read_tokens,
            "totalTokens": self.total_tokens,
            "cost": self.cost,
            "costUSD": self.cost_usd,
            "currency": self.currency,
            "requests": self.requests,
        }


@dataclass(frozen=True)
class MachineSummary:
    """One machine's share of an aggregation window."""
    machine: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    cost: CostBreakdown = field(default_factory=CostBreakdown)
    requests: int = 0

    def merge(self, other: "MachineSummary") -> "MachineSummary":
        return MachineSummary(
            machine=self.machine,
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_creation_tokens=self.cache_creation_tokens + other.cache_creation_tokens,
            cache_read_tokens=self.cache_read_tokens + other.cache_read_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cost=self.cost + other.cost,
            requests=self.requests + other.requests,
        )

    def as_totals(self) -> TokenTotals:
        return TokenTotals(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_creation_tokens=self.cache_creation_tokens,
            cache_read_tokens=self.cache_read_tokens,
            total_tokens=self.total_tokens,
            cost=self.cost,
            requests=self.requests,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "machine": self.machine,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cacheCreationTokens": self.cache_creation_tokens,
            "cacheReadTokens": self.cache_read_tokens,
            "totalTokens": self.total_tokens,
            "cost": self.cost.to_dict(),
            "requests": self.requests,
        }


@dataclass(frozen=True)
class ModelSummary:
    """Usage of one model, scoped to the provider that reported it."""
    model: str
    provider: str
    total_tokens: int = 0
    requests: int = 0
    cost_usd: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "provider": self.provider,
            "totalTokens": self.total_tokens,
            "requests": self.requests,
            "costUSD": self.cost_usd,
        }


@dataclass(frozen=True)
class DailySummary:
    date: str
    totals: TokenTotals
    by_provider: List[ProviderSummary] = field(default_factory=list)
    by_machine: List[MachineSummary] = field(default_factory=list)
    by_model: List[ModelSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "totals": self.totals.to_dict(),
            "byProvider": [p.to_dict() for p in self.by_provider],
            "byMachine": [m.to_dict() for m in self.by_machine],
            "byModel": [m.to_dict() for m in self.by_model],
        }


@dataclass(frozen=True)
class PeriodSummary:
    """Fold of a run of days: totals, merged breakdowns and a trend line."""
    date_range: DateRange
    totals: TokenTotals
    by_provider: List[ProviderSummary] = field(default_factory=list)
    by_machine: List[MachineSummary] = field(default_factory=list)
    daily_trend: List[DailyTrendEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dateRange": self.date_range.to_dict(),
            "totals": self.totals.to_dict(),
            "byProvider": [p.to_dict() for p in self.by_provider],
            "byMachine": [m.to_dict() for m in self.by_machine],
            "dailyTrend": [t.to_dict() for t in self.daily_trend],
        }


@dataclass(frozen=True)
class WeeklySummary:
    week: str
    period: PeriodSummary

    def to_dict(self) -> Dict[str, Any]:
        return {"week": self.week, **self.period.to_dict()}


@dataclass(frozen=True)
class MonthlySummary:
    month: str
    period: PeriodSummary

    def to_dict(self) -> Dict[str, Any]:
        return {"month": self.month, **self.period.to_dict()}


@dataclass(frozen=True)
class ProviderAllTime:
    provider: str
    date_range: DateRange
    totals: TokenTotals
    daily_trend: List[DailyTrendEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "dateRange": self.date_range.to_dict(),
            "totals": self.totals.to_dict(),
            "dailyTrend": [t.to_dict() for t in self.daily_trend],
        }


@dataclass(frozen=True)
class MachineAllTime:
    machine: str
    date_range: DateRange
    totals: TokenTotals
    daily_trend: List[DailyTrendEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "machine": self.machine,
            "dateRange": self.date_range.to_dict(),
            "totals": self.totals.to_dict(),
            "dailyTrend": [t.to_dict() for t in self.daily_trend],
        }


@dataclass(frozen=True)
class LatestSummary:
    """Rolling windows ending at a reference date.

    `today` is the reference date's own summary, or None when that date
    has no data.
    """
    last_updated: str
    reference_date: str
    last_7_days: PeriodSummary
    last_30_days: PeriodSummary
    today: Optional[DailySummary] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "referenceDate": self.reference_date,
            "last7Days": self.last_7_days.to_dict(),
            "last30Days": self.last_30_days.to_dict(),
            "today": self.today.to_dict() if self.today is not None else None,
        }


@dataclass(frozen=True)
class SummaryMeta:
    """Index of everything a summary run produced."""
    last_updated: str
    date_range: DateRange
    providers: List[str] = field(default_factory=list)
    machines: List[str] = field(default_factory=list)
    models: List[str] = field(default_factory=list)
    daily_files: List[str] = field(default_factory=list)
    weekly_files: List[str] = field(default_factory=list)
    monthly_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "dateRange": self.date_range.to_dict(),
            "providers": list(self.providers),
            "machines": list(self.machines),
            "models": list(self.models),
            "dailyFiles": list(self.daily_files),
            "weeklyFiles": list(self.weekly_files),
            "monthlyFiles": list(self.monthly_files),
        }
