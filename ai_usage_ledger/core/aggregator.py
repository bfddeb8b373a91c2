"""
Daily and rollup aggregation.

Folds deduplicated snapshots into one DailySummary per date, then rolls
days up into weeks, months, per-provider and per-machine all-time views
and the rolling "latest" windows.

Every fold visits its inputs in a fixed key order and every breakdown
list is sorted by key, so the output does not depend on the order in
which snapshots were discovered on disk.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ai_usage_ledger.storage.models import RawDataFile
from ai_usage_ledger.utils.dates import (
    get_iso_week_string,
    get_month_string,
    subtract_days,
    utc_timestamp,
)

from .pricing import (
    BASE_CURRENCY,
    PricingConfig,
    calculate_record_cost,
    convert_to_usd,
    is_record_priced,
)
from .summaries import (
    DailySummary,
    DailyTrendEntry,
    DateRange,
    LatestSummary,
    MachineAllTime,
    MachineSummary,
    ModelSummary,
    MonthlySummary,
    PeriodSummary,
    ProviderAllTime,
    ProviderSummary,
    WeeklySummary,
)
from .token_counter import TokenTotals

logger = logging.getLogger(__name__)

LAST_7_DAYS = 7
LAST_30_DAYS = 30


# ---------------------------------------------------------------------------
# daily
# ---------------------------------------------------------------------------

def _fold_file(
    file: RawDataFile,
    pricing: PricingConfig,
    models: Dict[Tuple[str, str], ModelSummary],
) -> ProviderSummary:
    """Sum one snapshot's records into a provider subtotal.

    Per-model totals are accumulated into `models` as a side effect, keyed
    by (provider, model) so equal model names of different providers stay
    apart.
    """
    input_tokens = output_tokens = cache_creation = cache_read = 0
    total_tokens = requests = 0
    amount = 0.0
    currency = BASE_CURRENCY

    for record in file.records:
        input_tokens += record.input_tokens
        output_tokens += record.output_tokens
        cache_creation += record.cache_creation_tokens
        cache_read += record.cache_read_tokens
        total_tokens += record.total_tokens
        requests += record.requests

        cost = calculate_record_cost(record, file.provider, pricing)
        amount += cost.amount
        if is_record_priced(record, file.provider, pricing):
            currency = cost.currency

        if record.model:
            key = (file.provider, record.model)
            record_usd = convert_to_usd(cost.amount, cost.currency, pricing)
            existing = models.get(key)
            if existing is None:
                models[key] = ModelSummary(
                    model=record.model,
                    provider=file.provider,
                    total_tokens=record.total_tokens,
                    requests=record.requests,
                    cost_usd=record_usd,
                )
            else:
                models[key] = ModelSummary(
                    model=record.model,
                    provider=file.provider,
                    total_tokens=existing.total_tokens + record.total_tokens,
                    requests=existing.requests + record.requests,
                    cost_usd=existing.cost_usd + record_usd,
                )

    return ProviderSummary(
        provider=file.provider,
        data_quality=file.data_quality,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_creation_tokens=cache_creation,
        cache_read_tokens=cache_read,
        total_tokens=total_tokens,
        cost=amount,
        cost_usd=convert_to_usd(amount, currency, pricing),
        currency=currency,
        requests=requests,
    )


def _build_day(date: str, files: List[RawDataFile], pricing: PricingConfig) -> DailySummary:
    totals = TokenTotals.empty()
    providers: Dict[str, ProviderSummary] = {}
    machines: Dict[str, MachineSummary] = {}
    models: Dict[Tuple[str, str], ModelSummary] = {}

    for file in files:
        subtotal = _fold_file(file, pricing, models)
        subtotal_totals = subtotal.as_totals()

        existing_provider = providers.get(file.provider)
        providers[file.provider] = (
            subtotal if existing_provider is None else existing_provider.merge(subtotal)
        )

        machine_share = MachineSummary(
            machine=file.machine,
            input_tokens=subtotal.input_tokens,
            output_tokens=subtotal.output_tokens,
            cache_creation_tokens=subtotal.cache_creation_tokens,
            cache_read_tokens=subtotal.cache_read_tokens,
            total_tokens=subtotal.total_tokens,
            cost=subtotal_totals.cost,
            requests=subtotal.requests,
        )
        existing_machine = machines.get(file.machine)
        machines[file.machine] = (
            machine_share if existing_machine is None else existing_machine.merge(machine_share)
        )

        totals = totals + subtotal_totals

    return DailySummary(
        date=date,
        totals=totals,
        by_provider=[providers[k] for k in sorted(providers)],
        by_machine=[machines[k] for k in sorted(machines)],
        by_model=[models[k] for k in sorted(models)],
    )


def build_daily_summaries(
    files: Iterable[RawDataFile],
    pricing: PricingConfig,
) -> Dict[str, DailySummary]:
    """Fold deduplicated snapshots into one summary per date.

    Args:
        files: Deduplicated snapshots, one per (provider, date, machine)
        pricing: Pricing tables and exchange rates

    Returns:
        Mapping of date to DailySummary, in ascending date order
    """
    by_date: Dict[str, List[RawDataFile]] = defaultdict(list)
    for file in files:
        by_date[file.date].append(file)

    result: Dict[str, DailySummary] = {}
    for date in sorted(by_date):
        day_files = sorted(
            by_date[date],
            key=lambda f: (f.provider, f.machine, f.collected_at),
        )
        result[date] = _build_day(date, day_files, pricing)

    logger.debug("Built %d daily summaries", len(result))
    return result


# ---------------------------------------------------------------------------
# shared day fold
# ---------------------------------------------------------------------------

def _merge_keyed(items: Iterable, key: Callable) -> List:
    merged: Dict[str, object] = {}
    for item in items:
        k = key(item)
        existing = merged.get(k)
        merged[k] = item if existing is None else existing.merge(item)
    return [merged[k] for k in sorted(merged)]


def aggregate_days(
    days: Iterable[DailySummary],
    date_range: Optional[DateRange] = None,
) -> PeriodSummary:
    """Fold a set of days into one period.

    Totals add, same-key provider/machine entries are summed, and the
    trend carries one point per day with data in ascending date order.
    Without an explicit range the period spans its first and last day;
    an empty fold spans ("", "").
    """
    ordered = sorted(days, key=lambda d: d.date)

    totals = TokenTotals.empty()
    trend: List[DailyTrendEntry] = []
    for day in ordered:
        totals = totals + day.totals
        trend.append(DailyTrendEntry(
            date=day.date,
            total_tokens=day.totals.total_tokens,
            cost=day.totals.cost.total_usd,
        ))

    if date_range is None:
        date_range = (
            DateRange(ordered[0].date, ordered[-1].date) if ordered else DateRange("", "")
        )

    return PeriodSummary(
        date_range=date_range,
        totals=totals,
        by_provider=_merge_keyed(
            (p for day in ordered for p in day.by_provider), key=lambda p: p.provider
        ),
        by_machine=_merge_keyed(
            (m for day in ordered for m in day.by_machine), key=lambda m: m.machine
        ),
        daily_trend=trend,
    )


def _bucket_days(
    daily: Dict[str, DailySummary],
    bucket_of: Callable[[str], str],
) -> Dict[str, List[DailySummary]]:
    buckets: Dict[str, List[DailySummary]] = defaultdict(list)
    for date in sorted(daily):
        buckets[bucket_of(date)].append(daily[date])
    return buckets


# ---------------------------------------------------------------------------
# weekly / monthly
# ---------------------------------------------------------------------------

def build_weekly_summaries(daily: Dict[str, DailySummary]) -> Dict[str, WeeklySummary]:
    """Roll days up into ISO-8601 weeks (`YYYY-Www`)."""
    buckets = _bucket_days(daily, get_iso_week_string)
    return {
        week: WeeklySummary(week=week, period=aggregate_days(buckets[week]))
        for week in sorted(buckets)
    }


def build_monthly_summaries(daily: Dict[str, DailySummary]) -> Dict[str, MonthlySummary]:
    """Roll days up into calendar months (`YYYY-MM`)."""
    buckets = _bucket_days(daily, get_month_string)
    return {
        month: MonthlySummary(month=month, period=aggregate_days(buckets[month]))
        for month in sorted(buckets)
    }


# ---------------------------------------------------------------------------
# all-time
# ---------------------------------------------------------------------------

def build_provider_summaries(daily: Dict[str, DailySummary]) -> Dict[str, ProviderAllTime]:
    """All-time totals and trend for each provider across every day."""
    totals: Dict[str, TokenTotals] = {}
    trends: Dict[str, List[DailyTrendEntry]] = defaultdict(list)

    for date in sorted(daily):
        for entry in daily[date].by_provider:
            totals[entry.provider] = totals.get(entry.provider, TokenTotals.empty()) + entry.as_totals()
            trends[entry.provider].append(DailyTrendEntry(
                date=date,
                total_tokens=entry.total_tokens,
                cost=entry.cost_usd,
            ))

    return {
        provider: ProviderAllTime(
            provider=provider,
            date_range=DateRange(trends[provider][0].date, trends[provider][-1].date),
            totals=totals[provider],
            daily_trend=trends[provider],
        )
        for provider in sorted(totals)
    }


def build_machine_summaries(daily: Dict[str, DailySummary]) -> Dict[str, MachineAllTime]:
    """All-time totals and trend for each machine across every day."""
    totals: Dict[str, TokenTotals] = {}
    trends: Dict[str, List[DailyTrendEntry]] = defaultdict(list)

    for date in sorted(daily):
        for entry in daily[date].by_machine:
            totals[entry.machine] = totals.get(entry.machine, TokenTotals.empty()) + entry.as_totals()
            trends[entry.machine].append(DailyTrendEntry(
                date=date,
                total_tokens=entry.total_tokens,
                cost=entry.cost.total_usd,
            ))

    return {
        machine: MachineAllTime(
            machine=machine,
            date_range=DateRange(trends[machine][0].date, trends[machine][-1].date),
            totals=totals[machine],
            daily_trend=trends[machine],
        )
        for machine in sorted(totals)
    }


# ---------------------------------------------------------------------------
# latest
# ---------------------------------------------------------------------------

def build_period_summary(
    daily: Dict[str, DailySummary],
    start: str,
    end: str,
) -> PeriodSummary:
    """Fold the days falling in [start, end] inclusive."""
    days = [daily[d] for d in sorted(daily) if start <= d <= end]
    return aggregate_days(days, date_range=DateRange(start, end))


def build_latest_summary(
    daily: Dict[str, DailySummary],
    reference_date: str,
    generated_at: Optional[str] = None,
) -> LatestSummary:
    """Rolling 7- and 30-day windows ending at the reference date.

    `today` is looked up exactly; a reference date without data gives
    None, never the nearest earlier day.
    """
    return LatestSummary(
        last_updated=generated_at or utc_timestamp(),
        reference_date=reference_date,
        last_7_days=build_period_summary(
            daily, subtract_days(reference_date, LAST_7_DAYS - 1), reference_date
        ),
        last_30_days=build_period_summary(
            daily, subtract_days(reference_date, LAST_30_DAYS - 1), reference_date
        ),
        today=daily.get(reference_date),
    )
