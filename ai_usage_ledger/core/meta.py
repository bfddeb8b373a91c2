"""
Run metadata: which ids and dates a summary run covers.
"""

from typing import Dict, Optional

from ai_usage_ledger.utils.dates import utc_timestamp

from .summaries import DailySummary, DateRange, MonthlySummary, SummaryMeta, WeeklySummary


def build_meta(
    daily: Dict[str, DailySummary],
    weekly: Dict[str, WeeklySummary],
    monthly: Dict[str, MonthlySummary],
    generated_at: Optional[str] = None,
) -> SummaryMeta:
    """Enumerate providers, machines, models and output keys.

    All lists are sorted. With no daily data the date range is ("", "").
    """
    dates = sorted(daily)
    providers = set()
    machines = set()
    models = set()

    for summary in daily.values():
        providers.update(p.provider for p in summary.by_provider)
        machines.update(m.machine for m in summary.by_machine)
        models.update(m.model for m in summary.by_model)

    return SummaryMeta(
        last_updated=generated_at or utc_timestamp(),
        date_range=DateRange(dates[0], dates[-1]) if dates else DateRange("", ""),
        providers=sorted(providers),
        machines=sorted(machines),
        models=sorted(models),
        daily_files=dates,
        weekly_files=sorted(weekly),
        monthly_files=sorted(monthly),
    )
