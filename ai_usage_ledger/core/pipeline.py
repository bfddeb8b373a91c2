"""
End-to-end summary run over in-memory snapshots.

No I/O happens here; the caller scans inputs and writes outputs.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ai_usage_ledger.storage.models import RawDataFile
from ai_usage_ledger.utils.dates import utc_timestamp

from .aggregator import (
    build_daily_summaries,
    build_latest_summary,
    build_machine_summaries,
    build_monthly_summaries,
    build_provider_summaries,
    build_weekly_summaries,
)
from .dedup import dedup_files
from .meta import build_meta
from .pricing import PricingConfig
from .summaries import (
    DailySummary,
    LatestSummary,
    MachineAllTime,
    MonthlySummary,
    ProviderAllTime,
    SummaryMeta,
    WeeklySummary,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryBundle:
    """Every summary produced by one run."""
    daily: Dict[str, DailySummary]
    weekly: Dict[str, WeeklySummary]
    monthly: Dict[str, MonthlySummary]
    providers: Dict[str, ProviderAllTime]
    machines: Dict[str, MachineAllTime]
    latest: LatestSummary
    meta: SummaryMeta


def run_pipeline(
    raw_files: List[RawDataFile],
    pricing: PricingConfig,
    reference_date: str,
    generated_at: Optional[str] = None,
) -> SummaryBundle:
    """Deduplicate snapshots and derive every summary level.

    Args:
        raw_files: Snapshots in any order, duplicates allowed
        pricing: Pricing tables and exchange rates
        reference_date: Anchor date of the rolling windows
        generated_at: Timestamp stamped on latest/meta; defaults to now

    Returns:
        SummaryBundle with all derived summaries
    """
    generated_at = generated_at or utc_timestamp()

    files = dedup_files(raw_files)
    logger.info("Deduplicated %d raw file(s) into %d", len(raw_files), len(files))

    daily = build_daily_summaries(files, pricing)
    weekly = build_weekly_summaries(daily)
    monthly = build_monthly_summaries(daily)
    providers = build_provider_summaries(daily)
    machines = build_machine_summaries(daily)
    latest = build_latest_summary(daily, reference_date, generated_at=generated_at)
    meta = build_meta(daily, weekly, monthly, generated_at=generated_at)

    logger.info(
        "Daily: %d, weekly: %d, monthly: %d, providers: %d, machines: %d",
        len(daily), len(weekly), len(monthly), len(providers), len(machines),
    )

    return SummaryBundle(
        daily=daily,
        weekly=weekly,
        monthly=monthly,
        providers=providers,
        machines=machines,
        latest=latest,
        meta=meta,
    )
