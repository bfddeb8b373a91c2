"""
Snapshot deduplication.

Collapses repeated collections of the same (provider, date, machine)
down to the most recent one.
"""

import json
import logging
from dataclasses import replace
from typing import Dict, List, Tuple

from ai_usage_ledger.storage.models import SYNTHETIC_MODEL, RawDataFile

logger = logging.getLogger(__name__)


def _filter_synthetic_records(file: RawDataFile) -> RawDataFile:
    # Only zero-token placeholders go; a synthetic record with tokens stays.
    kept = tuple(
        r for r in file.records
        if not (r.model == SYNTHETIC_MODEL and r.total_tokens == 0)
    )
    if len(kept) == len(file.records):
        return file
    return replace(file, records=kept)


def _precedence(file: RawDataFile) -> Tuple[str, str]:
    # Equal collection times fall back to the serialized snapshot
    return (file.collected_at, json.dumps(file.to_dict(), sort_keys=True))


def dedup_files(files: List[RawDataFile]) -> List[RawDataFile]:
    """Keep one snapshot per (provider, date, machine).

    The snapshot with the greatest `collected_at` string wins outright;
    records are never merged between candidates. Equal `collected_at`
    values are decided by the serialized snapshot, so the winner does not
    depend on input order. Survivors are stripped of
    zero-token synthetic placeholder records.

    Args:
        files: Raw snapshots in any order

    Returns:
        Deduplicated snapshots ordered by (date, provider, machine)
    """
    latest: Dict[Tuple[str, str, str], RawDataFile] = {}

    for file in files:
        key = file.dedup_key
        existing = latest.get(key)
        if existing is None or _precedence(file) > _precedence(existing):
            latest[key] = file

    dropped = len(files) - len(latest)
    if dropped:
        logger.debug("Superseded %d older snapshot(s)", dropped)

    survivors = sorted(latest.values(), key=lambda f: (f.date, f.provider, f.machine))
    return [_filter_synthetic_records(f) for f in survivors]
