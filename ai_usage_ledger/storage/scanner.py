"""
Raw snapshot discovery.

Reads the `{machine}/{provider}/{date}_{hash}.json` tree written by the
collectors, and the timing telemetry files fed to the token estimator.
"""

import json
import logging
from pathlib import Path
from typing import List, Tuple, Union

from ai_usage_ledger.core.estimation import BodyLenEvent, TimingEvent

from .models import RawDataFile

logger = logging.getLogger(__name__)


def scan_raw_files(raw_dir: Union[str, Path]) -> List[RawDataFile]:
    """Load every parseable snapshot under the raw data directory.

    Unreadable or malformed files are skipped with a warning so one bad
    snapshot cannot stop a summary run. A missing directory yields no
    files.

    Args:
        raw_dir: Root of the raw data tree

    Returns:
        Parsed snapshots in path order
    """
    root = Path(raw_dir)
    if not root.is_dir():
        logger.warning("Raw data directory not found: %s", root)
        return []

    files: List[RawDataFile] = []
    skipped = 0

    for path in sorted(root.glob("*/*/*.json")):
        if not path.is_file():
            continue
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            files.append(RawDataFile.from_dict(data))
        except (OSError, json.JSONDecodeError, ValueError, TypeError) as e:
            skipped += 1
            logger.warning("Skipping raw file %s: %s", path, e)

    logger.info("Found %d raw file(s) in %s (%d skipped)", len(files), root, skipped)
    return files


def read_estimation_events(
    path: Union[str, Path],
    timezone: str = "UTC",
) -> Tuple[List[TimingEvent], List[BodyLenEvent]]:
    """Load timing and body-length telemetry for the token estimator.

    The file is a JSON object with optional `timing` and `bodyLen` lists.
    Unlike the raw tree, a malformed event fails the whole file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the JSON or any event is invalid
    """
    events_path = Path(path)
    if not events_path.exists():
        raise FileNotFoundError(f"Events file not found: {path}")

    with open(events_path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in events file {path}: {e}")

    if not isinstance(data, dict):
        raise ValueError("Events file must be a JSON object")

    timing_data = data.get('timing') or []
    body_data = data.get('bodyLen') or []
    if not isinstance(timing_data, list) or not isinstance(body_data, list):
        raise ValueError("'timing' and 'bodyLen' must be lists")
    if not all(isinstance(e, dict) for e in timing_data + body_data):
        raise ValueError("Every event must be an object")

    timing = [TimingEvent.from_dict(e, timezone) for e in timing_data]
    body = [BodyLenEvent.from_dict(e, timezone) for e in body_data]
    logger.info("Loaded %d timing and %d body length event(s) from %s",
                len(timing), len(body), events_path)
    return timing, body
