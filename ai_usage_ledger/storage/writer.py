"""
Summary output writer.

Serializes a summary run into the JSON tree read by the dashboard.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Union

from ai_usage_ledger.core.pipeline import SummaryBundle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputFile:
    path: Path
    content: str


def _to_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def build_output_files(bundle: SummaryBundle, output_dir: Union[str, Path]) -> List[OutputFile]:
    """Lay out every summary as a file path and JSON body.

    Layout: daily/{date}.json, weekly/{week}.json, monthly/{month}.json,
    providers/{id}.json, machines/{id}.json, latest.json, meta.json.
    """
    root = Path(output_dir)
    files: List[OutputFile] = []

    groups = (
        ("daily", bundle.daily),
        ("weekly", bundle.weekly),
        ("monthly", bundle.monthly),
        ("providers", bundle.providers),
        ("machines", bundle.machines),
    )
    for folder, summaries in groups:
        for key in sorted(summaries):
            files.append(OutputFile(
                path=root / folder / f"{key}.json",
                content=_to_json(summaries[key].to_dict()),
            ))

    files.append(OutputFile(root / "latest.json", _to_json(bundle.latest.to_dict())))
    files.append(OutputFile(root / "meta.json", _to_json(bundle.meta.to_dict())))
    return files


def write_all_outputs(
    bundle: SummaryBundle,
    output_dir: Union[str, Path],
    dry_run: bool = False,
) -> int:
    """Write all summary files, creating folders as needed.

    Args:
        bundle: Result of a summary run
        output_dir: Root of the output tree
        dry_run: Count the files without touching the disk

    Returns:
        Number of files written (or that would be written)
    """
    files = build_output_files(bundle, output_dir)
    if dry_run:
        logger.info("[dry-run] Would write %d file(s) to %s", len(files), output_dir)
        return len(files)

    for output in files:
        output.path.parent.mkdir(parents=True, exist_ok=True)
        with open(output.path, 'w', encoding='utf-8') as f:
            f.write(output.content)

    logger.info("Wrote %d file(s) to %s", len(files), output_dir)
    return len(files)
