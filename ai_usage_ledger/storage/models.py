"""
Data models for raw usage snapshots.

Defines the canonical input shape produced by the per-tool collectors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


SYNTHETIC_MODEL = "<synthetic>"
RAW_FORMAT_VERSION = "1.0"


class DataQuality(Enum):
    """How trustworthy a snapshot's numbers are."""
    EXACT = "exact"          # Authoritative counter
    ESTIMATED = "estimated"  # Derived via heuristic
    PARTIAL = "partial"      # Known incomplete


def _int_field(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    return int(value)


@dataclass(frozen=True)
class RawUsageRecord:
    """One provider/model line item inside a snapshot.

    Every numeric field defaults to 0; absence is never an error.
    """
    model: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    requests: int = 0
    sessions: int = 0
    cost: Optional[float] = None
    currency: Optional[str] = None
    note: Optional[str] = None
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawUsageRecord":
        """Build a record from its camelCase JSON form."""
        cost = data.get("cost")
        return cls(
            model=data.get("model"),
            input_tokens=_int_field(data, "inputTokens"),
            output_tokens=_int_field(data, "outputTokens"),
            cache_creation_tokens=_int_field(data, "cacheCreationTokens"),
            cache_read_tokens=_int_field(data, "cacheReadTokens"),
            total_tokens=_int_field(data, "totalTokens"),
            requests=_int_field(data, "requests"),
            sessions=_int_field(data, "sessions"),
            cost=float(cost) if cost is not None else None,
            currency=data.get("currency"),
            note=data.get("note"),
            timestamp=data.get("timestamp"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.timestamp is not None:
            result["timestamp"] = self.timestamp
        if self.model is not None:
            result["model"] = self.model
        result["inputTokens"] = self.input_tokens
        result["outputTokens"] = self.output_tokens
        result["cacheCreationTokens"] = self.cache_creation_tokens
        result["cacheReadTokens"] = self.cache_read_tokens
        result["totalTokens"] = self.total_tokens
        result["requests"] = self.requests
        if self.sessions:
            result["sessions"] = self.sessions
        if self.cost is not None:
            result["cost"] = self.cost
        if self.currency is not None:
            result["currency"] = self.currency
        if self.note is not None:
            result["note"] = self.note
        return result


@dataclass(frozen=True)
class RawDataFile:
    """Immutable snapshot of one collection event.

    Exactly one snapshot per (provider, date, machine) survives
    deduplication; a later collection supersedes an earlier one whole.
    """
    collected_at: str
    machine: str
    provider: str
    date: str
    data_quality: DataQuality
    records: Tuple[RawUsageRecord, ...] = field(default_factory=tuple)
    version: str = RAW_FORMAT_VERSION

    @property
    def dedup_key(self) -> Tuple[str, str, str]:
        """The (provider, date, machine) identity of this snapshot."""
        return (self.provider, self.date, self.machine)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawDataFile":
        """Parse a snapshot from its JSON form.

        Raises:
            ValueError: If a required key is missing or the data quality
                tag is unknown
        """
        if not isinstance(data, dict):
            raise ValueError("Raw data file must be a JSON object")

        required = ("version", "collectedAt", "machine", "provider", "date", "records")
        missing = [key for key in required if key not in data]
        if missing:
            raise ValueError(f"Raw data file missing keys: {missing}")

        records = data["records"]
        if not isinstance(records, list):
            raise ValueError("'records' must be a list")
        if not all(isinstance(r, dict) for r in records):
            raise ValueError("Every entry of 'records' must be an object")

        try:
            quality = DataQuality(data.get("dataQuality", DataQuality.EXACT.value))
        except ValueError:
            valid = [q.value for q in DataQuality]
            raise ValueError(f"'dataQuality' must be one of: {valid}")

        return cls(
            version=str(data["version"]),
            collected_at=str(data["collectedAt"]),
            machine=str(data["machine"]),
            provider=str(data["provider"]),
            date=str(data["date"]),
            data_quality=quality,
            records=tuple(RawUsageRecord.from_dict(r) for r in records),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "collectedAt": self.collected_at,
            "machine": self.machine,
            "provider": self.provider,
            "date": self.date,
            "dataQuality": self.data_quality.value,
            "records": [r.to_dict() for r in self.records],
        }
