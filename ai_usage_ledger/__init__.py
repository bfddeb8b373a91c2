"""
AI Usage Ledger.

Deduplicates per-tool AI usage snapshots and rolls them up into daily,
weekly, monthly and all-time token and cost summaries.
"""

__version__ = "0.1.0"
