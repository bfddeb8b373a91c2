"""
Core modules for AI Usage Ledger.

This package contains deduplication, pricing, aggregation and
token estimation.
"""
