"""Shared pytest fixtures: pricing table and snapshot factories."""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from ai_usage_ledger.core.pricing import (
    ModelPricing,
    PricingConfig,
    PricingKind,
    ProviderPricing,
    SubscriptionPricing,
)
from ai_usage_ledger.storage.models import DataQuality, RawDataFile, RawUsageRecord


PRICING_DOCUMENT: Dict[str, Any] = {
    "exchangeRates": {"CNY/USD": 0.1389},
    "providers": {
        "claude-code": {
            "type": "token",
            "models": {
                "claude-opus-4-6": {
                    "inputPerMTok": 15, "outputPerMTok": 75,
                    "cacheCreationPerMTok": 18.75, "cacheReadPerMTok": 1.50,
                    "currency": "USD",
                },
                "claude-sonnet-4": {
                    "inputPerMTok": 3, "outputPerMTok": 15,
                    "cacheCreationPerMTok": 3.75, "cacheReadPerMTok": 0.30,
                    "currency": "USD",
                },
                "claude-haiku-4-5": {
                    "inputPerMTok": 0.80, "outputPerMTok": 4,
                    "cacheCreationPerMTok": 1.0, "cacheReadPerMTok": 0.08,
                    "currency": "USD",
                },
                "_default": {
                    "inputPerMTok": 3, "outputPerMTok": 15,
                    "currency": "USD",
                },
            },
        },
        "glm-coding": {
            "type": "token",
            "models": {
                "_default": {"totalPerKTok": 0.05, "currency": "CNY"},
            },
        },
        "trae-pro": {
            "type": "subscription",
            "subscription": {"plan": "pro", "monthlyCost": 10, "currency": "USD"},
        },
    },
}


@pytest.fixture
def pricing() -> PricingConfig:
    """Pricing table mirroring PRICING_DOCUMENT."""
    return PricingConfig(
        exchange_rates={"CNY/USD": 0.1389},
        providers={
            "claude-code": ProviderPricing(
                kind=PricingKind.TOKEN,
                models={
                    "claude-opus-4-6": ModelPricing(
                        input_per_mtok=15, output_per_mtok=75,
                        cache_creation_per_mtok=18.75, cache_read_per_mtok=1.50,
                    ),
                    "claude-sonnet-4": ModelPricing(
                        input_per_mtok=3, output_per_mtok=15,
                        cache_creation_per_mtok=3.75, cache_read_per_mtok=0.30,
                    ),
                    "claude-haiku-4-5": ModelPricing(
                        input_per_mtok=0.80, output_per_mtok=4,
                        cache_creation_per_mtok=1.0, cache_read_per_mtok=0.08,
                    ),
                    "_default": ModelPricing(input_per_mtok=3, output_per_mtok=15),
                },
            ),
            "glm-coding": ProviderPricing(
                kind=PricingKind.TOKEN,
                models={"_default": ModelPricing(total_per_ktok=0.05, currency="CNY")},
            ),
            "trae-pro": ProviderPricing(
                kind=PricingKind.SUBSCRIPTION,
                subscription=SubscriptionPricing(plan="pro", monthly_cost=10),
            ),
        },
    )


def make_record(model=None, input_tokens=0, output_tokens=0, cache_creation=0,
                cache_read=0, total=None, requests=1) -> RawUsageRecord:
    """Build a record; total defaults to the sum of the four categories."""
    if total is None:
        total = input_tokens + output_tokens + cache_creation + cache_read
    return RawUsageRecord(
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_creation_tokens=cache_creation,
        cache_read_tokens=cache_read,
        total_tokens=total,
        requests=requests,
    )


def make_file(provider="claude-code", date="2026-02-17", machine="test-machine",
              collected_at="2026-02-18T00:00:00.000Z", records=(),
              quality=DataQuality.EXACT) -> RawDataFile:
    return RawDataFile(
        collected_at=collected_at,
        machine=machine,
        provider=provider,
        date=date,
        data_quality=quality,
        records=tuple(records),
    )


@pytest.fixture
def sample_files():
    """Three days, three providers, two machines, with one superseded snapshot."""
    return [
        # Older snapshot of 2026-02-17, superseded below
        make_file(date="2026-02-17", collected_at="2026-02-17T12:00:00.000Z", records=[
            make_record("claude-opus-4-6", input_tokens=5000, output_tokens=1000),
        ]),
        make_file(date="2026-02-17", collected_at="2026-02-18T01:00:00.000Z", records=[
            make_record("claude-opus-4-6", input_tokens=8000, output_tokens=2000, requests=10),
            make_record("claude-haiku-4-5-20251001", input_tokens=800, output_tokens=200, requests=5),
        ]),
        make_file(provider="trae-pro", date="2026-02-17", quality=DataQuality.ESTIMATED, records=[
            make_record("gemini-3-pro", input_tokens=180000, output_tokens=20000, requests=40),
        ]),
        make_file(date="2026-02-18", records=[
            make_record("claude-opus-4-6", input_tokens=3000, output_tokens=80000,
                        cache_creation=400000, cache_read=15000000, requests=30),
        ]),
        make_file(provider="glm-coding", date="2026-02-18", records=[
            make_record("glm-4.7", total=5000000, requests=50),
        ]),
        make_file(date="2026-02-19", machine="laptop", records=[
            make_record("claude-opus-4-6", input_tokens=1000, output_tokens=1000, requests=2),
            make_record("claude-sonnet-4-6", input_tokens=2000, output_tokens=500, requests=3),
        ]),
        make_file(date="2026-02-19", records=[
            make_record("claude-opus-4-6", input_tokens=4000, output_tokens=1000, requests=4),
        ]),
    ]


@pytest.fixture
def raw_tree(tmp_path: Path, sample_files) -> Path:
    """Write sample_files as a {machine}/{provider}/{date}_{n}.json tree."""
    root = tmp_path / "raw"
    for index, file in enumerate(sample_files):
        folder = root / file.machine / file.provider
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / f"{file.date}_{index:04d}.json"
        path.write_text(json.dumps(file.to_dict()), encoding="utf-8")
    return root


@pytest.fixture
def pricing_file(tmp_path: Path) -> Path:
    path = tmp_path / "pricing.json"
    path.write_text(json.dumps(PRICING_DOCUMENT), encoding="utf-8")
    return path
