"""
Pricing calculations and rate management.

Resolves a model's rate card from a provider pricing table and turns a raw
record's token counts into a monetary amount, then into USD.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional

from ai_usage_ledger.storage.models import RawUsageRecord

logger = logging.getLogger(__name__)

DEFAULT_MODEL_KEY = "_default"
BASE_CURRENCY = "USD"

_PER_MILLION = 1_000_000
_PER_THOUSAND = 1000


class PricingKind(Enum):
    """How a provider bills."""
    TOKEN = "token"
    SUBSCRIPTION = "subscription"


@dataclass(frozen=True)
class ModelPricing:
    """Rate card for one model or model-name prefix.

    Either per-category rates per million tokens, or one flat rate per
    thousand total tokens. Never both.
    """
    currency: str = BASE_CURRENCY
    input_per_mtok: Optional[float] = None
    output_per_mtok: Optional[float] = None
    cache_creation_per_mtok: Optional[float] = None
    cache_read_per_mtok: Optional[float] = None
    total_per_ktok: Optional[float] = None

    def __post_init__(self):
        """Validate the two pricing shapes are not mixed."""
        per_category = (
            self.input_per_mtok,
            self.output_per_mtok,
            self.cache_creation_per_mtok,
            self.cache_read_per_mtok,
        )
        if self.total_per_ktok is not None and any(r is not None for r in per_category):
            raise ValueError("total_per_ktok cannot be combined with per-category rates")

    @property
    def is_flat(self) -> bool:
        return self.total_per_ktok is not None


@dataclass(frozen=True)
class SubscriptionPricing:
    """Fixed monthly plan; zero marginal cost per record."""
    plan: str
    monthly_cost: float
    currency: str = BASE_CURRENCY


@dataclass(frozen=True)
class ProviderPricing:
    """Pricing for one provider, token-priced or subscription-priced."""
    kind: PricingKind
    models: Dict[str, ModelPricing] = field(default_factory=dict)
    subscription: Optional[SubscriptionPricing] = None

    def __post_init__(self):
        if self.kind == PricingKind.SUBSCRIPTION and self.subscription is None:
            raise ValueError("subscription pricing requires a subscription plan")


@dataclass(frozen=True)
class PricingConfig:
    """Exchange rates plus per-provider pricing tables."""
    exchange_rates: Dict[str, float] = field(default_factory=dict)
    providers: Dict[str, ProviderPricing] = field(default_factory=dict)


@dataclass(frozen=True)
class CostAmount:
    """A monetary amount in a named currency."""
    amount: float
    currency: str = BASE_CURRENCY


def resolve_model_pricing(
    models: Mapping[str, ModelPricing],
    model_name: Optional[str],
) -> Optional[ModelPricing]:
    """Find the rate card for a model name.

    Resolution order: exact key, then the first key (in table order, other
    than `_default`) that the model name starts with, then `_default`.
    Overlapping prefixes are resolved by table order only.

    Args:
        models: Pricing table for one provider, in authoring order
        model_name: Model reported by the record, if any

    Returns:
        Matching ModelPricing, or None when nothing applies
    """
    if model_name:
        if model_name in models:
            return models[model_name]

        for key, pricing in models.items():
            if key != DEFAULT_MODEL_KEY and model_name.startswith(key):
                return pricing

    return models.get(DEFAULT_MODEL_KEY)


def is_record_priced(record: RawUsageRecord, provider: str, pricing: PricingConfig) -> bool:
    """Whether a rate card or subscription plan applies to the record.

    Unpriced records cost zero and carry no meaningful currency.
    """
    provider_pricing = pricing.providers.get(provider)
    if provider_pricing is None:
        return False
    if provider_pricing.kind == PricingKind.SUBSCRIPTION:
        return True
    return resolve_model_pricing(provider_pricing.models, record.model) is not None


def calculate_record_cost(
    record: RawUsageRecord,
    provider: str,
    pricing: PricingConfig,
) -> CostAmount:
    """Calculate a record's cost in the rate card's native currency.

    Unknown providers and unresolved models cost nothing in USD;
    subscription providers cost nothing in the plan's currency.
    """
    provider_pricing = pricing.providers.get(provider)
    if provider_pricing is None:
        return CostAmount(0.0, BASE_CURRENCY)

    if provider_pricing.kind == PricingKind.SUBSCRIPTION:
        return CostAmount(0.0, provider_pricing.subscription.currency)

    model_pricing = resolve_model_pricing(provider_pricing.models, record.model)
    if model_pricing is None:
        logger.debug("No pricing for model %r of provider %s", record.model, provider)
        return CostAmount(0.0, BASE_CURRENCY)

    if model_pricing.is_flat:
        # Flat rate: total tokens / 1000 * rate
        amount = (record.total_tokens / _PER_THOUSAND) * model_pricing.total_per_ktok
    else:
        amount = (
            (record.input_tokens / _PER_MILLION) * (model_pricing.input_per_mtok or 0)
            + (record.output_tokens / _PER_MILLION) * (model_pricing.output_per_mtok or 0)
            + (record.cache_creation_tokens / _PER_MILLION) * (model_pricing.cache_creation_per_mtok or 0)
            + (record.cache_read_tokens / _PER_MILLION) * (model_pricing.cache_read_per_mtok or 0)
        )

    return CostAmount(amount, model_pricing.currency)


def convert_to_usd(amount: float, currency: str, pricing: PricingConfig) -> float:
    """Convert an amount to USD using the configured `XXX/USD` rate.

    A missing rate yields 0 so one bad currency cannot abort a summary run.
    """
    if currency == BASE_CURRENCY:
        return amount

    rate = pricing.exchange_rates.get(f"{currency}/{BASE_CURRENCY}")
    if not rate:
        if amount:
            logger.warning("No exchange rate for %s/%s; counting %s as 0 USD",
                           currency, BASE_CURRENCY, amount)
        return 0.0
    return amount * rate
