"""
Token and cost totals.

Additive containers shared by every summary level.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from .pricing import CostAmount


@dataclass(frozen=True)
class CostBreakdown:
    """Total cost in USD plus each provider's cost in its own currency."""
    total_usd: float = 0.0
    by_provider: Dict[str, CostAmount] = field(default_factory=dict)

    def __add__(self, other: "CostBreakdown") -> "CostBreakdown":
        merged = dict(self.by_provider)
        for provider, cost in other.by_provider.items():
            existing = merged.get(provider)
            if existing is None:
                merged[provider] = cost
            else:
                merged[provider] = CostAmount(existing.amount + cost.amount, cost.currency)
        return CostBreakdown(
            total_usd=self.total_usd + other.total_usd,
            by_provider=merged,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalUSD": self.total_usd,
            "byProvider": {
                provider: {"amount": cost.amount, "currency": cost.currency}
                for provider, cost in sorted(self.by_provider.items())
            },
        }


@dataclass(frozen=True)
class TokenTotals:
    """Token counts, cost and request count for any aggregation window.

    Totals add with `+`; addition is associative and commutative up to
    floating-point rounding of the cost fields.
    """
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    cost: CostBreakdown = field(default_factory=CostBreakdown)
    requests: int = 0

    @classmethod
    def empty(cls) -> "TokenTotals":
        return cls()

    def __add__(self, other: "TokenTotals") -> "TokenTotals":
        return TokenTotals(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_creation_tokens=self.cache_creation_tokens + other.cache_creation_tokens,
            cache_read_tokens=self.cache_read_tokens + other.cache_read_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cost=self.cost + other.cost,
            requests=self.requests + other.requests,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cacheCreationTokens": self.cache_creation_tokens,
            "cacheReadTokens": self.cache_read_tokens,
            "totalTokens": self.total_tokens,
            "cost": self.cost.to_dict(),
            "requests": self.requests,
        }
