"""
Configuration management and loading.

Handles the pricing table and the token estimator settings.
"""

import json
from pathlib import Path
from typing import Any, Dict

import yaml

from ai_usage_ledger.core.estimation import EstimationConfig
from ai_usage_ledger.core.pricing import (
    ModelPricing,
    PricingConfig,
    PricingKind,
    ProviderPricing,
    SubscriptionPricing,
)


_MODEL_RATE_KEYS = {
    'inputPerMTok': 'input_per_mtok',
    'outputPerMTok': 'output_per_mtok',
    'cacheCreationPerMTok': 'cache_creation_per_mtok',
    'cacheReadPerMTok': 'cache_read_per_mtok',
    'totalPerKTok': 'total_per_ktok',
}

_ESTIMATION_KEYS = {
    'outputTokenRate': 'output_token_rate',
    'bodyContentRatio': 'body_content_ratio',
    'bytesPerToken': 'bytes_per_token',
    'outlierThresholdMs': 'outlier_threshold_ms',
}


def _read_document(path: str) -> Any:
    """Read a JSON or YAML document; the suffix decides the parser."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        if config_path.suffix.lower() == '.json':
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in config file {path}: {e}")
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")


def _number(value: Any, path: str) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{path}' must be a number")
    if value < 0:
        raise ValueError(f"'{path}' cannot be negative")
    return float(value)


def load_pricing_config(path: str) -> PricingConfig:
    """Load and validate a pricing configuration file.

    Strict validation ensures a typo in the pricing table surfaces as an
    error instead of silently zeroing costs.

    Args:
        path: Path to a `.json` file, or a YAML file with any other suffix

    Returns:
        Validated PricingConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    raw_config = _read_document(path)

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Pricing config must be a mapping")

    allowed_top_keys = {'exchangeRates', 'providers'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    if 'providers' not in raw_config:
        raise ValueError("Missing required 'providers' section")

    rates_data = raw_config.get('exchangeRates') or {}
    if not isinstance(rates_data, dict):
        raise ValueError("'exchangeRates' must be a dictionary")

    exchange_rates = {}
    for pair, rate in rates_data.items():
        if not isinstance(pair, str) or pair.count('/') != 1:
            raise ValueError(f"Exchange rate key '{pair}' must look like 'CNY/USD'")
        exchange_rates[pair] = _number(rate, f"exchangeRates.{pair}")

    providers_data = raw_config['providers']
    if not isinstance(providers_data, dict):
        raise ValueError("'providers' must be a dictionary")

    providers = {}
    for provider_id, provider_data in providers_data.items():
        if not isinstance(provider_data, dict):
            raise ValueError(f"Provider '{provider_id}' must be a dictionary")
        providers[provider_id] = _parse_provider_pricing(provider_data, f"providers.{provider_id}")

    return PricingConfig(exchange_rates=exchange_rates, providers=providers)


def _parse_provider_pricing(data: Dict, path: str) -> ProviderPricing:
    """Parse one provider's pricing block.

    Args:
        data: Provider pricing data
        path: Path for error messages

    Returns:
        Validated ProviderPricing

    Raises:
        ValueError: If configuration is invalid
    """
    kind_str = data.get('type')
    if not isinstance(kind_str, str):
        raise ValueError(f"Missing required 'type' in {path}")

    try:
        kind = PricingKind(kind_str.lower())
    except ValueError:
        valid_kinds = [kind.value for kind in PricingKind]
        raise ValueError(f"'type' in {path} must be one of: {valid_kinds}")

    if kind == PricingKind.SUBSCRIPTION:
        unknown_keys = set(data.keys()) - {'type', 'subscription'}
        if unknown_keys:
            raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

        sub_data = data.get('subscription')
        if not isinstance(sub_data, dict):
            raise ValueError(f"Missing required 'subscription' in {path}")
        if 'monthlyCost' not in sub_data:
            raise ValueError(f"Missing required 'monthlyCost' in {path}.subscription")

        return ProviderPricing(
            kind=kind,
            subscription=SubscriptionPricing(
                plan=str(sub_data.get('plan', '')),
                monthly_cost=_number(sub_data['monthlyCost'], f"{path}.subscription.monthlyCost"),
                currency=str(sub_data.get('currency', 'USD')),
            ),
        )

    unknown_keys = set(data.keys()) - {'type', 'models'}
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    models_data = data.get('models')
    if not isinstance(models_data, dict):
        raise ValueError(f"Missing required 'models' in {path}")

    # Insertion order is kept: prefix matching scans in authoring order
    models = {}
    for model_key, model_data in models_data.items():
        if not isinstance(model_data, dict):
            raise ValueError(f"Model '{model_key}' in {path} must be a dictionary")
        models[str(model_key)] = _parse_model_pricing(model_data, f"{path}.models.{model_key}")

    return ProviderPricing(kind=kind, models=models)


def _parse_model_pricing(data: Dict, path: str) -> ModelPricing:
    allowed_keys = set(_MODEL_RATE_KEYS) | {'currency'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    rates = {
        field_name: _number(data[key], f"{path}.{key}")
        for key, field_name in _MODEL_RATE_KEYS.items()
        if key in data
    }
    if not rates:
        raise ValueError(f"No rates configured in {path}")

    try:
        return ModelPricing(currency=str(data.get('currency', 'USD')), **rates)
    except ValueError as e:
        raise ValueError(f"Invalid pricing in {path}: {e}")


def load_estimation_config(path: str) -> EstimationConfig:
    """Load token estimator settings; absent keys keep their defaults.

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    raw_config = _read_document(path) or {}
    if not isinstance(raw_config, dict):
        raise ValueError("Estimation config must be a mapping")

    unknown_keys = set(raw_config.keys()) - set(_ESTIMATION_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown estimation keys: {unknown_keys}")

    values = {
        field_name: _number(raw_config[key], key)
        for key, field_name in _ESTIMATION_KEYS.items()
        if key in raw_config
    }
    return EstimationConfig(**values)
