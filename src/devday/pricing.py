"""Token pricing and cost estimation."""

from __future__ import annotations

import logging
from importlib.resources import files

import yaml

from .protocol import TokenUsage

logger = logging.getLogger(__name__)

# Cache for pricing data
_pricing_data: dict | None = None

# Default pricing fallback if file cannot be loaded
_DEFAULT_PRICING = {
    "default": {
        "input": 3.0,
        "output": 15.0,
    },
    "models": {},
}


def _get_pricing_data() -> dict:
    """Load and cache pricing data from the packaged YAML file.

    Falls back to default pricing if the file cannot be loaded.
    """
    global _pricing_data
    if _pricing_data is None:
        try:
            pricing_file = files("devday").joinpath("pricing.yaml")
            _pricing_data = yaml.safe_load(pricing_file.read_text())
            if not isinstance(_pricing_data, dict):
                raise ValueError("pricing.yaml is not a mapping")
        except Exception as e:
            logger.warning(f"Failed to load pricing.yaml, using defaults: {e}")
            _pricing_data = _DEFAULT_PRICING
    return _pricing_data


def get_model_pricing(model: str | None) -> dict:
    """Get per-million rates for a model, falling back to the default entry.

    Args:
        model: Model ID (e.g. 'gpt-4o'). Matched exactly.

    Returns:
        Dictionary with ``input`` and ``output`` USD per million tokens.
    """
    pricing_data = _get_pricing_data()
    default = pricing_data.get("default") or _DEFAULT_PRICING["default"]
    if not model:
        return default
    models = pricing_data.get("models") or {}
    return models.get(model, default)


def sum_tokens(*usages: TokenUsage) -> TokenUsage:
    """Pointwise sum of any number of usages, ``total`` included."""
    result = TokenUsage()
    for usage in usages:
        result = result + usage
    return result


def estimate_cost(model: str | None, usage: TokenUsage) -> float:
    """Estimate the USD cost of ``usage`` under ``model``'s rates.

    Only the input and output buckets are priced. Reasoning and cache
    counts are whatever the source folded into those two buckets.
    """
    pricing = get_model_pricing(model)
    cost = 0.0
    cost += (usage.input / 1_000_000) * pricing.get("input", 0)
    cost += (usage.output / 1_000_000) * pricing.get("output", 0)
    return cost
