"""Cost estimation for Log Analytics table plans and commitment tiers.

All functions are pure and take their prices from a TierPricing instance,
so constants can change without touching the arithmetic. GB figures are
30-day ingestion volumes unless stated otherwise.
"""

from __future__ import annotations

from detection_layer.log_analytics_costs.config import TierPricing
from detection_layer.log_analytics_costs.models import DAYS_PER_MONTH, LogsTier

DEFAULT_PRICING = TierPricing()


def _check_gb(gb: float) -> None:
    if gb < 0:
        raise ValueError(f"GB volume must not be negative: {gb}")


def _resolve_tier(tier: LogsTier | str) -> LogsTier:
    try:
        return LogsTier(tier)
    except ValueError:
        raise ValueError(f"Unknown logs tier: {tier}") from None


def get_tier_price_per_gb(tier: LogsTier | str, pricing: TierPricing = DEFAULT_PRICING) -> float:
    """Get the ingestion price per GB for a table plan.

    Args:
        tier: Table plan.
        pricing: Pricing constants.

    Returns:
        Price per GB in USD.

    Raises:
        ValueError: If the tier is unknown.
    """
    tier = _resolve_tier(tier)
    ratios = {
        LogsTier.ANALYTICS: 1.0,
        LogsTier.BASIC: pricing.basic_ratio,
        LogsTier.AUXILIARY: pricing.auxiliary_ratio,
    }
    return pricing.analytics_per_gb * ratios[tier]


def analytics_monthly_cost(gb: float, pricing: TierPricing = DEFAULT_PRICING) -> float:
    """Monthly Pay-As-You-Go cost of ingesting ``gb`` on the Analytics plan."""
    _check_gb(gb)
    return gb * pricing.analytics_per_gb


def tier_monthly_cost(
    gb: float, tier: LogsTier | str, pricing: TierPricing = DEFAULT_PRICING
) -> float:
    """Monthly cost of ingesting ``gb`` on the given plan.

    Raises:
        ValueError: If gb is negative or the tier is unknown.
    """
    _check_gb(gb)
    return gb * get_tier_price_per_gb(tier, pricing)


def tier_monthly_savings(
    gb: float, tier: LogsTier | str, pricing: TierPricing = DEFAULT_PRICING
) -> float:
    """Monthly savings of moving ``gb`` from Analytics to the given plan.

    Args:
        gb: 30-day ingestion volume.
        tier: Target plan.
        pricing: Pricing constants.

    Returns:
        Savings in USD, never negative. Zero for Analytics.
    """
    savings = analytics_monthly_cost(gb, pricing) - tier_monthly_cost(gb, tier, pricing)
    return max(savings, 0.0)


def tier_savings_pct(tier: LogsTier | str, pricing: TierPricing = DEFAULT_PRICING) -> float:
    """Percentage saved per GB by moving from Analytics to the given plan."""
    return (1 - get_tier_price_per_gb(tier, pricing) / pricing.analytics_per_gb) * 100


def commitment_tier_savings_pct(
    daily_gb: float, pricing: TierPricing = DEFAULT_PRICING
) -> float:
    """Percentage saved by the 100 GB/day commitment tier.

    Args:
        daily_gb: Average daily ingestion.
        pricing: Pricing constants.

    Returns:
        Positive percentage when daily ingestion reaches the commitment
        threshold, otherwise 0.
    """
    _check_gb(daily_gb)
    if daily_gb < pricing.commitment_threshold_gb_per_day:
        return 0.0
    return (pricing.analytics_per_gb - pricing.commitment_per_gb) / pricing.analytics_per_gb * 100


def commitment_tier_monthly_savings(
    daily_gb: float, pricing: TierPricing = DEFAULT_PRICING
) -> float:
    """Monthly savings of the commitment tier, 0 below the threshold."""
    monthly_gb = daily_gb * DAYS_PER_MONTH
    pct = commitment_tier_savings_pct(daily_gb, pricing)
    return analytics_monthly_cost(monthly_gb, pricing) * pct / 100


def get_cost_breakdown(gb: float, pricing: TierPricing = DEFAULT_PRICING) -> dict[str, float]:
    """Monthly cost of ``gb`` on every plan, keyed by plan name."""
    return {tier.value: round(tier_monthly_cost(gb, tier, pricing), 2) for tier in LogsTier}
