"""Table plan eligibility classification.

Decides whether a table can safely leave the Analytics plan. Rules are
evaluated in strict priority order and the first match wins:

1. Referenced by an alert rule -> Analytics
2. Referenced by a dashboard -> Analytics
3. Frequently queried, or query frequency unknown -> Analytics
4. Custom table queried less than once a day -> Auxiliary
5. Otherwise -> Basic

Alert and dashboard matching is case-insensitive substring containment in
either direction. It can over-match (``Log`` matches ``LogAnalytics``),
which only ever keeps a table on Analytics.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from detection_layer.log_analytics_costs.config import LogAnalyticsCostsConfig
from detection_layer.log_analytics_costs.cost_calculator import tier_monthly_savings
from detection_layer.log_analytics_costs.models import (
    BlockingGate,
    LogsTier,
    TableCandidate,
    TierDecision,
    UsageGates,
)

logger = logging.getLogger(__name__)

REASON_ALERTS = "used in alert rule(s)"
REASON_DASHBOARDS = "used in dashboard(s)"
REASON_FREQUENT = "frequently queried"
REASON_FREQUENCY_UNKNOWN = "query frequency unknown (query auditing data unavailable)"
REASON_AUXILIARY = "rarely-queried custom table"
REASON_BASIC = "infrequently queried, not referenced elsewhere"


def names_overlap(table_name: str, referenced_name: str) -> bool:
    """Case-insensitive containment of either name in the other."""
    a = table_name.lower()
    b = referenced_name.lower()
    if not a or not b:
        return False
    return a in b or b in a


def matching_references(table_name: str, referenced_tables: Iterable[str]) -> list[str]:
    """Referenced table names that match ``table_name``, in input order."""
    return [name for name in referenced_tables if names_overlap(table_name, name)]


def evaluate_gates(
    candidate: TableCandidate,
    alert_tables: Iterable[str],
    dashboard_tables: Iterable[str],
    frequency_unavailable: bool = False,
    config: LogAnalyticsCostsConfig | None = None,
) -> UsageGates:
    """Compute the usage gates of a table for one classification pass."""
    config = config or LogAnalyticsCostsConfig()
    return UsageGates(
        usedInAlerts=bool(matching_references(candidate.name, alert_tables)),
        usedInDashboards=bool(matching_references(candidate.name, dashboard_tables)),
        frequentlyQueried=candidate.avg_queries_per_day >= config.frequent_query_threshold,
        frequencyUnknown=frequency_unavailable or not candidate.query_frequency_known,
    )


def classify(
    candidate: TableCandidate,
    alert_tables: Iterable[str],
    dashboard_tables: Iterable[str],
    frequency_unavailable: bool = False,
    config: LogAnalyticsCostsConfig | None = None,
) -> TierDecision:
    """Classify a table into the cheapest safe plan.

    Pure and idempotent: identical inputs always yield an identical
    decision.

    Args:
        candidate: Table with its volume and query frequency.
        alert_tables: Every table referenced by an alert rule in this run.
        dashboard_tables: Every table referenced by a dashboard in this run.
        frequency_unavailable: Treat the table as frequently queried because
            query auditing data is missing. Also implied when the candidate
            has no known query frequency.
        config: Module configuration (thresholds and pricing).

    Returns:
        TierDecision with the plan, the reason and estimated savings.
    """
    config = config or LogAnalyticsCostsConfig()
    gates = evaluate_gates(candidate, alert_tables, dashboard_tables, frequency_unavailable, config)

    def analytics(reason: str, gate: BlockingGate) -> TierDecision:
        return TierDecision(
            tableName=candidate.name,
            tier=LogsTier.ANALYTICS,
            reason=reason,
            gate=gate,
            gates=gates,
            totalGB=candidate.total_gb,
            avgQueriesPerDay=candidate.avg_queries_per_day,
            estimatedMonthlySavings=0.0,
        )

    if gates.used_in_alerts:
        return analytics(REASON_ALERTS, BlockingGate.ALERTS)
    if gates.used_in_dashboards:
        return analytics(REASON_DASHBOARDS, BlockingGate.DASHBOARDS)
    if gates.frequency_unknown:
        return analytics(REASON_FREQUENCY_UNKNOWN, BlockingGate.FREQUENCY_UNKNOWN)
    if gates.frequently_queried:
        return analytics(REASON_FREQUENT, BlockingGate.FREQUENT_QUERIES)

    if (
        candidate.is_custom_table
        and candidate.avg_queries_per_day < config.auxiliary_query_threshold
    ):
        tier, reason = LogsTier.AUXILIARY, REASON_AUXILIARY
    else:
        tier, reason = LogsTier.BASIC, REASON_BASIC

    savings = tier_monthly_savings(candidate.total_gb, tier, config.pricing)
    logger.debug(f"Classified {candidate.name}: {tier.value} ({reason}), saves ${savings:.2f}/month")

    return TierDecision(
        tableName=candidate.name,
        tier=tier,
        reason=reason,
        gates=gates,
        totalGB=candidate.total_gb,
        avgQueriesPerDay=candidate.avg_queries_per_day,
        estimatedMonthlySavings=savings,
    )


def classify_all(
    candidates: Iterable[TableCandidate],
    alert_tables: Iterable[str],
    dashboard_tables: Iterable[str],
    frequency_unavailable: bool = False,
    config: LogAnalyticsCostsConfig | None = None,
) -> list[TierDecision]:
    """Classify every candidate against the same complete reference sets."""
    alert_tables = list(alert_tables)
    dashboard_tables = list(dashboard_tables)
    return [
        classify(candidate, alert_tables, dashboard_tables, frequency_unavailable, config)
        for candidate in candidates
    ]
