"""Log Analytics Costs analysis module.

Finds Log Analytics tables that can move to a cheaper plan without
breaking alerts, dashboards or active queries, and composes the findings
into recommendation cards.
"""

from detection_layer.log_analytics_costs.config import (
    LogAnalyticsCostsConfig,
    TierPricing,
    parse_config,
)
from detection_layer.log_analytics_costs.cost_calculator import (
    analytics_monthly_cost,
    commitment_tier_monthly_savings,
    commitment_tier_savings_pct,
    get_cost_breakdown,
    get_tier_price_per_gb,
    tier_monthly_cost,
    tier_monthly_savings,
    tier_savings_pct,
)
from detection_layer.log_analytics_costs.models import (
    AnalysisInput,
    AnalysisOutput,
    AnalysisSummary,
    GateData,
    LogsTier,
    TableCandidate,
    TierDecision,
)
from detection_layer.log_analytics_costs.queries import (
    get_all_queries,
    get_query,
    get_supported_queries,
)
from detection_layer.log_analytics_costs.table_references import (
    build_gate_data,
    extract_table_names,
)
from detection_layer.log_analytics_costs.summarizer import summarize
from detection_layer.log_analytics_costs.eligibility import classify, classify_all
from detection_layer.log_analytics_costs.composer import classify_summary, compose
from detection_layer.log_analytics_costs.digest import (
    format_analysis_context,
    format_query_results,
)
from detection_layer.log_analytics_costs.detector import (
    analyze,
    analyze_from_dict,
    MODULE_ID,
    MODULE_NAME,
    MODULE_VERSION,
)
from detection_layer.log_analytics_costs.collector import collect_analysis_input

__all__ = [
    # Main entry points
    "analyze",
    "analyze_from_dict",
    "collect_analysis_input",
    "MODULE_ID",
    "MODULE_NAME",
    "MODULE_VERSION",
    # Configuration
    "LogAnalyticsCostsConfig",
    "TierPricing",
    "parse_config",
    # Models
    "AnalysisInput",
    "AnalysisOutput",
    "AnalysisSummary",
    "GateData",
    "LogsTier",
    "TableCandidate",
    "TierDecision",
    # Cost estimation
    "analytics_monthly_cost",
    "commitment_tier_monthly_savings",
    "commitment_tier_savings_pct",
    "get_cost_breakdown",
    "get_tier_price_per_gb",
    "tier_monthly_cost",
    "tier_monthly_savings",
    "tier_savings_pct",
    # Queries
    "get_all_queries",
    "get_query",
    "get_supported_queries",
    # Pipeline stages
    "build_gate_data",
    "extract_table_names",
    "summarize",
    "classify",
    "classify_all",
    "classify_summary",
    "compose",
    # Prompt digests
    "format_analysis_context",
    "format_query_results",
]
