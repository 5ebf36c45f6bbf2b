"""Recommendation card composition.

Turns an AnalysisSummary and the run's GateData into an ordered list of
recommendation cards:

1. Alert and dashboard breakage warnings
2. Savings cards, largest dollar impact first
3. Other warnings (query auditing, frequently queried tables, heartbeats)
4. Informational cards (summary, top tables, commitment outlook,
   retention and data collection guidance)
5. A success card, only when nothing can be saved

No ingestion at all, or less than the minimal volume, short-circuits to a
single summary card.
"""

from __future__ import annotations

import logging

from shared.cost_calculator import format_cost, format_gb
from shared.models import CardKind, RecommendationCard
from detection_layer.log_analytics_costs.config import LogAnalyticsCostsConfig
from detection_layer.log_analytics_costs.cost_calculator import (
    analytics_monthly_cost,
    commitment_tier_monthly_savings,
    commitment_tier_savings_pct,
    tier_monthly_cost,
    tier_monthly_savings,
    tier_savings_pct,
)
from detection_layer.log_analytics_costs.eligibility import classify_all, matching_references
from detection_layer.log_analytics_costs.models import (
    DAYS_PER_MONTH,
    AnalysisSummary,
    BlockingGate,
    GateData,
    LogsTier,
    TierDecision,
)

logger = logging.getLogger(__name__)

DOCS_QUERY_AUDIT = "https://learn.microsoft.com/azure/azure-monitor/logs/query-audit"
DOCS_TABLE_PLANS = "https://learn.microsoft.com/azure/azure-monitor/logs/logs-table-plans"
DOCS_BASIC_LOGS = "https://learn.microsoft.com/azure/azure-monitor/logs/basic-logs-configure"
DOCS_COMMITMENT_TIERS = "https://learn.microsoft.com/azure/azure-monitor/logs/cost-logs#commitment-tiers"
DOCS_RETENTION = "https://learn.microsoft.com/azure/azure-monitor/logs/data-retention-archive"
DOCS_TRANSFORMATIONS = (
    "https://learn.microsoft.com/azure/azure-monitor/essentials/data-collection-transformations"
)
DOCS_AGENTS = "https://learn.microsoft.com/azure/azure-monitor/agents/agents-overview"

TITLE_NO_DATA = "📊 No Billable Data Found"
TITLE_MINIMAL = "💰 Low Data Volume - Minimal Cost"
TITLE_ALERTS = "🚨 Tables Used in Alert Rules - DO NOT Use Basic Logs"
TITLE_DASHBOARDS = "📊 Tables Used in Dashboards - DO NOT Use Basic Logs"
TITLE_AUXILIARY = "💰 Auxiliary Logs Opportunity - Maximum Savings"
TITLE_BASIC = "💡 Basic Logs Opportunity"
TITLE_COMMITMENT = "💰 Commitment Tier Opportunity"
TITLE_ENABLE_AUDITING = "⚠️ Enable LAQueryLogs for Accurate Basic Logs Analysis"
TITLE_AUDITING_ON_BASIC = "⚠️ LAQueryLogs is Configured as Basic Logs"
TITLE_PARTIAL_AUDITING = "⚠️ Query Frequency Unknown for Some Tables"
TITLE_FREQUENT = "⚠️ Frequently Queried Tables - Not Recommended for Basic Logs"
TITLE_HEARTBEATS = "💓 Excessive Heartbeats Detected"
TITLE_EXECUTIVE_SUMMARY = "📊 Executive Summary"
TITLE_TOP_TABLES = "📈 Top Data Sources"
TITLE_APPROACHING_COMMITMENT = "📈 Approaching Commitment Tier"
TITLE_RETENTION = "🗄️ Data Retention Settings"
TITLE_DCR = "🔧 Data Collection Optimization"
TITLE_OPTIMAL = "✅ Table Plans Already Optimal"


def _names_with_overflow(names: list[str], limit: int) -> str:
    shown = ", ".join(names[:limit])
    if len(names) > limit:
        shown += f" (+{len(names) - limit} more)"
    return shown


def _referencing_names(table_name: str, references: dict[str, list[str]]) -> list[str]:
    names: list[str] = []
    for referenced in matching_references(table_name, references.keys()):
        for name in references[referenced]:
            if name not in names:
                names.append(name)
    return names


def _table_bullets(decisions: list[TierDecision]) -> list[str]:
    return [f"- **{d.table_name}**: {format_gb(d.total_gb)}" for d in decisions]


def _no_data_card(summary: AnalysisSummary) -> RecommendationCard:
    lines = ["The selected workspaces have no billable data ingestion in the last 30 days.", ""]
    lines.append("**Workspaces analyzed by resource group:**")
    for group in summary.resource_groups:
        names = ", ".join(workspace.workspace_name for workspace in group.workspaces)
        lines.append(f"- **{group.name}**: {names} (no data)")
    lines += [
        "",
        "**What this means:**",
        "- These workspaces have no recent log ingestion",
        "- Current cost is likely minimal or zero",
        "- No specific optimization recommendations can be made without data",
        "",
        "**Suggestions:**",
        "- Select workspaces that are actively receiving data",
        "- Check if data collection is properly configured",
        "- Verify Data Collection Rules (DCRs) are targeting these workspaces",
    ]
    return RecommendationCard(
        kind=CardKind.INFO,
        title=TITLE_NO_DATA,
        impact=f"{summary.total_workspaces} workspace(s) analyzed",
        body="\n".join(lines),
        action="Verify data collection for these workspaces and re-run the analysis",
    )


def _minimal_data_card(summary: AnalysisSummary, config: LogAnalyticsCostsConfig) -> RecommendationCard:
    pricing = config.pricing
    total_gb = summary.total_ingestion_gb
    monthly_cost = analytics_monthly_cost(total_gb, pricing)

    lines = [
        f"Total ingestion: **{format_gb(total_gb, 3)}** over 30 days "
        f"≈ **{format_cost(monthly_cost)}/month**",
        "",
        "| Resource Group | Workspace | 30-Day Ingestion | Est. Monthly Cost |",
        "|----------------|-----------|------------------|-------------------|",
    ]
    for group in summary.resource_groups:
        for workspace in group.workspaces:
            lines.append(
                f"| {group.name} | {workspace.workspace_name} | {format_gb(workspace.ingested_gb, 3)} "
                f"| {format_cost(analytics_monthly_cost(workspace.ingested_gb, pricing))} |"
            )
    lines += [
        "",
        "**Assessment:** ingestion is very low. At this volume:",
        "- Pay-As-You-Go pricing is optimal (no commitment tier needed)",
        "- Basic Logs wouldn't provide meaningful savings",
        "- Default retention settings are fine",
        "- No immediate optimization actions required",
        "",
        "**Re-run this analysis when:**",
        "- Monthly costs exceed **$100**",
        "- You enable new data collection (Container Insights, VM Insights, etc.)",
    ]
    return RecommendationCard(
        kind=CardKind.SUCCESS,
        title=TITLE_MINIMAL,
        impact=f"~{format_cost(monthly_cost)}/month",
        body="\n".join(lines),
    )


def _alert_warning(
    decisions: list[TierDecision], gate_data: GateData, config: LogAnalyticsCostsConfig
) -> RecommendationCard:
    lines = ["These tables are used in **scheduled query rules (alerts)** and **cannot** use Basic Logs:", ""]
    affected: set[str] = set()
    for decision in decisions:
        names = _referencing_names(decision.table_name, gate_data.alert_tables)
        affected.update(names)
        lines.append(
            f"- **{decision.table_name}**: {format_gb(decision.total_gb)} - Used in: "
            f"{_names_with_overflow(names, config.max_names_per_table)}"
        )
    lines += [
        "",
        "**Why this matters:**",
        "- Basic and Auxiliary Logs cannot be used in alert rules",
        "- Converting these tables would **break your existing alerts**",
        "- Alerts would fail to execute and you'd lose monitoring coverage",
    ]
    return RecommendationCard(
        kind=CardKind.WARNING,
        title=TITLE_ALERTS,
        impact=f"Would break {len(affected & set(gate_data.active_alert_names))} active alert(s)",
        body="\n".join(lines),
        action="Keep these tables on Analytics tier to maintain alert functionality",
    )


def _dashboard_warning(
    decisions: list[TierDecision], gate_data: GateData, config: LogAnalyticsCostsConfig
) -> RecommendationCard:
    lines = ["These tables are used in **Azure Dashboards** and **cannot** use Basic Logs:", ""]
    affected: set[str] = set()
    for decision in decisions:
        names = _referencing_names(decision.table_name, gate_data.dashboard_tables)
        affected.update(names)
        lines.append(
            f"- **{decision.table_name}**: {format_gb(decision.total_gb)} - Used in: "
            f"{_names_with_overflow(names, config.max_names_per_table)}"
        )
    lines += [
        "",
        "**Why this matters:**",
        "- Basic and Auxiliary Logs cannot be used in dashboard tiles",
        "- Converting these tables would **break your dashboards**",
        "- Dashboard queries would fail to return data",
    ]
    return RecommendationCard(
        kind=CardKind.WARNING,
        title=TITLE_DASHBOARDS,
        impact=f"Would break {len(affected)} dashboard(s)",
        body="\n".join(lines),
        action="Keep these tables on Analytics tier to maintain dashboard functionality",
    )


def _auxiliary_card(
    decisions: list[TierDecision], config: LogAnalyticsCostsConfig
) -> tuple[float, RecommendationCard]:
    pricing = config.pricing
    total_gb = sum(d.total_gb for d in decisions)
    savings = sum(d.estimated_monthly_savings for d in decisions)
    pct = tier_savings_pct(LogsTier.AUXILIARY, pricing)
    basic_pct = tier_savings_pct(LogsTier.BASIC, pricing)

    lines = ["These **custom tables** are candidates for **Auxiliary Logs** (cheapest option):", ""]
    lines += _table_bullets(decisions)
    lines += [
        "",
        "**Why Auxiliary Logs?**",
        f"- Custom tables ({config.custom_table_suffix}) support the Auxiliary plan",
        f"- Rarely queried (< {config.auxiliary_query_threshold:g} query/day avg)",
        "- Not used in alerts or dashboards",
        "",
        "**Auxiliary Logs limitations:**",
        "- No alerts (not even Simple Log Alerts)",
        "- Slower queries - not for real-time analysis",
        "- No restore capability and no data export",
        "",
        f"**Cost comparison for {format_gb(total_gb)}:**",
        f"- Analytics: ~{format_cost(analytics_monthly_cost(total_gb, pricing))}/month",
        f"- Basic: ~{format_cost(tier_monthly_cost(total_gb, LogsTier.BASIC, pricing))}/month "
        f"({basic_pct:.0f}% savings)",
        f"- Auxiliary: ~{format_cost(tier_monthly_cost(total_gb, LogsTier.AUXILIARY, pricing))}/month "
        f"({pct:.0f}% savings)",
    ]
    card = RecommendationCard(
        kind=CardKind.SAVINGS,
        title=TITLE_AUXILIARY,
        impact=f"Save ~{format_cost(savings)}/month ({pct:.0f}% reduction)",
        body="\n".join(lines),
        action="Configure the Auxiliary Logs plan for these custom tables in the Log Analytics workspace",
        docsUrl=DOCS_TABLE_PLANS,
    )
    return savings, card


def _basic_card(decisions: list[TierDecision]) -> tuple[float, RecommendationCard]:
    savings = sum(d.estimated_monthly_savings for d in decisions)
    lines = ["These tables are candidates for Basic Logs (lower cost, limited query):", ""]
    lines += _table_bullets(decisions)
    lines += [
        "",
        "**Important:** Basic Logs have limitations:",
        "- Cannot be used in dashboards, workbooks, or alert rules",
        "- Limited KQL query operators",
        "- Query cost of ~$0.006/GB scanned",
        "",
        "These tables are **safe to convert**:",
        "- Not used in any detected alert rules",
        "- Not used in any detected Azure Dashboards",
        "- Infrequently queried (based on LAQueryLogs)",
    ]
    card = RecommendationCard(
        kind=CardKind.SAVINGS,
        title=TITLE_BASIC,
        impact=f"Save ~{format_cost(savings)}/month",
        body="\n".join(lines),
        action="Configure Basic Logs for these tables in Log Analytics workspace settings",
        docsUrl=DOCS_BASIC_LOGS,
    )
    return savings, card


def _commitment_card(
    summary: AnalysisSummary, config: LogAnalyticsCostsConfig
) -> tuple[float, RecommendationCard]:
    pricing = config.pricing
    daily_gb = summary.daily_ingestion_gb
    monthly_gb = daily_gb * DAYS_PER_MONTH
    pct = commitment_tier_savings_pct(daily_gb, pricing)
    savings = commitment_tier_monthly_savings(daily_gb, pricing)
    current = analytics_monthly_cost(monthly_gb, pricing)

    body = "\n".join(
        [
            f"Your daily ingestion of **{format_gb(daily_gb)}** qualifies for commitment tier pricing.",
            "",
            f"**Current Pay-As-You-Go:** {format_cost(current)}/month",
            f"**{pricing.commitment_threshold_gb_per_day:g} GB/day Commitment:** "
            f"{format_cost(current - savings)}/month",
            f"**Potential Savings:** {format_cost(savings)}/month",
        ]
    )
    card = RecommendationCard(
        kind=CardKind.SAVINGS,
        title=TITLE_COMMITMENT,
        impact=f"Save ~{format_cost(savings)}/month ({pct:.0f}%)",
        body=body,
        action="Navigate to Log Analytics workspace > Usage and estimated costs > Pricing Tier",
        docsUrl=DOCS_COMMITMENT_TIERS,
    )
    return savings, card


def _auditing_warning(
    decisions: list[TierDecision], summary: AnalysisSummary, config: LogAnalyticsCostsConfig
) -> RecommendationCard:
    total_gb = sum(d.total_gb for d in decisions)
    potential = tier_monthly_savings(total_gb, LogsTier.BASIC, config.pricing)
    impact = f"Potential ~{format_cost(potential)}/month savings"

    if summary.query_auditing_on_basic_logs:
        lines = [
            "**LAQueryLogs is set to the Basic Logs plan** - it cannot be queried to determine "
            "table usage patterns.",
            "",
            "Basic Logs candidates found (need a query frequency check):",
        ]
        lines += _table_bullets(decisions)
        lines += [
            "",
            "**Why this matters:**",
            "- LAQueryLogs tracks which tables are being queried",
            "- When LAQueryLogs itself is on Basic Logs, it can't be read through the standard query API",
            "- These tables stay on Analytics until their query frequency is known",
        ]
        return RecommendationCard(
            kind=CardKind.WARNING,
            title=TITLE_AUDITING_ON_BASIC,
            impact=impact,
            body="\n".join(lines),
            action="Move the LAQueryLogs table back to the Analytics plan to enable query auditing",
            docsUrl=DOCS_BASIC_LOGS,
        )

    if not summary.query_auditing_enabled:
        lines = [
            "**LAQueryLogs is not enabled** - cannot determine which tables are actively queried.",
            "",
            "Basic Logs candidates found (need a query frequency check):",
        ]
        lines += _table_bullets(decisions)
        lines += [
            "",
            "**Why this matters:**",
            "- Basic Logs tables cost ~50% less but have query limitations",
            "- Tables used in dashboards, alerts, or frequently queried should NOT use Basic Logs",
            "- Without LAQueryLogs, there's no way to tell if these tables are actively used",
            "",
            "**To enable LAQueryLogs:**",
            "1. Go to your Log Analytics workspace",
            "2. Diagnostic settings → Add diagnostic setting",
            '3. Enable the "Query Audit" category → Send to the same workspace',
            "",
            "After enabling, re-run this analysis in 7+ days for accurate recommendations.",
        ]
        return RecommendationCard(
            kind=CardKind.WARNING,
            title=TITLE_ENABLE_AUDITING,
            impact=impact,
            body="\n".join(lines),
            action="Enable the LAQueryLogs diagnostic setting in each workspace",
            docsUrl=DOCS_QUERY_AUDIT,
        )

    lines = ["These tables have no entry in the query audit data, so their query frequency is unknown:", ""]
    lines += _table_bullets(decisions)
    lines += [
        "",
        "They stay on the Analytics plan. Check that query auditing is enabled in every "
        "analyzed workspace.",
    ]
    return RecommendationCard(
        kind=CardKind.WARNING,
        title=TITLE_PARTIAL_AUDITING,
        impact=impact,
        body="\n".join(lines),
        action="Enable the LAQueryLogs diagnostic setting in the workspaces that lack it",
        docsUrl=DOCS_QUERY_AUDIT,
    )


def _frequent_warning(decisions: list[TierDecision]) -> RecommendationCard:
    lines = ["These tables are eligible for Basic Logs but are **frequently queried**:", ""]
    for decision in decisions:
        lines.append(
            f"- **{decision.table_name}**: {format_gb(decision.total_gb)} "
            f"(~{decision.avg_queries_per_day:.1f} queries/day)"
        )
    lines += [
        "",
        "Basic Logs are **not recommended** because:",
        "- These tables are actively used (workbooks or ad-hoc queries)",
        "- Query costs would likely exceed ingestion savings",
    ]
    return RecommendationCard(
        kind=CardKind.WARNING,
        title=TITLE_FREQUENT,
        body="\n".join(lines),
        action="Review who is querying these tables and why before considering Basic Logs",
    )


def _heartbeat_warning(summary: AnalysisSummary, config: LogAnalyticsCostsConfig) -> RecommendationCard:
    lines = [
        f"These computers send more than {config.excessive_heartbeats_per_hour:g} heartbeats per hour "
        "(the agent default is 60):",
        "",
    ]
    for source in summary.excessive_heartbeats:
        where = f" ({source.workspace_name})" if source.workspace_name else ""
        lines.append(f"- **{source.computer}**{where}: {source.heartbeats_per_hour:.0f}/hour")
    lines += ["", "This usually means multiple agents are reporting for the same machine."]
    return RecommendationCard(
        kind=CardKind.WARNING,
        title=TITLE_HEARTBEATS,
        impact=f"{len(summary.excessive_heartbeats)} computer(s) affected",
        body="\n".join(lines),
        action="Remove duplicate agents or data collection rules sending heartbeats for these computers",
        docsUrl=DOCS_AGENTS,
    )


def _executive_summary(summary: AnalysisSummary, config: LogAnalyticsCostsConfig) -> RecommendationCard:
    pricing = config.pricing
    total_gb = summary.total_ingestion_gb
    body = "\n".join(
        [
            f"**Total 30-Day Ingestion:** {format_gb(total_gb)}",
            f"**Average Daily Ingestion:** {format_gb(summary.daily_ingestion_gb)}/day",
            f"**Estimated Monthly Cost:** {format_cost(analytics_monthly_cost(total_gb, pricing))} "
            f"(at {format_cost(pricing.analytics_per_gb)}/GB Pay-As-You-Go)",
            f"**Workspaces Analyzed:** {summary.workspaces_with_data}/{summary.total_workspaces} with data",
        ]
    )
    return RecommendationCard(
        kind=CardKind.INFO,
        title=TITLE_EXECUTIVE_SUMMARY,
        impact=f"{format_gb(total_gb)}/month",
        body=body,
    )


def _top_tables_card(summary: AnalysisSummary, config: LogAnalyticsCostsConfig) -> RecommendationCard:
    lines = [
        "| Table | 30-Day Volume | % of Total | Est. Cost |",
        "|-------|---------------|------------|-----------|",
    ]
    for table in summary.top_tables:
        share = table.total_gb / summary.total_ingestion_gb * 100
        cost = analytics_monthly_cost(table.total_gb, config.pricing)
        lines.append(f"| {table.name} | {format_gb(table.total_gb)} | {share:.1f}% | {format_cost(cost)} |")
    return RecommendationCard(kind=CardKind.INFO, title=TITLE_TOP_TABLES, body="\n".join(lines))


def _approaching_commitment_card(
    summary: AnalysisSummary, config: LogAnalyticsCostsConfig
) -> RecommendationCard:
    pricing = config.pricing
    threshold = pricing.commitment_threshold_gb_per_day
    pct = (pricing.analytics_per_gb - pricing.commitment_per_gb) / pricing.analytics_per_gb * 100
    body = "\n".join(
        [
            f"Your daily ingestion of **{format_gb(summary.daily_ingestion_gb)}** is approaching the "
            f"{threshold:g} GB/day threshold for commitment tier savings.",
            "",
            f"At {threshold:g} GB/day, you could save ~{pct:.0f}% with the commitment tier.",
        ]
    )
    return RecommendationCard(
        kind=CardKind.INFO,
        title=TITLE_APPROACHING_COMMITMENT,
        body=body,
        action=f"Monitor ingestion growth and consider the commitment tier when reaching {threshold:g} GB/day",
    )


def _retention_card(summary: AnalysisSummary) -> RecommendationCard:
    lines = []
    known = [workspace for workspace in summary.workspaces if workspace.retention_days is not None]
    if known:
        lines += ["| Workspace | Resource Group | Retention |", "|-----------|----------------|-----------|"]
        for workspace in known:
            lines.append(
                f"| {workspace.workspace_name} | {workspace.resource_group} | {workspace.retention_days} days |"
            )
        lines.append("")
    else:
        lines += ["**Current retention:** check each workspace's retention settings", ""]
    lines += [
        "**Recommendations:**",
        "- Set interactive retention to 30-90 days for most tables",
        "- Use long-term retention (archive) for data needed beyond 90 days",
        "- Security data may need longer retention for compliance",
    ]
    return RecommendationCard(
        kind=CardKind.INFO,
        title=TITLE_RETENTION,
        body="\n".join(lines),
        action="Review retention settings in each workspace under Tables > Manage table",
        docsUrl=DOCS_RETENTION,
    )


def _dcr_card() -> RecommendationCard:
    body = "\n".join(
        [
            "**Filter data at the source using Data Collection Rules (DCRs):**",
            "",
            "- Filter out unwanted columns before ingestion",
            "- Drop verbose log levels (Debug, Trace)",
            "- Sample high-volume telemetry",
            "- Exclude non-essential resources",
            "",
            "Example transformation to drop debug logs:",
            "```kql",
            'source | where SeverityLevel != "Debug"',
            "```",
        ]
    )
    return RecommendationCard(
        kind=CardKind.INFO,
        title=TITLE_DCR,
        body=body,
        action="Review and optimize Data Collection Rules for each data source",
        docsUrl=DOCS_TRANSFORMATIONS,
    )


def _optimal_card(decisions: list[TierDecision]) -> RecommendationCard:
    kept = len(decisions)
    body = "\n".join(
        [
            f"All {kept} analyzed table(s) need to stay on the Analytics plan "
            "(alerts, dashboards, query activity, or unknown query frequency).",
            "",
            "No plan change or commitment tier is recommended at current volumes.",
        ]
    )
    return RecommendationCard(kind=CardKind.SUCCESS, title=TITLE_OPTIMAL, body=body)


def classify_summary(
    summary: AnalysisSummary,
    gate_data: GateData,
    config: LogAnalyticsCostsConfig | None = None,
) -> list[TierDecision]:
    """Classify every candidate of a summary against the complete gate data.

    Tables below the minimum candidate volume are skipped. When query
    auditing is unavailable for the whole run, every table is classified
    with frequency unavailable.
    """
    config = config or LogAnalyticsCostsConfig()
    candidates = [c for c in summary.table_candidates if c.total_gb >= config.minimum_candidate_gb]
    return classify_all(
        candidates,
        gate_data.alert_table_names,
        gate_data.dashboard_table_names,
        frequency_unavailable=not summary.query_auditing_enabled,
        config=config,
    )


def compose(
    summary: AnalysisSummary,
    gate_data: GateData,
    config: LogAnalyticsCostsConfig | None = None,
    decisions: list[TierDecision] | None = None,
) -> list[RecommendationCard]:
    """Compose ordered recommendation cards for an analysis.

    Args:
        summary: Usage summary for the run.
        gate_data: Complete alert and dashboard reference sets.
        config: Module configuration.
        decisions: Precomputed decisions from classify_summary. Computed
            when not given.

    Returns:
        Ordered recommendation cards.
    """
    config = config or LogAnalyticsCostsConfig()

    if summary.total_ingestion_gb <= 0:
        logger.info("No billable ingestion, composing no-data summary")
        return [_no_data_card(summary)]
    if summary.total_ingestion_gb < config.minimal_ingestion_gb:
        logger.info(f"Minimal ingestion ({summary.total_ingestion_gb:.3f} GB), composing summary only")
        return [_minimal_data_card(summary, config)]

    if decisions is None:
        decisions = classify_summary(summary, gate_data, config)

    by_gate: dict[str, list[TierDecision]] = {}
    by_tier: dict[str, list[TierDecision]] = {}
    for decision in decisions:
        if decision.gate:
            by_gate.setdefault(decision.gate, []).append(decision)
        by_tier.setdefault(decision.tier, []).append(decision)

    cards: list[RecommendationCard] = []

    # Breakage warnings lead
    if by_gate.get(BlockingGate.ALERTS.value):
        cards.append(_alert_warning(by_gate[BlockingGate.ALERTS.value], gate_data, config))
    if by_gate.get(BlockingGate.DASHBOARDS.value):
        cards.append(_dashboard_warning(by_gate[BlockingGate.DASHBOARDS.value], gate_data, config))

    savings: list[tuple[float, RecommendationCard]] = []
    if by_tier.get(LogsTier.AUXILIARY.value):
        savings.append(_auxiliary_card(by_tier[LogsTier.AUXILIARY.value], config))
    if by_tier.get(LogsTier.BASIC.value):
        savings.append(_basic_card(by_tier[LogsTier.BASIC.value]))
    if summary.daily_ingestion_gb >= config.pricing.commitment_threshold_gb_per_day:
        savings.append(_commitment_card(summary, config))
    savings.sort(key=lambda item: -item[0])
    cards.extend(card for _, card in savings)

    if by_gate.get(BlockingGate.FREQUENCY_UNKNOWN.value):
        cards.append(_auditing_warning(by_gate[BlockingGate.FREQUENCY_UNKNOWN.value], summary, config))
    if by_gate.get(BlockingGate.FREQUENT_QUERIES.value):
        cards.append(_frequent_warning(by_gate[BlockingGate.FREQUENT_QUERIES.value]))
    if summary.excessive_heartbeats:
        cards.append(_heartbeat_warning(summary, config))

    cards.append(_executive_summary(summary, config))
    if summary.top_tables:
        cards.append(_top_tables_card(summary, config))
    daily_gb = summary.daily_ingestion_gb
    if config.pricing.approaching_commitment_gb_per_day <= daily_gb < config.pricing.commitment_threshold_gb_per_day:
        cards.append(_approaching_commitment_card(summary, config))
    cards.append(_retention_card(summary))
    cards.append(_dcr_card())

    if not savings:
        cards.append(_optimal_card(decisions))

    logger.info(
        f"Composed {len(cards)} cards from {len(decisions)} decisions "
        f"({len(savings)} savings cards)"
    )
    return cards
