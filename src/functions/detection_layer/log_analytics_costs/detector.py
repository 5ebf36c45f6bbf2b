"""Main analysis logic for the Log Analytics costs module.

Runs the pipeline over already-collected query results:
reference extraction -> usage summary -> plan classification -> card
composition -> markup. Collection of the inputs lives in ``collector``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from shared.card_markup import serialize_cards
from shared.card_renderers import render_html, render_markdown
from shared.cost_calculator import calculate_total_savings, summarize_by_kind
from detection_layer.log_analytics_costs.composer import classify_summary, compose
from detection_layer.log_analytics_costs.config import parse_config
from detection_layer.log_analytics_costs.models import AnalysisInput, AnalysisOutput
from detection_layer.log_analytics_costs.summarizer import summarize
from detection_layer.log_analytics_costs.table_references import build_gate_data

logger = logging.getLogger(__name__)

MODULE_ID = "log-analytics-costs"
MODULE_NAME = "Log Analytics Costs"
MODULE_VERSION = "1.0.0"

RENDER_FORMATS = ("html", "markdown")


def _query_errors(analysis_input: AnalysisInput) -> list[str]:
    errors = []
    for workspace_name, results in analysis_input.query_results.items():
        for query_name, result in results.items():
            if result.error:
                errors.append(f"{workspace_name}/{query_name}: {result.error}")
    return errors


def analyze(analysis_input: AnalysisInput) -> AnalysisOutput:
    """Execute a Log Analytics cost analysis.

    This is the main entry point of the module. It performs no I/O.

    Args:
        analysis_input: Collected query results, workspace metadata and the
            complete alert rule and dashboard tile sets.

    Returns:
        AnalysisOutput with summary, decisions, cards and markup.
    """
    execution_id = analysis_input.execution_id
    logger.info(
        f"Starting Log Analytics cost analysis: execution_id={execution_id}, "
        f"workspaces={len(analysis_input.query_results)}, "
        f"alert_rules={len(analysis_input.alert_rules)}, "
        f"dashboard_tiles={len(analysis_input.dashboard_tiles)}"
    )

    config = parse_config(analysis_input.configuration)
    metadata = {workspace.name: workspace for workspace in analysis_input.workspaces}

    # Reference sets must be complete before any table is classified
    gate_data = build_gate_data(analysis_input.alert_rules, analysis_input.dashboard_tiles)
    summary = summarize(analysis_input.query_results, metadata, config)
    if summary.total_ingestion_gb < config.minimal_ingestion_gb:
        # No-data and minimal-data runs yield a single summary card
        decisions = []
    else:
        decisions = classify_summary(summary, gate_data, config)
    cards = compose(summary, gate_data, config, decisions=decisions)

    errors = _query_errors(analysis_input)
    if not errors:
        status = "success"
    elif summary.workspaces_with_data:
        status = "partial_success"
    else:
        status = "failed"

    total_savings = calculate_total_savings(cards)
    logger.info(
        f"Analysis complete: {len(cards)} cards, ${total_savings:.2f} estimated savings, "
        f"{len(errors)} query errors"
    )

    return AnalysisOutput(
        moduleId=MODULE_ID,
        moduleName=MODULE_NAME,
        version=MODULE_VERSION,
        executionId=execution_id,
        executionTime=datetime.now(timezone.utc),
        status=status,
        workspacesAnalyzed=summary.total_workspaces,
        summary=summary,
        gateData=gate_data,
        decisions=decisions,
        cards=cards,
        markup=serialize_cards(cards),
        totalEstimatedMonthlySavings=total_savings,
        cardsByKind=summarize_by_kind(cards),
        errors=errors,
    )


def analyze_from_dict(input_dict: dict[str, Any]) -> dict[str, Any]:
    """Execute an analysis from dictionary input, returning dictionary output.

    Convenience function for Azure Functions HTTP trigger integration.

    Args:
        input_dict: Dictionary with executionId, workspaces, queryResults,
            alertRules, dashboardTiles, configuration and renderFormats.

    Returns:
        Dictionary representation of AnalysisOutput, plus ``html`` and
        ``markdown`` when requested in renderFormats.
    """
    analysis_input = AnalysisInput(**input_dict)
    output = analyze(analysis_input)
    result = output.model_dump(by_alias=True)

    for render_format in analysis_input.render_formats:
        if render_format == "html":
            result["html"] = render_html(output.cards)
        elif render_format == "markdown":
            result["markdown"] = render_markdown(output.cards)
        else:
            logger.warning(f"Ignoring unknown render format: {render_format}")
    return result
