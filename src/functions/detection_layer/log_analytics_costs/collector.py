"""Collection of analysis inputs from Azure.

Discovers workspaces, alert rules and dashboard tiles through Resource
Graph, then runs the workspace query catalog through Azure Monitor Logs.
The result is a complete AnalysisInput: alert rules and dashboards are
always fully fetched before any analysis starts.
"""

from __future__ import annotations

import logging
from typing import Any

from shared.log_analytics import LogAnalyticsClient
from shared.models import QueryResultTable
from shared.resource_graph import ResourceGraphClient
from detection_layer.log_analytics_costs.models import AnalysisInput
from detection_layer.log_analytics_costs.queries import get_all_queries

logger = logging.getLogger(__name__)


def collect_analysis_input(
    execution_id: str,
    subscription_ids: list[str] | None = None,
    workspace_names: list[str] | None = None,
    configuration: dict[str, Any] | None = None,
    render_formats: list[str] | None = None,
    dry_run: bool = False,
    graph_client: ResourceGraphClient | None = None,
    logs_client: LogAnalyticsClient | None = None,
) -> AnalysisInput:
    """Collect everything an analysis needs.

    Args:
        execution_id: Execution identifier passed through to the output.
        subscription_ids: Subscriptions to search. None searches all
            accessible subscriptions.
        workspace_names: Restrict the analysis to these workspaces.
        configuration: Module configuration, passed through.
        render_formats: Render formats, passed through.
        dry_run: Discover workspaces but skip the workspace queries.
        graph_client: Resource Graph client. Created when not given.
        logs_client: Logs query client. Created when not given.

    Returns:
        AnalysisInput ready for ``analyze``.
    """
    graph_client = graph_client or ResourceGraphClient()

    workspaces = graph_client.list_workspaces(subscription_ids, workspace_names)
    alert_rules = graph_client.list_alert_rules(workspaces, subscription_ids)
    dashboard_tiles = graph_client.list_dashboard_tiles(workspaces, subscription_ids)

    query_results: dict[str, dict[str, QueryResultTable]] = {}
    if dry_run:
        logger.info(f"[DRY RUN] Would query {len(workspaces)} workspaces")
    else:
        logs_client = logs_client or LogAnalyticsClient()
        queries = get_all_queries()
        for workspace in workspaces:
            if not workspace.customer_id:
                logger.warning(f"Workspace {workspace.name} has no customer ID, skipping queries")
                continue
            logger.info(f"Querying workspace {workspace.name} ({len(queries)} queries)")
            query_results[workspace.name] = logs_client.query_all(workspace.customer_id, queries)

    return AnalysisInput(
        executionId=execution_id,
        workspaces=workspaces,
        queryResults=query_results,
        alertRules=alert_rules,
        dashboardTiles=dashboard_tiles,
        configuration=configuration or {},
        renderFormats=render_formats or [],
    )
