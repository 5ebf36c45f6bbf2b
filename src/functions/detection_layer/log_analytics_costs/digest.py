"""Markdown digests of raw query results and analysis state.

The digest is the user prompt for the optional LLM recommendation pass:
raw results grouped by resource group, followed by the reference sets the
model must respect.
"""

from __future__ import annotations

from collections.abc import Mapping

from shared.cost_calculator import format_gb
from shared.models import QueryResultTable, WorkspaceMetadata
from detection_layer.log_analytics_costs.models import AnalysisSummary, GateData

MAX_DIGEST_ROWS = 50
UNKNOWN_RESOURCE_GROUP = "Unknown"


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).replace("|", "\\|").replace("\n", " ")


def format_result_table(result: QueryResultTable, max_rows: int = MAX_DIGEST_ROWS) -> str:
    """Render one query result as a Markdown pipe table.

    Failed and unqueryable results render as a one-line note.
    """
    if result.basic_logs_table:
        return "_Not queryable: the source table is on the Basic Logs plan._"
    if result.error:
        return f"_Query failed: {result.error}_"
    if result.is_empty or not result.columns:
        return "_No rows._"

    lines = [
        "| " + " | ".join(result.columns) + " |",
        "|" + "|".join("---" for _ in result.columns) + "|",
    ]
    for row in result.rows[:max_rows]:
        cells = [_cell_text(row[i]) if i < len(row) else "" for i in range(len(result.columns))]
        lines.append("| " + " | ".join(cells) + " |")
    if len(result.rows) > max_rows:
        lines.append(f"_... {len(result.rows) - max_rows} more rows_")
    return "\n".join(lines)


def format_query_results(
    per_workspace_tables: Mapping[str, Mapping[str, QueryResultTable]],
    workspace_metadata: Mapping[str, WorkspaceMetadata] | None = None,
    max_rows: int = MAX_DIGEST_ROWS,
) -> str:
    """Render every workspace's query results, grouped by resource group.

    Args:
        per_workspace_tables: Workspace name -> query name -> result.
        workspace_metadata: Workspace name -> metadata, for grouping.
        max_rows: Rows shown per query.

    Returns:
        Markdown text.
    """
    workspace_metadata = workspace_metadata or {}
    grouped: dict[str, list[str]] = {}
    for workspace_name in per_workspace_tables:
        metadata = workspace_metadata.get(workspace_name)
        resource_group = metadata.resource_group if metadata else UNKNOWN_RESOURCE_GROUP
        grouped.setdefault(resource_group, []).append(workspace_name)

    sections = []
    for resource_group, workspace_names in grouped.items():
        sections.append(f"# Resource Group: {resource_group}")
        for workspace_name in workspace_names:
            sections.append(f"## Workspace: {workspace_name}")
            metadata = workspace_metadata.get(workspace_name)
            if metadata and metadata.retention_days is not None:
                sections.append(f"Retention: {metadata.retention_days} days")
            for query_name, result in per_workspace_tables[workspace_name].items():
                sections.append(f"### {query_name}")
                sections.append(format_result_table(result, max_rows))
    return "\n\n".join(sections)


def format_analysis_context(summary: AnalysisSummary, gate_data: GateData) -> str:
    """Render the totals and reference sets that bound any recommendation."""
    lines = [
        "# Analysis Context",
        f"- Total 30-day ingestion: {format_gb(summary.total_ingestion_gb)}",
        f"- Workspaces: {summary.workspaces_with_data}/{summary.total_workspaces} with data",
        f"- Query auditing enabled: {'yes' if summary.query_auditing_enabled else 'no'}",
        f"- Query audit table on Basic Logs: {'yes' if summary.query_auditing_on_basic_logs else 'no'}",
        "",
        "## Tables used in alert rules (must stay on Analytics)",
    ]
    if gate_data.alert_tables:
        for table, names in sorted(gate_data.alert_tables.items()):
            lines.append(f"- {table}: {', '.join(names)}")
    else:
        lines.append("- none detected")
    lines += ["", "## Tables used in dashboards (must stay on Analytics)"]
    if gate_data.dashboard_tables:
        for table, names in sorted(gate_data.dashboard_tables.items()):
            lines.append(f"- {table}: {', '.join(names)}")
    else:
        lines.append("- none detected")
    return "\n".join(lines)
