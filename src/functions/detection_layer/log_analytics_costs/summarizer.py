"""Usage summarization across workspaces.

Turns raw per-workspace query results into an AnalysisSummary: ingestion
per workspace and resource group, ranked table candidates, aggregated query
frequency and query auditing status. Missing or empty results contribute
zero; they are not errors.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from shared.models import QueryResultTable, WorkspaceMetadata
from detection_layer.log_analytics_costs.config import LogAnalyticsCostsConfig
from detection_layer.log_analytics_costs.models import (
    AnalysisSummary,
    HeartbeatSource,
    ResourceGroupUsage,
    TableCandidate,
    TableQueryStats,
    WorkspaceUsage,
)
from detection_layer.log_analytics_costs.queries import (
    DATA_VOLUME_BY_TABLE,
    EXCESSIVE_HEARTBEATS,
    LA_QUERY_LOGS_STATUS,
    TABLE_QUERY_FREQUENCY,
)

logger = logging.getLogger(__name__)

UNKNOWN_RESOURCE_GROUP = "Unknown"
UNKNOWN_TABLE = "Unknown"

# Positional fallbacks used when a result lacks the named column
VOLUME_COLUMNS = {"DataType": 0, "BillableGB": 1}
FREQUENCY_COLUMNS = {"TableName": 0, "QueryCount": 1, "DistinctUsers": 2, "AvgQueriesPerDay": 3}
HEARTBEAT_COLUMNS = {"Computer": 0, "HeartbeatsPerHour": 1}


def to_non_negative_float(value: Any, context: str = "") -> float:
    """Parse a numeric cell, treating junk as 0 and clamping negatives to 0.

    Args:
        value: Raw cell value (number, numeric string, None, ...).
        context: Description used in the warning for negative values.

    Returns:
        A finite, non-negative float.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    if number < 0:
        logger.warning(f"Negative value {number} in {context or 'query result'}, clamping to 0")
        return 0.0
    return number


def _usable(result: QueryResultTable | None) -> bool:
    return result is not None and not result.error and not result.basic_logs_table and not result.is_empty


def _workspace_table_volumes(workspace_name: str, result: QueryResultTable | None) -> dict[str, float]:
    per_table: dict[str, float] = {}
    if not _usable(result):
        if result is not None and result.error:
            logger.warning(f"Volume query failed for {workspace_name}: {result.error}")
        return per_table

    for row in result.rows:
        gb = to_non_negative_float(
            result.cell(row, "BillableGB", VOLUME_COLUMNS["BillableGB"]),
            context=f"{workspace_name} volume",
        )
        name = result.cell(row, "DataType", VOLUME_COLUMNS["DataType"]) or UNKNOWN_TABLE
        name = str(name)
        per_table[name] = per_table.get(name, 0.0) + gb
    return per_table


def _accumulate_query_frequency(
    aggregated: dict[str, dict[str, Any]],
    workspace_name: str,
    result: QueryResultTable,
) -> None:
    """Merge one workspace's frequency rows: counts summed, users maxed."""
    for row in result.rows:
        table_name = result.cell(row, "TableName", FREQUENCY_COLUMNS["TableName"])
        if not table_name:
            continue
        context = f"{workspace_name} query frequency"
        entry = aggregated.setdefault(
            str(table_name).lower(),
            {"tableName": str(table_name), "queryCount": 0.0, "distinctUsers": 0.0, "avgQueriesPerDay": 0.0},
        )
        entry["queryCount"] += to_non_negative_float(
            result.cell(row, "QueryCount", FREQUENCY_COLUMNS["QueryCount"]), context
        )
        entry["distinctUsers"] = max(
            entry["distinctUsers"],
            to_non_negative_float(
                result.cell(row, "DistinctUsers", FREQUENCY_COLUMNS["DistinctUsers"]), context
            ),
        )
        entry["avgQueriesPerDay"] += to_non_negative_float(
            result.cell(row, "AvgQueriesPerDay", FREQUENCY_COLUMNS["AvgQueriesPerDay"]), context
        )


def _excessive_heartbeats(
    workspace_name: str,
    result: QueryResultTable | None,
    threshold: float,
) -> list[HeartbeatSource]:
    if not _usable(result):
        return []
    sources = []
    for row in result.rows:
        computer = result.cell(row, "Computer", HEARTBEAT_COLUMNS["Computer"])
        rate = to_non_negative_float(
            result.cell(row, "HeartbeatsPerHour", HEARTBEAT_COLUMNS["HeartbeatsPerHour"]),
            context=f"{workspace_name} heartbeats",
        )
        if computer and rate > threshold:
            sources.append(
                HeartbeatSource(computer=str(computer), workspaceName=workspace_name, heartbeatsPerHour=rate)
            )
    return sources


def summarize(
    per_workspace_tables: Mapping[str, Mapping[str, QueryResultTable]],
    workspace_metadata: Mapping[str, WorkspaceMetadata] | None = None,
    config: LogAnalyticsCostsConfig | None = None,
) -> AnalysisSummary:
    """Summarize usage across all analyzed workspaces.

    Workspaces listed in the metadata but absent from the results are
    counted as empty.

    Args:
        per_workspace_tables: Workspace name -> query name -> result.
        workspace_metadata: Workspace name -> metadata (resource group,
            retention).
        config: Module configuration.

    Returns:
        AnalysisSummary with candidates ranked by GB descending, then name.
    """
    config = config or LogAnalyticsCostsConfig()
    workspace_metadata = workspace_metadata or {}

    workspace_names = list(per_workspace_tables.keys())
    workspace_names += [name for name in workspace_metadata if name not in per_workspace_tables]

    workspaces: list[WorkspaceUsage] = []
    table_totals: dict[str, float] = {}
    frequency: dict[str, dict[str, Any]] = {}
    heartbeats: list[HeartbeatSource] = []
    auditing_enabled = False
    auditing_on_basic = False

    for workspace_name in workspace_names:
        results = per_workspace_tables.get(workspace_name, {})
        metadata = workspace_metadata.get(workspace_name)

        per_table = _workspace_table_volumes(workspace_name, results.get(DATA_VOLUME_BY_TABLE))
        for table, gb in per_table.items():
            table_totals[table] = table_totals.get(table, 0.0) + gb

        workspaces.append(
            WorkspaceUsage(
                workspaceName=workspace_name,
                resourceGroup=metadata.resource_group if metadata else UNKNOWN_RESOURCE_GROUP,
                ingestedGB=sum(per_table.values()),
                perTable=per_table,
                retentionDays=metadata.retention_days if metadata else None,
            )
        )

        status = results.get(LA_QUERY_LOGS_STATUS)
        frequency_result = results.get(TABLE_QUERY_FREQUENCY)
        if (status is not None and status.basic_logs_table) or (
            frequency_result is not None and frequency_result.basic_logs_table
        ):
            auditing_on_basic = True
        elif _usable(status):
            auditing_enabled = True

        if _usable(frequency_result):
            auditing_enabled = True
            _accumulate_query_frequency(frequency, workspace_name, frequency_result)

        heartbeats.extend(
            _excessive_heartbeats(
                workspace_name, results.get(EXCESSIVE_HEARTBEATS), config.excessive_heartbeats_per_hour
            )
        )

    query_frequency = sorted(
        (TableQueryStats(**entry) for entry in frequency.values()),
        key=lambda stats: (-stats.query_count, stats.table_name),
    )

    candidates = []
    for table, gb in table_totals.items():
        stats = frequency.get(table.lower())
        candidates.append(
            TableCandidate(
                name=table,
                totalGB=gb,
                avgQueriesPerDay=stats["avgQueriesPerDay"] if stats else 0.0,
                queryFrequencyKnown=stats is not None,
                isCustomTable=table.endswith(config.custom_table_suffix),
            )
        )
    candidates.sort(key=lambda candidate: (-candidate.total_gb, candidate.name))

    resource_groups = _group_by_resource_group(workspaces)
    total_gb = sum(workspace.ingested_gb for workspace in workspaces)
    with_data = sum(1 for workspace in workspaces if workspace.has_data)

    logger.info(
        f"Summarized {len(workspaces)} workspaces in {len(resource_groups)} resource groups: "
        f"{total_gb:.2f} GB, {len(candidates)} tables, auditing_enabled={auditing_enabled}, "
        f"auditing_on_basic={auditing_on_basic}"
    )

    return AnalysisSummary(
        workspaces=workspaces,
        resourceGroups=resource_groups,
        totalWorkspaces=len(workspaces),
        workspacesWithData=with_data,
        workspacesEmpty=len(workspaces) - with_data,
        totalIngestionGB=total_gb,
        tableCandidates=candidates,
        topTables=candidates[: config.top_tables_count],
        queryFrequency=query_frequency,
        queryAuditingEnabled=auditing_enabled,
        queryAuditingOnBasicLogs=auditing_on_basic,
        excessiveHeartbeats=sorted(heartbeats, key=lambda source: -source.heartbeats_per_hour),
    )


def _group_by_resource_group(workspaces: list[WorkspaceUsage]) -> list[ResourceGroupUsage]:
    grouped: dict[str, list[WorkspaceUsage]] = {}
    for workspace in workspaces:
        grouped.setdefault(workspace.resource_group, []).append(workspace)

    return [
        ResourceGroupUsage(
            name=name,
            workspaces=members,
            totalGB=sum(member.ingested_gb for member in members),
            workspaceCount=len(members),
            hasData=any(member.has_data for member in members),
        )
        for name, members in grouped.items()
    ]
