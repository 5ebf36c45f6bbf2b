"""Data models for the Log Analytics costs module.

Everything produced during an analysis run is an immutable value object:
summaries, candidates and decisions are created once and threaded through
function arguments rather than accumulated in shared state.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.models import QueryReference, QueryResultTable, RecommendationCard, WorkspaceMetadata

CUSTOM_TABLE_SUFFIX = "_CL"
DAYS_PER_MONTH = 30


class LogsTier(str, Enum):
    """Log Analytics table plan."""

    ANALYTICS = "analytics"
    BASIC = "basic"
    AUXILIARY = "auxiliary"


class BlockingGate(str, Enum):
    """Usage gate that kept a table on the Analytics plan."""

    ALERTS = "alerts"
    DASHBOARDS = "dashboards"
    FREQUENT_QUERIES = "frequent_queries"
    FREQUENCY_UNKNOWN = "frequency_unknown"


class WorkspaceUsage(BaseModel):
    """Billable ingestion of one workspace over the analysis window."""

    workspace_name: str = Field(..., alias="workspaceName")
    resource_group: str = Field("Unknown", alias="resourceGroup")
    ingested_gb: float = Field(0.0, ge=0, alias="ingestedGB")
    per_table: dict[str, float] = Field(default_factory=dict, alias="perTable")
    retention_days: int | None = Field(None, alias="retentionDays")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("per_table")
    @classmethod
    def _non_negative_tables(cls, value: dict[str, float]) -> dict[str, float]:
        for table, gb in value.items():
            if gb < 0:
                raise ValueError(f"Negative ingestion for table {table}: {gb}")
        return value

    @model_validator(mode="after")
    def _total_matches_tables(self) -> "WorkspaceUsage":
        table_sum = sum(self.per_table.values())
        if not math.isclose(table_sum, self.ingested_gb, rel_tol=1e-9, abs_tol=1e-6):
            raise ValueError(
                f"Workspace {self.workspace_name}: per-table total {table_sum} "
                f"does not match ingestedGB {self.ingested_gb}"
            )
        return self

    @property
    def has_data(self) -> bool:
        return self.ingested_gb > 0


class ResourceGroupUsage(BaseModel):
    """Ingestion rolled up per resource group."""

    name: str
    workspaces: list[WorkspaceUsage] = Field(default_factory=list)
    total_gb: float = Field(0.0, ge=0, alias="totalGB")
    workspace_count: int = Field(0, ge=0, alias="workspaceCount")
    has_data: bool = Field(False, alias="hasData")

    class Config:
        populate_by_name = True
        frozen = True


class TableQueryStats(BaseModel):
    """Query activity for one table, aggregated across workspaces."""

    table_name: str = Field(..., alias="tableName")
    query_count: float = Field(0.0, ge=0, alias="queryCount")
    distinct_users: float = Field(0.0, ge=0, alias="distinctUsers")
    avg_queries_per_day: float = Field(0.0, ge=0, alias="avgQueriesPerDay")

    class Config:
        populate_by_name = True
        frozen = True


class HeartbeatSource(BaseModel):
    """Computer sending more heartbeats than the agent default."""

    computer: str
    workspace_name: str | None = Field(None, alias="workspaceName")
    heartbeats_per_hour: float = Field(0.0, ge=0, alias="heartbeatsPerHour")

    class Config:
        populate_by_name = True
        frozen = True


class TableCandidate(BaseModel):
    """A table considered for a cheaper plan.

    ``isCustomTable`` defaults from the name suffix when not given.
    ``queryFrequencyKnown`` is False when the table has no query-audit data,
    which blocks any downgrade.
    """

    name: str
    total_gb: float = Field(0.0, ge=0, alias="totalGB")
    avg_queries_per_day: float = Field(0.0, ge=0, alias="avgQueriesPerDay")
    query_frequency_known: bool = Field(True, alias="queryFrequencyKnown")
    is_custom_table: bool = Field(False, alias="isCustomTable")

    class Config:
        populate_by_name = True
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _default_custom_flag(cls, data: Any) -> Any:
        if isinstance(data, dict) and "isCustomTable" not in data and "is_custom_table" not in data:
            data = dict(data)
            data["isCustomTable"] = str(data.get("name", "")).endswith(CUSTOM_TABLE_SUFFIX)
        return data


class UsageGates(BaseModel):
    """Usage facts for one table during a single classification pass."""

    used_in_alerts: bool = Field(False, alias="usedInAlerts")
    used_in_dashboards: bool = Field(False, alias="usedInDashboards")
    frequently_queried: bool = Field(False, alias="frequentlyQueried")
    frequency_unknown: bool = Field(False, alias="frequencyUnknown")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def blocks_downgrade(self) -> bool:
        return (
            self.used_in_alerts
            or self.used_in_dashboards
            or self.frequently_queried
            or self.frequency_unknown
        )


class TierDecision(BaseModel):
    """Plan chosen for a table and why."""

    table_name: str = Field(..., alias="tableName")
    tier: LogsTier
    reason: str
    gate: BlockingGate | None = None
    gates: UsageGates = Field(default_factory=UsageGates)
    total_gb: float = Field(0.0, ge=0, alias="totalGB")
    avg_queries_per_day: float = Field(0.0, ge=0, alias="avgQueriesPerDay")
    estimated_monthly_savings: float = Field(0.0, ge=0, alias="estimatedMonthlySavings")

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True


class GateData(BaseModel):
    """Complete alert and dashboard reference sets for one analysis run.

    Maps each referenced table name to the display names of the alert rules
    or dashboards whose queries read from it.
    """

    alert_tables: dict[str, list[str]] = Field(default_factory=dict, alias="alertTables")
    dashboard_tables: dict[str, list[str]] = Field(default_factory=dict, alias="dashboardTables")
    active_alert_count: int = Field(0, ge=0, alias="activeAlertCount")
    active_alert_names: list[str] = Field(default_factory=list, alias="activeAlertNames")
    dashboard_count: int = Field(0, ge=0, alias="dashboardCount")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def alert_table_names(self) -> set[str]:
        return set(self.alert_tables)

    @property
    def dashboard_table_names(self) -> set[str]:
        return set(self.dashboard_tables)


class AnalysisSummary(BaseModel):
    """Normalized usage across all analyzed workspaces.

    This is the sole input to card composition besides the gate data.
    """

    workspaces: list[WorkspaceUsage] = Field(default_factory=list)
    resource_groups: list[ResourceGroupUsage] = Field(default_factory=list, alias="resourceGroups")
    total_workspaces: int = Field(0, ge=0, alias="totalWorkspaces")
    workspaces_with_data: int = Field(0, ge=0, alias="workspacesWithData")
    workspaces_empty: int = Field(0, ge=0, alias="workspacesEmpty")
    total_ingestion_gb: float = Field(0.0, ge=0, alias="totalIngestionGB")
    table_candidates: list[TableCandidate] = Field(default_factory=list, alias="tableCandidates")
    top_tables: list[TableCandidate] = Field(default_factory=list, alias="topTables")
    query_frequency: list[TableQueryStats] = Field(default_factory=list, alias="queryFrequency")
    query_auditing_enabled: bool = Field(False, alias="queryAuditingEnabled")
    query_auditing_on_basic_logs: bool = Field(False, alias="queryAuditingOnBasicLogs")
    excessive_heartbeats: list[HeartbeatSource] = Field(
        default_factory=list, alias="excessiveHeartbeats"
    )

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def daily_ingestion_gb(self) -> float:
        return self.total_ingestion_gb / DAYS_PER_MONTH


class AnalysisInput(BaseModel):
    """Input contract for a Log Analytics cost analysis.

    ``queryResults`` maps workspace name to query name to result table. Alert
    rules and dashboard tiles must be complete for the run: classification
    never runs against a partial reference set.
    """

    execution_id: str = Field(..., alias="executionId")
    workspaces: list[WorkspaceMetadata] = Field(default_factory=list)
    query_results: dict[str, dict[str, QueryResultTable]] = Field(
        default_factory=dict, alias="queryResults"
    )
    alert_rules: list[QueryReference] = Field(default_factory=list, alias="alertRules")
    dashboard_tiles: list[QueryReference] = Field(default_factory=list, alias="dashboardTiles")
    configuration: dict[str, Any] = Field(default_factory=dict)
    render_formats: list[str] = Field(default_factory=list, alias="renderFormats")

    class Config:
        populate_by_name = True


class AnalysisOutput(BaseModel):
    """Output contract for a Log Analytics cost analysis."""

    module_id: str = Field(..., alias="moduleId")
    module_name: str | None = Field(None, alias="moduleName")
    version: str | None = None
    execution_id: str = Field(..., alias="executionId")
    execution_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="executionTime"
    )
    status: str = "success"
    workspaces_analyzed: int = Field(0, alias="workspacesAnalyzed")
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    gate_data: GateData = Field(default_factory=GateData, alias="gateData")
    decisions: list[TierDecision] = Field(default_factory=list)
    cards: list[RecommendationCard] = Field(default_factory=list)
    markup: str = ""
    total_estimated_monthly_savings: float = Field(0.0, alias="totalEstimatedMonthlySavings")
    cards_by_kind: dict[str, int] = Field(default_factory=dict, alias="cardsByKind")
    errors: list[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
