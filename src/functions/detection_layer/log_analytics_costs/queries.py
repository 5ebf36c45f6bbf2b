"""Log Analytics workspace KQL queries for cost analysis.

Each query is executed per workspace over the last 30 days. The result
column names are what the summarizer looks up; keep them stable.
"""

from __future__ import annotations

DATA_VOLUME_BY_TABLE = "data_volume_by_table"
DAILY_INGESTION_TREND = "daily_ingestion_trend"
TABLE_QUERY_FREQUENCY = "table_query_frequency"
LA_QUERY_LOGS_STATUS = "la_query_logs_status"
EXCESSIVE_HEARTBEATS = "excessive_heartbeats"
TOP_TABLES = "top_tables"


def query_data_volume_by_table() -> str:
    """KQL query for billable GB per table. Columns: DataType, BillableGB."""
    return """
Usage
| where TimeGenerated > ago(30d)
| where IsBillable == true
| summarize BillableGB = sum(Quantity) / 1000 by DataType
| order by BillableGB desc
"""


def query_daily_ingestion_trend() -> str:
    """KQL query for billable GB per day. Columns: TimeGenerated, DailyGB."""
    return """
Usage
| where TimeGenerated > ago(30d)
| where IsBillable == true
| summarize DailyGB = sum(Quantity) / 1000 by bin(TimeGenerated, 1d)
| order by TimeGenerated asc
"""


def query_table_query_frequency() -> str:
    """KQL query for per-table query activity from the query audit log.

    Billable tables that were never queried are included with zero counts,
    so an empty frequency for a table means "not queried", while a table
    missing from the result means auditing data is unavailable for it.

    Columns: TableName, QueryCount, DistinctUsers, AvgQueriesPerDay.
    """
    return """
let Queried = LAQueryLogs
| where TimeGenerated > ago(30d)
| extend TablesQueried = todynamic(RequestTarget)
| mv-expand TablesQueried
| extend TableName = tostring(TablesQueried)
| where isnotempty(TableName)
| summarize QueryCount = count(), DistinctUsers = dcount(AADEmail) by TableName;
Usage
| where TimeGenerated > ago(30d)
| where IsBillable == true
| distinct TableName = DataType
| join kind=leftouter Queried on TableName
| project
    TableName,
    QueryCount = coalesce(QueryCount, 0),
    DistinctUsers = coalesce(DistinctUsers, 0),
    AvgQueriesPerDay = coalesce(QueryCount, 0) / 30.0
| order by QueryCount desc
"""


def query_la_query_logs_status() -> str:
    """KQL query that returns a row only when query auditing is enabled."""
    return """
LAQueryLogs
| where TimeGenerated > ago(7d)
| summarize RecordCount = count()
| where RecordCount > 0
"""


def query_excessive_heartbeats() -> str:
    """KQL query for computers sending more than 70 heartbeats per hour.

    Columns: Computer, HeartbeatsPerHour.
    """
    return """
Heartbeat
| where TimeGenerated > ago(1h)
| summarize HeartbeatsPerHour = count() by Computer
| where HeartbeatsPerHour > 70
| order by HeartbeatsPerHour desc
| take 10
"""


def query_top_tables() -> str:
    """KQL query for the ten largest tables over the last week. Columns: DataType, TotalGB."""
    return """
Usage
| where TimeGenerated > ago(7d)
| where IsBillable == true
| summarize TotalGB = sum(Quantity) / 1000 by DataType
| top 10 by TotalGB desc
"""


# Query name -> KQL builder, in execution order
QUERY_BUILDERS = {
    DATA_VOLUME_BY_TABLE: query_data_volume_by_table,
    DAILY_INGESTION_TREND: query_daily_ingestion_trend,
    TABLE_QUERY_FREQUENCY: query_table_query_frequency,
    LA_QUERY_LOGS_STATUS: query_la_query_logs_status,
    EXCESSIVE_HEARTBEATS: query_excessive_heartbeats,
    TOP_TABLES: query_top_tables,
}


def get_query(query_name: str) -> str | None:
    """Get the KQL for a named query.

    Args:
        query_name: One of the query name constants.

    Returns:
        KQL text, or None if the name is unknown.
    """
    builder = QUERY_BUILDERS.get(query_name)
    return builder() if builder else None


def get_all_queries() -> dict[str, str]:
    """Get all workspace queries keyed by name."""
    return {name: builder() for name, builder in QUERY_BUILDERS.items()}


def get_supported_queries() -> list[str]:
    """Get the names of all workspace queries."""
    return list(QUERY_BUILDERS.keys())
