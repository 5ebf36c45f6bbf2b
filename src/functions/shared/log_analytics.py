"""Azure Monitor Logs client wrapper.

Runs KQL against Log Analytics workspaces and converts each response into a
QueryResultTable. A failing query never aborts the run: its error is kept
on the result so the analysis can treat it as missing data.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from azure.core.exceptions import HttpResponseError
from azure.identity import DefaultAzureCredential
from azure.monitor.query import LogsQueryClient, LogsQueryStatus

from shared.models import QueryResultTable

logger = logging.getLogger(__name__)

# Error text returned when the queried table is on the Basic Logs plan
BASIC_LOGS_ERROR_MARKERS = (
    "basic logs table is not supported",
    "is a basic logs table",
)


def is_basic_logs_error(message: str | None) -> bool:
    """Check whether a query error means the table is on the Basic Logs plan."""
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in BASIC_LOGS_ERROR_MARKERS)


def _error_result(message: str) -> QueryResultTable:
    return QueryResultTable(error=message, basicLogsTable=is_basic_logs_error(message))


def _table_to_result(table: Any) -> QueryResultTable:
    columns = [getattr(column, "name", column) for column in table.columns]
    rows = [list(row) for row in table.rows]
    return QueryResultTable(columns=columns, rows=rows)


class LogAnalyticsClient:
    """Wrapper for Log Analytics workspace queries."""

    # Analysis window for every workspace query
    DEFAULT_TIMESPAN = timedelta(days=30)

    def __init__(self, credential: Any | None = None, client: Any | None = None):
        """Initialize the Logs query client.

        Args:
            credential: Azure credential. Defaults to DefaultAzureCredential.
            client: Preconstructed LogsQueryClient, mainly for tests.
        """
        if client is not None:
            self._client = client
        else:
            self.credential = credential or DefaultAzureCredential()
            self._client = LogsQueryClient(self.credential)

    def query(
        self,
        workspace_id: str,
        query: str,
        timespan: timedelta | None = None,
    ) -> QueryResultTable:
        """Execute one KQL query against a workspace.

        Args:
            workspace_id: Workspace customer ID (GUID).
            query: KQL query string.
            timespan: Query window. Defaults to 30 days.

        Returns:
            The first result table, or a result carrying the error.
        """
        try:
            response = self._client.query_workspace(
                workspace_id=workspace_id,
                query=query,
                timespan=timespan or self.DEFAULT_TIMESPAN,
            )
        except HttpResponseError as e:
            message = getattr(e, "message", None) or str(e)
            logger.warning(f"Query failed for workspace {workspace_id}: {message}")
            return _error_result(message)

        if response.status == LogsQueryStatus.SUCCESS:
            tables = response.tables
        else:
            error = response.partial_error
            message = getattr(error, "message", None) or str(error)
            logger.warning(f"Partial result for workspace {workspace_id}: {message}")
            tables = response.partial_data
            if not tables:
                return _error_result(message)

        if not tables:
            return QueryResultTable()
        return _table_to_result(tables[0])

    def query_all(
        self,
        workspace_id: str,
        queries: dict[str, str],
        timespan: timedelta | None = None,
    ) -> dict[str, QueryResultTable]:
        """Execute a set of named queries against one workspace.

        Args:
            workspace_id: Workspace customer ID (GUID).
            queries: Query name -> KQL.
            timespan: Query window. Defaults to 30 days.

        Returns:
            Query name -> result, in the order of ``queries``.
        """
        results = {}
        for name, query in queries.items():
            logger.debug(f"Running {name} on workspace {workspace_id}")
            results[name] = self.query(workspace_id, query, timespan)
        return results
