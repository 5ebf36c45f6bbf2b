"""Azure Resource Graph client wrapper.

Discovers the Log Analytics workspaces to analyze and the alert rules and
portal dashboards whose queries read from them. Row parsing is kept in
module-level functions so it can be tested without Azure access.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from azure.identity import DefaultAzureCredential
from azure.mgmt.resourcegraph import ResourceGraphClient as AzureResourceGraphClient
from azure.mgmt.resourcegraph.models import QueryRequest, QueryRequestOptions

from shared.models import QueryReference, WorkspaceMetadata

logger = logging.getLogger(__name__)

WORKSPACES_QUERY = """
resources
| where type =~ 'microsoft.operationalinsights/workspaces'
| project id, name, resourceGroup, subscriptionId, location,
    customerId = tostring(properties.customerId),
    retentionInDays = toint(properties.retentionInDays),
    skuName = tostring(properties.sku.name)
"""

SCHEDULED_QUERY_RULES_QUERY = """
resources
| where type =~ 'microsoft.insights/scheduledqueryrules'
| project id, name, resourceGroup,
    displayName = tostring(properties.displayName),
    enabled = tobool(properties.enabled),
    scopes = properties.scopes,
    criteria = properties.criteria
"""

DASHBOARDS_QUERY = """
resources
| where type =~ 'microsoft.portal/dashboards'
| project id, name, resourceGroup,
    title = tostring(tags['hidden-title']),
    lenses = properties.lenses
"""

# Dashboard part types that run a Log Analytics query
LOGS_PART_MARKERS = ("LogsDashboardPart", "AnalyticsPart")


def _ids_overlap(resource_id: str, workspace_ids: Iterable[str]) -> bool:
    rid = (resource_id or "").lower()
    if not rid:
        return False
    return any(ws in rid or rid in ws for ws in workspace_ids)


def _values(container: Any) -> list[Any]:
    """Dashboard lenses and parts arrive either as a list or an index-keyed dict."""
    if isinstance(container, dict):
        return list(container.values())
    if isinstance(container, list):
        return container
    return []


def parse_workspace(row: dict[str, Any]) -> WorkspaceMetadata:
    """Convert a workspace Resource Graph row into WorkspaceMetadata."""
    return WorkspaceMetadata(
        name=row.get("name", ""),
        resourceGroup=row.get("resourceGroup") or "Unknown",
        retentionDays=row.get("retentionInDays"),
        skuTier=row.get("skuName"),
        resourceId=row.get("id"),
        customerId=row.get("customerId"),
    )


def parse_alert_rule(row: dict[str, Any], workspace_ids: list[str]) -> QueryReference:
    """Convert a scheduled query rule row into a QueryReference.

    All criteria queries of the rule are joined into one text. The rule
    targets the analyzed workspaces when any of its scopes overlaps one of
    ``workspace_ids`` (lowercased resource IDs).
    """
    criteria = row.get("criteria") or {}
    queries = [item.get("query", "") for item in criteria.get("allOf") or [] if isinstance(item, dict)]
    scopes = row.get("scopes") or []
    return QueryReference(
        displayName=row.get("displayName") or row.get("name", ""),
        queryText="\n".join(q for q in queries if q),
        targetsWorkspace=any(_ids_overlap(scope, workspace_ids) for scope in scopes),
        enabled=row.get("enabled") is not False,
    )


def _tile_query_and_targets(metadata: dict[str, Any], workspace_ids: list[str]) -> tuple[str, bool]:
    query = ""
    targets = False
    for item in metadata.get("inputs") or []:
        name = item.get("name")
        if name in ("resourceIds", "workspaceResourceId", "Scope"):
            value = item.get("value")
            if isinstance(value, dict):
                value = value.get("resourceIds", [])
            resource_ids = value if isinstance(value, list) else [value]
            targets = targets or any(_ids_overlap(rid, workspace_ids) for rid in resource_ids)
        elif name in ("query", "Query"):
            query = item.get("value") or ""

    content = (metadata.get("settings") or {}).get("content") or {}
    if content.get("query") or content.get("Query"):
        query = content.get("query") or content.get("Query")
    if content.get("resourceIds"):
        targets = targets or any(_ids_overlap(rid, workspace_ids) for rid in content["resourceIds"])
    return query, targets


def parse_dashboard_tiles(row: dict[str, Any], workspace_ids: list[str]) -> list[QueryReference]:
    """Convert a dashboard row into one QueryReference per Logs tile.

    Every tile shares the dashboard's display name.
    """
    display_name = row.get("title") or row.get("name", "")
    tiles = []
    for lens in _values(row.get("lenses")):
        for part in _values((lens or {}).get("parts")):
            metadata = (part or {}).get("metadata") or {}
            part_type = metadata.get("type") or ""
            if not any(marker in part_type for marker in LOGS_PART_MARKERS):
                continue
            query, targets = _tile_query_and_targets(metadata, workspace_ids)
            if query:
                tiles.append(QueryReference(displayName=display_name, queryText=query, targetsWorkspace=targets))
    return tiles


class ResourceGraphClient:
    """Wrapper for Azure Resource Graph queries across subscriptions."""

    # Maximum subscriptions per query (Azure limit is 1000)
    MAX_SUBSCRIPTIONS_PER_QUERY = 1000

    def __init__(self, credential: Any | None = None, client: Any | None = None):
        """Initialize Resource Graph client.

        Args:
            credential: Azure credential. Defaults to DefaultAzureCredential.
            client: Preconstructed SDK client, mainly for tests.
        """
        if client is not None:
            self._client = client
        else:
            self.credential = credential or DefaultAzureCredential()
            self._client = AzureResourceGraphClient(self.credential)

    def query(self, query: str, subscription_ids: list[str] | None = None) -> list[dict[str, Any]]:
        """Execute a Resource Graph query, following skip tokens.

        Args:
            query: Resource Graph KQL.
            subscription_ids: Subscriptions to query. None queries all
                accessible subscriptions.

        Returns:
            All result rows as dictionaries.
        """
        rows: list[dict[str, Any]] = []
        skip_token = None
        while True:
            request = QueryRequest(
                query=query,
                subscriptions=subscription_ids,
                options=QueryRequestOptions(result_format="objectArray", skip_token=skip_token),
            )
            response = self._client.resources(request)
            rows.extend(response.data)
            skip_token = response.skip_token
            if not skip_token:
                break
            logger.debug(f"Fetching next page, current count: {len(rows)}")
        return rows

    def query_batched(self, query: str, subscription_ids: list[str] | None) -> list[dict[str, Any]]:
        """Execute a query across many subscriptions in batches of the per-query limit."""
        if not subscription_ids:
            return self.query(query)
        rows = []
        for i in range(0, len(subscription_ids), self.MAX_SUBSCRIPTIONS_PER_QUERY):
            batch = subscription_ids[i : i + self.MAX_SUBSCRIPTIONS_PER_QUERY]
            rows.extend(self.query(query, subscription_ids=batch))
        return rows

    def list_workspaces(
        self,
        subscription_ids: list[str] | None = None,
        workspace_names: list[str] | None = None,
    ) -> list[WorkspaceMetadata]:
        """List Log Analytics workspaces, optionally restricted by name."""
        workspaces = [parse_workspace(row) for row in self.query_batched(WORKSPACES_QUERY, subscription_ids)]
        if workspace_names:
            wanted = {name.lower() for name in workspace_names}
            workspaces = [ws for ws in workspaces if ws.name.lower() in wanted]
        logger.info(f"Found {len(workspaces)} Log Analytics workspaces")
        return workspaces

    def list_alert_rules(
        self,
        workspaces: list[WorkspaceMetadata],
        subscription_ids: list[str] | None = None,
    ) -> list[QueryReference]:
        """List scheduled query rules, flagged by whether they target ``workspaces``."""
        workspace_ids = [ws.resource_id.lower() for ws in workspaces if ws.resource_id]
        rows = self.query_batched(SCHEDULED_QUERY_RULES_QUERY, subscription_ids)
        rules = [parse_alert_rule(row, workspace_ids) for row in rows]
        logger.info(f"Found {len(rules)} scheduled query rules")
        return rules

    def list_dashboard_tiles(
        self,
        workspaces: list[WorkspaceMetadata],
        subscription_ids: list[str] | None = None,
    ) -> list[QueryReference]:
        """List Logs query tiles of portal dashboards, flagged by workspace target."""
        workspace_ids = [ws.resource_id.lower() for ws in workspaces if ws.resource_id]
        tiles = []
        for row in self.query_batched(DASHBOARDS_QUERY, subscription_ids):
            tiles.extend(parse_dashboard_tiles(row, workspace_ids))
        logger.info(f"Found {len(tiles)} dashboard query tiles")
        return tiles
