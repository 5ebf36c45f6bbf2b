"""Save analysis function.

Stores a trimmed record of a completed analysis in the analysis-history
container in Cosmos DB, so recent runs can be listed and repeated.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from shared import CosmosClient

logger = logging.getLogger(__name__)

# History records expire after 90 days
HISTORY_TTL_SECONDS = 90 * 24 * 60 * 60


def build_history_record(
    analysis: dict[str, Any],
    subscription_ids: list[str] | None = None,
) -> dict[str, Any]:
    """Build a history record from an analysis output dictionary.

    Only the fields needed to list and re-run an analysis are kept; cards
    and raw results are dropped.

    Args:
        analysis: AnalysisOutput dumped by alias.
        subscription_ids: Subscriptions the analysis covered.

    Returns:
        Record ready for upsert.
    """
    summary = analysis.get("summary") or {}
    workspaces = summary.get("workspaces") or []
    resource_groups = summary.get("resourceGroups") or []

    return {
        "id": str(uuid.uuid4()),
        "executionId": analysis.get("executionId"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "workspaceNames": [ws.get("workspaceName") for ws in workspaces],
        "workspaceCount": len(workspaces),
        "resourceGroups": [rg.get("name") for rg in resource_groups],
        "totalGB": summary.get("totalIngestionGB", 0.0),
        "totalEstimatedMonthlySavings": analysis.get("totalEstimatedMonthlySavings", 0.0),
        "cardsByKind": analysis.get("cardsByKind") or {},
        "subscriptionIds": subscription_ids or [],
        "ttl": HISTORY_TTL_SECONDS,
    }


def save_analysis(
    analysis: dict[str, Any],
    subscription_ids: list[str] | None = None,
) -> dict[str, Any]:
    """Save an analysis to the analysis-history container.

    Args:
        analysis: AnalysisOutput dumped by alias.
        subscription_ids: Subscriptions the analysis covered.

    Returns:
        Dictionary with:
            - saved: True when the record was written
            - id: ID of the history record
            - executionId: The analysis execution ID
    """
    record = build_history_record(analysis, subscription_ids)
    logger.info(
        f"Saving analysis history for execution={record['executionId']}, "
        f"workspaces={record['workspaceCount']}"
    )

    client = CosmosClient()
    client.save_analysis(record)

    return {
        "saved": True,
        "id": record["id"],
        "executionId": record["executionId"],
    }
