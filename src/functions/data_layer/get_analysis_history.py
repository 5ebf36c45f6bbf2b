"""Get analysis history function.

Retrieves the most recent analyses from the analysis-history container in
Cosmos DB.
"""

from __future__ import annotations

import logging
from typing import Any

from shared import CosmosClient

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


def get_analysis_history(limit: int = DEFAULT_HISTORY_LIMIT) -> dict[str, Any]:
    """Get recent analyses, newest first.

    Args:
        limit: Maximum number of analyses to return (default 10).

    Returns:
        Dictionary with:
            - analyses: List of history records
            - count: Number of records returned
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")

    logger.info(f"Getting analysis history, limit={limit}")

    client = CosmosClient()
    analyses = client.get_recent_analyses(limit=limit)

    logger.info(f"Found {len(analyses)} analyses")

    return {
        "analyses": analyses,
        "count": len(analyses),
    }


def delete_analysis(analysis_id: str) -> dict[str, Any]:
    """Delete an analysis from history.

    Args:
        analysis_id: ID of the history record.

    Returns:
        Dictionary with the ID and whether a record was deleted.
    """
    logger.info(f"Deleting analysis {analysis_id}")
    client = CosmosClient()
    return {"id": analysis_id, "deleted": client.delete_analysis(analysis_id)}
