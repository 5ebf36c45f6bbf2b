"""Cosmos DB client wrapper with managed identity authentication."""

from __future__ import annotations

import os
from typing import Any

from azure.cosmos import CosmosClient as AzureCosmosClient
from azure.cosmos.exceptions import CosmosResourceNotFoundError
from azure.identity import DefaultAzureCredential


class CosmosClient:
    """Wrapper for Azure Cosmos DB operations using managed identity."""

    # Container names
    ANALYSIS_HISTORY = "analysis-history"

    def __init__(
        self,
        endpoint: str | None = None,
        database_name: str | None = None,
        credential: Any | None = None,
    ):
        """Initialize Cosmos DB client.

        Args:
            endpoint: Cosmos DB endpoint URL. Defaults to COSMOS_ENDPOINT env var.
            database_name: Database name. Defaults to COSMOS_DATABASE env var.
            credential: Azure credential. Defaults to DefaultAzureCredential.
        """
        self.endpoint = endpoint or os.environ.get("COSMOS_ENDPOINT")
        self.database_name = database_name or os.environ.get("COSMOS_DATABASE", "log-analytics-optimizer")

        if not self.endpoint:
            raise ValueError("COSMOS_ENDPOINT environment variable or endpoint parameter required")

        self.credential = credential or DefaultAzureCredential()
        self._client = AzureCosmosClient(self.endpoint, credential=self.credential)
        self._database = self._client.get_database_client(self.database_name)

    def _get_container(self, container_name: str):
        """Get a container client."""
        return self._database.get_container_client(container_name)

    # Analysis history operations, partitioned by record id
    def save_analysis(self, record: dict[str, Any]) -> dict[str, Any]:
        """Create or replace an analysis history record."""
        container = self._get_container(self.ANALYSIS_HISTORY)
        return container.upsert_item(record)

    def get_recent_analyses(self, limit: int = 10) -> list[dict[str, Any]]:
        """Get the most recent analysis records, newest first."""
        container = self._get_container(self.ANALYSIS_HISTORY)
        query = """
            SELECT * FROM c
            ORDER BY c.timestamp DESC
            OFFSET 0 LIMIT @limit
        """
        parameters = [{"name": "@limit", "value": limit}]
        return list(
            container.query_items(query, parameters=parameters, enable_cross_partition_query=True)
        )

    def get_analysis(self, analysis_id: str) -> dict[str, Any] | None:
        """Get an analysis record by ID."""
        container = self._get_container(self.ANALYSIS_HISTORY)
        try:
            return container.read_item(item=analysis_id, partition_key=analysis_id)
        except CosmosResourceNotFoundError:
            return None

    def delete_analysis(self, analysis_id: str) -> bool:
        """Delete an analysis record. Returns False if it did not exist."""
        container = self._get_container(self.ANALYSIS_HISTORY)
        try:
            container.delete_item(item=analysis_id, partition_key=analysis_id)
        except CosmosResourceNotFoundError:
            return False
        return True
