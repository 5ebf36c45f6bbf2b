"""Pydantic models for the Log Analytics cost optimizer data contracts."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class CardKind(str, Enum):
    """Kind of recommendation card, drives ordering and styling."""

    SAVINGS = "savings"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class QueryResultTable(BaseModel):
    """Tabular result of one workspace query.

    Rows are aligned positionally with ``columns``. A result that failed to
    execute carries ``error``; a result whose source table is on the Basic
    Logs plan (and therefore could not be queried) sets ``basicLogsTable``.
    """

    columns: list[str] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)
    error: str | None = None
    basic_logs_table: bool = Field(False, alias="basicLogsTable")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("columns")
    @classmethod
    def _columns_unique(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError(f"Duplicate column names in query result: {value}")
        return value

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def column_index(self, name: str, default: int) -> int:
        """Resolve a column position by name.

        Falls back to ``default`` when the column is absent. The fallback
        keeps older result shapes working but will silently read the wrong
        column if the upstream column order ever changes.

        Args:
            name: Column name to look up.
            default: Positional index used when the column is missing.

        Returns:
            Index into each row.
        """
        if name in self.columns:
            return self.columns.index(name)
        if self.rows:
            logger.warning(
                f"Column '{name}' missing from query result (columns={self.columns}), "
                f"falling back to index {default}"
            )
        return default

    def cell(self, row: list[Any], name: str, default_index: int) -> Any:
        """Read a cell by column name, returning None when the row is too short."""
        index = self.column_index(name, default_index)
        if 0 <= index < len(row):
            return row[index]
        return None


class WorkspaceMetadata(BaseModel):
    """Log Analytics workspace attributes needed for grouping and reporting."""

    name: str
    resource_group: str = Field("Unknown", alias="resourceGroup")
    retention_days: int | None = Field(None, ge=0, alias="retentionDays")
    sku_tier: str | None = Field(None, alias="skuTier")
    resource_id: str | None = Field(None, alias="resourceId")
    customer_id: str | None = Field(None, alias="customerId")

    class Config:
        populate_by_name = True


class QueryReference(BaseModel):
    """Query text owned by an alert rule or a dashboard tile."""

    display_name: str = Field(..., alias="displayName")
    query_text: str = Field("", alias="queryText")
    targets_workspace: bool = Field(True, alias="targetsWorkspace")
    enabled: bool = True

    class Config:
        populate_by_name = True


class RecommendationCard(BaseModel):
    """A single recommendation, the unit of the card markup.

    Text fields are stripped on construction so that a card survives a
    serialize/parse round trip unchanged. Empty optional fields become None.
    """

    kind: CardKind = CardKind.INFO
    title: str = ""
    impact: str | None = None
    body: str = ""
    action: str | None = None
    docs_url: str | None = Field(None, alias="docsUrl")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("title", "body", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("impact", "action", "docs_url", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value
