"""Shared library for the Log Analytics cost optimizer functions."""

from shared.models import (
    CardKind,
    QueryReference,
    QueryResultTable,
    RecommendationCard,
    WorkspaceMetadata,
)
from shared.cosmos_client import CosmosClient
from shared.log_analytics import LogAnalyticsClient
from shared.resource_graph import ResourceGraphClient
from shared.card_markup import (
    parse_cards,
    serialize_card,
    serialize_cards,
)
from shared.card_renderers import (
    render_html,
    render_markdown,
)
from shared.cost_calculator import (
    build_checklist,
    calculate_total_savings,
    extract_dollar_amount,
    format_cost,
    format_gb,
    summarize_by_kind,
)

__all__ = [
    # Models
    "CardKind",
    "QueryReference",
    "QueryResultTable",
    "RecommendationCard",
    "WorkspaceMetadata",
    # Clients
    "CosmosClient",
    "LogAnalyticsClient",
    "ResourceGraphClient",
    # Card markup
    "parse_cards",
    "serialize_card",
    "serialize_cards",
    "render_html",
    "render_markdown",
    # Cost utilities
    "build_checklist",
    "calculate_total_savings",
    "extract_dollar_amount",
    "format_cost",
    "format_gb",
    "summarize_by_kind",
]
