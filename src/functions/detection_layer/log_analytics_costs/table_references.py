"""Table reference extraction from KQL query text.

Finds identifiers that a query reads from, so alert rules and dashboard
tiles can block plan downgrades of the tables they depend on. This is not
a KQL parser: a handful of independent lexical recognizers each propose
candidates, and a shared filter drops keywords and non-table identifiers.
Over-inclusion is accepted; a false positive only keeps a table on the
Analytics plan, while a false negative could break a live alert.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator

from shared.models import QueryReference
from detection_layer.log_analytics_costs.models import GateData

logger = logging.getLogger(__name__)

# Query-language words that the recognizers can capture but are never tables
KQL_KEYWORDS = frozenset(
    {
        "where", "project", "summarize", "extend", "join", "take", "top", "limit",
        "order", "sort", "distinct", "count", "let", "set", "print", "render",
        "ago", "now", "datetime", "timespan", "true", "false", "null", "and", "or", "not",
    }
)

TABLE_NAME_PATTERN = re.compile(r"^[A-Z][a-zA-Z0-9_]+$")
MIN_TABLE_NAME_LENGTH = 3


class TableReferencePattern:
    """A named recognizer proposing table names from query text.

    Each match of ``regex`` contributes its first group, split on commas so
    that list forms (``union A, B``) yield every member.
    """

    def __init__(self, name: str, regex: str, flags: int = re.IGNORECASE):
        self.name = name
        self.regex = re.compile(regex, flags)

    def find(self, query_text: str) -> Iterator[str]:
        for match in self.regex.finditer(query_text):
            for candidate in match.group(1).split(","):
                candidate = candidate.strip()
                if candidate:
                    yield candidate

    def __repr__(self) -> str:
        return f"TableReferencePattern({self.name!r})"


TABLE_REFERENCE_PATTERNS: tuple[TableReferencePattern, ...] = (
    # Identifier at the start of a line or after a pipe, followed by a pipe,
    # end of line, or a tabular operator
    TableReferencePattern(
        "leading_identifier",
        r"(?:^|\|)\s*([A-Z][a-zA-Z0-9_]+)\s*(?:\||$|where|project|summarize|extend|join|take"
        r"|top|limit|order|sort|distinct|count|mv-expand|parse|evaluate)",
        re.IGNORECASE | re.MULTILINE,
    ),
    TableReferencePattern(
        "union",
        r"union\s+(?:kind\s*=\s*\w+\s+)?([A-Z][a-zA-Z0-9_]+(?:\s*,\s*[A-Z][a-zA-Z0-9_]+)*)",
    ),
    TableReferencePattern(
        "table_function",
        r"table\s*\(\s*[\"']?([A-Z][a-zA-Z0-9_]+)[\"']?\s*\)",
    ),
    TableReferencePattern(
        "join",
        r"join\s+(?:kind\s*=\s*\w+\s+)?([A-Z][a-zA-Z0-9_]+)",
    ),
)


def is_table_name(candidate: str) -> bool:
    """Check whether a proposed identifier can be a table name.

    Rejects query keywords, names shorter than three characters and names
    not starting with an uppercase letter.
    """
    return (
        len(candidate) >= MIN_TABLE_NAME_LENGTH
        and candidate.lower() not in KQL_KEYWORDS
        and TABLE_NAME_PATTERN.match(candidate) is not None
    )


def extract_table_names(
    query_text: str | None,
    patterns: Iterable[TableReferencePattern] = TABLE_REFERENCE_PATTERNS,
) -> set[str]:
    """Extract the tables a KQL query reads from.

    Never raises; empty or unrecognizable text yields an empty set.

    Args:
        query_text: KQL source text.
        patterns: Recognizers to apply. Defaults to the built-in set.

    Returns:
        Distinct table names.
    """
    if not query_text:
        return set()

    tables: set[str] = set()
    for pattern in patterns:
        for candidate in pattern.find(query_text):
            if is_table_name(candidate):
                tables.add(candidate)
    return tables


def _index_references(references: Iterable[QueryReference]) -> tuple[dict[str, list[str]], list[str]]:
    """Map table name to referencing display names, for references in scope.

    Returns:
        Tuple of (table -> display names, display names of references that
        contributed at least one table).
    """
    by_table: dict[str, list[str]] = {}
    contributing: list[str] = []
    for reference in references:
        if not reference.targets_workspace:
            continue
        tables = extract_table_names(reference.query_text)
        if not tables:
            continue
        contributing.append(reference.display_name)
        for table in sorted(tables):
            names = by_table.setdefault(table, [])
            if reference.display_name not in names:
                names.append(reference.display_name)
    return by_table, contributing


def build_gate_data(
    alert_rules: Iterable[QueryReference],
    dashboard_tiles: Iterable[QueryReference],
) -> GateData:
    """Build the alert and dashboard reference sets for one run.

    Only references that target an analyzed workspace count. Disabled alert
    rules still block downgrades but are not counted as active.

    Args:
        alert_rules: Scheduled query rule texts.
        dashboard_tiles: Dashboard tile texts, one per tile; tiles of the
            same dashboard share a display name.

    Returns:
        GateData with table -> names maps and counts.
    """
    alert_rules = list(alert_rules)
    alert_tables, contributing_alerts = _index_references(alert_rules)
    dashboard_tables, contributing_tiles = _index_references(dashboard_tiles)

    contributing = set(contributing_alerts)
    active_rules = [
        rule.display_name
        for rule in alert_rules
        if rule.enabled and rule.targets_workspace and rule.display_name in contributing
    ]

    logger.info(
        f"Reference extraction: {len(alert_tables)} tables in {len(contributing_alerts)} alert rules, "
        f"{len(dashboard_tables)} tables in {len(set(contributing_tiles))} dashboards"
    )

    return GateData(
        alertTables=alert_tables,
        dashboardTables=dashboard_tables,
        activeAlertCount=len(active_rules),
        activeAlertNames=sorted(set(active_rules)),
        dashboardCount=len(set(contributing_tiles)),
    )
