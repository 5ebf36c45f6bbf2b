"""Generic cost formatting and roll-up utilities for recommendation cards.

Tier pricing and savings arithmetic for Log Analytics table plans live in
the detection module; this module only deals with displaying amounts and
aggregating them across already-composed cards.
"""

from __future__ import annotations

import re
from typing import Any

from shared.models import CardKind, RecommendationCard

# First dollar figure in free text, e.g. "Save ~$1,234.50/month"
DOLLAR_AMOUNT_PATTERN = re.compile(r"\$([\d,]+(?:\.\d+)?)")


def format_cost(amount: float, currency: str = "USD") -> str:
    """Format a cost amount for display.

    Args:
        amount: Cost amount.
        currency: Currency code (default USD).

    Returns:
        Formatted cost string.
    """
    if currency == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency}"


def format_gb(gb: float, precision: int = 2) -> str:
    """Format a data volume in GB for display."""
    return f"{gb:,.{precision}f} GB"


def extract_dollar_amount(text: str | None) -> float | None:
    """Extract the first dollar amount from free text.

    Args:
        text: Text such as a card impact ("Save ~$41.40/month").

    Returns:
        The amount as a float, or None when the text has no dollar figure.
    """
    if not text:
        return None
    match = DOLLAR_AMOUNT_PATTERN.search(text)
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def calculate_total_savings(cards: list[RecommendationCard]) -> float:
    """Calculate total estimated monthly savings from savings cards.

    The amount is read from each savings card's impact. When the impact
    only carries a percentage, the body is searched instead.

    Args:
        cards: Composed or parsed recommendation cards.

    Returns:
        Total estimated monthly savings in USD.
    """
    total = 0.0
    for card in cards:
        if card.kind != CardKind.SAVINGS:
            continue
        amount = extract_dollar_amount(card.impact)
        if amount is None:
            amount = extract_dollar_amount(card.body)
        total += amount or 0.0
    return round(total, 2)


def summarize_by_kind(cards: list[RecommendationCard]) -> dict[str, int]:
    """Count cards by kind.

    Args:
        cards: Recommendation cards.

    Returns:
        Dictionary mapping card kind value to count.
    """
    counts: dict[str, int] = {}
    for card in cards:
        kind = card.kind.value if hasattr(card.kind, "value") else card.kind
        counts[kind] = counts.get(kind, 0) + 1
    return counts


def build_checklist(cards: list[RecommendationCard]) -> list[dict[str, Any]]:
    """Build action items from savings and warning cards.

    Cards without a title or an action are skipped.

    Args:
        cards: Recommendation cards.

    Returns:
        List of checklist item dictionaries in card order.
    """
    items = []
    for index, card in enumerate(cards):
        if card.kind not in (CardKind.SAVINGS, CardKind.WARNING):
            continue
        if not card.title or not card.action:
            continue
        items.append(
            {
                "id": f"item_{index}",
                "kind": card.kind.value,
                "title": card.title,
                "impact": card.impact or "",
                "description": card.action,
                "completed": False,
            }
        )
    return items
