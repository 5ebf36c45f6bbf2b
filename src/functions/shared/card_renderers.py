"""HTML and Markdown renderers for recommendation cards.

Card bodies use a small Markdown subset: pipe tables, fenced code blocks,
inline code, bold/italic, links, bullet and numbered lists, and headings.
All text is HTML-escaped before any markup is introduced.
"""

from __future__ import annotations

import html
import re

from shared.models import CardKind, RecommendationCard

CARD_ICONS = {
    CardKind.WARNING.value: "⚠️",
    CardKind.SAVINGS.value: "💰",
    CardKind.INFO.value: "ℹ️",
    CardKind.SUCCESS.value: "✅",
}

DEFAULT_CARD_TITLE = "Recommendation"

_FENCE = re.compile(r"^\s*```\s*([\w+-]*)\s*$")
_TABLE_SEPARATOR = re.compile(r"^\s*\|?\s*:?-{2,}:?\s*(\|\s*:?-{2,}:?\s*)*\|?\s*$")
_HEADING = re.compile(r"^\s*(#{1,6})\s+(.+?)\s*#*\s*$")
_BULLET = re.compile(r"^\s*[-*+]\s+(.*)$")
_NUMBERED = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_BOLD_ITALIC = re.compile(r"\*\*\*(.+?)\*\*\*")
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])")
_LINK = re.compile(r"\[([^\]]+)\]\((https?://[^)\s]+)\)", re.IGNORECASE)
_SAFE_URL = re.compile(r"^https?://\S+$", re.IGNORECASE)


def _kind_value(card: RecommendationCard) -> str:
    return card.kind.value if hasattr(card.kind, "value") else str(card.kind)


def card_icon(card: RecommendationCard) -> str:
    return CARD_ICONS.get(_kind_value(card), CARD_ICONS[CardKind.INFO.value])


def is_safe_url(url: str | None) -> bool:
    """Only http and https URLs become links; anything else stays text."""
    return bool(url) and _SAFE_URL.match(url.strip()) is not None


def _format_emphasis(text: str) -> str:
    text = _BOLD_ITALIC.sub(r"<strong><em>\1</em></strong>", text)
    text = _BOLD.sub(r"<strong>\1</strong>", text)
    text = _ITALIC.sub(r"<em>\1</em>", text)
    return _LINK.sub(r'<a href="\2" target="_blank" rel="noopener" class="ai-link">\1</a>', text)


def render_inline(text: str) -> str:
    """Render inline Markdown (code, emphasis, links) to escaped HTML."""
    parts = []
    position = 0
    for match in _INLINE_CODE.finditer(text):
        parts.append(_format_emphasis(html.escape(text[position : match.start()])))
        parts.append(f"<code>{html.escape(match.group(1))}</code>")
        position = match.end()
    parts.append(_format_emphasis(html.escape(text[position:])))
    return "".join(parts)


def _split_row(line: str) -> list[str]:
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


def _render_table(header: str, rows: list[str]) -> str:
    head = "".join(f"<th>{render_inline(cell)}</th>" for cell in _split_row(header))
    body = "".join(
        "<tr>" + "".join(f"<td>{render_inline(cell)}</td>" for cell in _split_row(row)) + "</tr>"
        for row in rows
    )
    return f'<table class="ai-table"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'


def render_body_html(body: str) -> str:
    """Render a card body to HTML.

    Args:
        body: Card body in the supported Markdown subset.

    Returns:
        HTML fragment.
    """
    lines = body.splitlines()
    output: list[str] = []
    list_tag: str | None = None
    i = 0

    def close_list() -> None:
        nonlocal list_tag
        if list_tag:
            output.append(f"</{list_tag}>")
            list_tag = None

    while i < len(lines):
        line = lines[i]

        fence = _FENCE.match(line)
        if fence:
            close_list()
            language = fence.group(1)
            code_lines = []
            i += 1
            while i < len(lines) and not _FENCE.match(lines[i]):
                code_lines.append(lines[i])
                i += 1
            i += 1  # closing fence (or end of body)
            css = f' class="language-{html.escape(language)}"' if language else ""
            output.append(f"<pre><code{css}>{html.escape(chr(10).join(code_lines))}</code></pre>")
            continue

        if (
            line.strip().startswith("|")
            and i + 1 < len(lines)
            and _TABLE_SEPARATOR.match(lines[i + 1])
        ):
            close_list()
            header = line
            rows = []
            i += 2
            while i < len(lines) and lines[i].strip().startswith("|"):
                rows.append(lines[i])
                i += 1
            output.append(_render_table(header, rows))
            continue

        i += 1
        if not line.strip():
            close_list()
            continue

        heading = _HEADING.match(line)
        if heading:
            close_list()
            level = min(len(heading.group(1)) + 2, 6)
            output.append(f"<h{level}>{render_inline(heading.group(2))}</h{level}>")
            continue

        for pattern, tag in ((_BULLET, "ul"), (_NUMBERED, "ol")):
            item = pattern.match(line)
            if item:
                if list_tag != tag:
                    close_list()
                    output.append(f"<{tag}>")
                    list_tag = tag
                output.append(f"<li>{render_inline(item.group(1))}</li>")
                break
        else:
            close_list()
            output.append(f"<p>{render_inline(line.strip())}</p>")

    close_list()
    return "".join(output)


def render_card_html(card: RecommendationCard) -> str:
    """Render a single card to an HTML block."""
    kind = html.escape(_kind_value(card))
    title = html.escape(card.title or DEFAULT_CARD_TITLE)

    parts = [f'<div class="rec-card rec-card-{kind}">', '<div class="rec-card-header">']
    parts.append(f'<span class="rec-card-icon">{card_icon(card)}</span>')
    parts.append(f'<span class="rec-card-title">{title}</span>')
    if card.impact:
        parts.append(f'<span class="rec-card-impact">{html.escape(card.impact)}</span>')
    parts.append("</div>")
    if card.body:
        parts.append(f'<div class="rec-card-body">{render_body_html(card.body)}</div>')
    if card.action:
        parts.append(
            f'<div class="rec-card-action"><strong>📋 Action:</strong> {render_inline(card.action)}</div>'
        )
    if is_safe_url(card.docs_url):
        parts.append(
            f'<div class="rec-card-docs"><a href="{html.escape(card.docs_url.strip())}" '
            f'target="_blank" rel="noopener">📖 Documentation</a></div>'
        )
    elif card.docs_url:
        parts.append(f'<div class="rec-card-docs">📖 Documentation: {html.escape(card.docs_url)}</div>')
    parts.append("</div>")
    return "".join(parts)


def render_html(cards: list[RecommendationCard]) -> str:
    """Render cards to HTML for on-screen display.

    Args:
        cards: Ordered recommendation cards.

    Returns:
        HTML document fragment, one block per card.
    """
    return "\n".join(render_card_html(card) for card in cards)


def render_card_markdown(card: RecommendationCard) -> str:
    """Render a single card to a Markdown section."""
    lines = [f"## {card_icon(card)} {card.title or DEFAULT_CARD_TITLE}", ""]
    if card.impact:
        lines += [f"**{card.impact}**", ""]
    if card.body:
        lines += [card.body, ""]
    if card.action:
        lines += ["### 📋 Action", "", card.action, ""]
    if is_safe_url(card.docs_url):
        lines += [f"📖 [Documentation]({card.docs_url.strip()})", ""]
    elif card.docs_url:
        lines += [f"📖 Documentation: `{card.docs_url}`", ""]
    lines += ["---", ""]
    return "\n".join(lines)


def render_markdown(cards: list[RecommendationCard], heading: str | None = None) -> str:
    """Render cards to Markdown for export.

    Args:
        cards: Ordered recommendation cards.
        heading: Optional document heading, rendered as a level-1 title.

    Returns:
        Markdown document.
    """
    sections = []
    if heading:
        sections.append(f"# {heading}\n\n")
    sections.extend(render_card_markdown(card) + "\n" for card in cards)
    return "".join(sections).rstrip("\n") + "\n" if sections else ""
