"""Card markup serialization and tolerant parsing.

Recommendations travel as tagged text::

    [CARD:savings]
    [TITLE]Basic Logs Opportunity[/TITLE]
    [IMPACT]Save ~$27.60/month[/IMPACT]
    Body text with a Markdown subset (tables, code, emphasis, links).
    [ACTION]Configure Basic Logs for these tables[/ACTION]
    [DOCS]https://learn.microsoft.com/...[/DOCS]
    [/CARD]

The same text is produced by the rule engine and, optionally, by an LLM
that does not always follow the format. Parsing is therefore split into a
tokenizer (OPEN_TAG / CONTENT / CLOSE_TAG) and a builder that recovers from
missing or misplaced tags instead of raising.

Tag-like text inside fields or the body (for example a link written as
``[Docs](url)``) is escaped with a backslash on serialization, so parsing
the serialized form always yields the original cards.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import NamedTuple

from shared.models import CardKind, RecommendationCard

logger = logging.getLogger(__name__)

CARD_TAG = "CARD"
FIELD_TAGS = ("TITLE", "IMPACT", "ACTION", "DOCS")

# Tag names are matched case-insensitively; anything else in brackets
# (Markdown links, checkboxes) is plain content. A tag preceded by a
# backslash is literal text.
_TAG_BODY = r"\[(?P<close>/)?(?P<name>CARD|TITLE|IMPACT|ACTION|DOCS)(?::(?P<arg>[^\]\s]*))?\]"
TAG_PATTERN = re.compile(r"(?<!\\)" + _TAG_BODY, re.IGNORECASE)

# Tag-like text with its run of leading backslashes. Serializing adds one
# backslash to every such run and parsing removes one, so any text survives.
_ESCAPABLE = re.compile(r"(?P<slashes>\\*)(?P<tag>" + _TAG_BODY + ")", re.IGNORECASE)

DEFAULT_TITLE = "Analysis Results"
NOTES_TITLE = "Notes"


class TokenType(str, Enum):
    """Lexical token produced by the markup tokenizer."""

    OPEN_TAG = "open_tag"
    CONTENT = "content"
    CLOSE_TAG = "close_tag"


class Token(NamedTuple):
    """A markup token. ``name`` is the upper-cased tag name for tags."""

    type: TokenType
    value: str
    name: str | None = None
    position: int = 0


def escape_text(text: str) -> str:
    """Escape tag-like text (e.g. a [Docs](url) link) so it parses as content."""
    return _ESCAPABLE.sub(lambda match: "\\" + match.group(0), text)


def unescape_text(text: str) -> str:
    """Reverse escape_text."""
    return _ESCAPABLE.sub(lambda match: match.group("slashes")[1:] + match.group("tag"), text)


def _field(tag: str, value: str) -> str:
    return f"[{tag}]{escape_text(value)}[/{tag}]"


def serialize_card(card: RecommendationCard) -> str:
    """Serialize one card to tagged text. Tag-like content is escaped."""
    kind = card.kind.value if hasattr(card.kind, "value") else card.kind
    lines = [f"[CARD:{kind}]", _field("TITLE", card.title)]
    if card.impact:
        lines.append(_field("IMPACT", card.impact))
    if card.body:
        lines.append("")
        lines.append(escape_text(card.body))
        lines.append("")
    if card.action:
        lines.append(_field("ACTION", card.action))
    if card.docs_url:
        lines.append(_field("DOCS", card.docs_url))
    lines.append("[/CARD]")
    return "\n".join(lines)


def serialize_cards(cards: list[RecommendationCard]) -> str:
    """Serialize cards to tagged text, one blank line between cards.

    Args:
        cards: Ordered recommendation cards.

    Returns:
        Card markup text.
    """
    return "\n\n".join(serialize_card(card) for card in cards)


def tokenize(text: str | None) -> list[Token]:
    """Split markup text into tag and content tokens.

    Args:
        text: Raw markup text.

    Returns:
        Tokens in source order. Content between two adjacent tags is
        omitted when empty.
    """
    tokens: list[Token] = []
    if not text:
        return tokens

    position = 0
    for match in TAG_PATTERN.finditer(text):
        if match.start() > position:
            content = unescape_text(text[position : match.start()])
            tokens.append(Token(TokenType.CONTENT, content, None, position))
        name = match.group("name").upper()
        if match.group("close"):
            tokens.append(Token(TokenType.CLOSE_TAG, "", name, match.start()))
        else:
            tokens.append(Token(TokenType.OPEN_TAG, match.group("arg") or "", name, match.start()))
        position = match.end()

    if position < len(text):
        tokens.append(Token(TokenType.CONTENT, unescape_text(text[position:]), None, position))
    return tokens


def parse_card_kind(value: str | None) -> CardKind:
    """Map a kind argument to a CardKind, defaulting to info."""
    try:
        return CardKind((value or "").strip().lower())
    except ValueError:
        logger.warning(f"Unknown card kind '{value}', treating as info")
        return CardKind.INFO


class _CardBuilder:
    """State machine assembling cards from a token stream.

    States: outside any card, inside a card body, inside a field of a card.
    Every missing close tag is implied by the next structural tag or the
    end of input.
    """

    def __init__(self, stray_title: str) -> None:
        self.cards: list[RecommendationCard] = []
        self._stray_title = stray_title
        self._stray: list[str] = []
        self._current: dict[str, object] | None = None
        self._body: list[str] = []
        self._field: str | None = None
        self._field_text: list[str] = []

    def feed(self, token: Token) -> None:
        if token.type == TokenType.CONTENT:
            self._on_content(token.value)
        elif token.type == TokenType.OPEN_TAG:
            self._on_open(token)
        else:
            self._on_close(token)

    def finish(self) -> list[RecommendationCard]:
        self._close_card()
        self._flush_stray()
        return self.cards

    def _on_content(self, value: str) -> None:
        if self._field is not None:
            self._field_text.append(value)
        elif self._current is not None:
            self._body.append(value)
        else:
            self._stray.append(value)

    def _on_open(self, token: Token) -> None:
        if token.name == CARD_TAG:
            self._close_card()
            self._flush_stray()
            self._start_card(parse_card_kind(token.value))
            return

        if self._current is None:
            # Field tag outside a card opens an implicit info card
            self._flush_stray()
            self._start_card(CardKind.INFO)
        self._close_field()
        self._field = token.name

    def _on_close(self, token: Token) -> None:
        if token.name == CARD_TAG:
            if self._current is None:
                logger.debug(f"Ignoring stray [/CARD] at position {token.position}")
                return
            self._close_card()
        elif self._field is not None:
            if token.name != self._field:
                logger.debug(
                    f"Mismatched [/{token.name}] closes [{self._field}] at position {token.position}"
                )
            self._close_field()
        else:
            logger.debug(f"Ignoring stray [/{token.name}] at position {token.position}")

    def _start_card(self, kind: CardKind) -> None:
        self._current = {"kind": kind}
        self._body = []

    def _close_field(self) -> None:
        if self._field is None or self._current is None:
            self._field = None
            return
        key = "docs_url" if self._field == "DOCS" else self._field.lower()
        value = "".join(self._field_text).strip()
        # First occurrence wins for a repeated field
        if value and not self._current.get(key):
            self._current[key] = value
        self._field = None
        self._field_text = []

    def _close_card(self) -> None:
        if self._current is None:
            return
        self._close_field()
        fields = dict(self._current)
        fields["body"] = "".join(self._body).strip()
        self.cards.append(RecommendationCard(**fields))
        self._current = None
        self._body = []

    def _flush_stray(self) -> None:
        text = "".join(self._stray).strip()
        self._stray = []
        if not text:
            return
        logger.debug(
            f"Wrapping {len(text)} characters of untagged text into '{self._stray_title}' card"
        )
        self.cards.append(RecommendationCard(kind=CardKind.INFO, title=self._stray_title, body=text))


def parse_cards(text: str | None) -> list[RecommendationCard]:
    """Parse card markup into recommendation cards.

    Never raises on malformed input. Text with no card tags at all becomes a
    single info card titled "Analysis Results"; untagged text between cards
    becomes an info card titled "Notes"; unknown kinds become info.

    Args:
        text: Card markup text, possibly hand-written or LLM-generated.

    Returns:
        Cards in source order. Empty input yields an empty list.
    """
    tokens = tokenize(text)
    has_tags = any(token.type != TokenType.CONTENT for token in tokens)

    builder = _CardBuilder(stray_title=NOTES_TITLE if has_tags else DEFAULT_TITLE)
    for token in tokens:
        builder.feed(token)
    cards = builder.finish()

    logger.debug(f"Parsed {len(cards)} cards from {len(text or '')} characters of markup")
    return cards
