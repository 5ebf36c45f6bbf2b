"""Tests for the HTML and Markdown card renderers."""

from __future__ import annotations

from shared.card_renderers import (
    DEFAULT_CARD_TITLE,
    card_icon,
    is_safe_url,
    render_body_html,
    render_card_html,
    render_card_markdown,
    render_html,
    render_inline,
    render_markdown,
)
from shared.card_markup import parse_cards
from shared.models import CardKind, RecommendationCard


def _make_card(**overrides) -> RecommendationCard:
    fields = {
        "kind": CardKind.SAVINGS,
        "title": "💡 Basic Logs Opportunity",
        "impact": "Save ~$27.60/month",
        "body": "- **Perf**: 20.00 GB",
        "action": "Configure Basic Logs",
        "docs_url": "https://learn.microsoft.com/azure/azure-monitor/logs/basic-logs-configure",
    }
    fields.update(overrides)
    return RecommendationCard(**fields)


class TestRenderInline:
    """Tests for inline Markdown rendering."""

    def test_escapes_html(self):
        assert render_inline("a & b <script>") == "a &amp; b &lt;script&gt;"

    def test_bold_and_italic(self):
        assert render_inline("**bold** and *italic*") == "<strong>bold</strong> and <em>italic</em>"

    def test_inline_code_is_escaped_not_formatted(self):
        assert render_inline("run `a < b **x**`") == "run <code>a &lt; b **x**</code>"

    def test_link(self):
        rendered = render_inline("see [the guide](https://example.com/a)")
        assert '<a href="https://example.com/a" target="_blank" rel="noopener" class="ai-link">the guide</a>' in rendered

    def test_dollar_amounts_untouched(self):
        assert render_inline("Save ~$27.60/month") == "Save ~$27.60/month"

    def test_non_http_link_stays_text(self):
        rendered = render_inline("click [here](javascript:fetch(document.cookie))")
        assert "<a " not in rendered
        assert "[here](javascript:fetch(document.cookie))" in rendered

    def test_safe_url(self):
        assert is_safe_url("https://learn.microsoft.com/x")
        assert is_safe_url("HTTP://example.com")
        assert not is_safe_url("javascript:alert(1)")
        assert not is_safe_url("data:text/html,x")
        assert not is_safe_url("https://example.com/a b")
        assert not is_safe_url(None)


class TestRenderBodyHtml:
    """Tests for block-level body rendering."""

    def test_table(self):
        rendered = render_body_html("| Table | Volume |\n|-------|--------|\n| Perf | 20 GB |")
        assert rendered.startswith('<table class="ai-table">')
        assert "<th>Table</th><th>Volume</th>" in rendered
        assert "<tr><td>Perf</td><td>20 GB</td></tr>" in rendered

    def test_pipe_line_without_separator_is_paragraph(self):
        assert render_body_html("| not a table |") == "<p>| not a table |</p>"

    def test_fenced_code(self):
        rendered = render_body_html('```kql\nsource | where SeverityLevel != "Debug"\n```')
        assert rendered == (
            '<pre><code class="language-kql">source | where SeverityLevel != &quot;Debug&quot;</code></pre>'
        )

    def test_unterminated_fence(self):
        rendered = render_body_html("```\nPerf | take 1")
        assert rendered == "<pre><code>Perf | take 1</code></pre>"

    def test_lists(self):
        rendered = render_body_html("- one\n- two\n\n1. first\n2. second")
        assert rendered == "<ul><li>one</li><li>two</li></ul><ol><li>first</li><li>second</li></ol>"

    def test_heading_levels_shift(self):
        assert render_body_html("## Details") == "<h4>Details</h4>"
        assert render_body_html("###### Deep") == "<h6>Deep</h6>"

    def test_paragraphs(self):
        assert render_body_html("first\n\nsecond") == "<p>first</p><p>second</p>"


class TestRenderCardHtml:
    """Tests for card-level HTML."""

    def test_full_card(self):
        rendered = render_card_html(_make_card())
        assert rendered.startswith('<div class="rec-card rec-card-savings">')
        assert '<span class="rec-card-icon">💰</span>' in rendered
        assert '<span class="rec-card-impact">Save ~$27.60/month</span>' in rendered
        assert "<li><strong>Perf</strong>: 20.00 GB</li>" in rendered
        assert "📋 Action:</strong> Configure Basic Logs" in rendered
        assert 'href="https://learn.microsoft.com/azure/azure-monitor/logs/basic-logs-configure"' in rendered

    def test_title_is_escaped(self):
        rendered = render_card_html(_make_card(title="<img src=x onerror=alert(1)>"))
        assert "<img" not in rendered
        assert "&lt;img src=x onerror=alert(1)&gt;" in rendered

    def test_optional_sections_omitted(self):
        rendered = render_card_html(RecommendationCard(kind=CardKind.INFO, title="Only title"))
        assert "rec-card-impact" not in rendered
        assert "rec-card-body" not in rendered
        assert "rec-card-action" not in rendered
        assert "rec-card-docs" not in rendered

    def test_missing_title_uses_default(self):
        rendered = render_card_html(RecommendationCard(kind=CardKind.INFO, body="text"))
        assert DEFAULT_CARD_TITLE in rendered

    def test_render_html_one_block_per_card(self):
        rendered = render_html([_make_card(), _make_card(kind=CardKind.WARNING)])
        assert rendered.count('<div class="rec-card ') == 2

    def test_unsafe_docs_url_is_not_linked(self):
        markup = (
            "[CARD:info][TITLE]X[/TITLE]\nSee [here](javascript:fetch(1)).\n"
            "[DOCS]javascript:alert(document.domain)[/DOCS][/CARD]"
        )
        rendered = render_html(parse_cards(markup))
        assert "href" not in rendered
        assert "javascript:" in rendered
        assert "📖 Documentation: javascript:alert(document.domain)" in rendered

    def test_icons(self):
        assert card_icon(_make_card(kind=CardKind.WARNING)) == "⚠️"
        assert card_icon(_make_card(kind=CardKind.INFO)) == "ℹ️"
        assert card_icon(_make_card(kind=CardKind.SUCCESS)) == "✅"


class TestRenderMarkdown:
    """Tests for Markdown export."""

    def test_card_section(self):
        rendered = render_card_markdown(_make_card())
        assert rendered.startswith("## 💰 💡 Basic Logs Opportunity\n")
        assert "**Save ~$27.60/month**" in rendered
        assert "### 📋 Action\n\nConfigure Basic Logs" in rendered
        assert "📖 [Documentation](https://learn.microsoft.com/" in rendered
        assert rendered.rstrip().endswith("---")

    def test_document_heading(self):
        rendered = render_markdown([_make_card()], heading="Log Analytics Cost Optimization")
        assert rendered.startswith("# Log Analytics Cost Optimization\n\n## 💰")
        assert rendered.endswith("---\n")

    def test_empty(self):
        assert render_markdown([]) == ""

    def test_unsafe_docs_url_is_not_linked(self):
        rendered = render_card_markdown(_make_card(docs_url="javascript:alert(1)"))
        assert "](javascript:" not in rendered
        assert "📖 Documentation: `javascript:alert(1)`" in rendered

    def test_body_kept_verbatim(self):
        body = "| A | B |\n|---|---|\n| 1 | 2 |"
        assert body in render_markdown([_make_card(body=body)])
