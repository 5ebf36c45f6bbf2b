#!/usr/bin/env python3
"""Run the Log Analytics cost analysis with optional AI-written recommendations.

The rule engine always runs. With --use-llm, the collected query results
are also sent to an Azure OpenAI deployment, and its card markup replaces
the rule-based text. Any LLM failure falls back to the rule-based cards.

Prerequisites:
    1. Python dependencies installed: `pip install -e .`
    2. Query results collected into a JSON file (AnalysisInput shape), e.g.
       with `scripts/run_live_analysis.py --save-input`
    3. For --use-llm, an Azure OpenAI deployment and the variables below

Environment Variables:
    AZURE_OPENAI_ENDPOINT: Azure OpenAI resource endpoint
    AZURE_OPENAI_KEY: Azure OpenAI API key
    AZURE_OPENAI_DEPLOYMENT: Chat model deployment name
    AZURE_OPENAI_API_VERSION: REST API version (default 2024-02-01)

Usage:
    # Rule-based cards as HTML
    python src/agent/run_agent.py --input results.json

    # AI-written cards as Markdown
    python src/agent/run_agent.py --input results.json --use-llm --format markdown
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import requests

# Add src/functions to path
sys.path.insert(0, str(Path(__file__).parent.parent / "functions"))

from shared.card_markup import parse_cards, serialize_card
from shared.card_renderers import render_html, render_markdown
from shared.models import CardKind, RecommendationCard
from detection_layer.log_analytics_costs import (
    AnalysisInput,
    AnalysisOutput,
    analyze,
    format_analysis_context,
    format_query_results,
)

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-02-01"
OUTPUT_FORMATS = ("html", "markdown", "markup")


def load_system_prompt() -> str:
    """Load the system prompt from file."""
    prompt_path = Path(__file__).parent / "system_prompt.txt"
    with open(prompt_path, encoding="utf-8") as f:
        return f.read()


def build_user_prompt(analysis_input: AnalysisInput, output: AnalysisOutput) -> str:
    """Build the user prompt from the analysis context and raw query results."""
    metadata = {workspace.name: workspace for workspace in analysis_input.workspaces}
    return "\n\n".join(
        [
            "Analyze the following Log Analytics workspace data and write cost optimization "
            "recommendations using the card format.",
            format_analysis_context(output.summary, output.gate_data),
            format_query_results(analysis_input.query_results, metadata),
        ]
    )


def strip_outer_fence(text: str) -> str:
    """Remove a code fence wrapped around the whole response."""
    stripped = text.strip()
    if stripped.startswith("```") and stripped.endswith("```"):
        lines = stripped.splitlines()
        if len(lines) >= 2:
            return "\n".join(lines[1:-1])
    return stripped


def fallback_markup(rule_markup: str, reason: str) -> str:
    """Rule-based markup preceded by a card explaining why the AI text is missing."""
    notice = RecommendationCard(
        kind=CardKind.WARNING,
        title="⚠️ AI Analysis Unavailable",
        body=f"{reason}\n\nShowing rule-based recommendations instead.",
    )
    return serialize_card(notice) + "\n\n" + rule_markup


class RecommendationAgentRunner:
    """Runner that asks an Azure OpenAI deployment for recommendation cards."""

    def __init__(
        self,
        endpoint: str | None = None,
        api_key: str | None = None,
        deployment: str | None = None,
        api_version: str | None = None,
        timeout: int = 120,
    ):
        """Initialize the agent runner.

        Args:
            endpoint: Azure OpenAI endpoint (e.g., https://xxx.openai.azure.com)
            api_key: Azure OpenAI API key
            deployment: Chat model deployment name
            api_version: REST API version
            timeout: Request timeout in seconds
        """
        self.endpoint = endpoint or os.environ.get("AZURE_OPENAI_ENDPOINT")
        self.api_key = api_key or os.environ.get("AZURE_OPENAI_KEY")
        self.deployment = deployment or os.environ.get("AZURE_OPENAI_DEPLOYMENT")
        self.api_version = api_version or os.environ.get("AZURE_OPENAI_API_VERSION", DEFAULT_API_VERSION)
        self.timeout = timeout

        if not self.endpoint or not self.api_key or not self.deployment:
            raise ValueError(
                "AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_KEY and AZURE_OPENAI_DEPLOYMENT "
                "environment variables or parameters required"
            )

    @property
    def url(self) -> str:
        return (
            f"{self.endpoint.rstrip('/')}/openai/deployments/{self.deployment}"
            f"/chat/completions?api-version={self.api_version}"
        )

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send one chat completion request and return the response text.

        Raises:
            requests.RequestException: If the request fails.
            ValueError: If the response has no message content.
        """
        response = requests.post(
            self.url,
            headers={"Content-Type": "application/json", "api-key": self.api_key},
            json={
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": 0.2,
                "max_tokens": 4000,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Unexpected chat completion response: {e}") from e
        if not content or not content.strip():
            raise ValueError("Chat completion returned no content")
        return content

    def generate_markup(self, analysis_input: AnalysisInput, output: AnalysisOutput) -> str:
        """Get AI-written card markup, falling back to the rule-based markup.

        Args:
            analysis_input: The collected input of the analysis.
            output: The rule engine's output for the same input.

        Returns:
            Card markup text.
        """
        try:
            text = self.complete(load_system_prompt(), build_user_prompt(analysis_input, output))
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"AI analysis failed, using rule-based recommendations: {e}")
            return fallback_markup(output.markup, f"The AI service could not be reached: {e}")
        return strip_outer_fence(text)


def render(markup: str, output_format: str) -> str:
    """Parse card markup and render it in the requested format."""
    if output_format == "markup":
        return markup
    cards = parse_cards(markup)
    if output_format == "markdown":
        return render_markdown(cards, heading="Log Analytics Cost Optimization")
    return render_html(cards)


def run(input_path: str, use_llm: bool = False, output_format: str = "html") -> str:
    """Analyze a results file and return the rendered recommendations.

    Args:
        input_path: JSON file holding an AnalysisInput.
        use_llm: Ask Azure OpenAI to write the recommendations.
        output_format: One of html, markdown or markup.

    Returns:
        Rendered recommendations.
    """
    with open(input_path, encoding="utf-8") as f:
        data: dict[str, Any] = json.load(f)
    data.setdefault("executionId", Path(input_path).stem)

    analysis_input = AnalysisInput(**data)
    output = analyze(analysis_input)

    markup = output.markup
    if use_llm:
        markup = RecommendationAgentRunner().generate_markup(analysis_input, output)
    return render(markup, output_format)


def main():
    parser = argparse.ArgumentParser(description="Run the Log Analytics cost analysis")
    parser.add_argument(
        "--input",
        required=True,
        help="JSON file with collected query results",
    )
    parser.add_argument(
        "--use-llm",
        action="store_true",
        help="Write recommendations with Azure OpenAI instead of the rule engine",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="html",
        help="Output format (default: html)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        print(run(args.input, use_llm=args.use_llm, output_format=args.format))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
