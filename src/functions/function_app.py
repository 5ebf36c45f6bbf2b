"""Azure Functions entry point for the Log Analytics cost optimizer.

This module provides HTTP-triggered Azure Functions for:
- Analysis: Log Analytics table plan and commitment tier recommendations
- Rendering: Card markup to HTML and Markdown
- Data Layer: Analysis history in Cosmos DB
"""

from __future__ import annotations

import json
import logging

import azure.functions as func
from pydantic import ValidationError

from data_layer.save_analysis import save_analysis
from data_layer.get_analysis_history import delete_analysis, get_analysis_history
from detection_layer.log_analytics_costs import analyze_from_dict, collect_analysis_input
from shared.card_markup import parse_cards
from shared.card_renderers import render_html, render_markdown
from shared.cost_calculator import build_checklist, calculate_total_savings

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)
logger = logging.getLogger(__name__)

RENDER_FORMATS = ("html", "markdown", "both")


def _bad_request(message: str) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps({"error": message}),
        mimetype="application/json",
        status_code=400,
    )


# =============================================================================
# Analysis Endpoints
# =============================================================================


@app.route(route="log-analytics-costs", methods=["POST"])
def log_analytics_costs_handler(req: func.HttpRequest) -> func.HttpResponse:
    """Run the Log Analytics cost analysis.

    Analyzes ``queryResults`` from the body when present. Otherwise the
    inputs are collected from Azure for ``subscriptionIds`` (and optional
    ``workspaceNames``) first.
    """
    try:
        body = req.get_json()
    except ValueError:
        return func.HttpResponse(
            json.dumps({"error": "Invalid JSON body"}),
            mimetype="application/json",
            status_code=400,
        )
    if not isinstance(body, dict):
        return _bad_request("JSON body must be an object")

    try:
        execution_id = body.get("executionId")
        if not execution_id or ("queryResults" not in body and not body.get("subscriptionIds")):
            return func.HttpResponse(
                json.dumps({"error": "executionId and either queryResults or subscriptionIds are required"}),
                mimetype="application/json",
                status_code=400,
            )

        if "queryResults" not in body:
            analysis_input = collect_analysis_input(
                execution_id=execution_id,
                subscription_ids=body.get("subscriptionIds"),
                workspace_names=body.get("workspaceNames"),
                configuration=body.get("configuration"),
                render_formats=body.get("renderFormats"),
                dry_run=bool(body.get("dryRun", False)),
            )
            body = analysis_input.model_dump(by_alias=True)

        result = analyze_from_dict(body)
        return func.HttpResponse(
            json.dumps(result, default=str),
            mimetype="application/json",
            status_code=200,
        )
    except (ValidationError, ValueError) as e:
        logger.warning(f"Invalid analysis request: {e}")
        return _bad_request(str(e))
    except Exception as e:
        logger.exception("Error running Log Analytics cost analysis")
        return func.HttpResponse(
            json.dumps({"error": str(e)}),
            mimetype="application/json",
            status_code=500,
        )


@app.route(route="render-cards", methods=["POST"])
def render_cards_handler(req: func.HttpRequest) -> func.HttpResponse:
    """Parse card markup (rule-based or AI-written) and render it."""
    try:
        body = req.get_json()
    except ValueError:
        return func.HttpResponse(
            json.dumps({"error": "Invalid JSON body"}),
            mimetype="application/json",
            status_code=400,
        )
    if not isinstance(body, dict):
        return _bad_request("JSON body must be an object")

    markup = body.get("markup")
    render_format = body.get("format", "html")
    if not isinstance(markup, str) or render_format not in RENDER_FORMATS:
        return func.HttpResponse(
            json.dumps({"error": "markup is required and format must be html, markdown or both"}),
            mimetype="application/json",
            status_code=400,
        )

    try:
        cards = parse_cards(markup)
        result = {
            "cards": [card.model_dump(by_alias=True) for card in cards],
            "totalEstimatedMonthlySavings": calculate_total_savings(cards),
            "checklist": build_checklist(cards),
        }
        if render_format in ("html", "both"):
            result["html"] = render_html(cards)
        if render_format in ("markdown", "both"):
            result["markdown"] = render_markdown(cards)
        return func.HttpResponse(
            json.dumps(result, default=str),
            mimetype="application/json",
            status_code=200,
        )
    except Exception as e:
        logger.exception("Error rendering cards")
        return func.HttpResponse(
            json.dumps({"error": str(e)}),
            mimetype="application/json",
            status_code=500,
        )


# =============================================================================
# Data Layer Endpoints
# =============================================================================


@app.route(route="save-analysis", methods=["POST"])
def save_analysis_handler(req: func.HttpRequest) -> func.HttpResponse:
    """Save an analysis to the analysis-history container."""
    try:
        body = req.get_json()
    except ValueError:
        return func.HttpResponse(
            json.dumps({"error": "Invalid JSON body"}),
            mimetype="application/json",
            status_code=400,
        )
    if not isinstance(body, dict):
        return _bad_request("JSON body must be an object")

    try:
        analysis = body.get("analysis")
        if not isinstance(analysis, dict) or not analysis.get("executionId"):
            return func.HttpResponse(
                json.dumps({"error": "analysis with an executionId is required"}),
                mimetype="application/json",
                status_code=400,
            )

        result = save_analysis(analysis=analysis, subscription_ids=body.get("subscriptionIds"))
        return func.HttpResponse(
            json.dumps(result, default=str),
            mimetype="application/json",
            status_code=200,
        )
    except Exception as e:
        logger.exception("Error saving analysis")
        return func.HttpResponse(
            json.dumps({"error": str(e)}),
            mimetype="application/json",
            status_code=500,
        )


@app.route(route="get-analysis-history", methods=["GET"])
def get_analysis_history_handler(req: func.HttpRequest) -> func.HttpResponse:
    """Get the most recent analyses."""
    try:
        limit = int(req.params.get("limit", "10"))
        if limit < 1:
            raise ValueError
    except ValueError:
        return func.HttpResponse(
            json.dumps({"error": "limit must be a positive integer"}),
            mimetype="application/json",
            status_code=400,
        )

    try:
        result = get_analysis_history(limit=limit)
        return func.HttpResponse(
            json.dumps(result, default=str),
            mimetype="application/json",
            status_code=200,
        )
    except Exception as e:
        logger.exception("Error getting analysis history")
        return func.HttpResponse(
            json.dumps({"error": str(e)}),
            mimetype="application/json",
            status_code=500,
        )


@app.route(route="delete-analysis", methods=["DELETE"])
def delete_analysis_handler(req: func.HttpRequest) -> func.HttpResponse:
    """Delete an analysis from history."""
    analysis_id = req.params.get("id")
    if not analysis_id:
        return func.HttpResponse(
            json.dumps({"error": "id is required"}),
            mimetype="application/json",
            status_code=400,
        )

    try:
        result = delete_analysis(analysis_id)
        return func.HttpResponse(
            json.dumps(result, default=str),
            mimetype="application/json",
            status_code=200 if result["deleted"] else 404,
        )
    except Exception as e:
        logger.exception("Error deleting analysis")
        return func.HttpResponse(
            json.dumps({"error": str(e)}),
            mimetype="application/json",
            status_code=500,
        )


# =============================================================================
# Health Check
# =============================================================================


@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint."""
    return func.HttpResponse(
        json.dumps({"status": "healthy", "service": "log-analytics-cost-optimizer"}),
        mimetype="application/json",
        status_code=200,
    )
