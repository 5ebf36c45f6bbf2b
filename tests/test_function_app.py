"""Tests for the HTTP-triggered Azure Functions."""

from __future__ import annotations

import json
from unittest.mock import patch

import azure.functions as func

import function_app
from detection_layer.log_analytics_costs import AnalysisInput
from detection_layer.log_analytics_costs.queries import DATA_VOLUME_BY_TABLE

MARKUP = "[CARD:savings]\n[TITLE]Basic Logs[/TITLE]\n[IMPACT]Save ~$27.60/month[/IMPACT]\n[/CARD]"


def _call(handler, req: func.HttpRequest) -> func.HttpResponse:
    """Invoke a decorated handler function directly."""
    user_function = handler.build().get_user_function() if hasattr(handler, "build") else handler
    return user_function(req)


def _request(method: str, route: str, body=None, params=None) -> func.HttpRequest:
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    else:
        raw = json.dumps(body).encode("utf-8")
    return func.HttpRequest(method=method, url=f"/api/{route}", body=raw, params=params or {})


def _json(response: func.HttpResponse) -> dict:
    return json.loads(response.get_body())


def _analysis_body(**extra) -> dict:
    body = {
        "executionId": "exec-http",
        "queryResults": {
            "ws-prod": {DATA_VOLUME_BY_TABLE: {"columns": ["DataType", "BillableGB"], "rows": [["Perf", 20.0]]}}
        },
    }
    body.update(extra)
    return body


class TestAnalysisEndpoint:
    """Tests for POST /api/log-analytics-costs."""

    def test_invalid_json(self):
        response = _call(
            function_app.log_analytics_costs_handler,
            _request("POST", "log-analytics-costs", b"{not json"),
        )
        assert response.status_code == 400

    def test_missing_inputs(self):
        response = _call(
            function_app.log_analytics_costs_handler,
            _request("POST", "log-analytics-costs", {"executionId": "exec-http"}),
        )
        assert response.status_code == 400
        assert "required" in _json(response)["error"]

    def test_invalid_configuration(self):
        response = _call(
            function_app.log_analytics_costs_handler,
            _request(
                "POST",
                "log-analytics-costs",
                _analysis_body(configuration={"frequentQueryThreshold": -1}),
            ),
        )
        assert response.status_code == 400
        assert "frequentQueryThreshold" in _json(response)["error"]

    def test_invalid_query_results(self):
        body = _analysis_body()
        body["queryResults"] = {"ws-prod": {DATA_VOLUME_BY_TABLE: {"columns": "not a list"}}}
        response = _call(
            function_app.log_analytics_costs_handler,
            _request("POST", "log-analytics-costs", body),
        )
        assert response.status_code == 400

    def test_body_must_be_object(self):
        response = _call(
            function_app.log_analytics_costs_handler,
            _request("POST", "log-analytics-costs", ["exec-http"]),
        )
        assert response.status_code == 400

    def test_analyzes_query_results(self):
        response = _call(
            function_app.log_analytics_costs_handler,
            _request("POST", "log-analytics-costs", _analysis_body(renderFormats=["html"])),
        )
        assert response.status_code == 200
        result = _json(response)
        assert result["executionId"] == "exec-http"
        assert result["cards"]
        assert "html" in result

    @patch("function_app.collect_analysis_input")
    def test_collects_when_only_subscriptions_given(self, collect):
        collect.return_value = AnalysisInput(**_analysis_body())
        response = _call(
            function_app.log_analytics_costs_handler,
            _request(
                "POST",
                "log-analytics-costs",
                {"executionId": "exec-http", "subscriptionIds": ["sub-1"], "dryRun": True},
            ),
        )
        assert response.status_code == 200
        _, kwargs = collect.call_args
        assert kwargs["subscription_ids"] == ["sub-1"]
        assert kwargs["dry_run"] is True

    @patch("function_app.collect_analysis_input")
    def test_collection_failure(self, collect):
        collect.side_effect = RuntimeError("Resource Graph unavailable")
        response = _call(
            function_app.log_analytics_costs_handler,
            _request("POST", "log-analytics-costs", {"executionId": "exec-http", "subscriptionIds": ["sub-1"]}),
        )
        assert response.status_code == 500
        assert _json(response)["error"] == "Resource Graph unavailable"


class TestRenderEndpoint:
    """Tests for POST /api/render-cards."""

    def test_render_both(self):
        response = _call(
            function_app.render_cards_handler,
            _request("POST", "render-cards", {"markup": MARKUP, "format": "both"}),
        )
        assert response.status_code == 200
        result = _json(response)
        assert result["cards"][0]["title"] == "Basic Logs"
        assert result["totalEstimatedMonthlySavings"] == 27.6
        assert result["html"].startswith('<div class="rec-card')
        assert result["markdown"].startswith("## ")

    def test_invalid_format(self):
        response = _call(
            function_app.render_cards_handler,
            _request("POST", "render-cards", {"markup": MARKUP, "format": "pdf"}),
        )
        assert response.status_code == 400

    def test_body_must_be_object(self):
        response = _call(function_app.render_cards_handler, _request("POST", "render-cards", "markup"))
        assert response.status_code == 400
        assert _json(response)["error"] == "JSON body must be an object"


class TestHistoryEndpoints:
    """Tests for the analysis history routes."""

    def test_save_requires_analysis(self):
        response = _call(function_app.save_analysis_handler, _request("POST", "save-analysis", {}))
        assert response.status_code == 400

    @patch("function_app.save_analysis")
    def test_save(self, save):
        save.return_value = {"saved": True, "id": "rec-1", "executionId": "exec-http"}
        response = _call(
            function_app.save_analysis_handler,
            _request("POST", "save-analysis", {"analysis": {"executionId": "exec-http"}, "subscriptionIds": ["sub-1"]}),
        )
        assert response.status_code == 200
        save.assert_called_once_with(analysis={"executionId": "exec-http"}, subscription_ids=["sub-1"])

    def test_history_rejects_bad_limit(self):
        response = _call(
            function_app.get_analysis_history_handler,
            _request("GET", "get-analysis-history", params={"limit": "abc"}),
        )
        assert response.status_code == 400

    @patch("function_app.get_analysis_history")
    def test_history(self, get_history):
        get_history.return_value = {"analyses": [], "count": 0}
        response = _call(
            function_app.get_analysis_history_handler,
            _request("GET", "get-analysis-history", params={"limit": "5"}),
        )
        assert response.status_code == 200
        get_history.assert_called_once_with(limit=5)

    @patch("function_app.delete_analysis")
    def test_delete_missing(self, delete):
        delete.return_value = {"id": "gone", "deleted": False}
        response = _call(
            function_app.delete_analysis_handler,
            _request("DELETE", "delete-analysis", params={"id": "gone"}),
        )
        assert response.status_code == 404

    def test_delete_requires_id(self):
        response = _call(function_app.delete_analysis_handler, _request("DELETE", "delete-analysis"))
        assert response.status_code == 400


def test_health():
    response = _call(function_app.health_check, _request("GET", "health"))
    assert response.status_code == 200
    assert _json(response)["status"] == "healthy"
