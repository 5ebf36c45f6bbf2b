"""End-to-end tests for the Log Analytics cost analysis pipeline."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from shared.card_markup import parse_cards
from shared.models import CardKind
from detection_layer.log_analytics_costs import composer
from detection_layer.log_analytics_costs.detector import MODULE_ID, analyze, analyze_from_dict
from detection_layer.log_analytics_costs.models import AnalysisInput, LogsTier
from detection_layer.log_analytics_costs.queries import (
    DATA_VOLUME_BY_TABLE,
    TABLE_QUERY_FREQUENCY,
)


def _volume(rows: list[list]) -> dict:
    return {"columns": ["DataType", "BillableGB"], "rows": rows}


def _frequency(rows: list[list]) -> dict:
    return {
        "columns": ["TableName", "QueryCount", "DistinctUsers", "AvgQueriesPerDay"],
        "rows": rows,
    }


def _make_input(query_results: dict, **extra) -> dict:
    data = {
        "executionId": "exec-001",
        "workspaces": [
            {"name": name, "resourceGroup": f"rg-{name}", "retentionDays": 30} for name in query_results
        ],
        "queryResults": query_results,
    }
    data.update(extra)
    return data


def _single_table(table: str, gb: float, queries_per_day: float, **extra) -> AnalysisInput:
    results = {
        "ws-prod": {
            DATA_VOLUME_BY_TABLE: _volume([[table, gb]]),
            TABLE_QUERY_FREQUENCY: _frequency([[table, queries_per_day * 30, 1, queries_per_day]]),
        }
    }
    return AnalysisInput(**_make_input(results, **extra))


class TestScenarios:
    """Scenarios covering the main classification outcomes."""

    def test_minimal_ingestion_single_card(self):
        results = {
            "ws-a": {DATA_VOLUME_BY_TABLE: _volume([])},
            "ws-b": {DATA_VOLUME_BY_TABLE: _volume([["Perf", 0.2], ["Heartbeat", 0.1]])},
        }
        output = analyze(AnalysisInput(**_make_input(results)))

        assert len(output.cards) == 1
        assert output.cards[0].title == composer.TITLE_MINIMAL
        assert output.decisions == []
        assert output.total_estimated_monthly_savings == 0.0
        assert output.summary.workspaces_with_data == 1
        assert output.summary.workspaces_empty == 1

    def test_no_data(self):
        output = analyze(AnalysisInput(**_make_input({"ws-a": {DATA_VOLUME_BY_TABLE: _volume([])}})))
        assert [card.title for card in output.cards] == [composer.TITLE_NO_DATA]
        assert output.status == "success"

    def test_infrequent_table_goes_basic(self):
        output = analyze(_single_table("Perf", 20.0, 0.2))
        decision = output.decisions[0]
        assert decision.tier == LogsTier.BASIC.value
        assert decision.estimated_monthly_savings == pytest.approx(27.60)
        assert output.total_estimated_monthly_savings == pytest.approx(27.60)

    def test_rarely_queried_custom_table_goes_auxiliary(self):
        output = analyze(_single_table("Debug_CL", 5.0, 0.1))
        assert output.decisions[0].tier == LogsTier.AUXILIARY.value
        assert output.total_estimated_monthly_savings == pytest.approx(11.73)

    def test_alert_table_stays_on_analytics(self):
        analysis_input = _single_table(
            "SecurityEvent",
            50.0,
            0.0,
            alertRules=[{"displayName": "Failed logons", "queryText": "SecurityEvent | where EventID == 4625"}],
        )
        output = analyze(analysis_input)

        assert output.decisions[0].tier == LogsTier.ANALYTICS.value
        assert output.cards[0].title == composer.TITLE_ALERTS
        assert output.gate_data.active_alert_count == 1
        assert not any(card.kind == CardKind.SAVINGS for card in output.cards)


class TestOutput:
    """Tests for output assembly."""

    def test_metadata(self):
        output = analyze(_single_table("Perf", 20.0, 0.2))
        assert output.module_id == MODULE_ID
        assert output.execution_id == "exec-001"
        assert output.workspaces_analyzed == 1

    def test_markup_parses_back_to_cards(self):
        output = analyze(_single_table("Perf", 20.0, 0.2))
        assert parse_cards(output.markup) == output.cards

    def test_cards_by_kind(self):
        output = analyze(_single_table("Perf", 20.0, 0.2))
        assert output.cards_by_kind[CardKind.SAVINGS.value] == 1
        assert sum(output.cards_by_kind.values()) == len(output.cards)

    def test_partial_success_on_query_error(self):
        results = {
            "ws-prod": {
                DATA_VOLUME_BY_TABLE: _volume([["Perf", 20.0]]),
                TABLE_QUERY_FREQUENCY: {"error": "Query timed out"},
            }
        }
        output = analyze(AnalysisInput(**_make_input(results)))
        assert output.status == "partial_success"
        assert output.errors == [f"ws-prod/{TABLE_QUERY_FREQUENCY}: Query timed out"]

    def test_failed_when_no_data_and_errors(self):
        results = {"ws-prod": {DATA_VOLUME_BY_TABLE: {"error": "Forbidden"}}}
        output = analyze(AnalysisInput(**_make_input(results)))
        assert output.status == "failed"

    def test_configuration_applies(self):
        output = analyze(_single_table("Perf", 20.0, 0.2, configuration={"pricing": {"analyticsPerGB": 3.0}}))
        assert output.total_estimated_monthly_savings == pytest.approx(30.0)

    def test_invalid_configuration(self):
        with pytest.raises(ValidationError):
            analyze(_single_table("Perf", 20.0, 0.2, configuration={"topTablesCount": 0}))


class TestAnalyzeFromDict:
    """Tests for the dictionary entry point."""

    def test_camel_case_output(self):
        results = {"ws-prod": {DATA_VOLUME_BY_TABLE: _volume([["Perf", 20.0]])}}
        result = analyze_from_dict(_make_input(results))
        assert result["moduleId"] == MODULE_ID
        assert result["executionId"] == "exec-001"
        assert "totalEstimatedMonthlySavings" in result
        assert "html" not in result
        assert "markdown" not in result

    def test_render_formats(self, caplog):
        results = {"ws-prod": {DATA_VOLUME_BY_TABLE: _volume([["Perf", 20.0]])}}
        with caplog.at_level(logging.WARNING):
            result = analyze_from_dict(_make_input(results, renderFormats=["html", "markdown", "pdf"]))

        assert result["html"].startswith('<div class="rec-card')
        assert result["markdown"].startswith("## ")
        assert "pdf" not in result
        assert "pdf" in caplog.text

    def test_missing_execution_id(self):
        with pytest.raises(ValidationError):
            analyze_from_dict({"queryResults": {}})
