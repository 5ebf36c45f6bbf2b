"""Tests for the Azure client wrappers, the collector and the data layer.

The Azure SDK clients are replaced with mocks; only the conversion and
control flow of the wrappers are exercised.
"""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import HttpResponseError
from azure.cosmos.exceptions import CosmosResourceNotFoundError
from azure.monitor.query import LogsQueryStatus

from shared.cosmos_client import CosmosClient
from shared.log_analytics import LogAnalyticsClient, is_basic_logs_error
from shared.models import QueryReference, WorkspaceMetadata
from shared.resource_graph import (
    ResourceGraphClient,
    parse_alert_rule,
    parse_dashboard_tiles,
    parse_workspace,
)
from data_layer.get_analysis_history import delete_analysis, get_analysis_history
from data_layer.save_analysis import HISTORY_TTL_SECONDS, build_history_record, save_analysis
from detection_layer.log_analytics_costs.collector import collect_analysis_input
from detection_layer.log_analytics_costs.queries import get_all_queries

WORKSPACE_ID = (
    "/subscriptions/sub-1/resourcegroups/rg-prod/providers/microsoft.operationalinsights/workspaces/ws-prod"
)


def _logs_table(columns, rows):
    return SimpleNamespace(columns=columns, rows=rows)


class TestLogAnalyticsClient:
    """Tests for LogAnalyticsClient."""

    def test_success(self):
        sdk = MagicMock()
        sdk.query_workspace.return_value = SimpleNamespace(
            status=LogsQueryStatus.SUCCESS,
            tables=[_logs_table(["DataType", "BillableGB"], [("Perf", 1.5)])],
        )
        result = LogAnalyticsClient(client=sdk).query("guid-1", "Usage | take 1")

        assert result.columns == ["DataType", "BillableGB"]
        assert result.rows == [["Perf", 1.5]]
        assert result.error is None
        _, kwargs = sdk.query_workspace.call_args
        assert kwargs["timespan"] == timedelta(days=30)

    def test_no_tables(self):
        sdk = MagicMock()
        sdk.query_workspace.return_value = SimpleNamespace(status=LogsQueryStatus.SUCCESS, tables=[])
        result = LogAnalyticsClient(client=sdk).query("guid-1", "Usage")
        assert result.is_empty
        assert result.error is None

    def test_http_error_becomes_result(self):
        sdk = MagicMock()
        sdk.query_workspace.side_effect = HttpResponseError(message="Forbidden")
        result = LogAnalyticsClient(client=sdk).query("guid-1", "Usage")
        assert result.error == "Forbidden"
        assert result.basic_logs_table is False

    def test_basic_logs_error_is_flagged(self):
        sdk = MagicMock()
        sdk.query_workspace.side_effect = HttpResponseError(
            message="'LAQueryLogs' is a Basic Logs table and cannot be queried here"
        )
        result = LogAnalyticsClient(client=sdk).query("guid-1", "LAQueryLogs")
        assert result.basic_logs_table is True

    def test_partial_result_keeps_data(self):
        sdk = MagicMock()
        sdk.query_workspace.return_value = SimpleNamespace(
            status=LogsQueryStatus.PARTIAL,
            partial_error=SimpleNamespace(message="Result truncated"),
            partial_data=[_logs_table(["Computer"], [("vm1",)])],
        )
        result = LogAnalyticsClient(client=sdk).query("guid-1", "Heartbeat")
        assert result.rows == [["vm1"]]
        assert result.error is None

    def test_partial_result_without_data_is_error(self):
        sdk = MagicMock()
        sdk.query_workspace.return_value = SimpleNamespace(
            status=LogsQueryStatus.PARTIAL,
            partial_error=SimpleNamespace(message="Query timed out"),
            partial_data=[],
        )
        result = LogAnalyticsClient(client=sdk).query("guid-1", "Heartbeat")
        assert result.error == "Query timed out"

    def test_query_all_keeps_order(self):
        sdk = MagicMock()
        sdk.query_workspace.return_value = SimpleNamespace(status=LogsQueryStatus.SUCCESS, tables=[])
        results = LogAnalyticsClient(client=sdk).query_all("guid-1", {"b": "B", "a": "A"})
        assert list(results) == ["b", "a"]
        assert sdk.query_workspace.call_count == 2

    def test_is_basic_logs_error(self):
        assert is_basic_logs_error("Basic Logs table is not supported for this API")
        assert not is_basic_logs_error("Forbidden")
        assert not is_basic_logs_error(None)


class TestResourceGraphParsers:
    """Tests for Resource Graph row parsing."""

    def test_parse_workspace(self):
        workspace = parse_workspace(
            {
                "id": WORKSPACE_ID,
                "name": "ws-prod",
                "resourceGroup": "rg-prod",
                "customerId": "guid-1",
                "retentionInDays": 90,
                "skuName": "PerGB2018",
            }
        )
        assert workspace.name == "ws-prod"
        assert workspace.resource_group == "rg-prod"
        assert workspace.retention_days == 90
        assert workspace.customer_id == "guid-1"

    def test_parse_workspace_missing_fields(self):
        workspace = parse_workspace({"name": "ws"})
        assert workspace.resource_group == "Unknown"
        assert workspace.retention_days is None

    def test_parse_alert_rule(self):
        rule = parse_alert_rule(
            {
                "name": "rule-1",
                "displayName": "Failed logons",
                "enabled": True,
                "scopes": [WORKSPACE_ID.replace("ws-prod", "WS-PROD")],
                "criteria": {
                    "allOf": [
                        {"query": "SecurityEvent | where EventID == 4625"},
                        {"query": "Syslog | take 1"},
                    ]
                },
            },
            [WORKSPACE_ID],
        )
        assert rule.display_name == "Failed logons"
        assert "SecurityEvent" in rule.query_text
        assert "Syslog" in rule.query_text
        assert rule.targets_workspace is True
        assert rule.enabled is True

    def test_parse_alert_rule_other_workspace(self):
        rule = parse_alert_rule(
            {"name": "rule-2", "enabled": False, "scopes": ["/subscriptions/sub-2/other"], "criteria": {}},
            [WORKSPACE_ID],
        )
        assert rule.display_name == "rule-2"
        assert rule.targets_workspace is False
        assert rule.enabled is False
        assert rule.query_text == ""

    def test_parse_alert_rule_enabled_by_default(self):
        rule = parse_alert_rule({"name": "rule-3"}, [WORKSPACE_ID])
        assert rule.enabled is True

    def test_parse_dashboard_tiles(self):
        row = {
            "name": "dash-1",
            "title": "Ops board",
            "lenses": {
                "0": {
                    "parts": {
                        "0": {
                            "metadata": {
                                "type": "Extension/Microsoft_OperationsManagementSuite_Workspace/PartType/LogsDashboardPart",
                                "inputs": [
                                    {"name": "Scope", "value": {"resourceIds": [WORKSPACE_ID]}},
                                    {"name": "Query", "value": "Perf | summarize avg(CounterValue)"},
                                ],
                            }
                        },
                        "1": {"metadata": {"type": "Extension/HubsExtension/PartType/MarkdownPart"}},
                    }
                }
            },
        }
        tiles = parse_dashboard_tiles(row, [WORKSPACE_ID])
        assert len(tiles) == 1
        assert tiles[0].display_name == "Ops board"
        assert tiles[0].query_text.startswith("Perf")
        assert tiles[0].targets_workspace is True

    def test_parse_dashboard_settings_query_overrides_input(self):
        row = {
            "name": "dash-2",
            "lenses": [
                {
                    "parts": [
                        {
                            "metadata": {
                                "type": "Extension/AppInsightsExtension/PartType/AnalyticsPart",
                                "inputs": [{"name": "query", "value": "Perf"}],
                                "settings": {"content": {"Query": "Syslog | take 5"}},
                            }
                        }
                    ]
                }
            ],
        }
        tiles = parse_dashboard_tiles(row, [WORKSPACE_ID])
        assert tiles[0].display_name == "dash-2"
        assert tiles[0].query_text == "Syslog | take 5"
        assert tiles[0].targets_workspace is False

    def test_parse_dashboard_without_lenses(self):
        assert parse_dashboard_tiles({"name": "empty"}, [WORKSPACE_ID]) == []


class TestResourceGraphClient:
    """Tests for ResourceGraphClient paging and filtering."""

    def test_query_follows_skip_token(self):
        sdk = MagicMock()
        sdk.resources.side_effect = [
            SimpleNamespace(data=[{"name": "a"}], skip_token="page-2"),
            SimpleNamespace(data=[{"name": "b"}], skip_token=None),
        ]
        rows = ResourceGraphClient(client=sdk).query("resources", ["sub-1"])
        assert rows == [{"name": "a"}, {"name": "b"}]
        assert sdk.resources.call_count == 2

    def test_list_workspaces_filters_by_name(self):
        sdk = MagicMock()
        sdk.resources.return_value = SimpleNamespace(
            data=[{"name": "ws-prod", "id": WORKSPACE_ID}, {"name": "ws-dev"}], skip_token=None
        )
        workspaces = ResourceGraphClient(client=sdk).list_workspaces(["sub-1"], ["WS-PROD"])
        assert [ws.name for ws in workspaces] == ["ws-prod"]

    def test_query_batched_splits_subscriptions(self):
        sdk = MagicMock()
        sdk.resources.return_value = SimpleNamespace(data=[], skip_token=None)
        client = ResourceGraphClient(client=sdk)
        client.MAX_SUBSCRIPTIONS_PER_QUERY = 2
        client.query_batched("resources", ["s1", "s2", "s3"])
        assert sdk.resources.call_count == 2


class TestCollector:
    """Tests for collect_analysis_input."""

    def _make_graph_client(self):
        graph = MagicMock()
        graph.list_workspaces.return_value = [
            WorkspaceMetadata(name="ws-prod", resourceGroup="rg-prod", customerId="guid-1", resourceId=WORKSPACE_ID),
            WorkspaceMetadata(name="ws-orphan", resourceGroup="rg-prod"),
        ]
        graph.list_alert_rules.return_value = [QueryReference(displayName="CPU", queryText="Perf | take 1")]
        graph.list_dashboard_tiles.return_value = []
        return graph

    def test_collects_every_workspace_with_customer_id(self):
        logs = MagicMock()
        logs.query_all.return_value = {}
        analysis_input = collect_analysis_input(
            "exec-1",
            subscription_ids=["sub-1"],
            configuration={"topTablesCount": 5},
            render_formats=["html"],
            graph_client=self._make_graph_client(),
            logs_client=logs,
        )

        logs.query_all.assert_called_once_with("guid-1", get_all_queries())
        assert list(analysis_input.query_results) == ["ws-prod"]
        assert len(analysis_input.workspaces) == 2
        assert analysis_input.alert_rules[0].display_name == "CPU"
        assert analysis_input.configuration == {"topTablesCount": 5}
        assert analysis_input.render_formats == ["html"]

    def test_dry_run_skips_queries(self):
        logs = MagicMock()
        analysis_input = collect_analysis_input(
            "exec-1", graph_client=self._make_graph_client(), logs_client=logs, dry_run=True
        )
        logs.query_all.assert_not_called()
        assert analysis_input.query_results == {}


class TestCosmosClient:
    """Tests for the Cosmos DB wrapper."""

    def test_requires_endpoint(self, monkeypatch):
        monkeypatch.delenv("COSMOS_ENDPOINT", raising=False)
        with pytest.raises(ValueError):
            CosmosClient(credential=object())

    @patch("shared.cosmos_client.AzureCosmosClient")
    def test_delete_missing_returns_false(self, sdk_class):
        container = sdk_class.return_value.get_database_client.return_value.get_container_client.return_value
        container.delete_item.side_effect = CosmosResourceNotFoundError(message="not found")

        client = CosmosClient(endpoint="https://cosmos.example", credential=object())
        assert client.delete_analysis("missing") is False

    def test_recent_analyses_query(self, monkeypatch):
        monkeypatch.delenv("COSMOS_DATABASE", raising=False)
        with patch("shared.cosmos_client.AzureCosmosClient") as sdk_class:
            container = sdk_class.return_value.get_database_client.return_value.get_container_client.return_value
            container.query_items.return_value = iter([{"id": "a"}])
            client = CosmosClient(endpoint="https://cosmos.example", credential=object())

        assert client.get_recent_analyses(limit=5) == [{"id": "a"}]
        _, kwargs = container.query_items.call_args
        assert kwargs["parameters"] == [{"name": "@limit", "value": 5}]
        sdk_class.return_value.get_database_client.assert_called_with("log-analytics-optimizer")


class TestDataLayer:
    """Tests for analysis history functions."""

    ANALYSIS = {
        "executionId": "exec-1",
        "summary": {
            "workspaces": [{"workspaceName": "ws-prod"}, {"workspaceName": "ws-dev"}],
            "resourceGroups": [{"name": "rg-prod"}],
            "totalIngestionGB": 25.0,
        },
        "totalEstimatedMonthlySavings": 27.6,
        "cardsByKind": {"savings": 1, "info": 4},
        "cards": [{"title": "dropped"}],
    }

    def test_build_history_record(self):
        record = build_history_record(self.ANALYSIS, ["sub-1"])
        assert record["executionId"] == "exec-1"
        assert record["workspaceNames"] == ["ws-prod", "ws-dev"]
        assert record["workspaceCount"] == 2
        assert record["resourceGroups"] == ["rg-prod"]
        assert record["totalGB"] == 25.0
        assert record["totalEstimatedMonthlySavings"] == 27.6
        assert record["subscriptionIds"] == ["sub-1"]
        assert record["ttl"] == HISTORY_TTL_SECONDS
        assert "cards" not in record

    @patch("data_layer.save_analysis.CosmosClient")
    def test_save_analysis(self, client_class):
        result = save_analysis(self.ANALYSIS)
        saved = client_class.return_value.save_analysis.call_args[0][0]
        assert result == {"saved": True, "id": saved["id"], "executionId": "exec-1"}

    @patch("data_layer.get_analysis_history.CosmosClient")
    def test_get_analysis_history(self, client_class):
        client_class.return_value.get_recent_analyses.return_value = [{"id": "a"}, {"id": "b"}]
        result = get_analysis_history(limit=2)
        assert result == {"analyses": [{"id": "a"}, {"id": "b"}], "count": 2}
        client_class.return_value.get_recent_analyses.assert_called_once_with(limit=2)

    def test_get_analysis_history_rejects_bad_limit(self):
        with pytest.raises(ValueError):
            get_analysis_history(limit=0)

    @patch("data_layer.get_analysis_history.CosmosClient")
    def test_delete_analysis(self, client_class):
        client_class.return_value.delete_analysis.return_value = False
        assert delete_analysis("missing") == {"id": "missing", "deleted": False}
