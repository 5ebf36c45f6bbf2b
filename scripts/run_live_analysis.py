#!/usr/bin/env python3
"""Live run of the Log Analytics cost analysis against real workspaces.

Prerequisites:
    1. Azure CLI logged in: `az login`
    2. Python dependencies installed: `pip install -e .`
    3. Reader access to the workspaces and Log Analytics Reader on their data

Usage:
    python scripts/run_live_analysis.py <subscription-id>
    python scripts/run_live_analysis.py <subscription-id> --workspace ws-prod --workspace ws-dev
    python scripts/run_live_analysis.py --save-input results.json  # Uses current az cli subscription
    python scripts/run_live_analysis.py <subscription-id> --dry-run
"""

import argparse
import json
import subprocess
import sys
from pathlib import Path

# Add src/functions to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src" / "functions"))

from detection_layer.log_analytics_costs import analyze, collect_analysis_input


def get_current_subscription() -> str:
    """Get current subscription from Azure CLI."""
    try:
        result = subprocess.run(
            ["az", "account", "show", "--query", "id", "-o", "tsv"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except subprocess.CalledProcessError:
        print("Error: Could not get current subscription. Run 'az login' first.")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Run the Log Analytics cost analysis live")
    parser.add_argument(
        "subscription_id",
        nargs="?",
        help="Azure subscription ID (defaults to current az cli subscription)",
    )
    parser.add_argument(
        "--workspace",
        action="append",
        dest="workspaces",
        help="Workspace name to analyze (repeatable, default: all in the subscription)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Discover workspaces, alerts and dashboards without querying workspace data",
    )
    parser.add_argument(
        "--save-input",
        metavar="PATH",
        help="Write the collected input to a JSON file (usable with src/agent/run_agent.py)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output raw JSON instead of formatted text",
    )
    args = parser.parse_args()

    subscription_id = args.subscription_id or get_current_subscription()
    print(f"Analyzing subscription: {subscription_id}\n")

    print("Collecting workspaces, alert rules, dashboards and query results...")
    print("-" * 60)

    analysis_input = collect_analysis_input(
        execution_id="live-analysis-001",
        subscription_ids=[subscription_id],
        workspace_names=args.workspaces,
        dry_run=args.dry_run,
    )

    print(f"Workspaces: {', '.join(ws.name for ws in analysis_input.workspaces) or 'none'}")
    print(f"Alert rules: {len(analysis_input.alert_rules)}")
    print(f"Dashboard tiles: {len(analysis_input.dashboard_tiles)}")

    if args.save_input:
        with open(args.save_input, "w", encoding="utf-8") as f:
            json.dump(analysis_input.model_dump(by_alias=True), f, indent=2, default=str)
        print(f"Saved collected input to {args.save_input}")

    if args.dry_run:
        print("\n[DRY RUN] Skipping analysis")
        return

    result = analyze(analysis_input)

    if args.json:
        print(json.dumps(result.model_dump(by_alias=True), indent=2, default=str))
        return

    summary = result.summary
    print(f"\nStatus: {result.status}")
    print(f"Total Ingestion (30 days): {summary.total_ingestion_gb:.2f} GB")
    print(f"Workspaces With Data: {summary.workspaces_with_data}/{summary.total_workspaces}")
    print(f"Query Auditing Enabled: {summary.query_auditing_enabled}")
    print(f"Estimated Monthly Savings: ${result.total_estimated_monthly_savings:.2f}")

    if result.errors:
        print(f"\nErrors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  - {error}")

    if result.decisions:
        print("\nTable Decisions:")
        for decision in result.decisions:
            print(
                f"  {decision.table_name}: {decision.tier} "
                f"({decision.total_gb:.2f} GB, {decision.reason})"
            )

    print("\nCards:")
    for card in result.cards:
        impact = f" - {card.impact}" if card.impact else ""
        print(f"  [{card.kind.value}] {card.title}{impact}")


if __name__ == "__main__":
    main()
