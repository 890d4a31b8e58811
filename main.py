"""
Delivery Performance Monitor — End-to-end analytics pipeline.

Runs the full pipeline from CSV text to alerts and tracked actions and
prints smoke-test summaries. Uses generated sample data unless a CSV path
is given.

Usage:
    python main.py [path/to/deliveries.csv]
"""

import logging
import sys
from pathlib import Path

import numpy as np

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from delivery_dashboard.config import APP_TITLE
from delivery_dashboard.dashboard import (
    get_action_log_table,
    get_alerts_table,
    get_available_weeks,
    get_overall_metrics,
)
from delivery_dashboard.errors import IngestionError
from delivery_dashboard.loaders import read_delivery_file
from delivery_dashboard.models import Region
from delivery_dashboard.simulator import generate_delivery_csv
from delivery_dashboard.state import SessionState, apply_action, apply_upload, apply_upload_error
from delivery_dashboard.transforms import kpi_points_to_frame

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main(argv: list[str]) -> int:
    """Run the pipeline and print smoke-test outputs. Returns an exit code."""

    print("=" * 70)
    print(f"  {APP_TITLE.upper()}")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING SOURCE DATA")
    print("-" * 40)

    state = SessionState()
    if len(argv) > 1:
        try:
            csv_text = read_delivery_file(argv[1])
        except IngestionError as exc:
            state = apply_upload_error(state, str(exc))
            csv_text = None
        source = argv[1]
    else:
        csv_text = generate_delivery_csv()
        source = "generated sample data"

    if csv_text is not None:
        state = apply_upload(state, csv_text)

    print(f"\nSource: {source}")
    print(f"Status: {state.upload_status.message}")
    if state.upload_status.is_error:
        return 1

    # ------------------------------------------------------------------
    # 2. Weekly KPI fact table
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] WEEKLY KPI FACT TABLE")
    print("-" * 40)

    fact_kpi = kpi_points_to_frame(list(state.kpi_data))
    print(f"\nkpi data points: {len(fact_kpi)} rows")
    print(fact_kpi.head(15).to_string(index=False))

    weeks = get_available_weeks(list(state.kpi_data))
    print(f"\nAvailable weeks (latest first): {weeks}")

    # ------------------------------------------------------------------
    # 3. Alerts and actions
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] ALERTS & TRACKED ACTIONS")
    print("-" * 40)

    alerts = state.alerts
    print(f"\nOpen alerts: {len(alerts)}")
    alerts_table = get_alerts_table(alerts)
    if not alerts_table.empty:
        print(alerts_table.head(10).to_string(index=False))

    rng = np.random.default_rng(7)
    for alert in alerts[:3]:
        state = apply_action(state, alert, "Escalate to the regional logistics manager", rng=rng)

    actions_table = get_action_log_table(list(state.tracked_actions))
    print(f"\nTracked actions: {len(actions_table)}")
    if not actions_table.empty:
        print(actions_table[
            ["region", "week", "kpi", "previous_value", "new_value", "outcome"]
        ].to_string(index=False))

    print("\nOverall metrics:")
    for name, value in get_overall_metrics(state).items():
        print(f"  {name:14s} | {value}")

    # ------------------------------------------------------------------
    # 4. Acceptance criteria verification
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] ACCEPTANCE CRITERIA CHECKS")
    print("-" * 40)

    check1 = not (fact_kpi["region"] == Region.UNCLASSIFIED.value).any()
    print(f"\n  [{'PASS' if check1 else 'FAIL'}] No unclassified regions in KPI data")

    dupes = fact_kpi.duplicated(subset=["region", "week", "kpi"]).sum()
    check2 = dupes == 0
    print(f"  [{'PASS' if check2 else 'FAIL'}] {dupes} duplicate (region, week, KPI) rows")

    resolved = {a.identity for a in state.tracked_actions}
    check3 = not any(a.identity in resolved for a in state.alerts)
    print(f"  [{'PASS' if check3 else 'FAIL'}] Alerts with a tracked action are suppressed")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)
    return 0 if (check1 and check2 and check3) else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv))
