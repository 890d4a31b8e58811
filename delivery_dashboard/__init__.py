"""
Delivery Performance Monitor

Analytics backend that turns order-level delivery CSV exports into weekly
per-region KPI series, flags threshold breaches, and tracks the remediation
actions taken against them.

Pipeline:
    loaders.parse_delivery_csv -> transforms.aggregate_weekly_kpis
    -> kpis.detect_alerts -> simulator.log_action

To connect a front end:
    Keep one state.SessionState per user session and route every event
    through the reducers in state.py; dashboard.py turns a state into the
    dicts and DataFrames the cards, charts and tables need.

To add new KPIs:
    Add a KpiName member, an entry in config.KPI_REGISTRY with its direction,
    unit, target, precision and amber_band, the column(s) it needs in
    config.OPTIONAL_KPI_HEADERS, and its computation in
    transforms.aggregate_weekly_kpis.
"""
