"""
Prefect flows.

Flows:
- sync: Refresh forecasts and return periods for every favorite, then trim
  the offline cache to its size budget

Usage:
    python -m rivr_offline.flows.sync
    rivr-offline sync --user <user_id>

With the Prefect dashboard, start ``prefect server start`` first; runs of
``sync-favorites`` show up there.
"""
