"""Core (UI-agnostic) store performance dashboard logic.

This package contains:
- the chain's fiscal calendar
- numeric coercion and metric reducers over upstream records
- snapshot/performance shape adapters and the snapshot cache
- the data source reconciler and the dashboard session
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
