"""Core (UI-agnostic) module-inventory bubble map logic.

This package contains:
- CSV parsing and header-keyed records (spreadsheet export -> dicts)
- team -> application -> module hierarchy building
- circle-packing layout
- the zoom/focus state machine
- data loading, filters, module list and chart helpers (Altair -> Vega-Lite spec dict)
"""
