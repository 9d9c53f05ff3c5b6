# src/tracking/__init__.py - v1
"""Usage aggregation: pricing, rolling usage ledger, usage reports."""
