# src/storage/__init__.py - v1
"""Persisted project state: history ledger and progress checkpoints."""
