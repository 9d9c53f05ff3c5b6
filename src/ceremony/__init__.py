# src/ceremony/__init__.py - v1
"""Driver-side handles for running and resuming a ceremony."""
