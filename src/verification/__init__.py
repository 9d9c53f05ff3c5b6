# src/verification/__init__.py - v1
"""Rule-based verify-and-fix engine and its instrumentation."""
