# src/core/__init__.py - v1
"""Shared base models and clock helpers."""
