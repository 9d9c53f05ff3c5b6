# src/__init__.py - v1
"""ceremonykit: resumable, LLM-backed ceremony orchestration core."""

__version__ = "0.1.0"
