# src/llm/__init__.py - v1
"""Call Layer: provider abstraction, retry engine, token accounting."""
