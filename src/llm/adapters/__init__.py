# src/llm/adapters/__init__.py - v1
"""Provider adapters, imported lazily by the client factory."""
