# src/core/models.py - v1
"""Shared base model and clock helpers for every persisted document.

Persisted JSON uses camelCase keys; Python code uses snake_case
attributes. Both spellings are accepted on load.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class PersistedModel(BaseModel):
    """Base for models written to the project state directory."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump with camelCase keys and JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)
