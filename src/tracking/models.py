# src/tracking/models.py - v1
"""Usage tracking models: pricing, cost breakdowns and the rolling usage ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ceremonykit.core.models import PersistedModel

LEDGER_VERSION = "1.0"

# Top-level keys of the usage file that are not ceremony scopes.
RESERVED_KEYS = frozenset({"version", "lastUpdated", "totals"})


class ModelPricing(BaseModel):
    """LLM model pricing configuration, in USD per 1M tokens."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float


class CostBreakdown(PersistedModel):
    """Cost in USD split by direction."""

    input: float = 0.0
    output: float = 0.0
    total: float = 0.0

    def add(self, other: CostBreakdown) -> None:
        self.input += other.input
        self.output += other.output
        self.total += other.total


class UsageBucket(PersistedModel):
    """Token and cost totals over one period."""

    input: int = 0
    output: int = 0
    total: int = 0
    executions: int = 0
    cost: CostBreakdown = Field(default_factory=CostBreakdown)

    def add(self, input_tokens: int, output_tokens: int, cost: CostBreakdown) -> None:
        self.input += input_tokens
        self.output += output_tokens
        self.total += input_tokens + output_tokens
        self.executions += 1
        self.cost.add(cost)


class DailyUsage(UsageBucket):
    date: str


class WeeklyUsage(UsageBucket):
    week: str


class MonthlyUsage(UsageBucket):
    month: str


class AllTimeUsage(UsageBucket):
    first_execution: datetime | None = None
    last_execution: datetime | None = None


class UsageScope(PersistedModel):
    """Rolling windows plus an all-time accumulator, for totals or one ceremony."""

    daily: dict[str, DailyUsage] = Field(default_factory=dict)
    weekly: dict[str, WeeklyUsage] = Field(default_factory=dict)
    monthly: dict[str, MonthlyUsage] = Field(default_factory=dict)
    all_time: AllTimeUsage = Field(default_factory=AllTimeUsage)


class UsageLedger(PersistedModel):
    """Whole usage file. Ceremony scopes sit at the top level of the document."""

    version: str = LEDGER_VERSION
    last_updated: datetime | None = None
    totals: UsageScope = Field(default_factory=UsageScope)
    ceremonies: dict[str, UsageScope] = Field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "version": self.version,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
            "totals": self.totals.to_json_dict(),
        }
        for name, scope in self.ceremonies.items():
            doc[name] = scope.to_json_dict()
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> UsageLedger:
        ceremonies = {
            key: UsageScope.model_validate(value)
            for key, value in data.items()
            if key not in RESERVED_KEYS and isinstance(value, dict)
        }
        return cls(
            version=data.get("version", LEDGER_VERSION),
            last_updated=data.get("lastUpdated"),
            totals=UsageScope.model_validate(data.get("totals") or {}),
            ceremonies=ceremonies,
        )
