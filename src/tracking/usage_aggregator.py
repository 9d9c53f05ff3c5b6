# src/tracking/usage_aggregator.py - v1
"""Time-windowed token and cost usage, globally and per ceremony.

Persisted in {state_dir}/token-history.json. Each execution is filed into
daily, ISO-weekly and monthly buckets plus an all-time accumulator, for
the global totals and for the ceremony's own scope. Rolling buckets are
pruned after every write; the all-time accumulator never shrinks.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta
from pathlib import Path

from ceremonykit.core.models import Clock, utc_now
from ceremonykit.storage import layout
from ceremonykit.storage.atomic import read_json, write_json_atomic
from ceremonykit.storage.errors import StorageError
from ceremonykit.tracking.cost_calculator import calculate_cost
from ceremonykit.tracking.models import (
    RESERVED_KEYS,
    AllTimeUsage,
    CostBreakdown,
    DailyUsage,
    ModelPricing,
    MonthlyUsage,
    UsageLedger,
    UsageScope,
    WeeklyUsage,
)

logger = logging.getLogger(__name__)

DAILY_RETENTION_DAYS = 31
WEEKLY_RETENTION_DAYS = 12 * 7
MONTHLY_RETENTION_MONTHS = 12


def day_key(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def iso_week_key(d: date) -> str:
    """ISO-8601 week key (Thursday-anchored), e.g. '2026-W42'."""
    iso_year, iso_week, _ = d.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def month_key(d: date) -> str:
    return d.strftime("%Y-%m")


def _week_start(key: str) -> date | None:
    try:
        return datetime.strptime(f"{key}-1", "%G-W%V-%u").date()
    except ValueError:
        return None


def _month_index(key: str) -> int | None:
    try:
        year, month = key.split("-")
        return int(year) * 12 + int(month) - 1
    except ValueError:
        return None


class UsageAggregator:
    """Rolling usage ledger fed by completed ceremony executions."""

    def __init__(
        self,
        state_dir: Path | str = layout.DEFAULT_STATE_DIR,
        pricing: dict[str, ModelPricing] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._path = layout.usage_path(Path(state_dir))
        self._pricing = pricing
        self._clock = clock or utc_now

    @property
    def path(self) -> Path:
        return self._path

    # --- Persistence ---

    def load(self) -> UsageLedger:
        try:
            data = read_json(self._path)
        except json.JSONDecodeError as e:
            raise StorageError(f"Usage history {self._path} is corrupt: {e}") from e
        if data is None:
            return UsageLedger()
        return UsageLedger.from_document(data)

    def _save(self, ledger: UsageLedger) -> None:
        ledger.last_updated = self._clock()
        write_json_atomic(self._path, ledger.to_document())

    # --- Mutation ---

    def calculate_cost(
        self, input_tokens: int, output_tokens: int, model: str | None
    ) -> CostBreakdown:
        return calculate_cost(input_tokens, output_tokens, model, self._pricing)

    def add_execution(
        self,
        ceremony: str,
        input_tokens: int,
        output_tokens: int,
        model: str | None = None,
    ) -> CostBreakdown:
        """Record one execution's usage and return its cost.

        Raises:
            ValueError: If the ceremony name collides with a reserved key.
        """
        if ceremony in RESERVED_KEYS:
            raise ValueError(f"Reserved name cannot be used as ceremony: {ceremony!r}")

        cost = self.calculate_cost(input_tokens, output_tokens, model)
        now = self._clock()
        ledger = self.load()

        self._update_scope(ledger.totals, input_tokens, output_tokens, cost, now)
        scope = ledger.ceremonies.setdefault(ceremony, UsageScope())
        self._update_scope(scope, input_tokens, output_tokens, cost, now)

        self._prune(ledger.totals, now)
        for s in ledger.ceremonies.values():
            self._prune(s, now)

        self._save(ledger)
        logger.debug(
            "Usage for %s: %d in / %d out, $%.4f",
            ceremony, input_tokens, output_tokens, cost.total,
        )
        return cost

    @staticmethod
    def _update_scope(
        scope: UsageScope,
        input_tokens: int,
        output_tokens: int,
        cost: CostBreakdown,
        now: datetime,
    ) -> None:
        today = now.date()

        dk = day_key(today)
        scope.daily.setdefault(dk, DailyUsage(date=dk)).add(input_tokens, output_tokens, cost)

        wk = iso_week_key(today)
        scope.weekly.setdefault(wk, WeeklyUsage(week=wk)).add(input_tokens, output_tokens, cost)

        mk = month_key(today)
        scope.monthly.setdefault(mk, MonthlyUsage(month=mk)).add(
            input_tokens, output_tokens, cost
        )

        all_time = scope.all_time
        all_time.add(input_tokens, output_tokens, cost)
        if all_time.first_execution is None:
            all_time.first_execution = now
        all_time.last_execution = now

    @staticmethod
    def _prune(scope: UsageScope, now: datetime) -> None:
        today = now.date()

        daily_cutoff = day_key(today - timedelta(days=DAILY_RETENTION_DAYS))
        for key in [k for k in scope.daily if k < daily_cutoff]:
            del scope.daily[key]

        weekly_cutoff = today - timedelta(days=WEEKLY_RETENTION_DAYS)
        for key in list(scope.weekly):
            start = _week_start(key)
            if start is not None and start < weekly_cutoff:
                del scope.weekly[key]

        current_month = today.year * 12 + today.month - 1
        for key in list(scope.monthly):
            index = _month_index(key)
            if index is not None and current_month - index >= MONTHLY_RETENTION_MONTHS:
                del scope.monthly[key]

    # --- Queries ---

    def _scope(self, ceremony: str | None) -> UsageScope:
        ledger = self.load()
        if ceremony is None:
            return ledger.totals
        return ledger.ceremonies.get(ceremony) or UsageScope()

    def _today(self, ceremony: str | None) -> DailyUsage:
        key = day_key(self._clock().date())
        return self._scope(ceremony).daily.get(key) or DailyUsage(date=key)

    def _this_week(self, ceremony: str | None) -> WeeklyUsage:
        key = iso_week_key(self._clock().date())
        return self._scope(ceremony).weekly.get(key) or WeeklyUsage(week=key)

    def _this_month(self, ceremony: str | None) -> MonthlyUsage:
        key = month_key(self._clock().date())
        return self._scope(ceremony).monthly.get(key) or MonthlyUsage(month=key)

    def _all_time(self, ceremony: str | None) -> AllTimeUsage:
        return self._scope(ceremony).all_time

    def get_totals_today(self) -> DailyUsage:
        return self._today(None)

    def get_totals_this_week(self) -> WeeklyUsage:
        return self._this_week(None)

    def get_totals_this_month(self) -> MonthlyUsage:
        return self._this_month(None)

    def get_totals_all_time(self) -> AllTimeUsage:
        return self._all_time(None)

    def get_ceremony_today(self, ceremony: str) -> DailyUsage:
        return self._today(ceremony)

    def get_ceremony_this_week(self, ceremony: str) -> WeeklyUsage:
        return self._this_week(ceremony)

    def get_ceremony_this_month(self, ceremony: str) -> MonthlyUsage:
        return self._this_month(ceremony)

    def get_ceremony_all_time(self, ceremony: str) -> AllTimeUsage:
        return self._all_time(ceremony)

    def get_all_ceremony_types(self) -> list[str]:
        return sorted(self.load().ceremonies)
