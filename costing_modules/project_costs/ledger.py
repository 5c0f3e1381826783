"""
Ledger Aggregator (``costing_modules.project_costs.ledger``).

Responsibility
--------------
Merge the source adapters' line items into one per-project cost ledger,
filter and sort it, and compute grouped totals (by type, by scope, by
day).  Nothing is cached: every call re-reads the backing stores.

Architecture position
---------------------
**Modules layer** -- the grouping functions are pure (no I/O) and are
reused by the budget comparator and the project overview; ``CostLedger``
is the thin read-side wrapper that pulls line items from the adapters.

Invariants enforced
-------------------
* Every reported number is rounded to 2 decimals, half up, AFTER summing.
* ``totals.total == round(labor + equipment + material, 2)``.
* Only ``arbeid`` lines contribute hours.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from costing_kernel.domain.rounding import ZERO, round_money
from costing_modules.project_costs.adapters import CostSourceAdapter
from costing_modules.project_costs.models import (
    CostBucket,
    CostLineItem,
    CostTotals,
    CostType,
    DailyCosts,
    DateRange,
    TypeTotal,
)

_TYPE_FIELDS = {
    CostType.ARBEID: "labor",
    CostType.MACHINE: "equipment",
    CostType.MATERIAAL: "material",
}


# =============================================================================
# Pure functions
# =============================================================================


def sort_by_date_descending(items: Iterable[CostLineItem]) -> list[CostLineItem]:
    """Newest first; lines on the same day keep their adapter order."""
    return sorted(items, key=lambda item: item.date, reverse=True)


def compute_totals(items: Sequence[CostLineItem]) -> CostTotals:
    sums = {field: ZERO for field in _TYPE_FIELDS.values()}
    counts = {field: 0 for field in _TYPE_FIELDS.values()}
    hours = ZERO
    for item in items:
        field = _TYPE_FIELDS.get(item.type)
        if field is None:
            continue
        sums[field] += item.total
        counts[field] += 1
        if item.type == CostType.ARBEID:
            hours += item.quantity
    return CostTotals(
        labor=TypeTotal(round_money(sums["labor"]), counts["labor"]),
        equipment=TypeTotal(round_money(sums["equipment"]), counts["equipment"]),
        material=TypeTotal(round_money(sums["material"]), counts["material"]),
        other=TypeTotal(),
        total=round_money(sums["labor"] + sums["equipment"] + sums["material"]),
        labor_hours=round_money(hours),
    )


def _accumulate(items: Iterable[CostLineItem], key) -> dict:
    buckets: dict = defaultdict(
        lambda: {"labor": ZERO, "equipment": ZERO, "material": ZERO, "total": ZERO, "hours": ZERO}
    )
    for item in items:
        field = _TYPE_FIELDS.get(item.type)
        if field is None:
            continue
        bucket = buckets[key(item)]
        bucket[field] += item.total
        bucket["total"] += item.total
        if item.type == CostType.ARBEID:
            bucket["hours"] += item.quantity
    return buckets


def group_by_scope(items: Iterable[CostLineItem]) -> dict[str, CostBucket]:
    """Scope -> accumulated costs, in first-seen order."""
    return {
        scope: CostBucket(**{k: round_money(v) for k, v in sums.items()})
        for scope, sums in _accumulate(items, lambda item: item.scope).items()
    }


def group_by_day(items: Iterable[CostLineItem]) -> list[DailyCosts]:
    """Per-day costs, sorted ascending by date."""
    buckets = _accumulate(items, lambda item: item.date)
    return [
        DailyCosts(day=day, **{k: round_money(v) for k, v in buckets[day].items()})
        for day in sorted(buckets)
    ]


def cost_by_scope(items: Iterable[CostLineItem]) -> dict[str, Decimal]:
    return {scope: bucket.total for scope, bucket in group_by_scope(items).items()}


def hours_by_scope(items: Iterable[CostLineItem]) -> dict[str, Decimal]:
    """Unrounded labor hours per scope."""
    hours: dict[str, Decimal] = {}
    for item in items:
        if item.type == CostType.ARBEID:
            hours[item.scope] = hours.get(item.scope, ZERO) + item.quantity
    return hours


def hours_by_employee(items: Iterable[CostLineItem]) -> dict[str, Decimal]:
    hours: dict[str, Decimal] = {}
    for item in items:
        if item.type == CostType.ARBEID and item.employee_name:
            hours[item.employee_name] = (
                hours.get(item.employee_name, ZERO) + item.quantity
            )
    return {name: round_money(total) for name, total in hours.items()}


def active_days(items: Iterable[CostLineItem]) -> set[date]:
    return {item.date for item in items}


# =============================================================================
# Read-side wrapper
# =============================================================================


class CostLedger:
    """
    Per-project view over all source adapters.

    Contract:
        Read-only.  Results are a pure function of the backing stores at
        call time, so two calls without an intervening write are equal.
    """

    def __init__(self, adapters: Sequence[CostSourceAdapter]):
        self._adapters = list(adapters)

    def line_items(
        self,
        project_id: UUID,
        date_range: DateRange | None = None,
        cost_type: CostType | None = None,
    ) -> list[CostLineItem]:
        """Adapter output concatenated in adapter order (labor, equipment, material)."""
        items: list[CostLineItem] = []
        for adapter in self._adapters:
            if cost_type is not None and adapter.cost_type != cost_type:
                continue
            items.extend(adapter.map_to_line_items(project_id, date_range))
        return items

    def list(
        self,
        project_id: UUID,
        cost_type: CostType | None = None,
        date_range: DateRange | None = None,
    ) -> list[CostLineItem]:
        return sort_by_date_descending(
            self.line_items(project_id, date_range, cost_type)
        )

    def totals(self, project_id: UUID, date_range: DateRange | None = None) -> CostTotals:
        return compute_totals(self.line_items(project_id, date_range))

    def by_scope(
        self, project_id: UUID, date_range: DateRange | None = None
    ) -> dict[str, CostBucket]:
        return group_by_scope(self.line_items(project_id, date_range))

    def daily(
        self, project_id: UUID, date_range: DateRange | None = None
    ) -> list[DailyCosts]:
        return group_by_day(self.line_items(project_id, date_range))
