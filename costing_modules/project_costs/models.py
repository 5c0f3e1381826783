"""
Project Cost Domain Models (``costing_modules.project_costs.models``).

Responsibility
--------------
Frozen dataclass value objects for project cost tracking: the normalized
``CostLineItem`` view, date ranges, grouped totals, budget comparison
results, the composite project overview, and the tagged-union inputs of
the mutation router.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
adapters, the ledger, the budget comparator and ``ProjectCostService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All money, hours and quantities use ``Decimal`` -- NEVER ``float``.
* For ``arbeid`` and ``materiaal`` lines ``total == round(quantity *
  unit_price, 2)``; ``machine`` lines carry the cost frozen at creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Mapping
from uuid import UUID

from costing_kernel.domain.rounding import ZERO
from costing_kernel.exceptions import CostValidationError, InvalidCostTypeError


class CostType(str, Enum):
    """Cost line category; also the mutation router discriminant."""

    ARBEID = "arbeid"
    MACHINE = "machine"
    MATERIAAL = "materiaal"
    OVERIG = "overig"


class SourceKind(str, Enum):
    """Backing store a cost line was derived from."""

    TIME_ENTRY = "urenRegistraties"
    EQUIPMENT_USAGE = "machineGebruik"
    INVENTORY_MOVEMENT = "voorraadMutaties"


class RateType(str, Enum):
    HOURLY = "uur"
    DAILY = "dag"


class MovementType(str, Enum):
    """Inventory movement kinds; only consumption shows up as project cost."""

    PURCHASE = "inkoop"
    CONSUMPTION = "verbruik"
    CORRECTION = "correctie"


class CostStatus(str, Enum):
    ONDER_BUDGET = "onder_budget"
    BINNEN_MARGE = "binnen_marge"
    OVER_BUDGET = "over_budget"


class HoursStatus(str, Enum):
    ONDER_PLANNING = "onder_planning"
    BINNEN_MARGE = "binnen_marge"
    OVER_PLANNING = "over_planning"


def parse_cost_type(value: CostType | str) -> CostType:
    """Parse a cost type discriminant, raising ``InvalidCostTypeError``."""
    if isinstance(value, CostType):
        return value
    try:
        return CostType(value)
    except ValueError:
        raise InvalidCostTypeError(value) from None


def parse_day(value: date | str | None, field_name: str) -> date | None:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string."""
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise CostValidationError(
            field_name, f"{field_name} must be a YYYY-MM-DD date, got {value!r}"
        ) from None


def utc_day(timestamp: datetime) -> date:
    """Calendar day of a timestamp in UTC (naive timestamps are UTC)."""
    if timestamp.tzinfo is None:
        return timestamp.date()
    return timestamp.astimezone(timezone.utc).date()


def start_of_day_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Date range
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DateRange:
    """Optional inclusive ``[start, end]`` day filter."""

    start: date | None = None
    end: date | None = None

    @classmethod
    def from_bounds(
        cls,
        start: date | str | None = None,
        end: date | str | None = None,
    ) -> DateRange | None:
        start_day = parse_day(start, "start_date")
        end_day = parse_day(end, "end_date")
        if start_day is None and end_day is None:
            return None
        return cls(start=start_day, end=end_day)

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True

    def contains_timestamp(self, timestamp: datetime) -> bool:
        """``[start 00:00 UTC, end + 1 day 00:00 UTC)`` against a timestamp."""
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        if self.start is not None and timestamp < start_of_day_utc(self.start):
            return False
        if self.end is not None and timestamp >= start_of_day_utc(
            self.end + timedelta(days=1)
        ):
            return False
        return True


# ---------------------------------------------------------------------------
# Cost line items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostLineItem:
    """A normalized, read-only cost line derived from one backing record."""

    id: str
    type: CostType
    date: date
    description: str
    scope: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    total: Decimal
    source_kind: SourceKind
    source_id: str
    employee_name: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class LaborRates:
    """Company default labor rate plus per-employee overrides."""

    default_rate: Decimal
    employee_rates: Mapping[str, Decimal] = field(default_factory=dict)

    def rate_for(self, employee_name: str | None) -> Decimal:
        if employee_name is None:
            return self.default_rate
        return self.employee_rates.get(employee_name, self.default_rate)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeTotal:
    total: Decimal = ZERO
    count: int = 0


@dataclass(frozen=True)
class CostTotals:
    """Totals per cost type, grand total, and total labor hours."""

    labor: TypeTotal = field(default_factory=TypeTotal)
    equipment: TypeTotal = field(default_factory=TypeTotal)
    material: TypeTotal = field(default_factory=TypeTotal)
    other: TypeTotal = field(default_factory=TypeTotal)
    total: Decimal = ZERO
    labor_hours: Decimal = ZERO


@dataclass(frozen=True)
class CostBucket:
    """Accumulated costs for one scope or one day."""

    labor: Decimal = ZERO
    equipment: Decimal = ZERO
    material: Decimal = ZERO
    total: Decimal = ZERO
    hours: Decimal = ZERO


@dataclass(frozen=True)
class DailyCosts:
    day: date
    labor: Decimal = ZERO
    equipment: Decimal = ZERO
    material: Decimal = ZERO
    total: Decimal = ZERO
    hours: Decimal = ZERO


# ---------------------------------------------------------------------------
# Budget comparison
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BudgetBaseline:
    """Voorcalculatie figures supplied by the quoting engine."""

    baseline_id: UUID
    source: str  # "offerte" or "project" (legacy)
    planned_labor_cost: Decimal
    planned_material_cost: Decimal
    planned_hours_total: Decimal
    planned_equipment_cost: Decimal = ZERO
    planned_hours_by_scope: Mapping[str, Decimal] = field(default_factory=dict)
    estimated_days: Decimal = ZERO

    @property
    def planned_total(self) -> Decimal:
        return (
            self.planned_labor_cost
            + self.planned_equipment_cost
            + self.planned_material_cost
        )


@dataclass(frozen=True)
class Deviation:
    """Actual minus planned; ``exact_percentage`` drives classification."""

    absolute: Decimal
    percentage: Decimal
    exact_percentage: Decimal = ZERO


@dataclass(frozen=True)
class CostFigures:
    labor: Decimal
    equipment: Decimal
    material: Decimal
    hours: Decimal
    total: Decimal
    hours_by_scope: Mapping[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class DeviationSet:
    labor: Deviation
    equipment: Deviation
    material: Deviation
    hours: Deviation
    total: Deviation
    by_scope: Mapping[str, Deviation] = field(default_factory=dict)


@dataclass(frozen=True)
class BudgetComparison:
    planned: CostFigures
    actual: CostFigures
    deviation: DeviationSet
    cost_status: CostStatus
    hours_status: HoursStatus
    baseline_source: str


@dataclass(frozen=True)
class BudgetComparisonResult:
    """Tagged result: exactly one of ``error`` / ``data`` is set."""

    error: str | None
    data: BudgetComparison | None

    @property
    def has_data(self) -> bool:
        return self.data is not None


# ---------------------------------------------------------------------------
# Project overview
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectSummary:
    id: UUID
    name: str
    status: str


@dataclass(frozen=True)
class OverviewStatistics:
    active_days: int
    employee_count: int
    line_count: int
    average_cost_per_day: Decimal
    average_hours_per_day: Decimal


@dataclass(frozen=True)
class OverviewBudget:
    planned_total: Decimal
    actual_total: Decimal
    cost_deviation: Decimal
    cost_deviation_percentage: Decimal
    planned_hours: Decimal
    actual_hours: Decimal
    hours_deviation: Decimal
    hours_deviation_percentage: Decimal
    estimated_days: Decimal
    actual_days: int


@dataclass(frozen=True)
class ProjectOverview:
    project: ProjectSummary
    totals: CostTotals
    statistics: OverviewStatistics
    cost_by_scope: Mapping[str, Decimal]
    hours_by_employee: Mapping[str, Decimal]
    budget: OverviewBudget | None
    last_activity: date | None


# ---------------------------------------------------------------------------
# Authorization handle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthorizedProject:
    """Proof that ``actor_id`` owns ``project_id``; issued by the access gate."""

    project_id: UUID
    owner_id: UUID
    actor_id: UUID
    name: str
    status: str
    offerte_id: UUID | None = None


# ---------------------------------------------------------------------------
# Mutation inputs (tagged union, one variant per backing store)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewLaborEntry:
    entry_date: date
    hours: Decimal
    employee_name: str
    scope: str | None = None
    notes: str | None = None
    type: CostType = CostType.ARBEID


@dataclass(frozen=True)
class NewEquipmentEntry:
    entry_date: date
    hours: Decimal
    equipment_id: UUID
    rate_override: Decimal | None = None
    type: CostType = CostType.MACHINE


@dataclass(frozen=True)
class NewMaterialEntry:
    entry_date: date
    quantity: Decimal
    product_id: UUID
    notes: str | None = None
    type: CostType = CostType.MATERIAAL


NewCostEntry = NewLaborEntry | NewEquipmentEntry | NewMaterialEntry


@dataclass(frozen=True)
class CostEntryChanges:
    """Partial update; ``None`` means "leave unchanged"."""

    entry_date: date | None = None
    quantity: Decimal | None = None
    scope: str | None = None
    notes: str | None = None
    employee_name: str | None = None


@dataclass(frozen=True)
class CostMutationResult:
    id: str
    type: CostType
    total: Decimal | None = None
