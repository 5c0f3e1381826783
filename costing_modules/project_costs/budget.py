"""
Budget Comparator (``costing_modules.project_costs.budget``).

Responsibility
--------------
Resolve the externally supplied budget baseline (voorcalculatie) of a
project and compare it with the actual costs and hours from the ledger.

Architecture position
---------------------
**Modules layer**.  Baseline lookup is an ordered chain of
``BaselineSource`` strategies (by offerte, then legacy by project) run by
``BaselineResolver``.  Deviation math and status classification are pure
functions with ZERO I/O.

Invariants enforced
-------------------
* ``deviation.absolute = round(actual - planned, 2)``.
* ``deviation.percentage = round((actual - planned) / planned * 100, 1)``
  when ``planned > 0``, else ``0``.
* Status uses the unrounded percentage: ``<= 0`` under, ``<= margin``
  within margin, above margin over.
* A missing baseline is a value (``BudgetComparisonResult`` with
  ``data=None``), never an exception.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping, Sequence
from decimal import Decimal

from sqlalchemy import select

from costing_kernel.domain.rounding import ZERO, round_money, round_percentage
from costing_kernel.logging_config import get_logger
from costing_kernel.selectors.base import BaseSelector
from costing_modules.project_costs.ledger import CostLedger, compute_totals, hours_by_scope
from costing_modules.project_costs.models import (
    AuthorizedProject,
    BudgetBaseline,
    BudgetComparison,
    BudgetComparisonResult,
    CostFigures,
    CostLineItem,
    CostStatus,
    Deviation,
    DeviationSet,
    HoursStatus,
    OverviewBudget,
)
from costing_modules.project_costs.orm import BudgetBaselineModel

logger = get_logger("modules.project_costs.budget")

NO_BASELINE_MESSAGE = "No budget baseline found for this project"


# =============================================================================
# Baseline resolution chain
# =============================================================================


class BaselineSource(BaseSelector[BudgetBaselineModel]):
    """One strategy for locating a project's baseline."""

    name: str

    @abstractmethod
    def resolve(self, project: AuthorizedProject) -> BudgetBaseline | None:
        ...

    def _latest(self, *criteria) -> BudgetBaselineModel | None:
        return self.session.execute(
            select(BudgetBaselineModel)
            .where(*criteria)
            .order_by(BudgetBaselineModel.created_at.desc(), BudgetBaselineModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()


class OfferteBaselineSource(BaselineSource):
    """Baseline attached to the offerte the project was created from."""

    name = "offerte"

    def resolve(self, project):
        if project.offerte_id is None:
            return None
        row = self._latest(BudgetBaselineModel.offerte_id == project.offerte_id)
        return row.to_dto(self.name) if row is not None else None


class LegacyProjectBaselineSource(BaselineSource):
    """Baselines recorded against the project before offertes were linked."""

    name = "project"

    def resolve(self, project):
        row = self._latest(BudgetBaselineModel.project_id == project.project_id)
        return row.to_dto(self.name) if row is not None else None


class BaselineResolver:
    """Runs the sources in order; the first hit wins."""

    def __init__(self, sources: Sequence[BaselineSource]):
        self._sources = list(sources)

    @classmethod
    def default(cls, session) -> BaselineResolver:
        return cls([OfferteBaselineSource(session), LegacyProjectBaselineSource(session)])

    def resolve(self, project: AuthorizedProject) -> BudgetBaseline | None:
        for source in self._sources:
            baseline = source.resolve(project)
            if baseline is not None:
                logger.debug(
                    "baseline_resolved",
                    extra={
                        "project_id": str(project.project_id),
                        "baseline_source": source.name,
                        "baseline_id": str(baseline.baseline_id),
                    },
                )
                return baseline
        logger.info(
            "baseline_not_found",
            extra={"project_id": str(project.project_id)},
        )
        return None


# =============================================================================
# Pure deviation math
# =============================================================================


def calculate_deviation(actual: Decimal, planned: Decimal) -> Deviation:
    if planned > 0:
        exact = (actual - planned) / planned * 100
        percentage = round_percentage(exact)
    else:
        exact = ZERO
        percentage = ZERO
    return Deviation(
        absolute=round_money(actual - planned),
        percentage=percentage,
        exact_percentage=exact,
    )


def classify_cost_status(deviation: Deviation, margin: Decimal) -> CostStatus:
    if deviation.exact_percentage <= 0:
        return CostStatus.ONDER_BUDGET
    if deviation.exact_percentage <= margin:
        return CostStatus.BINNEN_MARGE
    return CostStatus.OVER_BUDGET


def classify_hours_status(deviation: Deviation, margin: Decimal) -> HoursStatus:
    if deviation.exact_percentage <= 0:
        return HoursStatus.ONDER_PLANNING
    if deviation.exact_percentage <= margin:
        return HoursStatus.BINNEN_MARGE
    return HoursStatus.OVER_PLANNING


def _scope_union(*maps: Mapping[str, Decimal]) -> list[str]:
    seen: dict[str, None] = {}
    for mapping in maps:
        for scope in mapping:
            seen.setdefault(scope, None)
    return list(seen)


def compare_to_baseline(
    baseline: BudgetBaseline,
    items: Sequence[CostLineItem],
    margin: Decimal,
) -> BudgetComparison:
    """Compare whole-project line items against a baseline."""
    totals = compute_totals(items)
    actual_scope_hours = hours_by_scope(items)

    planned = CostFigures(
        labor=round_money(baseline.planned_labor_cost),
        equipment=round_money(baseline.planned_equipment_cost),
        material=round_money(baseline.planned_material_cost),
        hours=round_money(baseline.planned_hours_total),
        total=round_money(baseline.planned_total),
        hours_by_scope=dict(baseline.planned_hours_by_scope),
    )
    actual = CostFigures(
        labor=totals.labor.total,
        equipment=totals.equipment.total,
        material=totals.material.total,
        hours=totals.labor_hours,
        total=totals.total,
        hours_by_scope={s: round_money(h) for s, h in actual_scope_hours.items()},
    )

    by_scope = {
        scope: calculate_deviation(
            actual_scope_hours.get(scope, ZERO),
            baseline.planned_hours_by_scope.get(scope, ZERO),
        )
        for scope in _scope_union(baseline.planned_hours_by_scope, actual_scope_hours)
    }
    deviation = DeviationSet(
        labor=calculate_deviation(actual.labor, baseline.planned_labor_cost),
        equipment=calculate_deviation(actual.equipment, baseline.planned_equipment_cost),
        material=calculate_deviation(actual.material, baseline.planned_material_cost),
        hours=calculate_deviation(actual.hours, baseline.planned_hours_total),
        total=calculate_deviation(actual.total, baseline.planned_total),
        by_scope=by_scope,
    )
    return BudgetComparison(
        planned=planned,
        actual=actual,
        deviation=deviation,
        cost_status=classify_cost_status(deviation.total, margin),
        hours_status=classify_hours_status(deviation.hours, margin),
        baseline_source=baseline.source,
    )


def summarize_for_overview(
    comparison: BudgetComparison,
    estimated_days: Decimal,
    actual_days: int,
) -> OverviewBudget:
    return OverviewBudget(
        planned_total=comparison.planned.total,
        actual_total=comparison.actual.total,
        cost_deviation=comparison.deviation.total.absolute,
        cost_deviation_percentage=comparison.deviation.total.percentage,
        planned_hours=comparison.planned.hours,
        actual_hours=comparison.actual.hours,
        hours_deviation=comparison.deviation.hours.absolute,
        hours_deviation_percentage=comparison.deviation.hours.percentage,
        estimated_days=estimated_days,
        actual_days=actual_days,
    )


# =============================================================================
# Comparator
# =============================================================================


class BudgetComparator:
    """Ledger totals (whole project lifetime) versus the resolved baseline."""

    def __init__(self, ledger: CostLedger, resolver: BaselineResolver, margin: Decimal):
        self._ledger = ledger
        self._resolver = resolver
        self._margin = margin

    def resolve_baseline(self, project: AuthorizedProject) -> BudgetBaseline | None:
        return self._resolver.resolve(project)

    def compare(
        self,
        project: AuthorizedProject,
        items: Sequence[CostLineItem] | None = None,
    ) -> BudgetComparisonResult:
        baseline = self._resolver.resolve(project)
        if baseline is None:
            return BudgetComparisonResult(error=NO_BASELINE_MESSAGE, data=None)
        if items is None:
            items = self._ledger.line_items(project.project_id)
        return BudgetComparisonResult(
            error=None,
            data=compare_to_baseline(baseline, items, self._margin),
        )
