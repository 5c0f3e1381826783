"""
Tests for the Budget Comparator.

Validates:
- calculate_deviation: rounding, zero/negative planned values
- Status classification on the unrounded percentage (margin inclusive)
- compare_to_baseline: per-type figures, per-scope hours union
- BaselineResolver: offerte first, legacy project fallback, latest wins
- BudgetComparator: missing baseline is a tagged result, not an error
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from costing_modules.project_costs.adapters import (
    EquipmentCostAdapter,
    LaborCostAdapter,
    MaterialCostAdapter,
)
from costing_modules.project_costs.budget import (
    NO_BASELINE_MESSAGE,
    BaselineResolver,
    BudgetComparator,
    calculate_deviation,
    classify_cost_status,
    classify_hours_status,
    compare_to_baseline,
    summarize_for_overview,
)
from costing_modules.project_costs.ledger import CostLedger
from costing_modules.project_costs.models import (
    AuthorizedProject,
    BudgetBaseline,
    CostLineItem,
    CostStatus,
    CostType,
    HoursStatus,
    LaborRates,
    SourceKind,
)
from tests.modules.conftest import (
    TEST_OFFERTE_ID,
    TEST_OTHER_PROJECT_ID,
    TEST_PROJECT_ID,
    make_baseline,
    make_time_entry,
)

MARGIN = Decimal("10")


def _authorized(project) -> AuthorizedProject:
    return AuthorizedProject(
        project_id=project.id,
        owner_id=project.owner_id,
        actor_id=project.owner_id,
        name=project.name,
        status=project.status,
        offerte_id=project.offerte_id,
    )


def _labor(hours: str, total: str, scope: str = "bestrating") -> CostLineItem:
    return CostLineItem(
        id=str(uuid4()),
        type=CostType.ARBEID,
        date=date(2024, 3, 4),
        description="",
        scope=scope,
        quantity=Decimal(hours),
        unit="uur",
        unit_price=Decimal("45"),
        total=Decimal(total),
        source_kind=SourceKind.TIME_ENTRY,
        source_id="x",
        employee_name="Jan",
    )


def _material(total: str) -> CostLineItem:
    return CostLineItem(
        id=str(uuid4()),
        type=CostType.MATERIAAL,
        date=date(2024, 3, 5),
        description="Betonklinker",
        scope="materialen",
        quantity=Decimal("10"),
        unit="stuk",
        unit_price=Decimal("2.5"),
        total=Decimal(total),
        source_kind=SourceKind.INVENTORY_MOVEMENT,
        source_id="y",
    )


def _baseline(**overrides) -> BudgetBaseline:
    values = dict(
        baseline_id=uuid4(),
        source="offerte",
        planned_labor_cost=Decimal("200"),
        planned_material_cost=Decimal("20"),
        planned_hours_total=Decimal("4"),
        planned_hours_by_scope={"bestrating": Decimal("4")},
        estimated_days=Decimal("2"),
    )
    values.update(overrides)
    return BudgetBaseline(**values)


# =============================================================================
# Deviation math
# =============================================================================


class TestCalculateDeviation:

    def test_ten_percent_over_is_within_margin(self):
        deviation = calculate_deviation(Decimal("110"), Decimal("100"))

        assert deviation.absolute == Decimal("10.00")
        assert deviation.percentage == Decimal("10.0")
        assert classify_cost_status(deviation, MARGIN) == CostStatus.BINNEN_MARGE

    def test_classification_uses_unrounded_percentage(self):
        deviation = calculate_deviation(Decimal("1100.1"), Decimal("1000"))

        # 10.01% displays as 10.0 but is above the margin
        assert deviation.percentage == Decimal("10.0")
        assert classify_cost_status(deviation, MARGIN) == CostStatus.OVER_BUDGET
        assert classify_hours_status(deviation, MARGIN) == HoursStatus.OVER_PLANNING

    def test_zero_planned_gives_zero_percentage(self):
        deviation = calculate_deviation(Decimal("50"), Decimal("0"))

        assert deviation.absolute == Decimal("50.00")
        assert deviation.percentage == Decimal("0")
        assert classify_cost_status(deviation, MARGIN) == CostStatus.ONDER_BUDGET

    def test_negative_planned_gives_zero_percentage(self):
        deviation = calculate_deviation(Decimal("50"), Decimal("-10"))
        assert deviation.percentage == Decimal("0")

    @pytest.mark.parametrize(
        "actual, planned, expected",
        [
            ("90", "100", HoursStatus.ONDER_PLANNING),
            ("100", "100", HoursStatus.ONDER_PLANNING),
            ("105", "100", HoursStatus.BINNEN_MARGE),
            ("111", "100", HoursStatus.OVER_PLANNING),
        ],
    )
    def test_hours_status_bands(self, actual, planned, expected):
        deviation = calculate_deviation(Decimal(actual), Decimal(planned))
        assert classify_hours_status(deviation, MARGIN) == expected

    def test_percentage_rounds_half_up(self):
        # 1/3 of 100 over -> 33.333.. -> 33.3 ; 2/3 -> 66.666.. -> 66.7
        assert calculate_deviation(Decimal("4"), Decimal("3")).percentage == Decimal("33.3")
        assert calculate_deviation(Decimal("5"), Decimal("3")).percentage == Decimal("66.7")


# =============================================================================
# compare_to_baseline
# =============================================================================


class TestCompareToBaseline:

    def test_under_budget_scenario(self):
        comparison = compare_to_baseline(
            _baseline(), [_labor("4", "180"), _material("25")], MARGIN
        )

        assert comparison.planned.total == Decimal("220.00")
        assert comparison.actual.total == Decimal("205.00")
        assert comparison.deviation.total.absolute == Decimal("-15.00")
        assert comparison.deviation.total.percentage == Decimal("-6.8")
        assert comparison.cost_status == CostStatus.ONDER_BUDGET
        assert comparison.deviation.hours.percentage == Decimal("0.0")
        assert comparison.hours_status == HoursStatus.ONDER_PLANNING
        assert comparison.baseline_source == "offerte"

    def test_over_budget_scenario(self):
        items = [_labor("4", "180"), _labor("2", "90"), _material("25")]

        comparison = compare_to_baseline(_baseline(), items, MARGIN)

        assert comparison.actual.total == Decimal("295.00")
        assert comparison.deviation.total.percentage == Decimal("34.1")
        assert comparison.cost_status == CostStatus.OVER_BUDGET
        assert comparison.actual.hours == Decimal("6.00")
        assert comparison.deviation.hours.percentage == Decimal("50.0")
        assert comparison.hours_status == HoursStatus.OVER_PLANNING

    def test_scope_hours_cover_planned_and_actual_scopes(self):
        baseline = _baseline(
            planned_hours_by_scope={"bestrating": Decimal("4"), "beplanting": Decimal("2")}
        )
        items = [_labor("3", "135"), _labor("2", "90", scope="grondwerk")]

        comparison = compare_to_baseline(baseline, items, MARGIN)
        by_scope = comparison.deviation.by_scope

        assert list(by_scope) == ["bestrating", "beplanting", "grondwerk"]
        assert by_scope["bestrating"].absolute == Decimal("-1.00")
        assert by_scope["bestrating"].percentage == Decimal("-25.0")
        assert by_scope["beplanting"].absolute == Decimal("-2.00")
        assert by_scope["grondwerk"].absolute == Decimal("2.00")
        assert by_scope["grondwerk"].percentage == Decimal("0")
        assert comparison.actual.hours_by_scope == {
            "bestrating": Decimal("3.00"),
            "grondwerk": Decimal("2.00"),
        }

    def test_equipment_is_part_of_planned_total(self):
        baseline = _baseline(planned_equipment_cost=Decimal("400"))

        comparison = compare_to_baseline(baseline, [], MARGIN)

        assert comparison.planned.total == Decimal("620.00")
        assert comparison.deviation.equipment.absolute == Decimal("-400.00")

    def test_summary_for_overview(self):
        comparison = compare_to_baseline(
            _baseline(), [_labor("4", "180"), _material("25")], MARGIN
        )

        summary = summarize_for_overview(comparison, Decimal("2"), 3)

        assert summary.planned_total == Decimal("220.00")
        assert summary.cost_deviation == Decimal("-15.00")
        assert summary.cost_deviation_percentage == Decimal("-6.8")
        assert summary.hours_deviation == Decimal("0.00")
        assert summary.estimated_days == Decimal("2")
        assert summary.actual_days == 3


# =============================================================================
# Baseline resolution (integration)
# =============================================================================


class TestBaselineResolver:

    def test_offerte_baseline_preferred(self, session, test_actor_id, test_project):
        make_baseline(session, test_actor_id, project_id=TEST_PROJECT_ID, labor="999")
        make_baseline(session, test_actor_id, offerte_id=TEST_OFFERTE_ID, labor="1000")

        baseline = BaselineResolver.default(session).resolve(_authorized(test_project))

        assert baseline.source == "offerte"
        assert baseline.planned_labor_cost == Decimal("1000")

    def test_legacy_project_baseline_fallback(self, session, test_actor_id, unlinked_project):
        make_baseline(
            session,
            test_actor_id,
            project_id=TEST_OTHER_PROJECT_ID,
            hours_by_scope={"bestrating": "12.5"},
        )

        baseline = BaselineResolver.default(session).resolve(_authorized(unlinked_project))

        assert baseline.source == "project"
        assert baseline.planned_hours_by_scope == {"bestrating": Decimal("12.5")}

    def test_latest_baseline_wins(self, session, test_actor_id, test_project):
        make_baseline(
            session,
            test_actor_id,
            offerte_id=TEST_OFFERTE_ID,
            labor="800",
            created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )
        make_baseline(
            session,
            test_actor_id,
            offerte_id=TEST_OFFERTE_ID,
            labor="900",
            created_at=datetime(2024, 2, 15, tzinfo=timezone.utc),
        )

        baseline = BaselineResolver.default(session).resolve(_authorized(test_project))

        assert baseline.planned_labor_cost == Decimal("900")

    def test_no_baseline(self, session, test_project, captured_logs):
        assert BaselineResolver.default(session).resolve(_authorized(test_project)) is None
        assert any(r["message"] == "baseline_not_found" for r in captured_logs())


class TestBudgetComparator:

    def _comparator(self, session) -> BudgetComparator:
        ledger = CostLedger(
            [
                LaborCostAdapter(session, LaborRates(Decimal("45"))),
                EquipmentCostAdapter(session),
                MaterialCostAdapter(session),
            ]
        )
        return BudgetComparator(ledger, BaselineResolver.default(session), MARGIN)

    def test_missing_baseline_is_tagged_result(self, session, test_project):
        result = self._comparator(session).compare(_authorized(test_project))

        assert result.error == NO_BASELINE_MESSAGE
        assert result.data is None
        assert not result.has_data

    def test_compares_whole_project_ledger(self, session, test_actor_id, test_project):
        make_baseline(
            session,
            test_actor_id,
            offerte_id=TEST_OFFERTE_ID,
            labor="200",
            material="20",
            hours="4",
        )
        make_time_entry(session, test_actor_id, hours="4")

        result = self._comparator(session).compare(_authorized(test_project))

        assert result.error is None
        assert result.data.actual.labor == Decimal("180.00")
        assert result.data.deviation.labor.absolute == Decimal("-20.00")
        assert result.data.deviation.labor.percentage == Decimal("-10.0")
