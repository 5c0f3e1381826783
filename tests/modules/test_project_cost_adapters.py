"""
Tests for the cost source adapters.

Validates:
- Labor: rate resolution (employee -> settings -> default), description,
  default scope, inclusive date filter
- Equipment: frozen persisted cost, display unit/price from current rate,
  dangling equipment placeholder
- Material: consumption-only, absolute quantity, UTC day, whole-end-day
  timestamp filter, dangling product placeholder
- Single-item lookup is scoped to the project
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
from costing_modules.project_costs.models import (
    CostType,
    DateRange,
    LaborRates,
    SourceKind,
)
from costing_modules.project_costs.rates import SettingsRateProvider
from tests.modules.conftest import (
    TEST_OTHER_PROJECT_ID,
    TEST_PROJECT_ID,
    make_employee,
    make_equipment_usage,
    make_movement,
    make_settings,
    make_stock_balance,
    make_time_entry,
)

DEFAULT_RATES = LaborRates(Decimal("45"))


# =============================================================================
# Labor
# =============================================================================


class TestLaborCostAdapter:

    def test_default_rate_scenario(self, session, test_actor_id, test_project):
        make_time_entry(session, test_actor_id, employee_name="Jan", hours="4", scope="bestrating")

        items = LaborCostAdapter(session, DEFAULT_RATES).map_to_line_items(TEST_PROJECT_ID)

        assert len(items) == 1
        item = items[0]
        assert item.type == CostType.ARBEID
        assert item.total == Decimal("180")
        assert item.unit_price == Decimal("45")
        assert item.unit == "uur"
        assert item.description == "Jan - 4 uur"
        assert item.scope == "bestrating"
        assert item.employee_name == "Jan"
        assert item.source_kind == SourceKind.TIME_ENTRY

    def test_total_is_rounded_product(self, session, test_actor_id, test_project):
        make_time_entry(session, test_actor_id, hours="1.333")
        rates = LaborRates(Decimal("47.50"))

        item = LaborCostAdapter(session, rates).map_to_line_items(TEST_PROJECT_ID)[0]

        # 1.333 * 47.50 = 63.3175
        assert item.total == Decimal("63.32")
        assert item.description == "Jan - 1.333 uur"

    def test_missing_scope_defaults_to_algemeen(self, session, test_actor_id, test_project):
        make_time_entry(session, test_actor_id, scope=None)

        item = LaborCostAdapter(session, DEFAULT_RATES).map_to_line_items(TEST_PROJECT_ID)[0]

        assert item.scope == "algemeen"

    def test_date_filter_is_inclusive(self, session, test_actor_id, test_project):
        for day in (3, 4, 5, 6):
            make_time_entry(session, test_actor_id, work_date=date(2024, 3, day))

        items = LaborCostAdapter(session, DEFAULT_RATES).map_to_line_items(
            TEST_PROJECT_ID, DateRange(date(2024, 3, 4), date(2024, 3, 5))
        )

        assert sorted(i.date for i in items) == [date(2024, 3, 4), date(2024, 3, 5)]

    def test_other_projects_are_excluded(
        self, session, test_actor_id, test_project, unlinked_project
    ):
        make_time_entry(session, test_actor_id)
        make_time_entry(session, test_actor_id, project_id=TEST_OTHER_PROJECT_ID)

        items = LaborCostAdapter(session, DEFAULT_RATES).map_to_line_items(TEST_PROJECT_ID)

        assert len(items) == 1

    def test_get_line_item_scoped_to_project(
        self, session, test_actor_id, test_project, unlinked_project
    ):
        entry = make_time_entry(session, test_actor_id)
        adapter = LaborCostAdapter(session, DEFAULT_RATES)

        assert adapter.get_line_item(TEST_PROJECT_ID, entry.id).id == str(entry.id)
        assert adapter.get_line_item(TEST_OTHER_PROJECT_ID, entry.id) is None
        assert adapter.get_line_item(TEST_PROJECT_ID, uuid4()) is None


class TestSettingsRateProvider:

    def test_falls_back_to_configured_default(self, session, test_actor_id):
        rates = SettingsRateProvider(session, Decimal("45")).labor_rates(test_actor_id)
        assert rates.rate_for("Jan") == Decimal("45")

    def test_company_settings_rate(self, session, test_actor_id):
        make_settings(session, test_actor_id, hourly_rate="50")

        rates = SettingsRateProvider(session, Decimal("45")).labor_rates(test_actor_id)

        assert rates.rate_for("Jan") == Decimal("50")

    def test_employee_rate_overrides_settings(self, session, test_actor_id):
        make_settings(session, test_actor_id, hourly_rate="50")
        make_employee(session, test_actor_id, name="Piet", hourly_rate="60")

        rates = SettingsRateProvider(session, Decimal("45")).labor_rates(test_actor_id)

        assert rates.rate_for("Piet") == Decimal("60")
        assert rates.rate_for("Jan") == Decimal("50")

    def test_zero_rates_count_as_unset(self, session, test_actor_id):
        make_settings(session, test_actor_id, hourly_rate="0")
        make_employee(session, test_actor_id, name="Kees", hourly_rate="0")
        make_employee(session, test_actor_id, name="Bram", hourly_rate=None)

        rates = SettingsRateProvider(session, Decimal("45")).labor_rates(test_actor_id)

        assert rates.rate_for("Kees") == Decimal("45")
        assert rates.rate_for("Bram") == Decimal("45")

    def test_other_owners_rates_are_ignored(self, session, test_actor_id):
        make_employee(session, uuid4(), name="Jan", hourly_rate="99")

        rates = SettingsRateProvider(session, Decimal("45")).labor_rates(test_actor_id)

        assert rates.rate_for("Jan") == Decimal("45")


# =============================================================================
# Equipment
# =============================================================================


class TestEquipmentCostAdapter:

    def test_total_is_persisted_cost(self, session, test_actor_id, test_project, daily_excavator):
        make_equipment_usage(session, test_actor_id, hours="16", cost="400")

        item = EquipmentCostAdapter(session).map_to_line_items(TEST_PROJECT_ID)[0]

        assert item.type == CostType.MACHINE
        assert item.total == Decimal("400")
        assert item.quantity == Decimal("16")
        assert item.unit == "dag"
        assert item.unit_price == Decimal("200")
        assert item.description == "Minigraver"
        assert item.scope == "machines"
        assert item.source_kind == SourceKind.EQUIPMENT_USAGE

    def test_rate_change_does_not_recompute_total(
        self, session, test_actor_id, test_project, daily_excavator
    ):
        make_equipment_usage(session, test_actor_id, hours="16", cost="400")
        daily_excavator.rate = Decimal("300")
        session.flush()

        item = EquipmentCostAdapter(session).map_to_line_items(TEST_PROJECT_ID)[0]

        assert item.total == Decimal("400")
        assert item.unit_price == Decimal("300")

    def test_hourly_unit(self, session, test_actor_id, test_project, hourly_compactor):
        make_equipment_usage(
            session, test_actor_id, equipment_id=hourly_compactor.id, hours="3", cost="105"
        )

        item = EquipmentCostAdapter(session).map_to_line_items(TEST_PROJECT_ID)[0]

        assert item.unit == "uur"

    def test_dangling_equipment_degrades_to_placeholder(self, session, test_actor_id, test_project):
        make_equipment_usage(session, test_actor_id, equipment_id=uuid4(), cost="120")

        items = EquipmentCostAdapter(session).map_to_line_items(TEST_PROJECT_ID)

        assert len(items) == 1
        assert items[0].description == "Onbekende machine"
        assert items[0].unit_price == Decimal("0")
        assert items[0].total == Decimal("120")


# =============================================================================
# Material
# =============================================================================


class TestMaterialCostAdapter:

    def test_consumption_scenario(self, session, test_actor_id, test_project, paver_stones):
        balance = make_stock_balance(session, test_actor_id)
        make_movement(session, test_actor_id, balance, quantity="-10", notes="voorpad")

        item = MaterialCostAdapter(session).map_to_line_items(TEST_PROJECT_ID)[0]

        assert item.type == CostType.MATERIAAL
        assert item.quantity == Decimal("10")
        assert item.unit_price == Decimal("2.5")
        assert item.total == Decimal("25")
        assert item.unit == "stuk"
        assert item.scope == "materialen"
        assert item.date == date(2024, 3, 5)
        assert item.notes == "voorpad"
        assert item.source_kind == SourceKind.INVENTORY_MOVEMENT

    def test_restock_movements_are_excluded(self, session, test_actor_id, test_project, paver_stones):
        balance = make_stock_balance(session, test_actor_id)
        make_movement(session, test_actor_id, balance, quantity="50", movement_type="inkoop")
        make_movement(session, test_actor_id, balance, quantity="-4")

        items = MaterialCostAdapter(session).map_to_line_items(TEST_PROJECT_ID)

        assert [i.quantity for i in items] == [Decimal("4")]

    @pytest.mark.parametrize(
        "start, end, included",
        [
            (date(2024, 3, 5), date(2024, 3, 5), True),
            (date(2024, 3, 1), date(2024, 3, 5), True),
            (date(2024, 3, 6), None, False),
            (None, date(2024, 3, 4), False),
        ],
    )
    def test_timestamp_filter(
        self, session, test_actor_id, test_project, paver_stones, start, end, included
    ):
        balance = make_stock_balance(session, test_actor_id)
        make_movement(
            session,
            test_actor_id,
            balance,
            created_at=datetime(2024, 3, 5, 21, 45, tzinfo=timezone.utc),
        )

        items = MaterialCostAdapter(session).map_to_line_items(
            TEST_PROJECT_ID, DateRange(start, end)
        )

        assert bool(items) is included

    def test_dangling_product_degrades_to_placeholder(self, session, test_actor_id, test_project):
        balance = make_stock_balance(session, test_actor_id, product_id=uuid4())
        make_movement(session, test_actor_id, balance, quantity="-3")

        item = MaterialCostAdapter(session).map_to_line_items(TEST_PROJECT_ID)[0]

        assert item.description == "Onbekend product"
        assert item.unit == "stuk"
        assert item.unit_price == Decimal("0")
        assert item.total == Decimal("0")

    def test_get_line_item_ignores_restock(self, session, test_actor_id, test_project, paver_stones):
        balance = make_stock_balance(session, test_actor_id)
        restock = make_movement(session, test_actor_id, balance, quantity="50", movement_type="inkoop")

        assert MaterialCostAdapter(session).get_line_item(TEST_PROJECT_ID, restock.id) is None
