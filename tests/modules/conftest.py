"""
Shared fixtures for module tests.

Provides the parent rows the cost ledger reads (project, offerte,
equipment, products) and factory helpers for the three backing stores.
All IDs are deterministic so tests can import and use them directly.

DESIGN RULE: Every fixture is opt-in.  No autouse.  Each test explicitly
declares which parent rows it depends on in its function signature.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from costing_config.schema import CostingConfig
from costing_modules.project_costs.orm import (
    BudgetBaselineModel,
    CompanySettingsModel,
    EmployeeModel,
    EquipmentModel,
    EquipmentUsageModel,
    InventoryMovementModel,
    OfferteModel,
    ProductModel,
    ProjectModel,
    StockBalanceModel,
    TimeEntryModel,
)
from costing_modules.project_costs.service import ProjectCostService

# ---------------------------------------------------------------------------
# Deterministic parent entity IDs
# ---------------------------------------------------------------------------

TEST_PROJECT_ID = UUID("00000000-0000-4000-a000-000000000070")
TEST_OTHER_PROJECT_ID = UUID("00000000-0000-4000-a000-000000000071")
TEST_OFFERTE_ID = UUID("00000000-0000-4000-a000-000000000080")
TEST_EXCAVATOR_ID = UUID("00000000-0000-4000-a000-000000000090")
TEST_COMPACTOR_ID = UUID("00000000-0000-4000-a000-000000000091")
TEST_PAVER_STONE_ID = UUID("00000000-0000-4000-a000-0000000000a0")
TEST_SAND_ID = UUID("00000000-0000-4000-a000-0000000000a1")
TEST_FOREIGN_OWNER_ID = UUID("00000000-0000-4000-a000-0000000000f0")


# ---------------------------------------------------------------------------
# Parent rows (opt-in, individual)
# ---------------------------------------------------------------------------


@pytest.fixture
def test_offerte(session, test_actor_id):
    offerte = OfferteModel(
        id=TEST_OFFERTE_ID,
        owner_id=test_actor_id,
        offerte_number="OFF-2024-001",
        status="geaccepteerd",
        created_by_id=test_actor_id,
    )
    session.add(offerte)
    session.flush()
    return offerte


@pytest.fixture
def test_project(session, test_actor_id, test_offerte):
    """Project owned by ``test_actor_id`` and linked to ``test_offerte``."""
    project = ProjectModel(
        id=TEST_PROJECT_ID,
        owner_id=test_actor_id,
        name="Tuin Jansen",
        status="in_uitvoering",
        offerte_id=test_offerte.id,
        created_by_id=test_actor_id,
    )
    session.add(project)
    session.flush()
    return project


@pytest.fixture
def unlinked_project(session, test_actor_id):
    """Project without an offerte (legacy baseline lookup only)."""
    project = ProjectModel(
        id=TEST_OTHER_PROJECT_ID,
        owner_id=test_actor_id,
        name="Oprit De Vries",
        status="gepland",
        offerte_id=None,
        created_by_id=test_actor_id,
    )
    session.add(project)
    session.flush()
    return project


@pytest.fixture
def daily_excavator(session, test_actor_id):
    equipment = EquipmentModel(
        id=TEST_EXCAVATOR_ID,
        owner_id=test_actor_id,
        name="Minigraver",
        ownership="intern",
        rate=Decimal("200"),
        rate_type="dag",
        created_by_id=test_actor_id,
    )
    session.add(equipment)
    session.flush()
    return equipment


@pytest.fixture
def hourly_compactor(session, test_actor_id):
    equipment = EquipmentModel(
        id=TEST_COMPACTOR_ID,
        owner_id=test_actor_id,
        name="Trilplaat",
        ownership="extern",
        rate=Decimal("35"),
        rate_type="uur",
        created_by_id=test_actor_id,
    )
    session.add(equipment)
    session.flush()
    return equipment


@pytest.fixture
def paver_stones(session, test_actor_id):
    product = ProductModel(
        id=TEST_PAVER_STONE_ID,
        owner_id=test_actor_id,
        name="Betonklinker",
        category="bestrating",
        purchase_price=Decimal("2.5"),
        unit="stuk",
        created_by_id=test_actor_id,
    )
    session.add(product)
    session.flush()
    return product


@pytest.fixture
def sand(session, test_actor_id):
    product = ProductModel(
        id=TEST_SAND_ID,
        owner_id=test_actor_id,
        name="Straatzand",
        category="grond",
        purchase_price=Decimal("32.50"),
        unit="m3",
        created_by_id=test_actor_id,
    )
    session.add(product)
    session.flush()
    return product


@pytest.fixture
def cost_config() -> CostingConfig:
    """Schema defaults: rate 45, 8 hours per day, 10% margin."""
    return CostingConfig()


@pytest.fixture
def cost_service(session, cost_config, deterministic_clock):
    return ProjectCostService(session, config=cost_config, clock=deterministic_clock)


# ---------------------------------------------------------------------------
# Backing-store factories
# ---------------------------------------------------------------------------


def make_time_entry(
    session,
    actor_id,
    *,
    project_id=TEST_PROJECT_ID,
    employee_name="Jan",
    hours="4",
    scope="bestrating",
    work_date=date(2024, 3, 4),
    notes=None,
):
    entry = TimeEntryModel(
        project_id=project_id,
        employee_name=employee_name,
        hours=Decimal(hours),
        scope=scope,
        work_date=work_date,
        notes=notes,
        source="import",
        created_by_id=actor_id,
    )
    session.add(entry)
    session.flush()
    return entry


def make_equipment_usage(
    session,
    actor_id,
    *,
    equipment_id=TEST_EXCAVATOR_ID,
    project_id=TEST_PROJECT_ID,
    hours="16",
    cost="400",
    usage_date=date(2024, 3, 4),
):
    usage = EquipmentUsageModel(
        project_id=project_id,
        equipment_id=equipment_id,
        usage_date=usage_date,
        hours=Decimal(hours),
        cost=Decimal(cost),
        created_by_id=actor_id,
    )
    session.add(usage)
    session.flush()
    return usage


def make_stock_balance(session, actor_id, *, product_id=TEST_PAVER_STONE_ID, quantity="100"):
    balance = StockBalanceModel(
        owner_id=actor_id,
        product_id=product_id,
        quantity=Decimal(quantity),
        created_by_id=actor_id,
    )
    session.add(balance)
    session.flush()
    return balance


def make_movement(
    session,
    actor_id,
    balance,
    *,
    quantity="-10",
    movement_type="verbruik",
    project_id=TEST_PROJECT_ID,
    created_at=datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc),
    notes=None,
):
    movement = InventoryMovementModel(
        owner_id=actor_id,
        stock_balance_id=balance.id,
        product_id=balance.product_id,
        project_id=project_id,
        movement_type=movement_type,
        quantity=Decimal(quantity),
        notes=notes,
        created_at=created_at,
        created_by_id=actor_id,
    )
    session.add(movement)
    session.flush()
    return movement


def make_baseline(
    session,
    actor_id,
    *,
    offerte_id=None,
    project_id=None,
    labor="1000",
    equipment="0",
    material="500",
    hours="20",
    hours_by_scope=None,
    estimated_days="3",
    created_at=None,
):
    baseline = BudgetBaselineModel(
        offerte_id=offerte_id,
        project_id=project_id,
        planned_labor_cost=Decimal(labor),
        planned_equipment_cost=Decimal(equipment),
        planned_material_cost=Decimal(material),
        planned_hours_total=Decimal(hours),
        planned_hours_by_scope=hours_by_scope or {},
        estimated_days=Decimal(estimated_days),
        created_by_id=actor_id,
    )
    if created_at is not None:
        baseline.created_at = created_at
    session.add(baseline)
    session.flush()
    return baseline


def make_settings(session, actor_id, *, hourly_rate="50"):
    settings = CompanySettingsModel(
        owner_id=actor_id,
        hourly_rate=None if hourly_rate is None else Decimal(hourly_rate),
        created_by_id=actor_id,
    )
    session.add(settings)
    session.flush()
    return settings


def make_employee(session, actor_id, *, name="Piet", hourly_rate="60"):
    employee = EmployeeModel(
        owner_id=actor_id,
        name=name,
        hourly_rate=None if hourly_rate is None else Decimal(hourly_rate),
        created_by_id=actor_id,
    )
    session.add(employee)
    session.flush()
    return employee
