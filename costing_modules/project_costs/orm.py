"""
SQLAlchemy ORM persistence models for project cost tracking.

Responsibility
--------------
Declare the backing stores that the cost ledger reads and writes: projects
and their linked offertes, budget baselines (voorcalculaties), company
settings and employees (labor rates), time entries, equipment and its
usage log, the product catalog, stock balances and inventory movements.
Most of these tables are owned by other subsystems; they are declared here
to the extent this module touches them.

Invariants enforced
-------------------
* All money, hours and quantities use ``Decimal`` (Numeric(38,9)).
* Enum fields stored as String for readability and portability.
* ``StockBalanceModel`` is unique per (owner, product).
* ``InventoryMovementModel`` carries a ``version`` counter used for
  optimistic concurrency on quantity updates.
* Equipment and product references on usage/movement rows are NOT foreign
  keys: catalog rows may be deleted by their owning subsystem and readers
  degrade to a placeholder label instead.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from costing_kernel.db.base import TrackedBase, UUIDString

# ---------------------------------------------------------------------------
# Projects, offertes and budget baselines
# ---------------------------------------------------------------------------


class OfferteModel(TrackedBase):
    """Customer quote a project was won from (owned by the quoting engine)."""

    __tablename__ = "costing_offertes"

    __table_args__ = (
        Index("idx_costing_offerte_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    offerte_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="geaccepteerd")

    def __repr__(self) -> str:
        return f"<OfferteModel {self.offerte_number} [{self.status}]>"


class ProjectModel(TrackedBase):
    """
    A project whose costs are tracked.

    Guarantees:
        - ``owner_id`` is the only identity allowed to read or mutate the
          project's cost entries.
        - ``offerte_id`` links to the quote the budget baseline belongs to.
    """

    __tablename__ = "costing_projects"

    __table_args__ = (
        Index("idx_costing_project_owner", "owner_id"),
        Index("idx_costing_project_offerte", "offerte_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="in_uitvoering")
    offerte_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("costing_offertes.id"), nullable=True
    )

    offerte: Mapped["OfferteModel | None"] = relationship("OfferteModel")

    def __repr__(self) -> str:
        return f"<ProjectModel {self.name} [{self.status}]>"


class BudgetBaselineModel(TrackedBase):
    """
    Voorcalculatie: planned hours and costs for a project.

    Resolved by ``offerte_id``; rows created before offertes were linked
    carry only ``project_id`` (legacy lookup).
    """

    __tablename__ = "costing_budget_baselines"

    __table_args__ = (
        Index("idx_costing_baseline_offerte", "offerte_id"),
        Index("idx_costing_baseline_project", "project_id"),
    )

    offerte_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("costing_offertes.id"), nullable=True
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("costing_projects.id"), nullable=True
    )
    planned_labor_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    planned_equipment_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    planned_material_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    planned_hours_total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    # {"grondwerk": "16", "bestrating": "24"}; values stored as strings
    planned_hours_by_scope: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    estimated_days: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    team_size: Mapped[int | None] = mapped_column(nullable=True)

    def to_dto(self, source: str):
        from costing_modules.project_costs.models import BudgetBaseline

        return BudgetBaseline(
            baseline_id=self.id,
            source=source,
            planned_labor_cost=self.planned_labor_cost,
            planned_equipment_cost=self.planned_equipment_cost,
            planned_material_cost=self.planned_material_cost,
            planned_hours_total=self.planned_hours_total,
            planned_hours_by_scope={
                scope: Decimal(str(hours))
                for scope, hours in (self.planned_hours_by_scope or {}).items()
            },
            estimated_days=self.estimated_days,
        )

    def __repr__(self) -> str:
        return f"<BudgetBaselineModel offerte={self.offerte_id} project={self.project_id}>"


# ---------------------------------------------------------------------------
# Settings collaborator (labor rates)
# ---------------------------------------------------------------------------


class CompanySettingsModel(TrackedBase):
    """Per-owner settings; only the default hourly rate is read here."""

    __tablename__ = "costing_company_settings"

    __table_args__ = (
        UniqueConstraint("owner_id", name="uq_costing_settings_owner"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(nullable=True)


class EmployeeModel(TrackedBase):
    """Medewerker; ``hourly_rate`` overrides the company rate when set."""

    __tablename__ = "costing_employees"

    __table_args__ = (
        Index("idx_costing_employee_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# ---------------------------------------------------------------------------
# Labor
# ---------------------------------------------------------------------------


class TimeEntryModel(TrackedBase):
    """Urenregistratie: hours worked by an employee on a project."""

    __tablename__ = "costing_time_entries"

    __table_args__ = (
        Index("idx_costing_time_entry_project", "project_id"),
        Index("idx_costing_time_entry_date", "project_id", "work_date"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("costing_projects.id"), nullable=False)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)
    scope: Mapped[str | None] = mapped_column(String(100), nullable=True)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="handmatig")

    def __repr__(self) -> str:
        return f"<TimeEntryModel {self.employee_name} {self.hours}h {self.work_date}>"


# ---------------------------------------------------------------------------
# Equipment
# ---------------------------------------------------------------------------


class EquipmentModel(TrackedBase):
    """Machine catalog row with its current rate."""

    __tablename__ = "costing_equipment"

    __table_args__ = (
        Index("idx_costing_equipment_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    ownership: Mapped[str] = mapped_column(String(20), nullable=False, default="intern")
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    rate_type: Mapped[str] = mapped_column(String(10), nullable=False, default="uur")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<EquipmentModel {self.name} {self.rate}/{self.rate_type}>"


class EquipmentUsageModel(TrackedBase):
    """
    Machinegebruik: hours an equipment item was used on a project.

    ``cost`` is computed once from the rate in effect when the usage was
    logged (or when its hours were last edited) and is never recomputed
    on read.
    """

    __tablename__ = "costing_equipment_usage"

    __table_args__ = (
        Index("idx_costing_usage_project", "project_id"),
        Index("idx_costing_usage_equipment", "equipment_id"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("costing_projects.id"), nullable=False)
    equipment_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    usage_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)
    cost: Mapped[Decimal] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<EquipmentUsageModel {self.equipment_id} {self.hours}h cost={self.cost}>"


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


class ProductModel(TrackedBase):
    """Product catalog row (owned by the inventory subsystem)."""

    __tablename__ = "costing_products"

    __table_args__ = (
        Index("idx_costing_product_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="overig")
    purchase_price: Mapped[Decimal] = mapped_column(nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="stuk")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ProductModel {self.name} {self.purchase_price}/{self.unit}>"


class StockBalanceModel(TrackedBase):
    """
    Current on-hand quantity of one product for one owner.

    Guarantees:
        - (owner_id, product_id) is unique.
        - For project consumption, mutated only through
          ``StockAdjustmentCoordinator``.
    """

    __tablename__ = "costing_stock_balances"

    __table_args__ = (
        UniqueConstraint("owner_id", "product_id", name="uq_costing_stock_owner_product"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    last_adjusted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<StockBalanceModel {self.product_id} qty={self.quantity}>"


class InventoryMovementModel(TrackedBase):
    """
    Voorraadmutatie: a signed change to a stock balance.

    Consumption (``verbruik``) rows carry a negative quantity and the
    project they were consumed on.  ``created_at`` is the business
    timestamp of the movement and drives the material date filter.
    """

    __tablename__ = "costing_inventory_movements"

    __table_args__ = (
        Index("idx_costing_movement_project", "project_id"),
        Index("idx_costing_movement_balance", "stock_balance_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    stock_balance_id: Mapped[UUID] = mapped_column(
        ForeignKey("costing_stock_balances.id"), nullable=False
    )
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("costing_projects.id"), nullable=True
    )
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(nullable=False)

    stock_balance: Mapped["StockBalanceModel"] = relationship("StockBalanceModel")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<InventoryMovementModel {self.movement_type} {self.quantity}>"
