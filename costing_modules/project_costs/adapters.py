"""
Source Adapters (``costing_modules.project_costs.adapters``).

Responsibility
--------------
Map the three backing stores to the normalized ``CostLineItem`` view:

* ``LaborCostAdapter``     -- time entries (``arbeid``)
* ``EquipmentCostAdapter`` -- equipment usage (``machine``)
* ``MaterialCostAdapter``  -- consumption movements (``materiaal``)

Architecture position
---------------------
**Modules layer** -- read-only selectors.  Consumed by ``CostLedger``
and ``ProjectCostService.get_by_id``.

Invariants enforced
-------------------
* Labor and material totals are ``round(quantity * unit_price, 2)``.
* Equipment totals are the persisted ``cost``; the displayed unit and
  price are reconstructed from the current equipment row only.
* A missing equipment/product row degrades to a placeholder description
  and a zero unit price; it never aborts the listing.
* Rows come back ordered by (date, created_at, id) so repeated reads are
  identical.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from costing_kernel.domain.rounding import round_money
from costing_kernel.logging_config import get_logger
from costing_kernel.selectors.base import BaseSelector
from costing_modules.project_costs.models import (
    CostLineItem,
    CostType,
    DateRange,
    LaborRates,
    MovementType,
    RateType,
    SourceKind,
    utc_day,
)
from costing_modules.project_costs.orm import (
    EquipmentModel,
    EquipmentUsageModel,
    InventoryMovementModel,
    ProductModel,
    TimeEntryModel,
)

logger = get_logger("modules.project_costs.adapters")

DEFAULT_LABOR_SCOPE = "algemeen"
EQUIPMENT_SCOPE = "machines"
MATERIAL_SCOPE = "materialen"
UNKNOWN_EQUIPMENT = "Onbekende machine"
UNKNOWN_PRODUCT = "Onbekend product"
DEFAULT_PRODUCT_UNIT = "stuk"


def format_quantity(value: Decimal) -> str:
    """Render ``Decimal("4.000000000")`` as ``"4"`` and ``2.50`` as ``"2.5"``."""
    return format(value.normalize(), "f")


class CostSourceAdapter(BaseSelector):
    """One backing store seen as a sequence of ``CostLineItem``."""

    cost_type: CostType

    @abstractmethod
    def map_to_line_items(
        self,
        project_id: UUID,
        date_range: DateRange | None = None,
    ) -> list[CostLineItem]:
        ...

    @abstractmethod
    def get_line_item(self, project_id: UUID, entry_id: UUID) -> CostLineItem | None:
        """Single line for ``entry_id``, or None if absent or in another project."""
        ...


# ---------------------------------------------------------------------------
# Labor
# ---------------------------------------------------------------------------


class LaborCostAdapter(CostSourceAdapter):
    """Time entries priced with the injected ``LaborRates``."""

    cost_type = CostType.ARBEID

    def __init__(self, session, rates: LaborRates):
        super().__init__(session)
        self._rates = rates

    def map_to_line_items(self, project_id, date_range=None):
        stmt = select(TimeEntryModel).where(TimeEntryModel.project_id == project_id)
        if date_range is not None:
            if date_range.start is not None:
                stmt = stmt.where(TimeEntryModel.work_date >= date_range.start)
            if date_range.end is not None:
                stmt = stmt.where(TimeEntryModel.work_date <= date_range.end)
        stmt = stmt.order_by(
            TimeEntryModel.work_date, TimeEntryModel.created_at, TimeEntryModel.id
        )
        entries = self.session.execute(stmt).scalars().all()
        return [self._to_line_item(entry) for entry in entries]

    def get_line_item(self, project_id, entry_id):
        entry = self.session.execute(
            select(TimeEntryModel).where(
                TimeEntryModel.id == entry_id,
                TimeEntryModel.project_id == project_id,
            )
        ).scalar_one_or_none()
        if entry is None:
            return None
        return self._to_line_item(entry)

    def _to_line_item(self, entry: TimeEntryModel) -> CostLineItem:
        rate = self._rates.rate_for(entry.employee_name)
        return CostLineItem(
            id=str(entry.id),
            type=CostType.ARBEID,
            date=entry.work_date,
            description=f"{entry.employee_name} - {format_quantity(entry.hours)} uur",
            scope=entry.scope or DEFAULT_LABOR_SCOPE,
            quantity=entry.hours,
            unit="uur",
            unit_price=rate,
            total=round_money(entry.hours * rate),
            source_kind=SourceKind.TIME_ENTRY,
            source_id=str(entry.id),
            employee_name=entry.employee_name,
            notes=entry.notes,
        )


# ---------------------------------------------------------------------------
# Equipment
# ---------------------------------------------------------------------------


class EquipmentCostAdapter(CostSourceAdapter):
    """Equipment usage with its frozen cost."""

    cost_type = CostType.MACHINE

    def map_to_line_items(self, project_id, date_range=None):
        stmt = select(EquipmentUsageModel).where(
            EquipmentUsageModel.project_id == project_id
        )
        if date_range is not None:
            if date_range.start is not None:
                stmt = stmt.where(EquipmentUsageModel.usage_date >= date_range.start)
            if date_range.end is not None:
                stmt = stmt.where(EquipmentUsageModel.usage_date <= date_range.end)
        stmt = stmt.order_by(
            EquipmentUsageModel.usage_date,
            EquipmentUsageModel.created_at,
            EquipmentUsageModel.id,
        )
        usages = self.session.execute(stmt).scalars().all()
        equipment = self._load_equipment(u.equipment_id for u in usages)
        return [self._to_line_item(u, equipment.get(u.equipment_id)) for u in usages]

    def get_line_item(self, project_id, entry_id):
        usage = self.session.execute(
            select(EquipmentUsageModel).where(
                EquipmentUsageModel.id == entry_id,
                EquipmentUsageModel.project_id == project_id,
            )
        ).scalar_one_or_none()
        if usage is None:
            return None
        equipment = self._load_equipment([usage.equipment_id])
        return self._to_line_item(usage, equipment.get(usage.equipment_id))

    def _load_equipment(self, ids: Iterable[UUID]) -> dict[UUID, EquipmentModel]:
        wanted = set(ids)
        if not wanted:
            return {}
        rows = self.session.execute(
            select(EquipmentModel).where(EquipmentModel.id.in_(wanted))
        ).scalars().all()
        found = {row.id: row for row in rows}
        missing = wanted - found.keys()
        if missing:
            logger.debug(
                "equipment_reference_dangling",
                extra={"equipment_ids": sorted(str(m) for m in missing)},
            )
        return found

    def _to_line_item(
        self,
        usage: EquipmentUsageModel,
        equipment: EquipmentModel | None,
    ) -> CostLineItem:
        if equipment is None:
            description, unit, unit_price = UNKNOWN_EQUIPMENT, RateType.HOURLY.value, Decimal("0")
        else:
            description = equipment.name
            unit = (
                RateType.DAILY.value
                if equipment.rate_type == RateType.DAILY.value
                else RateType.HOURLY.value
            )
            unit_price = equipment.rate
        return CostLineItem(
            id=str(usage.id),
            type=CostType.MACHINE,
            date=usage.usage_date,
            description=description,
            scope=EQUIPMENT_SCOPE,
            quantity=usage.hours,
            unit=unit,
            unit_price=unit_price,
            total=usage.cost,
            source_kind=SourceKind.EQUIPMENT_USAGE,
            source_id=str(usage.id),
        )


# ---------------------------------------------------------------------------
# Material
# ---------------------------------------------------------------------------


class MaterialCostAdapter(CostSourceAdapter):
    """Consumption movements priced at the product purchase price."""

    cost_type = CostType.MATERIAAL

    def _base_query(self, project_id: UUID):
        return select(InventoryMovementModel).where(
            InventoryMovementModel.project_id == project_id,
            InventoryMovementModel.movement_type == MovementType.CONSUMPTION.value,
        )

    def map_to_line_items(self, project_id, date_range=None):
        stmt = self._base_query(project_id).order_by(
            InventoryMovementModel.created_at, InventoryMovementModel.id
        )
        movements = self.session.execute(stmt).scalars().all()
        if date_range is not None:
            movements = [
                m for m in movements if date_range.contains_timestamp(m.created_at)
            ]
        products = self._load_products(m.product_id for m in movements)
        return [self._to_line_item(m, products.get(m.product_id)) for m in movements]

    def get_line_item(self, project_id, entry_id):
        movement = self.session.execute(
            self._base_query(project_id).where(InventoryMovementModel.id == entry_id)
        ).scalar_one_or_none()
        if movement is None:
            return None
        products = self._load_products([movement.product_id])
        return self._to_line_item(movement, products.get(movement.product_id))

    def _load_products(self, ids: Iterable[UUID]) -> dict[UUID, ProductModel]:
        wanted = set(ids)
        if not wanted:
            return {}
        rows = self.session.execute(
            select(ProductModel).where(ProductModel.id.in_(wanted))
        ).scalars().all()
        found = {row.id: row for row in rows}
        missing = wanted - found.keys()
        if missing:
            logger.debug(
                "product_reference_dangling",
                extra={"product_ids": sorted(str(m) for m in missing)},
            )
        return found

    def _to_line_item(
        self,
        movement: InventoryMovementModel,
        product: ProductModel | None,
    ) -> CostLineItem:
        quantity = abs(movement.quantity)
        if product is None:
            description, unit, unit_price = UNKNOWN_PRODUCT, DEFAULT_PRODUCT_UNIT, Decimal("0")
        else:
            description = product.name
            unit = product.unit or DEFAULT_PRODUCT_UNIT
            unit_price = product.purchase_price
        return CostLineItem(
            id=str(movement.id),
            type=CostType.MATERIAAL,
            date=utc_day(movement.created_at),
            description=description,
            scope=MATERIAL_SCOPE,
            quantity=quantity,
            unit=unit,
            unit_price=unit_price,
            total=round_money(quantity * unit_price),
            source_kind=SourceKind.INVENTORY_MOVEMENT,
            source_id=str(movement.id),
            notes=movement.notes,
        )
