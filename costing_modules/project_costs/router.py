"""
Mutation Router (``costing_modules.project_costs.router``).

Responsibility
--------------
A cost entry is a polymorphic view over three backing stores.  The router
validates mutation input, turns it into one variant of the ``NewCostEntry``
tagged union, and dispatches create/update/remove to the writer that owns
the matching store:

* ``arbeid``    -> ``LaborEntryWriter``     (time entries)
* ``machine``   -> ``EquipmentEntryWriter`` (equipment usage, frozen cost)
* ``materiaal`` -> ``MaterialEntryWriter``  (consumption + stock balance)

Architecture position
---------------------
**Modules layer**, write side.  Writers flush only; ``ProjectCostService``
authorizes the caller first and owns the transaction.

Invariants enforced
-------------------
* All validation happens before the first write.
* ``overig`` and unknown discriminants raise ``InvalidCostTypeError``.
* Target rows must belong to the authorized project.
* Equipment cost is computed on create and on an hours update only.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select

from costing_kernel.domain.rounding import round_money, to_decimal
from costing_kernel.exceptions import (
    CostEntryNotFoundError,
    CostValidationError,
    InvalidCostTypeError,
    InvalidQuantityError,
    MissingReferenceError,
    ReferenceNotFoundError,
)
from costing_kernel.logging_config import get_logger
from costing_kernel.services.base import BaseService
from costing_modules.project_costs.models import (
    AuthorizedProject,
    CostEntryChanges,
    CostMutationResult,
    CostType,
    MovementType,
    NewCostEntry,
    NewEquipmentEntry,
    NewLaborEntry,
    NewMaterialEntry,
    RateType,
    parse_cost_type,
    parse_day,
    start_of_day_utc,
)
from costing_modules.project_costs.orm import (
    EquipmentModel,
    EquipmentUsageModel,
    InventoryMovementModel,
    ProductModel,
    TimeEntryModel,
)
from costing_modules.project_costs.rates import SettingsRateProvider
from costing_modules.project_costs.stock import StockAdjustmentCoordinator

logger = get_logger("modules.project_costs.router")


# =============================================================================
# Input validation
# =============================================================================


def parse_entry_id(entry_id: UUID | str) -> UUID | None:
    if isinstance(entry_id, UUID):
        return entry_id
    try:
        return UUID(str(entry_id))
    except ValueError:
        return None


def clean_text(value: str | None) -> str | None:
    """Trim; blank becomes None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def require_positive(value: object, field_name: str) -> Decimal:
    try:
        parsed = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidQuantityError(field_name, value) from None
    if not parsed.is_finite() or parsed <= 0:
        raise InvalidQuantityError(field_name, value)
    return parsed


def require_date(value: date | str | None, field_name: str = "date") -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise CostValidationError(field_name, f"{field_name} is required")
    return parse_day(value.strip() if isinstance(value, str) else value, field_name)


def build_new_entry(
    cost_type: CostType | str,
    *,
    entry_date: date | str | None,
    quantity: object,
    employee_name: str | None = None,
    equipment_id: UUID | str | None = None,
    product_id: UUID | str | None = None,
    scope: str | None = None,
    notes: str | None = None,
    unit_price: object = None,
) -> NewCostEntry:
    """
    Validate loose create fields into one ``NewCostEntry`` variant.

    Raises:
        InvalidCostTypeError: unknown type or ``overig``.
        CostValidationError: missing or malformed date.
        InvalidQuantityError: quantity or unit price <= 0.
        MissingReferenceError: type-specific reference absent.
    """
    kind = parse_cost_type(cost_type)
    if kind == CostType.OVERIG:
        raise InvalidCostTypeError(kind.value)

    day = require_date(entry_date)
    amount = require_positive(quantity, "quantity")
    rate_override = None if unit_price is None else require_positive(unit_price, "unit_price")
    notes = clean_text(notes)

    if kind == CostType.ARBEID:
        name = clean_text(employee_name)
        if name is None:
            raise MissingReferenceError("employee_name", kind.value)
        return NewLaborEntry(
            entry_date=day,
            hours=amount,
            employee_name=name,
            scope=clean_text(scope),
            notes=notes,
        )
    if kind == CostType.MACHINE:
        ref = _require_reference(equipment_id, "equipment_id", kind)
        return NewEquipmentEntry(
            entry_date=day, hours=amount, equipment_id=ref, rate_override=rate_override
        )
    ref = _require_reference(product_id, "product_id", kind)
    return NewMaterialEntry(entry_date=day, quantity=amount, product_id=ref, notes=notes)


def _require_reference(value: UUID | str | None, field_name: str, kind: CostType) -> UUID:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingReferenceError(field_name, kind.value)
    ref = parse_entry_id(value)
    if ref is None:
        raise CostValidationError(field_name, f"{field_name} is not a valid id: {value!r}")
    return ref


def build_changes(
    *,
    entry_date: date | str | None = None,
    quantity: object = None,
    scope: str | None = None,
    notes: str | None = None,
    employee_name: str | None = None,
) -> CostEntryChanges:
    """Validate partial update fields; ``None`` leaves a field unchanged."""
    day = None if entry_date is None else require_date(entry_date)
    amount = None if quantity is None else require_positive(quantity, "quantity")
    if employee_name is not None and clean_text(employee_name) is None:
        raise CostValidationError("employee_name", "employee_name must not be blank")
    return CostEntryChanges(
        entry_date=day,
        quantity=amount,
        scope=scope,
        notes=notes,
        employee_name=clean_text(employee_name),
    )


def equipment_cost(
    hours: Decimal,
    rate: Decimal,
    rate_type: str,
    hours_per_day: Decimal,
) -> Decimal:
    """hourly: hours * rate; daily: (hours / hours_per_day) * rate."""
    if rate_type == RateType.DAILY.value:
        return round_money(hours / hours_per_day * rate)
    return round_money(hours * rate)


# =============================================================================
# Writers (one per backing store)
# =============================================================================


class CostEntryWriter(BaseService):
    """Create/update/remove for one backing store."""

    cost_type: CostType

    @abstractmethod
    def create(
        self, project: AuthorizedProject, entry: NewCostEntry, actor_id: UUID
    ) -> CostMutationResult:
        ...

    @abstractmethod
    def update(
        self,
        project: AuthorizedProject,
        entry_id: UUID,
        changes: CostEntryChanges,
        actor_id: UUID,
    ) -> CostMutationResult:
        ...

    @abstractmethod
    def remove(
        self, project: AuthorizedProject, entry_id: UUID, actor_id: UUID
    ) -> CostMutationResult:
        ...

    def not_found(self, project: AuthorizedProject, entry_id) -> CostEntryNotFoundError:
        return CostEntryNotFoundError(
            str(entry_id), self.cost_type.value, str(project.project_id)
        )


class LaborEntryWriter(CostEntryWriter):
    """Manual time entries."""

    cost_type = CostType.ARBEID

    def __init__(self, session, rate_provider: SettingsRateProvider):
        super().__init__(session)
        self._rate_provider = rate_provider

    def _total(self, project: AuthorizedProject, entry: TimeEntryModel) -> Decimal:
        rates = self._rate_provider.labor_rates(project.owner_id)
        return round_money(entry.hours * rates.rate_for(entry.employee_name))

    def _load(self, project: AuthorizedProject, entry_id: UUID) -> TimeEntryModel:
        entry = self.session.execute(
            select(TimeEntryModel).where(
                TimeEntryModel.id == entry_id,
                TimeEntryModel.project_id == project.project_id,
            )
        ).scalar_one_or_none()
        if entry is None:
            raise self.not_found(project, entry_id)
        return entry

    def create(self, project, entry: NewLaborEntry, actor_id):
        row = TimeEntryModel(
            project_id=project.project_id,
            employee_name=entry.employee_name,
            hours=entry.hours,
            scope=entry.scope,
            work_date=entry.entry_date,
            notes=entry.notes,
            source="handmatig",
            created_by_id=actor_id,
        )
        self.session.add(row)
        self.session.flush()
        return CostMutationResult(
            id=str(row.id), type=self.cost_type, total=self._total(project, row)
        )

    def update(self, project, entry_id, changes, actor_id):
        row = self._load(project, entry_id)
        if changes.entry_date is not None:
            row.work_date = changes.entry_date
        if changes.quantity is not None:
            row.hours = changes.quantity
        if changes.scope is not None:
            row.scope = clean_text(changes.scope)
        if changes.notes is not None:
            row.notes = clean_text(changes.notes)
        if changes.employee_name is not None:
            row.employee_name = changes.employee_name
        row.updated_by_id = actor_id
        self.session.flush()
        return CostMutationResult(
            id=str(row.id), type=self.cost_type, total=self._total(project, row)
        )

    def remove(self, project, entry_id, actor_id):
        row = self._load(project, entry_id)
        self.session.delete(row)
        self.session.flush()
        return CostMutationResult(id=str(entry_id), type=self.cost_type)


class EquipmentEntryWriter(CostEntryWriter):
    """Equipment usage rows; cost frozen at the rate in effect when written."""

    cost_type = CostType.MACHINE

    def __init__(self, session, hours_per_day: Decimal):
        super().__init__(session)
        self._hours_per_day = hours_per_day

    def _equipment(self, project: AuthorizedProject, equipment_id: UUID) -> EquipmentModel:
        equipment = self.session.get(EquipmentModel, equipment_id)
        if equipment is None or equipment.owner_id != project.owner_id:
            raise ReferenceNotFoundError("equipment", str(equipment_id))
        return equipment

    def _load(self, project: AuthorizedProject, entry_id: UUID) -> EquipmentUsageModel:
        usage = self.session.execute(
            select(EquipmentUsageModel).where(
                EquipmentUsageModel.id == entry_id,
                EquipmentUsageModel.project_id == project.project_id,
            )
        ).scalar_one_or_none()
        if usage is None:
            raise self.not_found(project, entry_id)
        return usage

    def create(self, project, entry: NewEquipmentEntry, actor_id):
        equipment = self._equipment(project, entry.equipment_id)
        rate = entry.rate_override if entry.rate_override is not None else equipment.rate
        usage = EquipmentUsageModel(
            project_id=project.project_id,
            equipment_id=equipment.id,
            usage_date=entry.entry_date,
            hours=entry.hours,
            cost=equipment_cost(entry.hours, rate, equipment.rate_type, self._hours_per_day),
            created_by_id=actor_id,
        )
        self.session.add(usage)
        self.session.flush()
        return CostMutationResult(id=str(usage.id), type=self.cost_type, total=usage.cost)

    def update(self, project, entry_id, changes, actor_id):
        usage = self._load(project, entry_id)
        if changes.entry_date is not None:
            usage.usage_date = changes.entry_date
        if changes.quantity is not None:
            # reprice at the catalog rate; a unit_price given at create is not kept
            equipment = self._equipment(project, usage.equipment_id)
            usage.hours = changes.quantity
            usage.cost = equipment_cost(
                changes.quantity, equipment.rate, equipment.rate_type, self._hours_per_day
            )
        usage.updated_by_id = actor_id
        self.session.flush()
        return CostMutationResult(id=str(usage.id), type=self.cost_type, total=usage.cost)

    def remove(self, project, entry_id, actor_id):
        usage = self._load(project, entry_id)
        self.session.delete(usage)
        self.session.flush()
        return CostMutationResult(id=str(entry_id), type=self.cost_type)


class MaterialEntryWriter(CostEntryWriter):
    """Consumption movements, always paired with a stock balance change."""

    cost_type = CostType.MATERIAAL

    def __init__(self, session, stock: StockAdjustmentCoordinator):
        super().__init__(session)
        self._stock = stock

    def _product(self, project: AuthorizedProject, product_id: UUID) -> ProductModel:
        product = self.session.get(ProductModel, product_id)
        if product is None or product.owner_id != project.owner_id:
            raise ReferenceNotFoundError("product", str(product_id))
        return product

    def _total(self, movement: InventoryMovementModel) -> Decimal:
        product = self.session.get(ProductModel, movement.product_id)
        price = product.purchase_price if product is not None else Decimal("0")
        return round_money(abs(movement.quantity) * price)

    def _load(self, project: AuthorizedProject, entry_id: UUID) -> InventoryMovementModel:
        movement = self.session.execute(
            select(InventoryMovementModel).where(
                InventoryMovementModel.id == entry_id,
                InventoryMovementModel.project_id == project.project_id,
                InventoryMovementModel.movement_type == MovementType.CONSUMPTION.value,
            )
        ).scalar_one_or_none()
        if movement is None:
            raise self.not_found(project, entry_id)
        return movement

    def create(self, project, entry: NewMaterialEntry, actor_id):
        product = self._product(project, entry.product_id)
        movement = self._stock.record_consumption(
            owner_id=project.owner_id,
            project_id=project.project_id,
            product_id=product.id,
            quantity=entry.quantity,
            entry_date=entry.entry_date,
            actor_id=actor_id,
            notes=entry.notes,
        )
        return CostMutationResult(
            id=str(movement.id),
            type=self.cost_type,
            total=round_money(entry.quantity * product.purchase_price),
        )

    def update(self, project, entry_id, changes, actor_id):
        movement = self._load(project, entry_id)
        if changes.entry_date is not None:
            movement.created_at = start_of_day_utc(changes.entry_date)
        if changes.notes is not None:
            movement.notes = clean_text(changes.notes)
        if changes.quantity is not None:
            self._stock.adjust_consumption(movement, changes.quantity, actor_id)
        else:
            movement.updated_by_id = actor_id
            self.session.flush()
        return CostMutationResult(
            id=str(movement.id), type=self.cost_type, total=self._total(movement)
        )

    def remove(self, project, entry_id, actor_id):
        movement = self._load(project, entry_id)
        self._stock.reverse_consumption(movement, actor_id)
        return CostMutationResult(id=str(entry_id), type=self.cost_type)


# =============================================================================
# Router
# =============================================================================


class CostEntryRouter:
    """Dispatches cost entry mutations by ``CostType``."""

    def __init__(self, writers: Mapping[CostType, CostEntryWriter]):
        self._writers = dict(writers)

    def writer_for(self, cost_type: CostType | str) -> CostEntryWriter:
        kind = parse_cost_type(cost_type)
        writer = self._writers.get(kind)
        if writer is None:
            raise InvalidCostTypeError(kind.value)
        return writer

    def create(
        self, project: AuthorizedProject, entry: NewCostEntry, actor_id: UUID
    ) -> CostMutationResult:
        return self.writer_for(entry.type).create(project, entry, actor_id)

    def update(
        self,
        project: AuthorizedProject,
        cost_type: CostType | str,
        entry_id: UUID | str,
        changes: CostEntryChanges,
        actor_id: UUID,
    ) -> CostMutationResult:
        writer = self.writer_for(cost_type)
        parsed = parse_entry_id(entry_id)
        if parsed is None:
            raise writer.not_found(project, entry_id)
        return writer.update(project, parsed, changes, actor_id)

    def remove(
        self,
        project: AuthorizedProject,
        cost_type: CostType | str,
        entry_id: UUID | str,
        actor_id: UUID,
    ) -> CostMutationResult:
        writer = self.writer_for(cost_type)
        parsed = parse_entry_id(entry_id)
        if parsed is None:
            raise writer.not_found(project, entry_id)
        return writer.remove(project, parsed, actor_id)
