"""
StockAdjustmentCoordinator -- keeps stock balances in step with consumption.

Responsibility:
    Sole writer of ``StockBalanceModel`` on behalf of project material
    consumption.  Creates, adjusts and reverses ``verbruik`` movements
    together with the matching balance change.

Architecture position:
    Modules layer, write side.  Flushes only; the caller
    (``ProjectCostService``) owns commit/rollback so a movement and its
    balance change land in the same transaction.

Invariants enforced:
    - Create: balance -= quantity; movement stores -quantity.
    - Update: balance -= (new - old); the already-subtracted part is
      never applied twice.
    - Reverse: balance += |movement quantity|; movement deleted.
    - create -> update* -> reverse leaves the balance where it started.
    - The balance row is read with SELECT ... FOR UPDATE; the movement
      row carries a version counter so a lost update raises at flush.

Failure modes:
    - ``sqlalchemy.orm.exc.StaleDataError`` from flush when another
      transaction changed the movement first (translated by the caller).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from costing_kernel.domain.clock import Clock, SystemClock
from costing_kernel.logging_config import get_logger
from costing_kernel.services.base import BaseService
from costing_modules.project_costs.models import MovementType, start_of_day_utc
from costing_modules.project_costs.orm import InventoryMovementModel, StockBalanceModel

logger = get_logger("modules.project_costs.stock")


class StockAdjustmentCoordinator(BaseService[StockBalanceModel]):
    """Applies consumption movements and their stock balance deltas."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Balance access
    # ------------------------------------------------------------------

    def _select_balance(self, owner_id: UUID, product_id: UUID) -> StockBalanceModel | None:
        return self.session.execute(
            select(StockBalanceModel)
            .where(
                StockBalanceModel.owner_id == owner_id,
                StockBalanceModel.product_id == product_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_or_create_balance(
        self, owner_id: UUID, product_id: UUID, actor_id: UUID
    ) -> StockBalanceModel:
        """Locked balance row for (owner, product), created at zero if absent."""
        balance = self._select_balance(owner_id, product_id)
        if balance is not None:
            return balance

        # Another transaction may insert the same row first; the savepoint
        # keeps the outer transaction usable if it does.
        savepoint = self.session.begin_nested()
        try:
            balance = StockBalanceModel(
                owner_id=owner_id,
                product_id=product_id,
                quantity=Decimal("0"),
                last_adjusted_at=self._clock.now_utc(),
                created_by_id=actor_id,
            )
            self.session.add(balance)
            self.session.flush()
            savepoint.commit()
            logger.debug(
                "stock_balance_created",
                extra={"owner_id": str(owner_id), "product_id": str(product_id)},
            )
            return balance
        except IntegrityError:
            savepoint.rollback()
            return self._select_balance(owner_id, product_id)

    def _lock_balance_by_id(self, balance_id: UUID) -> StockBalanceModel:
        return self.session.execute(
            select(StockBalanceModel)
            .where(StockBalanceModel.id == balance_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

    def _apply(self, balance: StockBalanceModel, change: Decimal, actor_id: UUID) -> None:
        balance.quantity = balance.quantity + change
        balance.last_adjusted_at = self._clock.now_utc()
        balance.updated_by_id = actor_id
        logger.debug(
            "stock_balance_adjusted",
            extra={
                "stock_balance_id": str(balance.id),
                "product_id": str(balance.product_id),
                "delta": change,
                "balance": balance.quantity,
            },
        )

    # ------------------------------------------------------------------
    # Consumption lifecycle
    # ------------------------------------------------------------------

    def record_consumption(
        self,
        *,
        owner_id: UUID,
        project_id: UUID,
        product_id: UUID,
        quantity: Decimal,
        entry_date: date,
        actor_id: UUID,
        notes: str | None = None,
    ) -> InventoryMovementModel:
        balance = self.get_or_create_balance(owner_id, product_id, actor_id)
        movement = InventoryMovementModel(
            owner_id=owner_id,
            stock_balance_id=balance.id,
            product_id=product_id,
            project_id=project_id,
            movement_type=MovementType.CONSUMPTION.value,
            quantity=-quantity,
            notes=notes,
            created_at=start_of_day_utc(entry_date),
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self._apply(balance, -quantity, actor_id)
        self.session.flush()
        return movement

    def adjust_consumption(
        self,
        movement: InventoryMovementModel,
        new_quantity: Decimal,
        actor_id: UUID,
    ) -> Decimal:
        """Change the consumed quantity; returns the delta (new - old)."""
        old_quantity = abs(movement.quantity)
        delta = new_quantity - old_quantity
        balance = self._lock_balance_by_id(movement.stock_balance_id)
        movement.quantity = -new_quantity
        movement.updated_by_id = actor_id
        if delta != 0:
            self._apply(balance, -delta, actor_id)
        self.session.flush()
        return delta

    def reverse_consumption(self, movement: InventoryMovementModel, actor_id: UUID) -> None:
        balance = self._lock_balance_by_id(movement.stock_balance_id)
        self._apply(balance, abs(movement.quantity), actor_id)
        self.session.delete(movement)
        self.session.flush()
