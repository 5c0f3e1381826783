"""
Project Cost Service (``costing_modules.project_costs.service``).

Responsibility
--------------
Single public entry point for project cost tracking.  Exposes the read
API (``list``, ``get_by_id``, ``get_totalen``, ``get_by_scope``,
``get_dagelijks_overzicht``, ``get_budget_vergelijking``,
``get_project_overzicht``) and the write API (``create``, ``update``,
``remove``) by composing the access gate, source adapters, ledger,
budget comparator, stock coordinator and mutation router.

Architecture position
---------------------
**Modules layer** -- thin facade.  All computation lives in the pure
ledger/budget functions; all writes go through ``CostEntryRouter``.

Invariants enforced
-------------------
* Every entry point authorizes the caller through ``ProjectAccessGate``
  before reading or writing a backing store.
* Each mutation owns the transaction boundary: ``commit`` on success,
  ``rollback`` on any exception, so a consumption row and its stock
  balance change are applied together or not at all.
* List-style reads degrade to an empty result on authorization failure;
  single-item reads, budget/overview reads and mutations raise.
* All money and hours use ``Decimal`` -- NEVER ``float``.

Failure modes
-------------
* ``AuthorizationError`` subclasses for unknown or foreign projects.
* ``CostValidationError`` subclasses before any write occurs.
* ``CostEntryNotFoundError`` / ``ReferenceNotFoundError`` for missing rows.
* ``OptimisticLockError`` when a concurrent transaction changed the same
  consumption row first.

Audit relevance
---------------
Structured log events at mutation start and commit/rollback, carrying
project id, cost type, entry id and the resulting line total.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from costing_config.schema import CostingConfig
from costing_kernel.domain.clock import Clock, SystemClock
from costing_kernel.domain.rounding import ZERO, round_money
from costing_kernel.exceptions import AuthorizationError, OptimisticLockError
from costing_kernel.logging_config import LogContext, get_logger
from costing_modules.project_costs.adapters import (
    CostSourceAdapter,
    EquipmentCostAdapter,
    LaborCostAdapter,
    MaterialCostAdapter,
)
from costing_modules.project_costs.authorization import ProjectAccessGate
from costing_modules.project_costs.budget import (
    BaselineResolver,
    BudgetComparator,
    compare_to_baseline,
    summarize_for_overview,
)
from costing_modules.project_costs.ledger import (
    CostLedger,
    active_days,
    compute_totals,
    cost_by_scope,
    hours_by_employee,
)
from costing_modules.project_costs.models import (
    AuthorizedProject,
    BudgetComparisonResult,
    CostBucket,
    CostLineItem,
    CostMutationResult,
    CostTotals,
    CostType,
    DailyCosts,
    DateRange,
    OverviewStatistics,
    ProjectOverview,
    ProjectSummary,
    parse_cost_type,
)
from costing_modules.project_costs.rates import SettingsRateProvider
from costing_modules.project_costs.router import (
    CostEntryRouter,
    EquipmentEntryWriter,
    LaborEntryWriter,
    MaterialEntryWriter,
    build_changes,
    build_new_entry,
    parse_entry_id,
)
from costing_modules.project_costs.stock import StockAdjustmentCoordinator

logger = get_logger("modules.project_costs.service")


class ProjectCostService:
    """
    Orchestrates project cost reads and cost entry mutations.

    Contract
    --------
    * Read methods never write and never commit.
    * Mutation methods return ``CostMutationResult`` after a successful
      commit; on failure the session is rolled back and the error
      re-raised.

    Guarantees
    ----------
    * The labor rate always resolves (employee -> settings -> config).
    * Clock is injectable for deterministic stock timestamps.
    * Equipment cost is frozen when written; reads never recompute it.

    Non-goals
    ---------
    * Does NOT produce budget baselines (owned by the quoting engine).
    * Does NOT authenticate callers; ``actor_id`` is trusted input.
    """

    def __init__(
        self,
        session: Session,
        config: CostingConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or CostingConfig()
        self._clock = clock or SystemClock()

        self._gate = ProjectAccessGate(session)
        self._rates = SettingsRateProvider(session, self._config.labor.default_hourly_rate)
        self._resolver = BaselineResolver.default(session)
        self._stock = StockAdjustmentCoordinator(session, clock=self._clock)
        self._router = CostEntryRouter(
            {
                CostType.ARBEID: LaborEntryWriter(session, self._rates),
                CostType.MACHINE: EquipmentEntryWriter(
                    session, self._config.equipment.hours_per_day
                ),
                CostType.MATERIAAL: MaterialEntryWriter(session, self._stock),
            }
        )

    # =========================================================================
    # Composition helpers
    # =========================================================================

    def _adapters(self, project: AuthorizedProject) -> list[CostSourceAdapter]:
        return [
            LaborCostAdapter(self._session, self._rates.labor_rates(project.owner_id)),
            EquipmentCostAdapter(self._session),
            MaterialCostAdapter(self._session),
        ]

    def _ledger(self, project: AuthorizedProject) -> CostLedger:
        return CostLedger(self._adapters(project))

    def _comparator(self, project: AuthorizedProject) -> BudgetComparator:
        return BudgetComparator(
            self._ledger(project), self._resolver, self._config.budget.margin_percentage
        )

    def _authorize_for_listing(
        self, operation: str, project_id: UUID, actor_id: UUID
    ) -> AuthorizedProject | None:
        try:
            return self._gate.authorize(project_id, actor_id)
        except AuthorizationError as exc:
            logger.warning(
                "cost_read_unauthorized",
                extra={
                    "operation": operation,
                    "project_id": str(project_id),
                    "actor_id": str(actor_id),
                    "error_code": exc.code,
                },
            )
            return None

    # =========================================================================
    # Read API
    # =========================================================================

    def list(
        self,
        project_id: UUID,
        actor_id: UUID,
        cost_type: CostType | str | None = None,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> list[CostLineItem]:
        """All line items of a project, newest first."""
        kind = None if cost_type is None else parse_cost_type(cost_type)
        date_range = DateRange.from_bounds(start_date, end_date)
        project = self._authorize_for_listing("list", project_id, actor_id)
        if project is None:
            return []
        return self._ledger(project).list(project.project_id, kind, date_range)

    def get_by_id(
        self,
        entry_id: UUID | str,
        cost_type: CostType | str,
        project_id: UUID,
        actor_id: UUID,
    ) -> CostLineItem | None:
        kind = parse_cost_type(cost_type)
        project = self._gate.authorize(project_id, actor_id)
        parsed = parse_entry_id(entry_id)
        if parsed is None:
            return None
        for adapter in self._adapters(project):
            if adapter.cost_type == kind:
                return adapter.get_line_item(project.project_id, parsed)
        return None

    def get_totalen(
        self,
        project_id: UUID,
        actor_id: UUID,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> CostTotals:
        date_range = DateRange.from_bounds(start_date, end_date)
        project = self._authorize_for_listing("get_totalen", project_id, actor_id)
        if project is None:
            return CostTotals()
        return self._ledger(project).totals(project.project_id, date_range)

    def get_by_scope(
        self,
        project_id: UUID,
        actor_id: UUID,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> dict[str, CostBucket]:
        date_range = DateRange.from_bounds(start_date, end_date)
        project = self._authorize_for_listing("get_by_scope", project_id, actor_id)
        if project is None:
            return {}
        return self._ledger(project).by_scope(project.project_id, date_range)

    def get_dagelijks_overzicht(
        self,
        project_id: UUID,
        actor_id: UUID,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> list[DailyCosts]:
        date_range = DateRange.from_bounds(start_date, end_date)
        project = self._authorize_for_listing(
            "get_dagelijks_overzicht", project_id, actor_id
        )
        if project is None:
            return []
        return self._ledger(project).daily(project.project_id, date_range)

    def get_budget_vergelijking(
        self, project_id: UUID, actor_id: UUID
    ) -> BudgetComparisonResult:
        """Actual versus planned; ``data`` is None when no baseline exists."""
        project = self._gate.authorize(project_id, actor_id)
        return self._comparator(project).compare(project)

    def get_project_overzicht(self, project_id: UUID, actor_id: UUID) -> ProjectOverview:
        project = self._gate.authorize(project_id, actor_id)
        items = self._ledger(project).line_items(project.project_id)
        totals = compute_totals(items)
        days = active_days(items)
        day_count = len(days)
        raw_hours = sum(
            (i.quantity for i in items if i.type == CostType.ARBEID), ZERO
        )
        employees = {
            i.employee_name
            for i in items
            if i.type == CostType.ARBEID and i.employee_name
        }

        statistics = OverviewStatistics(
            active_days=day_count,
            employee_count=len(employees),
            line_count=len(items),
            average_cost_per_day=(
                round_money(totals.total / day_count) if day_count else round_money(ZERO)
            ),
            average_hours_per_day=(
                round_money(raw_hours / day_count) if day_count else round_money(ZERO)
            ),
        )

        budget = None
        baseline = self._resolver.resolve(project)
        if baseline is not None:
            comparison = compare_to_baseline(
                baseline, items, self._config.budget.margin_percentage
            )
            budget = summarize_for_overview(comparison, baseline.estimated_days, day_count)

        return ProjectOverview(
            project=ProjectSummary(
                id=project.project_id, name=project.name, status=project.status
            ),
            totals=totals,
            statistics=statistics,
            cost_by_scope=cost_by_scope(items),
            hours_by_employee=hours_by_employee(items),
            budget=budget,
            last_activity=max(days) if days else None,
        )

    # =========================================================================
    # Write API
    # =========================================================================

    def _mutate(
        self,
        action: str,
        project_id: UUID,
        actor_id: UUID,
        cost_type: CostType | str,
        entry_id: UUID | str | None,
        apply: Callable[[AuthorizedProject], CostMutationResult],
    ) -> CostMutationResult:
        with LogContext.bind(
            actor_id=str(actor_id),
            project_id=str(project_id),
            entry_id=entry_id,
            cost_type=cost_type,
        ):
            logger.info(f"cost_entry_{action}_started")
            try:
                project = self._gate.authorize(project_id, actor_id)
                result = apply(project)
                self._session.commit()
            except StaleDataError as exc:
                self._session.rollback()
                logger.warning(f"cost_entry_{action}_conflict")
                raise OptimisticLockError(
                    "inventory_movement", str(entry_id)
                ) from exc
            except Exception:
                self._session.rollback()
                logger.warning(f"cost_entry_{action}_rolled_back", exc_info=True)
                raise

            logger.info(
                f"cost_entry_{action}_committed",
                extra={
                    "cost_type": result.type,
                    "result_entry_id": result.id,
                    "total": result.total,
                },
            )
            return result

    def create(
        self,
        project_id: UUID,
        actor_id: UUID,
        cost_type: CostType | str,
        *,
        entry_date: date | str | None,
        quantity: Decimal | int | str,
        employee_name: str | None = None,
        equipment_id: UUID | str | None = None,
        product_id: UUID | str | None = None,
        scope: str | None = None,
        notes: str | None = None,
        unit_price: Decimal | int | str | None = None,
    ) -> CostMutationResult:
        """
        Create a cost entry in the store matching ``cost_type``.

        ``quantity`` is hours for ``arbeid``/``machine`` and units for
        ``materiaal``.  ``unit_price`` only applies to ``machine``, where
        it replaces the equipment's current rate in the frozen cost.
        """

        def apply(project: AuthorizedProject) -> CostMutationResult:
            entry = build_new_entry(
                cost_type,
                entry_date=entry_date,
                quantity=quantity,
                employee_name=employee_name,
                equipment_id=equipment_id,
                product_id=product_id,
                scope=scope,
                notes=notes,
                unit_price=unit_price,
            )
            return self._router.create(project, entry, actor_id)

        return self._mutate("create", project_id, actor_id, cost_type, None, apply)

    def update(
        self,
        entry_id: UUID | str,
        cost_type: CostType | str,
        project_id: UUID,
        actor_id: UUID,
        *,
        entry_date: date | str | None = None,
        quantity: Decimal | int | str | None = None,
        scope: str | None = None,
        notes: str | None = None,
        employee_name: str | None = None,
    ) -> CostMutationResult:
        """Change only the supplied fields of an existing cost entry."""

        def apply(project: AuthorizedProject) -> CostMutationResult:
            changes = build_changes(
                entry_date=entry_date,
                quantity=quantity,
                scope=scope,
                notes=notes,
                employee_name=employee_name,
            )
            return self._router.update(project, cost_type, entry_id, changes, actor_id)

        return self._mutate("update", project_id, actor_id, cost_type, entry_id, apply)

    def remove(
        self,
        entry_id: UUID | str,
        cost_type: CostType | str,
        project_id: UUID,
        actor_id: UUID,
    ) -> CostMutationResult:
        def apply(project: AuthorizedProject) -> CostMutationResult:
            return self._router.remove(project, cost_type, entry_id, actor_id)

        return self._mutate("remove", project_id, actor_id, cost_type, entry_id, apply)
