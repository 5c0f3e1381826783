"""
Project Cost Tracking Module (``costing_modules.project_costs``).

Responsibility
--------------
Aggregates labor time entries, equipment usage and material consumption
into a unified per-project cost ledger, keeps stock balances consistent
with material consumption, and compares actual costs and hours against
the budget baseline (voorcalculatie) supplied by the quoting engine.

Architecture position
---------------------
**Modules layer** -- frozen value objects (``models``), ORM tables of the
backing stores (``orm``), read-side adapters and pure aggregation
(``adapters``, ``ledger``, ``budget``), write-side coordination
(``router``, ``stock``) and the ``ProjectCostService`` facade.

Invariants enforced
-------------------
* Cost lines are recomputed on every read; nothing is cached.
* Every entry point goes through the project access gate.
* A stock balance change and its consumption row share one transaction.

Failure modes
-------------
* Typed ``costing_kernel.exceptions`` for authorization, validation,
  lookup and concurrency failures.
* A missing budget baseline is a ``BudgetComparisonResult`` value.
"""

from costing_modules.project_costs.models import (
    BudgetBaseline,
    BudgetComparison,
    BudgetComparisonResult,
    CostBucket,
    CostLineItem,
    CostMutationResult,
    CostStatus,
    CostTotals,
    CostType,
    DailyCosts,
    DateRange,
    HoursStatus,
    ProjectOverview,
    SourceKind,
)
from costing_modules.project_costs.service import ProjectCostService

__all__ = [
    "BudgetBaseline",
    "BudgetComparison",
    "BudgetComparisonResult",
    "CostBucket",
    "CostLineItem",
    "CostMutationResult",
    "CostStatus",
    "CostTotals",
    "CostType",
    "DailyCosts",
    "DateRange",
    "HoursStatus",
    "ProjectCostService",
    "ProjectOverview",
    "SourceKind",
]
