"""
Costing Modules -- business modules built on ``costing_kernel``.

Modules:
    project_costs  Project cost ledger, stock coordination and budget
                   deviation analysis.
"""
