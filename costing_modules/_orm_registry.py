"""
ORM model registry -- imports every module ORM file so that
``Base.metadata`` knows all tables before ``create_all`` runs.
"""

from __future__ import annotations


def import_all_orm_models() -> None:
    """Import all module ORM models (idempotent)."""
    import costing_modules.project_costs.orm  # noqa: F401
