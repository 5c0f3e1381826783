"""
BaseService -- abstract base for all write-side services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service that mutates backing stores.  Services receive a
    SQLAlchemy ``Session`` and use ``session.flush()`` -- never
    ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback themselves.  The module
    facade (``ProjectCostService``) or ``session_scope()`` owns
    commit/rollback, so a consumption row and its stock adjustment are
    applied together or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from costing_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for write-side services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read methods -- those belong in selectors.
    """

    def __init__(self, session: Session):
        self.session = session
