"""
Project access gate.

Every public entry point of ``ProjectCostService`` passes through
``ProjectAccessGate.authorize`` before touching a backing store.  The gate
fails closed: an unknown project and a project owned by someone else both
raise, and a successful check returns an ``AuthorizedProject`` handle that
the rest of the module works from.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from costing_kernel.exceptions import ProjectAccessDeniedError, ProjectNotFoundError
from costing_kernel.logging_config import get_logger
from costing_kernel.selectors.base import BaseSelector
from costing_modules.project_costs.models import AuthorizedProject
from costing_modules.project_costs.orm import ProjectModel

logger = get_logger("modules.project_costs.authorization")


class ProjectAccessGate(BaseSelector[ProjectModel]):

    def authorize(self, project_id: UUID, actor_id: UUID) -> AuthorizedProject:
        """
        Raises:
            ProjectNotFoundError: no project with ``project_id``.
            ProjectAccessDeniedError: ``actor_id`` is not the owner.
        """
        project = self.session.execute(
            select(ProjectModel).where(ProjectModel.id == project_id)
        ).scalar_one_or_none()
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        if project.owner_id != actor_id:
            logger.warning(
                "project_access_denied",
                extra={"project_id": str(project_id), "actor_id": str(actor_id)},
            )
            raise ProjectAccessDeniedError(str(project_id), str(actor_id))
        return AuthorizedProject(
            project_id=project.id,
            owner_id=project.owner_id,
            actor_id=actor_id,
            name=project.name,
            status=project.status,
            offerte_id=project.offerte_id,
        )
