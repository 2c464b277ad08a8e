"""Permission Guard - Role checks for step operations"""
from typing import Optional

from ..config.settings import settings
from ..domain.models import ActorContext, WorkflowStep
from ..domain.errors import PermissionDeniedError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionGuard:
    """
    Permission enforcement for step operations

    Rules:
    - Only the top administrative role defines dependencies
    - A step is updated by the top administrative role or its assignee
    - Completion is open to anyone who may update the step; the gate
      decides the rest
    """

    def __init__(self, top_admin_role: Optional[str] = None):
        self.top_admin_role = (top_admin_role or settings.top_admin_role).upper()

    def is_top_admin(self, actor: ActorContext) -> bool:
        return actor.role.upper() == self.top_admin_role

    def ensure_can_define_dependencies(self, actor: ActorContext) -> None:
        """Raise if actor may not create dependency edges"""
        if self.is_top_admin(actor):
            return

        logger.warning(
            f"User {actor.user_id} with role {actor.role} tried to define dependencies",
            extra={"user_id": actor.user_id}
        )
        raise PermissionDeniedError(
            f"Only {self.top_admin_role} users can create step dependencies",
            details={"role": actor.role}
        )

    def ensure_can_update_step(self, actor: ActorContext, step: WorkflowStep) -> None:
        """Raise if actor is neither the top admin nor the step assignee"""
        if self.is_top_admin(actor):
            return
        if step.assigned_to and step.assigned_to == actor.user_id:
            return

        raise PermissionDeniedError(
            "Not authorized to update this step",
            details={"step_id": step.step_id, "role": actor.role}
        )
