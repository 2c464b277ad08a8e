"""Hierarchy Resolver - 3-level step coordinates and parent/child structure"""
from typing import Dict, Iterable, List, Optional

from ..domain.models import WorkflowStep, StepCoordinates, MAX_HIERARCHY_DEPTH
from ..domain.errors import MaxDepthExceededError, ParentNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def step_depth(step: WorkflowStep) -> int:
    """1 for level_1 roots, 2 for level_2 sub-steps, 3 for level_3 sub-sub-steps"""
    return step.depth


def order_steps(steps: Iterable[WorkflowStep]) -> List[WorkflowStep]:
    """Sort steps depth-first by (level_1, level_2, level_3)"""
    return sorted(steps, key=lambda s: (s.level_1, s.level_2, s.level_3))


class HierarchyResolver:
    """
    Assign hierarchy coordinates to new steps

    Coordinates are computed from a snapshot of the ticket's existing steps
    and never renumbered afterwards:
    - root:            (max level_1 + 1, 0, 0)
    - under depth 1:   (parent.level_1, max level_2 + 1, 0)
    - under depth 2:   (parent.level_1, parent.level_2, max level_3 + 1)
    - under depth 3:   MaxDepthExceededError
    """

    def assign_coordinates(
        self,
        existing_steps: List[WorkflowStep],
        parent_step_id: Optional[str] = None
    ) -> StepCoordinates:
        """Coordinates for one new step"""
        return self.assign_bulk_coordinates(existing_steps, 1, parent_step_id)[0]

    def assign_bulk_coordinates(
        self,
        existing_steps: List[WorkflowStep],
        count: int,
        parent_step_id: Optional[str] = None
    ) -> List[StepCoordinates]:
        """
        Coordinates for `count` new siblings, in input order

        Item i gets base + 1 + i along the sibling axis. All offsets come from
        the same snapshot, so one bulk call never collides with itself.
        """
        if parent_step_id is None:
            base = max((s.level_1 for s in existing_steps), default=0)
            return [StepCoordinates(level_1=base + 1 + i) for i in range(count)]

        parent = self.find_parent(existing_steps, parent_step_id)
        depth = parent.depth

        if depth == 1:
            siblings = [
                s for s in existing_steps
                if s.level_1 == parent.level_1 and s.level_2 > 0 and s.level_3 == 0
            ]
            base = max((s.level_2 for s in siblings), default=0)
            return [
                StepCoordinates(level_1=parent.level_1, level_2=base + 1 + i)
                for i in range(count)
            ]

        if depth == 2:
            siblings = [
                s for s in existing_steps
                if s.level_1 == parent.level_1 and s.level_2 == parent.level_2 and s.level_3 > 0
            ]
            base = max((s.level_3 for s in siblings), default=0)
            return [
                StepCoordinates(level_1=parent.level_1, level_2=parent.level_2, level_3=base + 1 + i)
                for i in range(count)
            ]

        raise MaxDepthExceededError(
            f"Maximum hierarchy depth ({MAX_HIERARCHY_DEPTH} levels) reached. "
            f"Cannot add sub-step to level 3 step {parent.step_number}.",
            details={"parent_step_id": parent_step_id, "parent_step_number": parent.step_number}
        )

    def find_parent(self, existing_steps: List[WorkflowStep], parent_step_id: str) -> WorkflowStep:
        """Resolve the parent within the snapshot"""
        for step in existing_steps:
            if step.step_id == parent_step_id:
                return step
        raise ParentNotFoundError(
            "Parent step not found",
            details={"parent_step_id": parent_step_id}
        )

    def ensure_can_have_children(self, existing_steps: List[WorkflowStep], parent_step_id: str) -> WorkflowStep:
        """Validate a parent once before a bulk call"""
        parent = self.find_parent(existing_steps, parent_step_id)
        if parent.depth >= MAX_HIERARCHY_DEPTH:
            raise MaxDepthExceededError(
                f"Maximum hierarchy depth ({MAX_HIERARCHY_DEPTH} levels) reached. "
                f"Cannot add sub-steps to level 3 step {parent.step_number}.",
                details={"parent_step_id": parent_step_id, "parent_step_number": parent.step_number}
            )
        return parent

    def get_children(self, steps: List[WorkflowStep], step_id: str) -> List[WorkflowStep]:
        """Direct children in sibling order"""
        return order_steps(s for s in steps if s.parent_step_id == step_id)

    def get_ancestor_ids(self, steps: List[WorkflowStep], step: WorkflowStep) -> List[str]:
        """Parent chain from the immediate parent up to the root"""
        by_id: Dict[str, WorkflowStep] = {s.step_id: s for s in steps}
        ancestors: List[str] = []
        current = step
        while current.parent_step_id and current.parent_step_id not in ancestors:
            ancestors.append(current.parent_step_id)
            parent = by_id.get(current.parent_step_id)
            if parent is None:
                break
            current = parent
        return ancestors

    def is_descendant_of(
        self,
        step: WorkflowStep,
        potential_ancestor: WorkflowStep,
        steps: List[WorkflowStep]
    ) -> bool:
        """Walk up the parent chain of `step` looking for the ancestor"""
        return potential_ancestor.step_id in self.get_ancestor_ids(steps, step)
