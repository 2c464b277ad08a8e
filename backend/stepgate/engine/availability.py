"""Availability Filter - Which steps may be offered as prerequisites"""
from typing import List, Optional, Set

from ..domain.models import WorkflowStep
from .hierarchy import HierarchyResolver, order_steps


class AvailabilityFilter:
    """
    Compute legal dependency targets for a candidate step

    A step may only depend on steps defined "earlier" in the hierarchy:
    - depth 1: depth-1 steps with a smaller level_1
    - depth 2: any depth-1 step, or an earlier depth-2 sibling under the same level_1
    - depth 3: any depth-1 step, any depth-2 step under the same level_1,
      or an earlier depth-3 sibling under the same level_1.level_2

    The candidate itself, its ancestors and all its descendants are never
    offered. The cycle check in DependencyGraph stays the
    authoritative guard; this filter only narrows what the UI offers.
    """

    def __init__(self, hierarchy: Optional[HierarchyResolver] = None):
        self.hierarchy = hierarchy or HierarchyResolver()

    def available_dependency_targets(
        self,
        candidate: Optional[WorkflowStep],
        all_steps: List[WorkflowStep]
    ) -> List[WorkflowStep]:
        # A brand-new root step can only wait on existing roots
        if candidate is None:
            return order_steps(s for s in all_steps if s.level_2 == 0 and s.level_3 == 0)

        ancestor_ids = set(self.hierarchy.get_ancestor_ids(all_steps, candidate))
        return order_steps(
            s for s in all_steps
            if self._is_available(s, candidate, ancestor_ids, all_steps)
        )

    def _is_available(
        self,
        step: WorkflowStep,
        candidate: WorkflowStep,
        ancestor_ids: Set[str],
        all_steps: List[WorkflowStep]
    ) -> bool:
        if step.step_id == candidate.step_id:
            return False
        if step.parent_step_id == candidate.step_id:
            return False
        if step.step_id in ancestor_ids:
            return False
        if self.hierarchy.is_descendant_of(step, candidate, all_steps):
            return False

        # Steps without coordinates are not ranked
        if not candidate.level_1 or not step.level_1:
            return True

        step_is_root = step.level_2 == 0 and step.level_3 == 0

        if candidate.depth == 1:
            return step_is_root and step.level_1 < candidate.level_1

        if candidate.depth == 2:
            return step_is_root or (
                step.level_1 == candidate.level_1
                and step.level_2 > 0
                and step.level_3 == 0
                and step.level_2 < candidate.level_2
            )

        return (
            step_is_root
            or (step.level_1 == candidate.level_1 and step.level_2 > 0 and step.level_3 == 0)
            or (
                step.level_1 == candidate.level_1
                and step.level_2 == candidate.level_2
                and step.level_3 > 0
                and step.level_3 < candidate.level_3
            )
        )
