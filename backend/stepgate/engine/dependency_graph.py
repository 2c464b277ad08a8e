"""Dependency Graph - Step prerequisites, cycle validation and locking"""
from typing import Callable, Dict, Iterable, List, Optional

from ..domain.models import (
    WorkflowStep, DependencyEdge, DependencyCheckResult, IncompleteDependency
)
from ..domain.enums import DependencyMode, DONE_STATUSES
from ..domain.errors import SelfDependencyError, CycleDetectedError, DependencyLockedError
from ..repositories.step_repo import StepRepository
from ..utils.idgen import generate_dependency_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# DFS colouring
_GRAY = 1   # on the current traversal stack
_BLACK = 2  # fully explored


def _find_cycle_from(
    root: str,
    prerequisites_of: Callable[[str], List[str]]
) -> Optional[List[str]]:
    """
    Iterative DFS from one root over dependent -> prerequisite edges

    Returns the cycle as a list of step ids (first id repeated at the end)
    when a back-edge into the current stack is found.
    """
    color: Dict[str, int] = {root: _GRAY}
    stack = [(root, iter(prerequisites_of(root)))]

    while stack:
        node, children = stack[-1]
        advanced = False
        for child in children:
            state = color.get(child)
            if state == _GRAY:
                path = [n for n, _ in stack]
                return path[path.index(child):] + [child]
            if state is None:
                color[child] = _GRAY
                stack.append((child, iter(prerequisites_of(child))))
                advanced = True
                break
        if not advanced:
            color[node] = _BLACK
            stack.pop()

    return None


def find_cycle(edges: Iterable[DependencyEdge]) -> Optional[List[str]]:
    """Full-graph check over the active edges; returns one cycle or None"""
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        if edge.is_active:
            adjacency.setdefault(edge.step_id, []).append(edge.depends_on_step_id)

    def prerequisites_of(step_id: str) -> List[str]:
        return adjacency.get(step_id, [])

    for root in adjacency:
        cycle = _find_cycle_from(root, prerequisites_of)
        if cycle:
            return cycle
    return None


class DependencyGraph:
    """
    Directed prerequisite graph between serial steps

    Per step: no edges -> edges pending validation -> edges committed and
    locked. Locking is one-way; a locked step's edge set never changes.
    """

    def __init__(self, step_repo: Optional[StepRepository] = None):
        self.repo = step_repo or StepRepository()

    def get_step_dependencies(self, step_id: str) -> List[DependencyEdge]:
        """Active edges owned by a step"""
        return self.repo.list_active_edges_for_step(step_id)

    def get_dependent_steps(self, prerequisite_id: str) -> List[str]:
        """IDs of steps that wait on the prerequisite"""
        return self.repo.list_dependent_step_ids(prerequisite_id)

    def create_dependencies(
        self,
        step_id: str,
        depends_on_step_ids: List[str],
        user_id: str
    ) -> List[DependencyEdge]:
        """
        Validate and persist the prerequisite edges of a step

        Raises:
            SelfDependencyError: step listed as its own prerequisite
            DependencyLockedError: step dependencies already committed
            CycleDetectedError: proposed edges close a cycle
        """
        if not depends_on_step_ids:
            return []

        # Collapse duplicates, keep caller order
        proposed = list(dict.fromkeys(depends_on_step_ids))

        if step_id in proposed:
            raise SelfDependencyError(
                "A step cannot depend on itself",
                details={"step_id": step_id}
            )

        step = self.repo.get_step_or_raise(step_id)
        if step.is_dependency_locked:
            raise DependencyLockedError(
                f"Dependencies of step {step.step_number} are locked",
                details={"step_id": step_id}
            )

        self.validate_no_cycles(step_id, proposed)

        now = utc_now()
        edges = [
            DependencyEdge(
                dependency_id=generate_dependency_id(),
                step_id=step_id,
                depends_on_step_id=prerequisite_id,
                created_by=user_id,
                created_at=now,
                is_active=True
            )
            for prerequisite_id in proposed
        ]
        self.repo.insert_dependency_edges(edges)

        logger.info(
            f"Dependencies created for step {step_id}",
            extra={"step_id": step_id, "user_id": user_id, "dependency_count": len(edges)}
        )
        return edges

    def validate_no_cycles(self, step_id: str, depends_on_step_ids: List[str]) -> None:
        """
        Check existing active edges plus the proposed ones for a cycle

        Each proposed prerequisite is a traversal root in turn, then the
        step itself is checked against the combined edge set.
        """
        cache: Dict[str, List[str]] = {}

        def prerequisites_of(node: str) -> List[str]:
            if node not in cache:
                cache[node] = [e.depends_on_step_id for e in self.repo.list_active_edges_for_step(node)]
            if node == step_id:
                return cache[node] + [p for p in depends_on_step_ids if p not in cache[node]]
            return cache[node]

        for root in list(depends_on_step_ids) + [step_id]:
            cycle = _find_cycle_from(root, prerequisites_of)
            if cycle:
                logger.warning(
                    f"Cycle detected while adding dependencies to {step_id}: {' -> '.join(cycle)}",
                    extra={"step_id": step_id}
                )
                raise CycleDetectedError(
                    "Adding these dependencies would create a circular dependency",
                    details={"step_id": step_id, "cycle": cycle}
                )

    def lock_step_dependencies(self, step_id: str) -> WorkflowStep:
        """Freeze the step's dependency set; calling again is harmless"""
        step = self.repo.update_step(step_id, {"is_dependency_locked": True})
        logger.info(f"Dependencies locked for step {step_id}", extra={"step_id": step_id})
        return step

    def check_dependencies(
        self,
        step: WorkflowStep,
        all_steps: List[WorkflowStep]
    ) -> DependencyCheckResult:
        """Whether the prerequisites of a step allow it to complete"""
        mode = step.dependency_mode

        if step.is_parallel:
            return DependencyCheckResult(can_complete=True, dependency_mode=mode)

        edges = self.get_step_dependencies(step.step_id)
        if not edges:
            return DependencyCheckResult(can_complete=True, dependency_mode=mode)

        prerequisite_ids = {e.depends_on_step_id for e in edges}
        prerequisites = [s for s in all_steps if s.step_id in prerequisite_ids]
        if len(prerequisites) < len(prerequisite_ids):
            missing = prerequisite_ids - {s.step_id for s in prerequisites}
            logger.warning(
                f"Step {step.step_id} depends on unknown steps {sorted(missing)}",
                extra={"step_id": step.step_id}
            )

        satisfied = [s for s in prerequisites if s.status in DONE_STATUSES]
        incomplete = [s for s in prerequisites if s.status not in DONE_STATUSES]

        if mode == DependencyMode.ALL:
            can_complete = not incomplete
            message = "" if can_complete else (
                f"All {len(prerequisites)} dependencies must be completed. "
                f"{len(incomplete)} remaining."
            )
        else:
            can_complete = bool(satisfied)
            message = "" if can_complete else (
                f"At least one of {len(prerequisites)} dependencies must be completed."
            )

        return DependencyCheckResult(
            can_complete=can_complete,
            dependency_mode=mode,
            total_dependencies=len(prerequisites),
            satisfied_count=len(satisfied),
            incomplete_dependencies=[
                IncompleteDependency(step_id=s.step_id, title=s.title, status=s.status)
                for s in incomplete
            ],
            message=message
        )

    @staticmethod
    def format_dependency_status(step: WorkflowStep, prerequisite_steps: List[WorkflowStep]) -> str:
        """Short progress text shown next to serial steps"""
        if step.is_parallel or not prerequisite_steps:
            return ""

        completed = len([s for s in prerequisite_steps if s.status in DONE_STATUSES])
        total = len(prerequisite_steps)

        if step.dependency_mode == DependencyMode.ALL:
            return f"{completed}/{total} dependencies completed"
        return f"{completed}/{total} dependencies completed (any one required)"
