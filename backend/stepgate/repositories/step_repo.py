"""Step Repository - Data access for workflow steps and dependency edges"""
from typing import Any, Dict, List, Optional

from pymongo.collection import Collection
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from .mongo_client import get_collection
from ..domain.models import WorkflowStep, DependencyEdge
from ..domain.errors import StepNotFoundError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Hierarchy order used for every step listing
STEP_SORT = [("level_1", ASCENDING), ("level_2", ASCENDING), ("level_3", ASCENDING)]


class StepRepository:
    """Repository for workflow steps and their dependency edges"""

    def __init__(self):
        self._steps: Collection = get_collection("workflow_steps")
        self._dependencies: Collection = get_collection("step_dependencies")

    # =========================================================================
    # Workflow Steps
    # =========================================================================

    def list_steps_by_ticket(self, ticket_id: str) -> List[WorkflowStep]:
        """Get all steps of a ticket in hierarchy order"""
        cursor = self._steps.find({"ticket_id": ticket_id}).sort(STEP_SORT)

        steps = []
        for doc in cursor:
            doc.pop("_id", None)
            steps.append(WorkflowStep.model_validate(doc))
        return steps

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        """Get step by ID"""
        doc = self._steps.find_one({"step_id": step_id})
        if doc:
            doc.pop("_id", None)
            return WorkflowStep.model_validate(doc)
        return None

    def get_step_or_raise(self, step_id: str) -> WorkflowStep:
        """Get step by ID or raise error"""
        step = self.get_step(step_id)
        if not step:
            raise StepNotFoundError(f"Step {step_id} not found", details={"step_id": step_id})
        return step

    def insert_step(self, step: WorkflowStep) -> WorkflowStep:
        """Create a new step"""
        # Keep datetimes native so MongoDB sorting works
        doc = step.model_dump()
        doc["_id"] = step.step_id

        self._steps.insert_one(doc)
        logger.info(
            f"Created step {step.step_number}: {step.step_id}",
            extra={"ticket_id": step.ticket_id, "step_id": step.step_id}
        )
        return step

    def insert_steps(self, steps: List[WorkflowStep]) -> List[WorkflowStep]:
        """
        Create several steps in one batch, all or none

        A batch that fails part-way (e.g. a coordinate collision with a
        concurrent writer) has its written rows removed before the store
        error is re-raised.
        """
        if not steps:
            return []

        docs = []
        for step in steps:
            doc = step.model_dump()
            doc["_id"] = step.step_id
            docs.append(doc)

        try:
            self._steps.insert_many(docs, ordered=True)
        except PyMongoError:
            ids = [step.step_id for step in steps]
            self._steps.delete_many({"step_id": {"$in": ids}})
            logger.error(
                f"Step batch insert failed, {len(ids)} steps removed",
                extra={"ticket_id": steps[0].ticket_id}
            )
            raise

        logger.info(
            f"Created {len(steps)} steps",
            extra={"ticket_id": steps[0].ticket_id}
        )
        return steps

    def update_step(self, step_id: str, updates: Dict[str, Any]) -> WorkflowStep:
        """Apply a patch to a single step record"""
        updates = dict(updates)
        updates["updated_at"] = utc_now()

        result = self._steps.find_one_and_update(
            {"step_id": step_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            raise StepNotFoundError(f"Step {step_id} not found", details={"step_id": step_id})

        result.pop("_id", None)
        logger.info(f"Updated step: {step_id}", extra={"step_id": step_id})
        return WorkflowStep.model_validate(result)

    def delete_step(self, step_id: str) -> None:
        """Remove a step together with the edges it owns"""
        self._dependencies.delete_many({"step_id": step_id})
        self._steps.delete_one({"step_id": step_id})
        logger.warning(f"Deleted step: {step_id}", extra={"step_id": step_id})

    # =========================================================================
    # Dependency Edges
    # =========================================================================

    def insert_dependency_edges(self, edges: List[DependencyEdge]) -> None:
        """
        Insert a batch of edges, all or none

        If the batch fails part-way the rows it managed to write are removed
        before the store error is re-raised.
        """
        if not edges:
            return

        docs = []
        for edge in edges:
            doc = edge.model_dump()
            doc["_id"] = edge.dependency_id
            docs.append(doc)

        try:
            self._dependencies.insert_many(docs, ordered=True)
        except PyMongoError:
            ids = [edge.dependency_id for edge in edges]
            self._dependencies.delete_many({"dependency_id": {"$in": ids}})
            logger.error(
                f"Dependency insert failed for step {edges[0].step_id}, batch removed",
                extra={"step_id": edges[0].step_id, "dependency_count": len(edges)}
            )
            raise

        logger.info(
            f"Created {len(edges)} dependencies for step {edges[0].step_id}",
            extra={"step_id": edges[0].step_id, "dependency_count": len(edges)}
        )

    def list_active_edges_for_step(self, step_id: str) -> List[DependencyEdge]:
        """Active edges owned by the dependent step"""
        cursor = self._dependencies.find({"step_id": step_id, "is_active": True})

        edges = []
        for doc in cursor:
            doc.pop("_id", None)
            edges.append(DependencyEdge.model_validate(doc))
        return edges

    def list_dependent_step_ids(self, prerequisite_id: str) -> List[str]:
        """IDs of steps whose active edges name the prerequisite"""
        cursor = self._dependencies.find(
            {"depends_on_step_id": prerequisite_id, "is_active": True},
            {"step_id": 1}
        )
        return [doc["step_id"] for doc in cursor]

    def list_active_edges_for_ticket(self, ticket_id: str) -> List[DependencyEdge]:
        """All active edges between steps of a ticket"""
        step_ids = [doc["step_id"] for doc in self._steps.find({"ticket_id": ticket_id}, {"step_id": 1})]
        if not step_ids:
            return []

        cursor = self._dependencies.find({"step_id": {"$in": step_ids}, "is_active": True})

        edges = []
        for doc in cursor:
            doc.pop("_id", None)
            edges.append(DependencyEdge.model_validate(doc))
        return edges
