"""Step Service - Workflow step business logic"""
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from ..domain.models import (
    WorkflowStep, StepCoordinates, NewStepInput, StepUpdateInput, ActorContext, DependencyEdge,
    BulkOperationResult, BulkItemError, CompletionDecision
)
from ..domain.enums import StepStatus, DONE_STATUSES
from ..domain.errors import (
    DomainError, ValidationError, StepNotFoundError, InvalidStateError,
    CompletionBlockedError
)
from ..repositories.step_repo import StepRepository
from ..repositories.document_repo import DocumentRepository
from ..repositories.audit_repo import AuditRepository
from ..engine.hierarchy import HierarchyResolver, order_steps
from ..engine.dependency_graph import DependencyGraph
from ..engine.availability import AvailabilityFilter
from ..engine.completion_gate import CompletionGate
from ..engine.permission_guard import PermissionGuard
from ..engine.audit_writer import AuditWriter
from .file_reference_service import FileReferenceService
from ..utils.idgen import generate_step_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StepService:
    """Service for workflow step operations"""

    def __init__(
        self,
        step_repo: Optional[StepRepository] = None,
        document_repo: Optional[DocumentRepository] = None,
        audit_repo: Optional[AuditRepository] = None
    ):
        self.step_repo = step_repo or StepRepository()
        self.document_repo = document_repo or DocumentRepository()
        self.hierarchy = HierarchyResolver()
        self.dependency_graph = DependencyGraph(self.step_repo)
        self.availability = AvailabilityFilter(self.hierarchy)
        self.gate = CompletionGate(self.dependency_graph)
        self.permission_guard = PermissionGuard()
        self.audit_writer = AuditWriter(audit_repo)
        self.file_references = FileReferenceService(
            self.document_repo, self.step_repo, audit_repo
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def list_steps(self, ticket_id: str) -> List[WorkflowStep]:
        """All steps of a ticket in hierarchy order"""
        return order_steps(self.step_repo.list_steps_by_ticket(ticket_id))

    def get_step(self, ticket_id: str, step_id: str) -> WorkflowStep:
        """Get a step, scoped to its ticket"""
        step = self.step_repo.get_step(step_id)
        if not step or step.ticket_id != ticket_id:
            raise StepNotFoundError(
                f"Step {step_id} not found",
                details={"ticket_id": ticket_id, "step_id": step_id}
            )
        return step

    def get_dependencies(self, ticket_id: str, step_id: str) -> List[DependencyEdge]:
        self.get_step(ticket_id, step_id)
        return self.dependency_graph.get_step_dependencies(step_id)

    def get_dependents(self, ticket_id: str, step_id: str) -> List[str]:
        self.get_step(ticket_id, step_id)
        return self.dependency_graph.get_dependent_steps(step_id)

    def get_dependency_status(self, ticket_id: str, step_id: str) -> str:
        """Progress text such as '1/2 dependencies completed'"""
        step = self.get_step(ticket_id, step_id)
        prerequisite_ids = {e.depends_on_step_id for e in self.dependency_graph.get_step_dependencies(step_id)}
        prerequisites = [s for s in self.step_repo.list_steps_by_ticket(ticket_id) if s.step_id in prerequisite_ids]
        return self.dependency_graph.format_dependency_status(step, prerequisites)

    def get_available_dependency_targets(
        self,
        ticket_id: str,
        step_id: Optional[str] = None
    ) -> List[WorkflowStep]:
        """Steps that may be offered as prerequisites (of a new root when step_id is None)"""
        all_steps = self.step_repo.list_steps_by_ticket(ticket_id)
        candidate = self.get_step(ticket_id, step_id) if step_id else None
        return self.availability.available_dependency_targets(candidate, all_steps)

    # =========================================================================
    # Creation
    # =========================================================================

    def add_step(
        self,
        ticket_id: str,
        new_step: NewStepInput,
        actor: ActorContext
    ) -> WorkflowStep:
        """
        Add one workflow step to a ticket

        Coordinates are assigned from the current snapshot, then
        dependencies are created and locked, then file references are
        instantiated from the template (if any). If either of the last two
        fails the step is removed again, so a serial step never persists
        without its prerequisites.
        """
        title = new_step.title.strip()
        if not title:
            raise ValidationError("Step title is required", details={"field": "title"})

        prerequisite_ids = list(dict.fromkeys(new_step.depends_on_step_ids))
        if prerequisite_ids:
            self.permission_guard.ensure_can_define_dependencies(actor)
            self._ensure_serial(new_step)

        existing = self.step_repo.list_steps_by_ticket(ticket_id)
        coordinates = self.hierarchy.assign_coordinates(existing, new_step.parent_step_id)
        self._ensure_prerequisites_in_ticket(ticket_id, prerequisite_ids, existing)

        step = self._build_step(ticket_id, new_step, title, coordinates, actor, new_step.parent_step_id)
        self.step_repo.insert_step(step)

        try:
            if prerequisite_ids:
                step = self._define_dependencies(step, prerequisite_ids, actor)

            if new_step.file_reference_template_id:
                self.file_references.create_step_file_references(
                    step.step_id,
                    new_step.file_reference_template_id,
                    actor,
                    new_step.selected_file_references
                )
        except (DomainError, PyMongoError):
            self._discard_step(step)
            raise

        self.audit_writer.write_step_added(step, actor)
        logger.info(
            f"Added step {step.step_number} to ticket {ticket_id}",
            extra={"ticket_id": ticket_id, "step_id": step.step_id, "user_id": actor.user_id}
        )
        return step

    def add_steps_bulk(
        self,
        ticket_id: str,
        new_steps: List[NewStepInput],
        actor: ActorContext,
        parent_step_id: Optional[str] = None
    ) -> BulkOperationResult:
        """
        Add several sibling steps under one parent (or as roots)

        Parent problems abort the whole call, and so does a failed batch
        insert (the store removes its partial writes). Everything else is
        reported per item: invalid items are skipped, and an item whose
        dependencies or file references fail after insertion is removed
        again without touching the other items.
        """
        existing = self.step_repo.list_steps_by_ticket(ticket_id)
        if parent_step_id:
            self.hierarchy.ensure_can_have_children(existing, parent_step_id)

        result = BulkOperationResult(total_count=len(new_steps))
        if not new_steps:
            return result

        coordinates = self.hierarchy.assign_bulk_coordinates(existing, len(new_steps), parent_step_id)
        can_define_dependencies = self.permission_guard.is_top_admin(actor)

        to_insert: List[tuple] = []
        for index, item in enumerate(new_steps):
            title = item.title.strip()
            error = None
            if not title:
                error = "Title is required"
            elif item.parent_step_id and item.parent_step_id != parent_step_id:
                error = "Bulk items take their parent from the request, not from the item"
            elif item.depends_on_step_ids and not can_define_dependencies:
                error = f"Only {self.permission_guard.top_admin_role} users can create step dependencies"
            elif item.depends_on_step_ids:
                try:
                    self._ensure_serial(item)
                    self._ensure_prerequisites_in_ticket(ticket_id, item.depends_on_step_ids, existing)
                except DomainError as e:
                    error = e.message

            if error:
                result.errors.append(BulkItemError(index=index, title=item.title, error=error))
                continue

            step = self._build_step(ticket_id, item, title, coordinates[index], actor, parent_step_id)
            to_insert.append((index, item, step))

        self.step_repo.insert_steps([step for _, _, step in to_insert])

        for index, item, step in to_insert:
            try:
                if item.depends_on_step_ids:
                    self._define_dependencies(step, list(dict.fromkeys(item.depends_on_step_ids)), actor)
                if item.file_reference_template_id:
                    self.file_references.create_step_file_references(
                        step.step_id,
                        item.file_reference_template_id,
                        actor,
                        item.selected_file_references
                    )
            except (DomainError, PyMongoError) as e:
                message = e.message if isinstance(e, DomainError) else str(e)
                logger.warning(
                    f"Bulk item {index} ({step.title}) failed after insert: {message}",
                    extra={"ticket_id": ticket_id, "step_id": step.step_id}
                )
                self._discard_step(step)
                result.errors.append(BulkItemError(index=index, title=item.title, error=message))
                continue
            result.created_step_ids.append(step.step_id)

        result.errors.sort(key=lambda e: e.index)
        result.failed_count = len(result.errors)
        result.success_count = result.total_count - result.failed_count

        self.audit_writer.write_bulk_added(
            ticket_id, actor, result.success_count, result.failed_count, parent_step_id
        )
        logger.info(
            f"Bulk added {result.success_count}/{result.total_count} steps to ticket {ticket_id}",
            extra={"ticket_id": ticket_id, "user_id": actor.user_id}
        )
        return result

    # =========================================================================
    # Updates and completion
    # =========================================================================

    def update_step(
        self,
        ticket_id: str,
        step_id: str,
        changes: StepUpdateInput,
        actor: ActorContext,
        remarks: Optional[str] = None
    ) -> WorkflowStep:
        """
        Patch a step

        A change to COMPLETED goes through the completion gate; the other
        fields of the patch are applied first.
        """
        step = self.get_step(ticket_id, step_id)
        self.permission_guard.ensure_can_update_step(actor, step)

        updates: Dict[str, Any] = changes.model_dump(exclude_unset=True)
        completing = updates.get("status") == StepStatus.COMPLETED
        if completing:
            updates.pop("status")
            if step.is_done:
                raise InvalidStateError(
                    f"Step {step.step_number} is already {step.status.value}",
                    details={"step_id": step_id, "status": step.status.value}
                )

        if updates.get("status") == StepStatus.WIP and step.start_date is None and "start_date" not in updates:
            updates["start_date"] = utc_now()

        if updates:
            step = self.step_repo.update_step(step_id, updates)
            self.audit_writer.write_step_updated(step, actor, sorted(updates), remarks)

        if completing:
            step = self.complete_step(ticket_id, step_id, actor, remarks)
        return step

    def check_completion(
        self,
        ticket_id: str,
        step_id: str,
        actor: ActorContext
    ) -> CompletionDecision:
        """Run the completion gate without writing anything"""
        step = self.get_step(ticket_id, step_id)
        return self._evaluate(step, actor)

    def complete_step(
        self,
        ticket_id: str,
        step_id: str,
        actor: ActorContext,
        remarks: Optional[str] = None
    ) -> WorkflowStep:
        """
        Mark a step COMPLETED if the gate allows it

        Raises:
            CompletionBlockedError: with every blocking reason
        """
        step = self.get_step(ticket_id, step_id)
        self.permission_guard.ensure_can_update_step(actor, step)

        if step.is_done:
            raise InvalidStateError(
                f"Step {step.step_number} is already {step.status.value}",
                details={"step_id": step_id, "status": step.status.value}
            )

        decision = self._evaluate(step, actor)
        if not decision.can_complete:
            self.audit_writer.write_completion_blocked(step, actor, decision.blocking_reasons)
            raise CompletionBlockedError(
                "; ".join(r.message for r in decision.blocking_reasons),
                reasons=[r.model_dump(mode="json") for r in decision.blocking_reasons],
                details={"step_id": step_id}
            )

        step = self.step_repo.update_step(step_id, {
            "status": StepStatus.COMPLETED.value,
            "progress": 100,
            "completed_at": utc_now(),
        })
        self.audit_writer.write_step_completed(step, actor, remarks)
        logger.info(
            f"Step {step.step_number} completed",
            extra={"ticket_id": ticket_id, "step_id": step_id, "user_id": actor.user_id, "status": step.status.value}
        )
        return step

    # =========================================================================
    # Helpers
    # =========================================================================

    def _evaluate(self, step: WorkflowStep, actor: ActorContext) -> CompletionDecision:
        return self.gate.evaluate(
            step=step,
            all_steps=self.step_repo.list_steps_by_ticket(step.ticket_id),
            file_references=self.document_repo.list_file_references_for_step(step.step_id),
            documents=self.document_repo.list_documents_for_step(step.step_id),
            acting_user_role=actor.role
        )

    def _ensure_prerequisites_in_ticket(
        self,
        ticket_id: str,
        prerequisite_ids: List[str],
        existing: List[WorkflowStep]
    ) -> None:
        known = {s.step_id for s in existing}
        foreign = [p for p in prerequisite_ids if p not in known]
        if foreign:
            raise ValidationError(
                "Dependencies must be existing steps of the same ticket",
                details={"ticket_id": ticket_id, "unknown_step_ids": foreign}
            )

    @staticmethod
    def _ensure_serial(new_step: NewStepInput) -> None:
        # Dependency edges only exist between serial steps
        if new_step.is_parallel:
            raise ValidationError(
                "Only serial steps can have dependencies",
                details={"field": "depends_on_step_ids", "is_parallel": True}
            )

    def _discard_step(self, step: WorkflowStep) -> None:
        """Undo a step insert whose follow-up writes failed"""
        self.document_repo.delete_file_references_for_step(step.step_id)
        self.step_repo.delete_step(step.step_id)

    def _define_dependencies(
        self,
        step: WorkflowStep,
        prerequisite_ids: List[str],
        actor: ActorContext
    ) -> WorkflowStep:
        self.dependency_graph.create_dependencies(step.step_id, prerequisite_ids, actor.user_id)
        self.audit_writer.write_dependencies_created(step, actor, prerequisite_ids)

        locked = self.dependency_graph.lock_step_dependencies(step.step_id)
        self.audit_writer.write_dependencies_locked(locked, actor)
        return locked

    def _build_step(
        self,
        ticket_id: str,
        new_step: NewStepInput,
        title: str,
        coordinates: StepCoordinates,
        actor: ActorContext,
        parent_step_id: Optional[str]
    ) -> WorkflowStep:
        now = utc_now()
        status = new_step.status
        if status in DONE_STATUSES:
            # New steps never skip the completion gate
            status = StepStatus.NOT_STARTED

        return WorkflowStep(
            step_id=generate_step_id(),
            ticket_id=ticket_id,
            title=title,
            description=new_step.description,
            status=status,
            assigned_to=new_step.assigned_to,
            level_1=coordinates.level_1,
            level_2=coordinates.level_2,
            level_3=coordinates.level_3,
            parent_step_id=parent_step_id,
            is_parallel=new_step.is_parallel,
            dependency_mode=new_step.dependency_mode,
            progress=new_step.progress,
            mandatory_documents=new_step.mandatory_documents,
            optional_documents=new_step.optional_documents,
            completion_certificate_required=new_step.completion_certificate_required,
            created_by=actor.user_id,
            created_at=now,
            updated_at=now,
            start_date=new_step.start_date or (now if status == StepStatus.WIP else None),
            due_date=new_step.due_date
        )
