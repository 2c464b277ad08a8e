"""Audit Writer - Append-only audit events for step operations"""
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from ..domain.models import AuditEvent, ActorContext, WorkflowStep, BlockingReason
from ..domain.enums import AuditAction, AuditActionCategory
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_event_id
from ..utils.time import utc_now
from ..utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


class AuditWriter:
    """
    Write audit events (append-only)

    Audit writes never fail the operation that triggered them: a storage
    error is logged and the event is dropped.
    """

    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo or AuditRepository()

    def write_event(
        self,
        ticket_id: str,
        action: AuditAction,
        category: AuditActionCategory,
        actor: ActorContext,
        description: str,
        step_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[AuditEvent]:
        """Write a single audit event"""
        event = AuditEvent(
            audit_event_id=generate_audit_event_id(),
            ticket_id=ticket_id,
            step_id=step_id,
            action=action,
            action_category=category,
            description=description,
            performed_by=actor.user_id,
            metadata=metadata or {},
            timestamp=utc_now(),
            correlation_id=get_correlation_id()
        )

        try:
            return self.repo.create_event(event)
        except PyMongoError as e:
            logger.warning(
                f"Failed to write audit event {action.value}: {e}",
                extra={"ticket_id": ticket_id, "step_id": step_id, "action": action.value}
            )
            return None

    def write_step_added(self, step: WorkflowStep, actor: ActorContext) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.WORKFLOW_ADDED,
            category=AuditActionCategory.WORKFLOW_ACTION,
            actor=actor,
            description=f"Added workflow step {step.step_number}: {step.title}",
            metadata={
                "step_number": step.step_number,
                "parent_step_id": step.parent_step_id,
                "is_parallel": step.is_parallel,
                "dependency_mode": step.dependency_mode.value,
            }
        )

    def write_bulk_added(
        self,
        ticket_id: str,
        actor: ActorContext,
        success_count: int,
        failed_count: int,
        parent_step_id: Optional[str] = None
    ) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=ticket_id,
            action=AuditAction.BULK_WORKFLOW_ADDED,
            category=AuditActionCategory.WORKFLOW_ACTION,
            actor=actor,
            description=f"Bulk added {success_count} workflow steps ({failed_count} failed)",
            metadata={
                "success_count": success_count,
                "failed_count": failed_count,
                "parent_step_id": parent_step_id,
            }
        )

    def write_step_updated(
        self,
        step: WorkflowStep,
        actor: ActorContext,
        changed_fields: List[str],
        remarks: Optional[str] = None
    ) -> Optional[AuditEvent]:
        if "status" in changed_fields:
            category = AuditActionCategory.STATUS_CHANGE
        elif "assigned_to" in changed_fields:
            category = AuditActionCategory.ASSIGNMENT_CHANGE
        else:
            category = AuditActionCategory.WORKFLOW_ACTION

        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.WORKFLOW_UPDATED,
            category=category,
            actor=actor,
            description=f"Updated workflow step {step.step_number}",
            metadata={"changed_fields": changed_fields, "remarks": remarks}
        )

    def write_dependencies_created(
        self,
        step: WorkflowStep,
        actor: ActorContext,
        depends_on_step_ids: List[str]
    ) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.DEPENDENCIES_CREATED,
            category=AuditActionCategory.WORKFLOW_ACTION,
            actor=actor,
            description=f"Step {step.step_number} now depends on {len(depends_on_step_ids)} step(s)",
            metadata={
                "depends_on_step_ids": depends_on_step_ids,
                "dependency_mode": step.dependency_mode.value,
            }
        )

    def write_dependencies_locked(self, step: WorkflowStep, actor: ActorContext) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.DEPENDENCIES_LOCKED,
            category=AuditActionCategory.WORKFLOW_ACTION,
            actor=actor,
            description=f"Dependencies of step {step.step_number} locked"
        )

    def write_step_completed(
        self,
        step: WorkflowStep,
        actor: ActorContext,
        remarks: Optional[str] = None
    ) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.STEP_COMPLETED,
            category=AuditActionCategory.STATUS_CHANGE,
            actor=actor,
            description=f"Step {step.step_number} marked as completed",
            metadata={"role": actor.role, "remarks": remarks}
        )

    def write_completion_blocked(
        self,
        step: WorkflowStep,
        actor: ActorContext,
        reasons: List[BlockingReason]
    ) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.COMPLETION_BLOCKED,
            category=AuditActionCategory.STATUS_CHANGE,
            actor=actor,
            description=f"Completion of step {step.step_number} was blocked",
            metadata={"reasons": [r.code.value for r in reasons], "role": actor.role}
        )

    def write_file_references_created(
        self,
        step: WorkflowStep,
        actor: ActorContext,
        template_id: str,
        reference_names: List[str]
    ) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.FILE_REFERENCES_CREATED,
            category=AuditActionCategory.DOCUMENT_ACTION,
            actor=actor,
            description=f"Created {len(reference_names)} file reference(s) for step {step.step_number}",
            metadata={"template_id": template_id, "reference_names": reference_names}
        )

    def write_file_reference_uploaded(
        self,
        step: WorkflowStep,
        actor: ActorContext,
        reference_name: str,
        document_id: str
    ) -> Optional[AuditEvent]:
        return self.write_event(
            ticket_id=step.ticket_id,
            step_id=step.step_id,
            action=AuditAction.FILE_REFERENCE_UPLOADED,
            category=AuditActionCategory.DOCUMENT_ACTION,
            actor=actor,
            description=f"Uploaded '{reference_name}' for step {step.step_number}",
            metadata={"reference_name": reference_name, "document_id": document_id}
        )
