"""Completion Gate - Decide whether a step may transition to COMPLETED"""
from typing import List, Optional

from ..config.settings import settings
from ..domain.models import (
    WorkflowStep, FileReference, StepDocument, BlockingReason, CompletionDecision
)
from ..domain.enums import BlockingReasonCode
from .dependency_graph import DependencyGraph
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CompletionGate:
    """
    Run the completion checks for one step in a fixed order

    1. Dependencies (skipped for parallel steps)
    2. Mandatory file references uploaded
    3. Mandatory document count reached
    4. Completion certificate present (assignee-tier role, or steps that
       require one; the top administrative role is exempt)

    The gate only decides. Writing status/progress/completed_at on success
    is the caller's job.
    """

    def __init__(
        self,
        dependency_graph: Optional[DependencyGraph] = None,
        collect_all_reasons: Optional[bool] = None,
        top_admin_role: Optional[str] = None,
        assignee_role: Optional[str] = None
    ):
        self.dependency_graph = dependency_graph or DependencyGraph()
        self.collect_all_reasons = (
            settings.completion_gate_collect_all_reasons
            if collect_all_reasons is None else collect_all_reasons
        )
        self.top_admin_role = (top_admin_role or settings.top_admin_role).upper()
        self.assignee_role = (assignee_role or settings.assignee_role).upper()

    def evaluate(
        self,
        step: WorkflowStep,
        all_steps: List[WorkflowStep],
        file_references: List[FileReference],
        documents: List[StepDocument],
        acting_user_role: str
    ) -> CompletionDecision:
        """
        Evaluate a completion request

        Args:
            step: Step asked to complete
            all_steps: Every step of the ticket (prerequisite lookup)
            file_references: File references of the step
            documents: Uploaded documents of the step
            acting_user_role: Role of the user requesting completion

        Returns:
            CompletionDecision with every violated rule, or only the first
            one when collect_all_reasons is off
        """
        checks = (
            lambda: self._check_dependencies(step, all_steps),
            lambda: self._check_file_references(file_references),
            lambda: self._check_mandatory_documents(step, documents),
            lambda: self._check_completion_certificate(step, documents, acting_user_role),
        )

        reasons: List[BlockingReason] = []
        for check in checks:
            reason = check()
            if reason is None:
                continue
            reasons.append(reason)
            if not self.collect_all_reasons:
                break

        decision = CompletionDecision(
            step_id=step.step_id,
            can_complete=not reasons,
            blocking_reasons=reasons
        )

        if reasons:
            logger.info(
                f"Completion blocked for step {step.step_number}",
                extra={
                    "ticket_id": step.ticket_id,
                    "step_id": step.step_id,
                    "blocking_reasons": [r.code.value for r in reasons]
                }
            )
        return decision

    def _check_dependencies(
        self,
        step: WorkflowStep,
        all_steps: List[WorkflowStep]
    ) -> Optional[BlockingReason]:
        # Parallel steps never read the dependency graph
        if step.is_parallel:
            return None

        result = self.dependency_graph.check_dependencies(step, all_steps)
        if result.can_complete:
            return None

        return BlockingReason(
            code=BlockingReasonCode.INCOMPLETE_DEPENDENCIES,
            message=result.message,
            details={
                "dependency_mode": result.dependency_mode.value,
                "incomplete_dependencies": [
                    d.model_dump(mode="json") for d in result.incomplete_dependencies
                ],
            }
        )

    def _check_file_references(self, file_references: List[FileReference]) -> Optional[BlockingReason]:
        missing = [r.reference_name for r in file_references if r.is_mandatory and not r.is_uploaded]
        if not missing:
            return None

        return BlockingReason(
            code=BlockingReasonCode.MISSING_FILE_REFERENCES,
            message="The following mandatory file references have not been uploaded: " + ", ".join(missing),
            details={"missing_references": missing}
        )

    def _check_mandatory_documents(
        self,
        step: WorkflowStep,
        documents: List[StepDocument]
    ) -> Optional[BlockingReason]:
        required = len(step.mandatory_documents)
        if required == 0:
            return None

        uploaded = len([d for d in documents if d.is_mandatory])
        if uploaded >= required:
            return None

        return BlockingReason(
            code=BlockingReasonCode.MISSING_MANDATORY_DOCUMENTS,
            message=f"Please upload all {required} mandatory documents first.",
            details={"required": required, "uploaded": uploaded}
        )

    def _check_completion_certificate(
        self,
        step: WorkflowStep,
        documents: List[StepDocument],
        acting_user_role: str
    ) -> Optional[BlockingReason]:
        role = (acting_user_role or "").upper()
        if role == self.top_admin_role:
            return None
        if role != self.assignee_role and not step.completion_certificate_required:
            return None

        if any(d.is_completion_certificate for d in documents):
            return None

        return BlockingReason(
            code=BlockingReasonCode.MISSING_COMPLETION_CERTIFICATE,
            message="Completion certificate is mandatory. Please upload evidence before marking this workflow as completed.",
            details={"role": role}
        )
