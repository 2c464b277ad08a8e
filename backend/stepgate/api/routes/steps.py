"""
Step Routes

Workflow step endpoints of a ticket:
- List, get, create, bulk create, patch
- Complete and completion preview
- Dependencies, dependents and dependency targets
- File references of a step
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_current_user_dep, get_correlation_id_dep, get_step_service
from ...domain.models import ActorContext, StepUpdateInput
from ...domain.errors import DomainError
from ...services.step_service import StepService
from ...utils.logger import get_logger
from .schemas import (
    CreateStepRequest, BulkCreateStepsRequest, UpdateStepRequest, StepListResponse,
    CompleteStepRequest, DependenciesResponse, DependentsResponse, FileReferenceListResponse
)

logger = get_logger(__name__)
router = APIRouter()


@router.get("/{ticket_id}/steps", response_model=StepListResponse)
async def list_steps(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: StepService = Depends(get_step_service)
):
    """List the steps of a ticket in hierarchy order"""
    try:
        steps = service.list_steps(ticket_id)
        return StepListResponse(items=[s.model_dump(mode="json") for s in steps], total=len(steps))
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{ticket_id}/steps", status_code=status.HTTP_201_CREATED)
async def create_step(
    ticket_id: str,
    request: CreateStepRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: StepService = Depends(get_step_service)
) -> Dict[str, Any]:
    """
    Add a step to a ticket

    Coordinates are assigned by the server. Dependencies (top admin role
    only) are validated for cycles and locked right away.
    """
    try:
        step = service.add_step(ticket_id, request, actor)
        return step.model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{ticket_id}/steps/bulk", status_code=status.HTTP_201_CREATED)
async def create_steps_bulk(
    ticket_id: str,
    request: BulkCreateStepsRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: StepService = Depends(get_step_service)
) -> Dict[str, Any]:
    """
    Add several sibling steps

    Per-item failures are reported in the result; a missing parent or a
    parent at the deepest level fails the whole request.
    """
    try:
        result = service.add_steps_bulk(ticket_id, request.steps, actor, request.parent_step_id)
        return result.model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/steps/dependency-targets", response_model=StepListResponse)
async def get_dependency_targets(
    ticket_id: str,
    step_id: Optional[str] = Query(None, description="Candidate step; a new root step when omitted"),
    actor: ActorContext = Depends(get_current_user_dep),
    service: StepService = Depends(get_step_service)
):
    """Steps that may be offered as prerequisites"""
    try:
        steps = service.get_available_dependency_targets(ticket_id, step_id)
        return StepListResponse(items=[s.model_dump(mode="json") for s in steps], total=len(steps))
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/steps/{step_id}")
async def get_step(
    ticket_id: str,
    step_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: StepService = Depends(get_step_service)
) -> Dict[str, Any]:
    try:
        return service.get_step(ticket_id, step_id).model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.patch("/{ticket_id}/steps/{step_id}")
async def update_step(
    ticket_id: str,
    step_id: str,
    request: UpdateStepRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: StepService = Depends(get_step_service)
) -> Dict[str, Any]:
    """
    Patch a step

    Setting status to COMPLETED runs the completion gate and answers 409
    with the blocking reasons when it refuses.
    """
    try:
        changes = StepUpdateInput(**request.model_dump(exclude_unset=True, exclude={"remarks"}))
        step = service.update_step(ticket_id, step_id, changes, actor, request.remarks)
        return step.model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{ticket_id}/steps/{step_id}/complete")
async def complete_step(
    ticket_id: str,
    step_id: str,
    request: CompleteStepRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: StepService = Depends(get_step_service)
) -> Dict[str, Any]:
    """Mark a step completed if every completion rule holds"""
    try:
        step = service.complete_step(ticket_id, step_id, actor, request.remarks)
        return step.model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/steps/{step_id}/completion-check")
async def check_completion(
    ticket_id: str,
    step_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: StepService = Depends(get_step_service)
) -> Dict[str, Any]:
    """Preview the completion decision without changing the step"""
    try:
        return service.check_completion(ticket_id, step_id, actor).model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/steps/{step_id}/dependencies", response_model=DependenciesResponse)
async def get_dependencies(
    ticket_id: str,
    step_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: StepService = Depends(get_step_service)
):
    try:
        edges = service.get_dependencies(ticket_id, step_id)
        return DependenciesResponse(
            step_id=step_id,
            dependencies=[e.model_dump(mode="json") for e in edges],
            dependency_status=service.get_dependency_status(ticket_id, step_id)
        )
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/steps/{step_id}/dependents", response_model=DependentsResponse)
async def get_dependents(
    ticket_id: str,
    step_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: StepService = Depends(get_step_service)
):
    try:
        return DependentsResponse(
            step_id=step_id,
            dependent_step_ids=service.get_dependents(ticket_id, step_id)
        )
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}/steps/{step_id}/file-references", response_model=FileReferenceListResponse)
async def get_file_references(
    ticket_id: str,
    step_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: StepService = Depends(get_step_service)
):
    try:
        service.get_step(ticket_id, step_id)
        references = service.file_references.get_step_file_references(step_id)
        return FileReferenceListResponse(
            items=[r.model_dump(mode="json") for r in references],
            incomplete_mandatory=[
                r.reference_name for r in references if r.is_mandatory and not r.is_uploaded
            ]
        )
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
