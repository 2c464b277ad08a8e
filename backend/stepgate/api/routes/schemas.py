"""
Step Schemas

Request and response models for the step API endpoints.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ...domain.models import NewStepInput, StepUpdateInput


# =============================================================================
# Step CRUD Schemas
# =============================================================================

class CreateStepRequest(NewStepInput):
    """Request to add one step to a ticket"""


class BulkCreateStepsRequest(BaseModel):
    """Request to add several sibling steps at once"""
    parent_step_id: Optional[str] = Field(None, description="Parent of every new step; roots when omitted")
    steps: List[NewStepInput] = Field(..., min_length=1, max_length=200)


class UpdateStepRequest(StepUpdateInput):
    """Request to patch a step"""
    remarks: Optional[str] = Field(None, max_length=2000)


class StepListResponse(BaseModel):
    """Response for step lists"""
    items: List[Dict[str, Any]]
    total: int


# =============================================================================
# Completion Schemas
# =============================================================================

class CompleteStepRequest(BaseModel):
    """Request to mark a step completed"""
    remarks: Optional[str] = Field(None, max_length=2000)


# =============================================================================
# Dependency Schemas
# =============================================================================

class DependenciesResponse(BaseModel):
    """Prerequisites of a step"""
    step_id: str
    dependencies: List[Dict[str, Any]]
    dependency_status: str = ""


class DependentsResponse(BaseModel):
    """Steps that wait on a step"""
    step_id: str
    dependent_step_ids: List[str]


# =============================================================================
# File Reference Schemas
# =============================================================================

class FileReferenceListResponse(BaseModel):
    """File references of a step"""
    items: List[Dict[str, Any]]
    incomplete_mandatory: List[str] = Field(default_factory=list)


class AttachDocumentRequest(BaseModel):
    """Link an uploaded document to a file reference"""
    document_id: str = Field(..., min_length=1)
