"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator

from .enums import (
    StepStatus, DONE_STATUSES, DependencyMode, BlockingReasonCode, AuditAction, AuditActionCategory
)


# Deepest hierarchy level a step may live at (level_1.level_2.level_3)
MAX_HIERARCHY_DEPTH = 3


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from JWT token"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="User ID (token subject)")
    role: str = Field(..., description="Role string resolved at login (EO, DO, ...)")
    email: Optional[str] = Field(None, description="User email")
    display_name: Optional[str] = Field(None, description="User display name")


# ============================================================================
# Workflow Steps
# ============================================================================

class StepCoordinates(BaseModel):
    """Position of a step in the 3-level hierarchy"""
    model_config = ConfigDict(frozen=True)

    level_1: int = Field(..., ge=0)
    level_2: int = Field(default=0, ge=0)
    level_3: int = Field(default=0, ge=0)

    @property
    def step_number(self) -> str:
        return f"{self.level_1}.{self.level_2}.{self.level_3}"

    def as_tuple(self) -> tuple:
        return (self.level_1, self.level_2, self.level_3)


class WorkflowStep(BaseModel):
    """A node in a ticket's workflow hierarchy"""
    model_config = ConfigDict(extra="ignore")

    step_id: str = Field(..., description="Unique step ID")
    ticket_id: str = Field(..., description="Owning ticket")
    title: str = Field(..., description="Display title")
    description: str = Field(default="")
    status: StepStatus = Field(default=StepStatus.NOT_STARTED)
    assigned_to: Optional[str] = Field(None, description="Assignee user ID")

    # Hierarchy
    level_1: int = Field(default=0, ge=0)
    level_2: int = Field(default=0, ge=0)
    level_3: int = Field(default=0, ge=0)
    parent_step_id: Optional[str] = Field(None, description="Immediate parent, absent for roots")

    # Dependencies
    is_parallel: bool = Field(default=True, description="False = serial, subject to dependency gating")
    dependency_mode: DependencyMode = Field(default=DependencyMode.ALL)
    is_dependency_locked: bool = Field(default=False)

    # Completion requirements
    progress: int = Field(default=0, ge=0, le=100)
    mandatory_documents: List[str] = Field(default_factory=list)
    optional_documents: List[str] = Field(default_factory=list)
    completion_certificate_required: bool = Field(default=False)

    # Timestamps
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_hierarchy_shape(self) -> "WorkflowStep":
        if self.level_2 == 0 and self.level_3 > 0:
            raise ValueError(
                f"Invalid hierarchy coordinates {self.step_number}: level_3 requires level_2"
            )
        return self

    @property
    def step_number(self) -> str:
        """Dotted hierarchy number, e.g. '2.1.0'"""
        return f"{self.level_1}.{self.level_2}.{self.level_3}"

    @property
    def depth(self) -> int:
        """1 for roots, 2 for sub-steps, 3 for sub-sub-steps"""
        if self.level_3 > 0:
            return 3
        if self.level_2 > 0:
            return 2
        return 1

    @property
    def is_done(self) -> bool:
        return self.status in DONE_STATUSES


class DependencyEdge(BaseModel):
    """Directed 'must complete before' relation, owned by the dependent step"""
    model_config = ConfigDict(extra="ignore")

    dependency_id: str = Field(..., description="Unique edge ID")
    step_id: str = Field(..., description="The dependent step")
    depends_on_step_id: str = Field(..., description="The prerequisite step")
    created_by: str = Field(..., description="User who defined the dependency")
    created_at: datetime
    is_active: bool = Field(default=True, description="Soft-delete flag")


class SelectedFileReference(BaseModel):
    """A template entry chosen for a step"""
    reference_name: str = Field(..., min_length=1)
    is_mandatory: bool = False


class NewStepInput(BaseModel):
    """Data for one step to create (single or bulk)"""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(default="")
    description: str = Field(default="")
    status: StepStatus = Field(default=StepStatus.NOT_STARTED)
    assigned_to: Optional[str] = None
    parent_step_id: Optional[str] = None
    is_parallel: bool = True
    dependency_mode: DependencyMode = DependencyMode.ALL
    depends_on_step_ids: List[str] = Field(default_factory=list)
    progress: int = Field(default=0, ge=0, le=100)
    mandatory_documents: List[str] = Field(default_factory=list)
    optional_documents: List[str] = Field(default_factory=list)
    completion_certificate_required: bool = False
    file_reference_template_id: Optional[str] = None
    selected_file_references: Optional[List[SelectedFileReference]] = Field(
        None, description="Subset of the template to instantiate; whole template when omitted"
    )
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None


class StepUpdateInput(BaseModel):
    """Patch for an existing step; unset fields are left alone"""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[StepStatus] = None
    assigned_to: Optional[str] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    mandatory_documents: Optional[List[str]] = None
    optional_documents: Optional[List[str]] = None
    completion_certificate_required: Optional[bool] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None


class BulkItemError(BaseModel):
    """Per-item failure of a bulk step creation"""
    index: int
    title: str
    error: str


class BulkOperationResult(BaseModel):
    """Outcome of a bulk step creation (partial success is not rolled back)"""
    success_count: int = 0
    failed_count: int = 0
    total_count: int = 0
    errors: List[BulkItemError] = Field(default_factory=list)
    created_step_ids: List[str] = Field(default_factory=list)


# ============================================================================
# File References & Documents
# ============================================================================

class FileReferenceTemplate(BaseModel):
    """Named upload slots that can be instantiated on a step"""
    model_config = ConfigDict(extra="ignore")

    template_id: str
    template_name: str
    description: str = ""
    file_references: List[str] = Field(default_factory=list)
    mandatory_flags: Optional[List[bool]] = None
    is_active: bool = True


class FileReference(BaseModel):
    """Upload slot attached to a step from a template"""
    model_config = ConfigDict(extra="ignore")

    file_reference_id: str
    step_id: str
    template_id: Optional[str] = None
    reference_name: str
    is_mandatory: bool = False
    document_id: Optional[str] = Field(None, description="Set once the slot is uploaded")
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_uploaded(self) -> bool:
        return self.document_id is not None


class StepDocument(BaseModel):
    """Document metadata returned by the blob store"""
    model_config = ConfigDict(extra="ignore")

    document_id: str
    step_id: str
    ticket_id: Optional[str] = None
    name: str
    mime_type: Optional[str] = None
    size: int = 0
    storage_path: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    is_mandatory: bool = False
    is_completion_certificate: bool = False


# ============================================================================
# Completion Gate Results
# ============================================================================

class IncompleteDependency(BaseModel):
    """Prerequisite that is not yet completed or closed"""
    step_id: str
    title: str
    status: StepStatus


class DependencyCheckResult(BaseModel):
    """Outcome of the dependency satisfaction check"""
    can_complete: bool
    dependency_mode: DependencyMode
    total_dependencies: int = 0
    satisfied_count: int = 0
    incomplete_dependencies: List[IncompleteDependency] = Field(default_factory=list)
    message: str = ""


class BlockingReason(BaseModel):
    """One violated completion rule"""
    code: BlockingReasonCode
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CompletionDecision(BaseModel):
    """Accept/reject decision for a completion request"""
    step_id: str
    can_complete: bool
    blocking_reasons: List[BlockingReason] = Field(default_factory=list)

    def reason_codes(self) -> List[BlockingReasonCode]:
        return [r.code for r in self.blocking_reasons]


# ============================================================================
# Audit
# ============================================================================

class AuditEvent(BaseModel):
    """Append-only audit event"""
    model_config = ConfigDict(extra="forbid")

    audit_event_id: str
    ticket_id: str
    step_id: Optional[str] = None
    action: AuditAction
    action_category: AuditActionCategory
    description: str
    performed_by: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    correlation_id: Optional[str] = None
