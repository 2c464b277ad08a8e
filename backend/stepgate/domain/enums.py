"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class StepStatus(str, Enum):
    """Workflow step status"""
    NOT_STARTED = "NOT_STARTED"
    WIP = "WIP"
    COMPLETED = "COMPLETED"
    CLOSED = "CLOSED"


# Prerequisite states that satisfy a dependency edge
DONE_STATUSES = frozenset({StepStatus.COMPLETED, StepStatus.CLOSED})


class DependencyMode(str, Enum):
    """How many prerequisites must be done before a serial step completes"""
    ALL = "ALL"          # Every prerequisite must be completed or closed
    ANY_ONE = "ANY_ONE"  # One completed or closed prerequisite is sufficient


class UserRole(str, Enum):
    """Roles the step rules single out; any other role string is accepted as-is"""
    EO = "EO"              # Top administrative role
    DO = "DO"              # Assignee-tier (manager) role


class BlockingReasonCode(str, Enum):
    """Why a completion request was rejected"""
    INCOMPLETE_DEPENDENCIES = "INCOMPLETE_DEPENDENCIES"
    MISSING_FILE_REFERENCES = "MISSING_FILE_REFERENCES"
    MISSING_MANDATORY_DOCUMENTS = "MISSING_MANDATORY_DOCUMENTS"
    MISSING_COMPLETION_CERTIFICATE = "MISSING_COMPLETION_CERTIFICATE"


class AuditAction(str, Enum):
    """Types of audit events"""
    WORKFLOW_ADDED = "WORKFLOW_ADDED"
    BULK_WORKFLOW_ADDED = "BULK_WORKFLOW_ADDED"
    WORKFLOW_UPDATED = "WORKFLOW_UPDATED"
    DEPENDENCIES_CREATED = "DEPENDENCIES_CREATED"
    DEPENDENCIES_LOCKED = "DEPENDENCIES_LOCKED"
    STEP_COMPLETED = "STEP_COMPLETED"
    COMPLETION_BLOCKED = "COMPLETION_BLOCKED"
    FILE_REFERENCES_CREATED = "FILE_REFERENCES_CREATED"
    FILE_REFERENCE_UPLOADED = "FILE_REFERENCE_UPLOADED"


class AuditActionCategory(str, Enum):
    """Audit log grouping used by the trail views"""
    WORKFLOW_ACTION = "WORKFLOW_ACTION"
    DOCUMENT_ACTION = "DOCUMENT_ACTION"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGNMENT_CHANGE = "ASSIGNMENT_CHANGE"
