"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific permission denied"""
    error_code = "PERMISSION_DENIED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class MaxDepthExceededError(ValidationError):
    """Sub-step requested under a level 3 step"""
    error_code = "MAX_DEPTH_EXCEEDED"


class SelfDependencyError(ValidationError):
    """Step listed as its own prerequisite"""
    error_code = "SELF_DEPENDENCY"


class CycleDetectedError(ValidationError):
    """Proposed dependency edges would close a cycle"""
    error_code = "CYCLE_DETECTED"


class InvalidTemplateError(ValidationError):
    """File reference template has an invalid shape"""
    error_code = "INVALID_TEMPLATE"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class StepNotFoundError(NotFoundError):
    """Workflow step not found"""
    error_code = "STEP_NOT_FOUND"


class ParentNotFoundError(NotFoundError):
    """Parent step of a new sub-step not found in the ticket"""
    error_code = "PARENT_NOT_FOUND"


class FileReferenceNotFoundError(NotFoundError):
    """File reference not found"""
    error_code = "FILE_REFERENCE_NOT_FOUND"


class TemplateNotFoundError(NotFoundError):
    """File reference template not found"""
    error_code = "TEMPLATE_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class DependencyLockedError(InvalidStateError):
    """Dependencies of the step were already committed and locked"""
    error_code = "DEPENDENCY_LOCKED"


class DocumentAlreadyAttachedError(ConflictError):
    """File reference already points at an uploaded document"""
    error_code = "DOCUMENT_ALREADY_ATTACHED"


class CompletionBlockedError(InvalidStateError):
    """Step cannot transition to COMPLETED"""
    error_code = "COMPLETION_BLOCKED"

    def __init__(
        self,
        message: str,
        reasons: List[Dict[str, Any]],
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        details["reasons"] = reasons
        super().__init__(message, details=details)
        self.reasons = reasons
