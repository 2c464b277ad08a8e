"""ID Generation Utilities"""
import uuid
from typing import Optional

from .time import utc_now


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'STEP', 'DEP')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('STEP')
        'STEP-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_step_id() -> str:
    """Generate workflow step ID"""
    return generate_id("STEP")


def generate_dependency_id() -> str:
    """Generate dependency edge ID"""
    return generate_id("DEP")


def generate_file_reference_id() -> str:
    """Generate step file reference ID"""
    return generate_id("FREF")


def generate_audit_event_id() -> str:
    """Generate audit event ID"""
    return generate_id("AUD")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = utc_now().strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
