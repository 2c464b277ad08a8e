"""Service modules - Business logic layer"""
from .step_service import StepService
from .file_reference_service import FileReferenceService

__all__ = [
    "StepService",
    "FileReferenceService",
]
