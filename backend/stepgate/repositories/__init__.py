"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .step_repo import StepRepository
from .document_repo import DocumentRepository
from .audit_repo import AuditRepository

__all__ = [
    "get_database",
    "get_collection",
    "StepRepository",
    "DocumentRepository",
    "AuditRepository",
]
