"""
Pytest Configuration and Fixtures

Shared fixtures for all tests. Nothing here talks to MongoDB: the
services are wired to the in-memory repositories from tests/fakes.py.
"""
import os

# Keep test logs on stdout only; must happen before stepgate settings load
os.environ.setdefault("LOGS_PATH", "")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest

from stepgate.domain.models import ActorContext
from stepgate.domain.enums import UserRole
from stepgate.services.step_service import StepService
from stepgate.services.file_reference_service import FileReferenceService

from .fakes import FakeStepRepository, FakeDocumentRepository, FakeAuditRepository


@pytest.fixture
def step_repo() -> FakeStepRepository:
    return FakeStepRepository()


@pytest.fixture
def document_repo() -> FakeDocumentRepository:
    return FakeDocumentRepository()


@pytest.fixture
def audit_repo() -> FakeAuditRepository:
    return FakeAuditRepository()


@pytest.fixture
def step_service(step_repo, document_repo, audit_repo) -> StepService:
    return StepService(step_repo=step_repo, document_repo=document_repo, audit_repo=audit_repo)


@pytest.fixture
def file_reference_service(step_repo, document_repo, audit_repo) -> FileReferenceService:
    return FileReferenceService(document_repo=document_repo, step_repo=step_repo, audit_repo=audit_repo)


@pytest.fixture
def eo_actor() -> ActorContext:
    """Top administrative user"""
    return ActorContext(user_id="user-eo", role=UserRole.EO.value, email="eo@example.com", display_name="EO User")


@pytest.fixture
def do_actor() -> ActorContext:
    """Assignee-tier user"""
    return ActorContext(user_id="user-do", role=UserRole.DO.value, email="do@example.com", display_name="DO User")


@pytest.fixture
def employee_actor() -> ActorContext:
    return ActorContext(user_id="user-emp", role="EMPLOYEE", email="emp@example.com")
