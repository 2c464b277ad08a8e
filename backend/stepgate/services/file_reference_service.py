"""File Reference Service - Upload slots instantiated from templates"""
from typing import List, Optional

from ..domain.models import (
    ActorContext, FileReference, FileReferenceTemplate, SelectedFileReference
)
from ..domain.errors import (
    InvalidTemplateError, TemplateNotFoundError, FileReferenceNotFoundError,
    DocumentAlreadyAttachedError
)
from ..repositories.document_repo import DocumentRepository
from ..repositories.step_repo import StepRepository
from ..repositories.audit_repo import AuditRepository
from ..engine.audit_writer import AuditWriter
from ..utils.idgen import generate_file_reference_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FileReferenceService:
    """Service for step file references"""

    def __init__(
        self,
        document_repo: Optional[DocumentRepository] = None,
        step_repo: Optional[StepRepository] = None,
        audit_repo: Optional[AuditRepository] = None
    ):
        self.document_repo = document_repo or DocumentRepository()
        self.step_repo = step_repo or StepRepository()
        self.audit_writer = AuditWriter(audit_repo)

    @staticmethod
    def validate_template(template: FileReferenceTemplate) -> None:
        """
        Check a template can be instantiated

        Names must be non-empty and non-blank; mandatory_flags, when
        present, must line up with the names.
        """
        names = template.file_references
        if not names:
            raise InvalidTemplateError(
                "File reference template has no file references",
                details={"template_id": template.template_id}
            )
        if any(not name or not name.strip() for name in names):
            raise InvalidTemplateError(
                "File reference names cannot be blank",
                details={"template_id": template.template_id}
            )
        if template.mandatory_flags is not None and len(template.mandatory_flags) != len(names):
            raise InvalidTemplateError(
                "mandatory_flags must have one entry per file reference",
                details={
                    "template_id": template.template_id,
                    "file_references": len(names),
                    "mandatory_flags": len(template.mandatory_flags),
                }
            )

    def create_step_file_references(
        self,
        step_id: str,
        template_id: str,
        actor: ActorContext,
        selected: Optional[List[SelectedFileReference]] = None
    ) -> List[FileReference]:
        """
        Instantiate a template for a step

        With `selected` only the chosen names are created, carrying the
        caller's mandatory flag; otherwise every name of the template is
        created with the template's flag (default not mandatory).
        """
        step = self.step_repo.get_step_or_raise(step_id)

        template = self.document_repo.get_template(template_id)
        if not template:
            raise TemplateNotFoundError(
                f"File reference template {template_id} not found",
                details={"template_id": template_id}
            )
        if not template.is_active:
            raise InvalidTemplateError(
                f"File reference template {template.template_name} is inactive",
                details={"template_id": template_id}
            )
        self.validate_template(template)

        flags = template.mandatory_flags or [False] * len(template.file_references)
        entries = list(zip(template.file_references, flags))

        if selected is not None:
            known = set(template.file_references)
            unknown = [s.reference_name for s in selected if s.reference_name not in known]
            if unknown:
                raise InvalidTemplateError(
                    "Selected file references are not part of the template",
                    details={"template_id": template_id, "unknown": unknown}
                )
            entries = [(s.reference_name, s.is_mandatory) for s in selected]

        if not entries:
            return []

        now = utc_now()
        references = [
            FileReference(
                file_reference_id=generate_file_reference_id(),
                step_id=step_id,
                template_id=template_id,
                reference_name=name,
                is_mandatory=bool(is_mandatory),
                created_at=now
            )
            for name, is_mandatory in entries
        ]
        self.document_repo.insert_file_references(references)

        self.audit_writer.write_file_references_created(
            step, actor, template_id, [r.reference_name for r in references]
        )
        return references

    def get_step_file_references(self, step_id: str) -> List[FileReference]:
        return self.document_repo.list_file_references_for_step(step_id)

    def attach_document(
        self,
        file_reference_id: str,
        document_id: str,
        actor: ActorContext
    ) -> FileReference:
        """Fill an upload slot; a slot accepts exactly one document"""
        reference = self.document_repo.get_file_reference(file_reference_id)
        if not reference:
            raise FileReferenceNotFoundError(
                f"File reference {file_reference_id} not found",
                details={"file_reference_id": file_reference_id}
            )
        if reference.is_uploaded:
            raise DocumentAlreadyAttachedError(
                f"'{reference.reference_name}' already has a document",
                details={"file_reference_id": file_reference_id, "document_id": reference.document_id}
            )

        updated = self.document_repo.attach_document(
            file_reference_id, document_id, actor.user_id, utc_now()
        )
        if updated is None:
            # Lost the race to another upload
            raise DocumentAlreadyAttachedError(
                f"'{reference.reference_name}' already has a document",
                details={"file_reference_id": file_reference_id}
            )

        logger.info(
            f"Document {document_id} attached to file reference {file_reference_id}",
            extra={"step_id": reference.step_id, "user_id": actor.user_id}
        )

        step = self.step_repo.get_step(reference.step_id)
        if step:
            self.audit_writer.write_file_reference_uploaded(
                step, actor, reference.reference_name, document_id
            )
        return updated

    def get_incomplete_references(self, step_id: str) -> List[FileReference]:
        """Mandatory references still waiting for a document"""
        return [
            ref for ref in self.get_step_file_references(step_id)
            if ref.is_mandatory and not ref.is_uploaded
        ]

    def check_mandatory_references_complete(self, step_id: str) -> bool:
        return not self.get_incomplete_references(step_id)
