"""File reference service tests"""
import pytest

from stepgate.domain.enums import AuditAction
from stepgate.domain.errors import (
    InvalidTemplateError, TemplateNotFoundError, FileReferenceNotFoundError,
    DocumentAlreadyAttachedError, StepNotFoundError
)
from stepgate.domain.models import FileReferenceTemplate, SelectedFileReference

from tests.fakes import make_step


@pytest.fixture
def step(step_repo):
    return step_repo.insert_step(make_step("STEP-1", 1))


class TestValidateTemplate:

    @pytest.mark.parametrize("names,flags", [
        ([], None),
        (["Invoice", "  "], None),
        (["Invoice", "Permit"], [True]),
    ])
    def test_rejects_malformed_templates(self, file_reference_service, names, flags):
        template = FileReferenceTemplate(
            template_id="TPL-1", template_name="Bad", file_references=names, mandatory_flags=flags
        )
        with pytest.raises(InvalidTemplateError):
            file_reference_service.validate_template(template)

    def test_accepts_template_without_flags(self, file_reference_service):
        template = FileReferenceTemplate(template_id="TPL-1", template_name="Ok", file_references=["Invoice"])
        file_reference_service.validate_template(template)


class TestCreateReferences:

    def test_whole_template(self, file_reference_service, document_repo, audit_repo, eo_actor, step):
        document_repo.add_template("TPL-1", ["Invoice", "Permit"], [False, True])

        references = file_reference_service.create_step_file_references(step.step_id, "TPL-1", eo_actor)

        assert [(r.reference_name, r.is_mandatory, r.template_id) for r in references] == [
            ("Invoice", False, "TPL-1"),
            ("Permit", True, "TPL-1"),
        ]
        assert all(r.document_id is None for r in references)
        assert audit_repo.actions() == [AuditAction.FILE_REFERENCES_CREATED]

    def test_flags_default_to_optional(self, file_reference_service, document_repo, eo_actor, step):
        document_repo.add_template("TPL-1", ["Invoice"])
        references = file_reference_service.create_step_file_references(step.step_id, "TPL-1", eo_actor)
        assert not references[0].is_mandatory

    def test_unknown_selection(self, file_reference_service, document_repo, eo_actor, step):
        document_repo.add_template("TPL-1", ["Invoice"])
        with pytest.raises(InvalidTemplateError) as exc:
            file_reference_service.create_step_file_references(
                step.step_id, "TPL-1", eo_actor, [SelectedFileReference(reference_name="Passport")]
            )
        assert exc.value.details["unknown"] == ["Passport"]

    def test_empty_selection_creates_nothing(self, file_reference_service, document_repo, eo_actor, step):
        document_repo.add_template("TPL-1", ["Invoice"])
        assert file_reference_service.create_step_file_references(step.step_id, "TPL-1", eo_actor, []) == []

    def test_missing_or_inactive_template(self, file_reference_service, document_repo, eo_actor, step):
        with pytest.raises(TemplateNotFoundError):
            file_reference_service.create_step_file_references(step.step_id, "nope", eo_actor)

        document_repo.add_template("TPL-OLD", ["Invoice"], is_active=False)
        with pytest.raises(InvalidTemplateError):
            file_reference_service.create_step_file_references(step.step_id, "TPL-OLD", eo_actor)

    def test_unknown_step(self, file_reference_service, document_repo, eo_actor):
        document_repo.add_template("TPL-1", ["Invoice"])
        with pytest.raises(StepNotFoundError):
            file_reference_service.create_step_file_references("missing", "TPL-1", eo_actor)


class TestAttachDocument:

    @pytest.fixture
    def references(self, file_reference_service, document_repo, eo_actor, step):
        document_repo.add_template("TPL-1", ["Invoice", "Permit", "Photos"], [True, True, False])
        return file_reference_service.create_step_file_references(step.step_id, "TPL-1", eo_actor)

    def test_attach_once(self, file_reference_service, audit_repo, do_actor, references):
        invoice = references[0]

        updated = file_reference_service.attach_document(invoice.file_reference_id, "DOC-9", do_actor)

        assert updated.document_id == "DOC-9"
        assert updated.uploaded_by == do_actor.user_id
        assert updated.uploaded_at is not None
        assert audit_repo.actions()[-1] == AuditAction.FILE_REFERENCE_UPLOADED

        with pytest.raises(DocumentAlreadyAttachedError):
            file_reference_service.attach_document(invoice.file_reference_id, "DOC-10", do_actor)

    def test_unknown_reference(self, file_reference_service, do_actor):
        with pytest.raises(FileReferenceNotFoundError):
            file_reference_service.attach_document("FREF-missing", "DOC-1", do_actor)

    def test_incomplete_references(self, file_reference_service, do_actor, step, references):
        assert [r.reference_name for r in file_reference_service.get_incomplete_references(step.step_id)] == [
            "Invoice", "Permit"
        ]
        assert not file_reference_service.check_mandatory_references_complete(step.step_id)

        for ref in references[:2]:
            file_reference_service.attach_document(ref.file_reference_id, f"DOC-{ref.reference_name}", do_actor)

        assert file_reference_service.get_incomplete_references(step.step_id) == []
        assert file_reference_service.check_mandatory_references_complete(step.step_id)
