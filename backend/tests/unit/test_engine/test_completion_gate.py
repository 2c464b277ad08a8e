"""Completion gate tests"""
import pytest

from stepgate.domain.enums import StepStatus, DependencyMode, BlockingReasonCode
from stepgate.domain.models import FileReference
from stepgate.engine.completion_gate import CompletionGate
from stepgate.engine.dependency_graph import DependencyGraph

from tests.fakes import FakeStepRepository, FakeDocumentRepository, make_step


@pytest.fixture
def repo() -> FakeStepRepository:
    return FakeStepRepository()


@pytest.fixture
def documents() -> FakeDocumentRepository:
    return FakeDocumentRepository()


@pytest.fixture
def gate(repo) -> CompletionGate:
    return CompletionGate(DependencyGraph(repo), collect_all_reasons=True, top_admin_role="EO", assignee_role="DO")


def _reference(name, is_mandatory, document_id=None):
    return FileReference(
        file_reference_id=f"FREF-{name}",
        step_id="B",
        reference_name=name,
        is_mandatory=is_mandatory,
        document_id=document_id
    )


def _evaluate(gate, repo, step, role="EMPLOYEE", references=None, documents=None):
    return gate.evaluate(step, list(repo.steps.values()), references or [], documents or [], role)


class TestDependencies:

    def test_serial_step_waits_for_prerequisite(self, gate, repo):
        repo.steps["A"] = make_step("A", 1, status=StepStatus.WIP, title="Survey")
        repo.steps["B"] = make_step("B", 2, is_parallel=False)
        repo.add_edge("B", "A")

        decision = _evaluate(gate, repo, repo.steps["B"])

        assert not decision.can_complete
        assert decision.reason_codes() == [BlockingReasonCode.INCOMPLETE_DEPENDENCIES]
        incomplete = decision.blocking_reasons[0].details["incomplete_dependencies"]
        assert incomplete == [{"step_id": "A", "title": "Survey", "status": "WIP"}]

        repo.update_step("A", {"status": StepStatus.COMPLETED})
        assert _evaluate(gate, repo, repo.steps["B"]).can_complete

    def test_parallel_step_skips_dependencies(self, gate, repo):
        repo.steps["A"] = make_step("A", 1)
        repo.steps["B"] = make_step("B", 2, is_parallel=True)
        repo.add_edge("B", "A")

        assert _evaluate(gate, repo, repo.steps["B"]).can_complete

    def test_any_one_with_closed_prerequisite(self, gate, repo):
        repo.steps["A"] = make_step("A", 1, status=StepStatus.CLOSED)
        repo.steps["C"] = make_step("C", 2, status=StepStatus.NOT_STARTED)
        repo.steps["B"] = make_step("B", 3, is_parallel=False, dependency_mode=DependencyMode.ANY_ONE)
        repo.add_edge("B", "A")
        repo.add_edge("B", "C")

        assert _evaluate(gate, repo, repo.steps["B"]).can_complete


class TestDocuments:

    def test_missing_mandatory_reference_is_listed(self, gate, repo):
        step = make_step("B", 1)
        references = [
            _reference("Invoice", True),
            _reference("Photos", False),
            _reference("Permit", True, document_id="DOC-1"),
        ]

        decision = _evaluate(gate, repo, step, references=references)

        assert decision.reason_codes() == [BlockingReasonCode.MISSING_FILE_REFERENCES]
        assert decision.blocking_reasons[0].details["missing_references"] == ["Invoice"]

    def test_mandatory_document_count(self, gate, repo, documents):
        step = make_step("B", 1, mandatory_documents=["Drawing", "Report"])
        docs = [documents.add_document("B", "drawing.pdf", is_mandatory=True)]

        decision = _evaluate(gate, repo, step, documents=docs)
        assert decision.reason_codes() == [BlockingReasonCode.MISSING_MANDATORY_DOCUMENTS]
        assert decision.blocking_reasons[0].details == {"required": 2, "uploaded": 1}

        docs.append(documents.add_document("B", "report.pdf", is_mandatory=True))
        assert _evaluate(gate, repo, step, documents=docs).can_complete

    def test_optional_documents_do_not_count(self, gate, repo, documents):
        step = make_step("B", 1, mandatory_documents=["Drawing"])
        docs = [documents.add_document("B", "notes.txt")]
        assert not _evaluate(gate, repo, step, documents=docs).can_complete


class TestCompletionCertificate:

    def test_assignee_role_needs_certificate(self, gate, repo, documents):
        step = make_step("B", 1)
        decision = _evaluate(gate, repo, step, role="DO")
        assert decision.reason_codes() == [BlockingReasonCode.MISSING_COMPLETION_CERTIFICATE]

        certificate = documents.add_document("B", "cert.pdf", is_completion_certificate=True)
        assert _evaluate(gate, repo, step, role="DO", documents=[certificate]).can_complete

    def test_top_admin_is_exempt(self, gate, repo):
        step = make_step("B", 1, completion_certificate_required=True)
        assert _evaluate(gate, repo, step, role="EO").can_complete

    def test_other_roles_only_when_step_requires_it(self, gate, repo):
        assert _evaluate(gate, repo, make_step("B", 1), role="EMPLOYEE").can_complete

        flagged = make_step("C", 2, completion_certificate_required=True)
        decision = _evaluate(gate, repo, flagged, role="vendor")
        assert decision.reason_codes() == [BlockingReasonCode.MISSING_COMPLETION_CERTIFICATE]


class TestReasonCollection:

    def _blocked_everywhere(self, repo):
        repo.steps["A"] = make_step("A", 1)
        repo.steps["B"] = make_step("B", 2, is_parallel=False, mandatory_documents=["Report"])
        repo.add_edge("B", "A")
        return repo.steps["B"], [_reference("Invoice", True)]

    def test_collects_every_reason_in_order(self, gate, repo):
        step, references = self._blocked_everywhere(repo)

        decision = _evaluate(gate, repo, step, role="DO", references=references)

        assert decision.reason_codes() == [
            BlockingReasonCode.INCOMPLETE_DEPENDENCIES,
            BlockingReasonCode.MISSING_FILE_REFERENCES,
            BlockingReasonCode.MISSING_MANDATORY_DOCUMENTS,
            BlockingReasonCode.MISSING_COMPLETION_CERTIFICATE,
        ]

    def test_can_stop_at_first_failure(self, repo):
        gate = CompletionGate(DependencyGraph(repo), collect_all_reasons=False)
        step, references = self._blocked_everywhere(repo)

        decision = _evaluate(gate, repo, step, role="DO", references=references)

        assert decision.reason_codes() == [BlockingReasonCode.INCOMPLETE_DEPENDENCIES]

    def test_clean_step_passes(self, gate, repo):
        decision = _evaluate(gate, repo, make_step("B", 1))
        assert decision.can_complete
        assert decision.blocking_reasons == []
