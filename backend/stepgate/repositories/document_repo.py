"""Document Repository - File reference templates, step file references and documents"""
from typing import List, Optional
from datetime import datetime
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import FileReferenceTemplate, FileReference, StepDocument
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DocumentRepository:
    """Repository for upload slots and uploaded document metadata"""

    def __init__(self):
        self._templates: Collection = get_collection("file_reference_templates")
        self._file_references: Collection = get_collection("step_file_references")
        self._documents: Collection = get_collection("step_documents")

    # =========================================================================
    # Templates (read only here, edited by the admin module)
    # =========================================================================

    def get_template(self, template_id: str) -> Optional[FileReferenceTemplate]:
        """Get file reference template by ID"""
        doc = self._templates.find_one({"template_id": template_id})
        if doc:
            doc.pop("_id", None)
            return FileReferenceTemplate.model_validate(doc)
        return None

    # =========================================================================
    # Step File References
    # =========================================================================

    def insert_file_references(self, references: List[FileReference]) -> List[FileReference]:
        """Create a batch of file references for one step"""
        if not references:
            return []

        docs = []
        for ref in references:
            doc = ref.model_dump()
            doc["_id"] = ref.file_reference_id
            docs.append(doc)

        self._file_references.insert_many(docs, ordered=True)
        logger.info(
            f"Created {len(references)} file references",
            extra={"step_id": references[0].step_id}
        )
        return references

    def get_file_reference(self, file_reference_id: str) -> Optional[FileReference]:
        """Get file reference by ID"""
        doc = self._file_references.find_one({"file_reference_id": file_reference_id})
        if doc:
            doc.pop("_id", None)
            return FileReference.model_validate(doc)
        return None

    def list_file_references_for_step(self, step_id: str) -> List[FileReference]:
        """All file references of a step in creation order"""
        cursor = self._file_references.find({"step_id": step_id}).sort("created_at", ASCENDING)

        references = []
        for doc in cursor:
            doc.pop("_id", None)
            references.append(FileReference.model_validate(doc))
        return references

    def delete_file_references_for_step(self, step_id: str) -> int:
        """Remove every file reference of a step"""
        result = self._file_references.delete_many({"step_id": step_id})
        return result.deleted_count

    def attach_document(
        self,
        file_reference_id: str,
        document_id: str,
        uploaded_by: str,
        uploaded_at: datetime
    ) -> Optional[FileReference]:
        """
        Point a file reference at an uploaded document

        Only matches while document_id is still null, so a slot is filled at
        most once. Returns None when nothing matched.
        """
        result = self._file_references.find_one_and_update(
            {"file_reference_id": file_reference_id, "document_id": None},
            {"$set": {
                "document_id": document_id,
                "uploaded_by": uploaded_by,
                "uploaded_at": uploaded_at,
            }},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            return None

        result.pop("_id", None)
        return FileReference.model_validate(result)

    # =========================================================================
    # Step Documents
    # =========================================================================

    def list_documents_for_step(self, step_id: str) -> List[StepDocument]:
        """Uploaded documents of a step, newest first"""
        cursor = self._documents.find({"step_id": step_id}).sort("uploaded_at", DESCENDING)

        documents = []
        for doc in cursor:
            doc.pop("_id", None)
            documents.append(StepDocument.model_validate(doc))
        return documents
