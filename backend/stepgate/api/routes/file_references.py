"""File Reference Routes - Fill upload slots with uploaded documents"""
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_current_user_dep, get_correlation_id_dep, get_file_reference_service
from ...domain.models import ActorContext
from ...domain.errors import DomainError
from ...services.file_reference_service import FileReferenceService
from ...utils.logger import get_logger
from .schemas import AttachDocumentRequest

logger = get_logger(__name__)
router = APIRouter()


@router.post("/{file_reference_id}/document")
async def attach_document(
    file_reference_id: str,
    request: AttachDocumentRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: FileReferenceService = Depends(get_file_reference_service)
) -> Dict[str, Any]:
    """
    Attach an uploaded document to a file reference

    The document itself is stored by the upload service; this only links
    its ID. A reference accepts one document (409 afterwards).
    """
    try:
        reference = service.attach_document(file_reference_id, request.document_id, actor)
        return reference.model_dump(mode="json")
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
