"""API Dependencies - Common dependencies for routes"""
from typing import Optional
from fastapi import Header, HTTPException, status

from ..domain.models import ActorContext
from ..domain.errors import AuthenticationError
from ..services.step_service import StepService
from ..services.file_reference_service import FileReferenceService
from ..utils.jwt import get_current_user as _jwt_get_current_user  # Internal use only
from ..utils.logger import set_correlation_id, get_correlation_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Correlation ID of the current request

    The middleware has normally set one already; a header sent by the
    client wins, otherwise a new one is generated.
    """
    correlation_id = x_correlation_id or get_correlation_id() or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


async def get_current_user_dep(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Acting user resolved from the Authorization header

    Raises:
        HTTPException: 401 if token is invalid or missing
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AuthenticationError("Authorization header is missing").to_dict(),
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        return _jwt_get_current_user(authorization)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.to_dict(),
            headers={"WWW-Authenticate": "Bearer"}
        )


def get_step_service() -> StepService:
    return StepService()


def get_file_reference_service() -> FileReferenceService:
    return FileReferenceService()
