"""API Routes module"""
from fastapi import APIRouter

from .steps import router as steps_router
from .file_references import router as file_references_router

# Main API router
api_router = APIRouter()

api_router.include_router(steps_router, prefix="/tickets", tags=["Steps"])
api_router.include_router(file_references_router, prefix="/file-references", tags=["File References"])

__all__ = ["api_router"]
