"""Utility modules"""
from .logger import get_logger, setup_logging
from .jwt import JWTValidator, get_current_user
from .idgen import generate_id, generate_correlation_id
from .time import utc_now, format_iso

__all__ = [
    "get_logger",
    "setup_logging",
    "JWTValidator",
    "get_current_user",
    "generate_id",
    "generate_correlation_id",
    "utc_now",
    "format_iso",
]
