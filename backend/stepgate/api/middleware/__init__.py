"""
API Middleware Module

Modules:
    - correlation: Request correlation ID middleware
    - error_handlers: Exception handlers producing the JSON error envelope
"""

from .correlation import CorrelationIdMiddleware
from .error_handlers import register_error_handlers

__all__ = ["CorrelationIdMiddleware", "register_error_handlers"]
