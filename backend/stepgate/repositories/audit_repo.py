"""Audit Repository - Data access for audit events"""
from pymongo.collection import Collection

from .mongo_client import get_collection
from ..domain.models import AuditEvent
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit event operations (append-only)"""

    def __init__(self):
        self._audit_events: Collection = get_collection("audit_events")

    def create_event(self, event: AuditEvent) -> AuditEvent:
        """Create an audit event (append-only)"""
        doc = event.model_dump()
        doc["_id"] = event.audit_event_id

        self._audit_events.insert_one(doc)
        logger.info(
            f"Created audit event: {event.action.value}",
            extra={
                "ticket_id": event.ticket_id,
                "step_id": event.step_id,
                "user_id": event.performed_by,
                "action": event.action.value
            }
        )
        return event
