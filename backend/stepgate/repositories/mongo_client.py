"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    # Workflow steps: coordinates are unique per ticket
    workflow_steps = db["workflow_steps"]
    workflow_steps.create_index("step_id", unique=True)
    workflow_steps.create_index(
        [("ticket_id", ASCENDING), ("level_1", ASCENDING), ("level_2", ASCENDING), ("level_3", ASCENDING)],
        unique=True
    )
    workflow_steps.create_index("parent_step_id")

    # Dependency edges
    step_dependencies = db["step_dependencies"]
    step_dependencies.create_index("dependency_id", unique=True)
    step_dependencies.create_index(
        [("step_id", ASCENDING), ("depends_on_step_id", ASCENDING)],
        unique=True
    )
    step_dependencies.create_index([("step_id", ASCENDING), ("is_active", ASCENDING)])
    step_dependencies.create_index([("depends_on_step_id", ASCENDING), ("is_active", ASCENDING)])

    # File references and templates
    file_references = db["step_file_references"]
    file_references.create_index("file_reference_id", unique=True)
    file_references.create_index("step_id")

    templates = db["file_reference_templates"]
    templates.create_index("template_id", unique=True)
    templates.create_index("template_name", unique=True)

    # Step documents (metadata written by the upload service)
    step_documents = db["step_documents"]
    step_documents.create_index("document_id", unique=True)
    step_documents.create_index([("step_id", ASCENDING), ("uploaded_at", DESCENDING)])

    # Audit events
    audit_events = db["audit_events"]
    audit_events.create_index("audit_event_id", unique=True)
    audit_events.create_index([("ticket_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_events.create_index("step_id")
    audit_events.create_index("correlation_id")

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
