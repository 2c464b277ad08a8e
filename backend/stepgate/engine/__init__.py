"""Step engine - hierarchy, dependencies and the completion gate"""
from .hierarchy import HierarchyResolver
from .dependency_graph import DependencyGraph, find_cycle
from .availability import AvailabilityFilter
from .completion_gate import CompletionGate
from .permission_guard import PermissionGuard
from .audit_writer import AuditWriter

__all__ = [
    "HierarchyResolver",
    "DependencyGraph",
    "find_cycle",
    "AvailabilityFilter",
    "CompletionGate",
    "PermissionGuard",
    "AuditWriter",
]
