"""
Backend Scripts Module

Maintenance scripts that run against the MongoDB store.

Available scripts:
    - validate_dependencies.py: Checks a ticket's step hierarchy and dependency graph

Usage:
    python -m scripts.validate_dependencies <ticket_id>
"""
