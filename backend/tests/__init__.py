"""
Test Suite

Tests for the Step Gate service backend.

Structure:
    tests/
    ├── __init__.py         # This file
    ├── conftest.py         # Pytest fixtures
    ├── fakes.py            # In-memory repositories
    ├── unit/               # Unit tests
    │   ├── test_engine/    # Hierarchy, dependency graph, availability, gate
    │   ├── test_services/  # Service layer tests
    │   └── test_utils/     # Utility tests
    └── integration/        # Integration tests
        └── test_api/       # API endpoint tests

To run tests:
    pytest tests/
    pytest tests/unit/
    pytest tests/integration/
"""
