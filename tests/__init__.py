"""Test package for eventmap.

This package contains:
- Unit tests (test_filtering.py, test_spatial.py, test_selection.py, test_view.py)
- Collaborator tests (test_store.py, test_geocoding.py, test_creation.py, test_config.py)
- HTTP surface tests (test_actions.py)
- Test configuration (conftest.py)
"""
