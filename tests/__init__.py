"""
Test suite for the user import API.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_import_session_service.py -v
"""
