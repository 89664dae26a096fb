"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time; tests never reach a real project
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from threading import Lock
from typing import Generator
from uuid import uuid4

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._data = [row for row in self._data if row.get(column) == value]
        self._count = None
        return self

    def limit(self, count):
        self._data = self._data[:count]
        return self

    def execute(self) -> MockSupabaseResponse:
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseInsert:
    """Pending insert; rows are stored on execute()."""

    def __init__(self, table: "MockSupabaseTable", data):
        self._table = table
        self._rows = [data] if isinstance(data, dict) else list(data)

    def execute(self) -> MockSupabaseResponse:
        return MockSupabaseResponse(data=self._table.store(self._rows))


class MockSupabaseTable:
    """
    Mock Supabase table backed by a shared row list.

    Inserts persist, so later selects see them. A duplicate email raises
    the same unique-violation text PostgREST returns.
    """

    def __init__(self, rows: list, count: int = None, lock: Lock = None, fail_emails: set = None):
        self._rows = rows
        self._count = count
        self._lock = lock or Lock()
        self._fail_emails = fail_emails or set()

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(list(self._rows), self._count).select(*args, **kwargs)

    def insert(self, data):
        return MockSupabaseInsert(self, data)

    def store(self, rows: list) -> list:
        stored = []
        with self._lock:
            for row in rows:
                email = row.get("email")
                if email in self._fail_emails:
                    raise Exception(f"connection reset while inserting {email}")
                if email and any(r.get("email") == email for r in self._rows):
                    raise Exception(
                        '{"code": "23505", "message": "duplicate key value violates '
                        'unique constraint \\"users_email_key\\""}'
                    )
                item = dict(row)
                item["id"] = str(uuid4())
                item.setdefault("createdAt", datetime.utcnow().isoformat())
                item.setdefault("updatedAt", item["createdAt"])
                self._rows.append(item)
                stored.append(item)
        return stored


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self._lock = Lock()

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": list(data), "count": count, "fail_emails": set()}

    def fail_inserts_for(self, table_name: str, *emails: str):
        """Make inserts of these emails raise a non-duplicate error."""
        config = self._config(table_name)
        config["fail_emails"].update(emails)

    def rows(self, table_name: str) -> list:
        """Rows currently stored in a table."""
        return self._config(table_name)["data"]

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._config(name)
        return MockSupabaseTable(config["data"], config["count"], self._lock, config["fail_emails"])

    def _config(self, name: str) -> dict:
        if name not in self._tables:
            self.set_table_data(name, [])
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def clear_import_sessions() -> Generator:
    """Every test starts and ends with no open import sessions."""
    from services import import_session_store

    import_session_store.clear_sessions()
    yield
    import_session_store.clear_sessions()


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("users", [
                {"id": "1", "email": "ana@x.com", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("users", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    import services.user_service as user_service

    user_service._user_service = None
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.user_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.user_service.get_admin_client", return_value=None):
                yield mock_supabase
    user_service._user_service = None


@pytest.fixture
def sample_user_row() -> dict:
    """A users table row as stored."""
    return {
        "id": "test-uuid-123",
        "name": "Ana López",
        "email": "ana.lopez@ejemplo.com",
        "role": "GUARDIAN",
        "phone": "+1234567892",
        "profile_image": None,
        "status": "ACTIVE",
        "createdAt": "2025-12-05T10:00:00",
        "updatedAt": "2025-12-05T10:00:00"
    }


@pytest.fixture
def sample_csv() -> str:
    """Three users in the template's layout."""
    return (
        "name,email,role,phone,isActive,grade\n"
        "Juan Pérez,juan.perez@ejemplo.com,student,+1234567890,true,10° Grado\n"
        "María García,maria.garcia@ejemplo.com,teacher,+1234567891,true,\n"
        "Ana López,ana.lopez@ejemplo.com,parent,+1234567892,false,\n"
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/users/import/template")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("users", [...])
            response = test_client_with_mock_db.post("/api/users/import/sessions")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
