"""
End-to-end tests of the user import HTTP flow.

Each test drives a session through the API with the users table mocked:
create -> upload -> (mapping) -> preview -> commit/cancel.

Run: pytest tests/test_user_import_end_to_end.py -v
"""

import pytest
from unittest.mock import patch

from exceptions import DatabaseError
from tests.factories import build_csv

BASE = "/api/users/import"


def _upload(client, session_id: str, text: str, filename: str = "usuarios.csv"):
    return client.post(
        f"{BASE}/sessions/{session_id}/upload",
        files={"file": (filename, text.encode("utf-8"), "text/csv")},
    )


@pytest.fixture
def client(test_client_with_mock_db, mock_supabase):
    mock_supabase.set_table_data("users", [])
    return test_client_with_mock_db


@pytest.fixture
def session_id(client) -> str:
    response = client.post(f"{BASE}/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


class TestHappyPath:

    def test_full_import(self, client, session_id, sample_csv, mock_supabase):
        # Upload
        response = _upload(client, session_id, sample_csv)
        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "mapping"
        assert body["row_count"] == 3
        assert {m["field"] for m in body["mapping"]} == {
            "name", "email", "role", "phone", "isActive", "grade"
        }

        # Preview
        response = client.post(f"{BASE}/sessions/{session_id}/preview")
        assert response.status_code == 200
        assert response.json()["state"] == "preview"

        page = client.get(f"{BASE}/sessions/{session_id}/preview").json()
        assert page["total"] == 3
        assert page["data"][2]["role"] == "parent"

        # Commit
        response = client.post(f"{BASE}/sessions/{session_id}/commit")
        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "completed"
        assert body["progress"] == 100
        assert body["result"] == {"succeeded": 3, "failed": 0}

        stored = sorted(mock_supabase.rows("users"), key=lambda r: r["email"])
        assert [r["role"] for r in stored] == ["GUARDIAN", "STUDENT", "TEACHER"]

        # Completed sessions are closed
        assert client.get(f"{BASE}/sessions/{session_id}").status_code == 404

    def test_duplicate_email_counts_as_failed(self, client, session_id, mock_supabase):
        mock_supabase.set_table_data("users", [{
            "id": "existing",
            "name": "María García",
            "email": "maria.garcia@ejemplo.com",
            "role": "TEACHER",
            "status": "ACTIVE",
        }])
        text = build_csv(
            ["name", "email", "role"],
            [
                ["Juan Pérez", "juan.perez@ejemplo.com", "student"],
                ["María García", "maria.garcia@ejemplo.com", "teacher"],
                ["Ana López", "ana.lopez@ejemplo.com", "parent"],
            ],
        )
        _upload(client, session_id, text)
        client.post(f"{BASE}/sessions/{session_id}/preview")

        body = client.post(f"{BASE}/sessions/{session_id}/commit").json()

        assert body["result"] == {"succeeded": 2, "failed": 1}


class TestMappingStep:

    def test_manual_mapping_of_unrecognised_headers(self, client, session_id):
        text = build_csv(["Nombre", "Correo", "Tipo"], [["Ana", "ana@x.com", "teacher"]])
        body = _upload(client, session_id, text).json()
        assert body["mapping"] == []

        for column, field in [("Nombre", "name"), ("Correo", "email"), ("Tipo", "role")]:
            response = client.put(
                f"{BASE}/sessions/{session_id}/mapping",
                json={"csv_column": column, "field": field},
            )
            assert response.status_code == 200

        assert client.post(f"{BASE}/sessions/{session_id}/preview").status_code == 200

    def test_preview_blocked_by_missing_mapping(self, client, session_id):
        _upload(client, session_id, build_csv(["Full Email", "Role"], [["ana@x.com", "admin"]]))

        response = client.post(f"{BASE}/sessions/{session_id}/preview")

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "IMPORT_MAPPING_INVALID"
        assert error["details"]["errors"] == ['The field "Name" is required and must be mapped']

        snapshot = client.get(f"{BASE}/sessions/{session_id}").json()
        assert snapshot["state"] == "mapping"
        assert snapshot["mapping_errors"] == error["details"]["errors"]

    def test_preview_blocked_by_invalid_data(self, client, session_id):
        text = build_csv(
            ["name", "email", "role"],
            [["Ana", "ana@x.com", "teacher"], ["Juan", "not-an-email", "student"]],
        )
        _upload(client, session_id, text)

        response = client.post(f"{BASE}/sessions/{session_id}/preview")

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "IMPORT_DATA_INVALID"
        assert error["details"]["errors"] == ['Row 3: invalid email "not-an-email"']

    def test_unknown_column(self, client, session_id, sample_csv):
        _upload(client, session_id, sample_csv)

        response = client.put(
            f"{BASE}/sessions/{session_id}/mapping",
            json={"csv_column": "Apellido", "field": "name"},
        )

        assert response.status_code == 422

    def test_back_to_upload(self, client, session_id, sample_csv):
        _upload(client, session_id, sample_csv)

        body = client.post(f"{BASE}/sessions/{session_id}/back").json()

        assert body["state"] == "upload"
        assert body["headers"] == []


class TestErrors:

    def test_upload_empty_file(self, client, session_id):
        response = _upload(client, session_id, "\n\n")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "CSV_EMPTY"
        assert client.get(f"{BASE}/sessions/{session_id}").json()["state"] == "upload"

    def test_upload_wrong_extension(self, client, session_id):
        response = _upload(client, session_id, "name\nAna", filename="usuarios.xlsx")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "CSV_UNSUPPORTED_FILE_TYPE"

    def test_commit_before_preview(self, client, session_id, sample_csv):
        _upload(client, session_id, sample_csv)

        response = client.post(f"{BASE}/sessions/{session_id}/commit")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_IMPORT_TRANSITION"

    def test_commit_with_store_unavailable(self, client, session_id, sample_csv, mock_supabase):
        """The batch fails as a whole; the session is back in preview with the message."""
        _upload(client, session_id, sample_csv)
        client.post(f"{BASE}/sessions/{session_id}/preview")

        with patch(
            "routes.user_import.get_user_service",
            side_effect=DatabaseError("connect", "store unreachable")
        ):
            response = client.post(f"{BASE}/sessions/{session_id}/commit")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "IMPORT_COMMIT_FAILED"
        body = client.get(f"{BASE}/sessions/{session_id}").json()
        assert body["state"] == "preview"
        assert "store unreachable" in body["last_error"]
        assert "commit_requested" in body["actions"]
        assert mock_supabase.rows("users") == []

    def test_upload_error_is_shown_on_the_session(self, client, session_id):
        _upload(client, session_id, "\n\n")

        body = client.get(f"{BASE}/sessions/{session_id}").json()

        assert body["last_error"] == "The CSV file is empty"

    def test_unknown_session(self, client):
        response = client.get(f"{BASE}/sessions/does-not-exist")

        assert response.status_code == 404


class TestCancel:

    def test_cancel_in_preview(self, client, session_id, sample_csv):
        _upload(client, session_id, sample_csv)
        client.post(f"{BASE}/sessions/{session_id}/preview")

        body = client.post(f"{BASE}/sessions/{session_id}/cancel").json()

        assert body["state"] == "cancelled"
        assert client.get(f"{BASE}/sessions/{session_id}").status_code == 404


class TestTemplate:

    def test_download_template(self, client):
        response = client.get(f"{BASE}/template")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "plantilla_usuarios.csv" in response.headers["content-disposition"]
        assert response.text.startswith("name,email,role,phone,isActive,grade\n")


class TestRootEndpoints:

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["database"]["users_count"] == 0

    def test_root(self, client):
        body = client.get("/").json()

        assert body["endpoints"]["user_import"] == BASE
