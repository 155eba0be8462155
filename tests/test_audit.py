# tests/test_audit.py

"""
Tests for the audit logger.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from conftest import auth_headers
from core.audit import log_audit_action, write_audit_entry
from models.audit_log import AuditLogEntry
from models.auth import AuthContext, CurrentUser, Scope
from models.enums import AuditAction, Role


def owner_ctx(admin_company_id=None) -> AuthContext:
    return AuthContext(
        user=CurrentUser(id="owner-7", email="o@example.com", role=Role.owner),
        scope=Scope(role=Role.owner, company_id=7),
        admin_company_id=admin_company_id,
        ip="10.1.1.1",
        user_agent="pytest",
    )


def test_hotel_create_survives_audit_failure(client: TestClient, fake_db):
    fake_db.fail("audit_logs")

    response = client.post(
        "/api/hotels",
        json={"name": "Sea View", "location_id": 1},
        headers=auth_headers("manager-7"),
    )

    assert response.status_code == 201
    assert response.json()["name"] == "Sea View"
    assert len(fake_db.rows("hotels")) == 1
    assert ("audit_logs", "insert") in fake_db.calls
    assert fake_db.rows("audit_logs") == []


def test_audit_row_carries_request_context(fake_db):
    assert log_audit_action(owner_ctx(), "company_car", 70, AuditAction.update, {"a": 1}, {"a": 2})

    row = fake_db.rows("audit_logs")[0]
    assert row["user_id"] == "owner-7"
    assert row["role"] == "owner"
    assert row["company_id"] == 7
    assert row["entity_id"] == "70"
    assert row["ip"] == "10.1.1.1"
    assert row["user_agent"] == "pytest"
    assert row["before_state"] == {"a": 1}


def test_audit_company_defaults_to_admin_mode():
    ctx = AuthContext(
        user=CurrentUser(id="admin-1", email="a@example.com", role=Role.admin),
        scope=Scope(role=Role.admin),
        admin_company_id=42,
    )
    with patch("core.audit.write_audit_entry", return_value=True) as write:
        log_audit_action(ctx, "company_car", 1, AuditAction.delete)

    assert write.call_args[0][0].company_id == 42


def test_write_without_database_returns_false():
    entry = AuditLogEntry(entity_type="user", entity_id="x", action=AuditAction.view)
    with patch("core.audit.get_supabase_client", return_value=None):
        assert write_audit_entry(entry) is False


def test_failed_login_is_recorded(client: TestClient, fake_db):
    response = client.post(
        "/api/auth/login-failed",
        json={"email": " Owner-7@Example.com ", "error": "Invalid login credentials"},
        headers={"User-Agent": "browser/1.0", "X-Real-IP": "192.0.2.4"},
    )
    assert response.status_code == 200

    row = fake_db.rows("audit_logs")[0]
    assert row["action"] == "login_failed"
    assert row["user_id"] == "owner-7"
    assert row["ip"] == "192.0.2.4"
    assert row["user_agent"] == "browser/1.0"
    assert row["after_state"]["error"] == "Invalid login credentials"


def test_failed_login_for_unknown_email(client: TestClient, fake_db):
    client.post("/api/auth/login-failed", json={"email": "ghost@example.com"})

    row = fake_db.rows("audit_logs")[0]
    assert row["user_id"] is None
    assert row["entity_id"] == "ghost@example.com"


def test_successful_login_is_recorded(client: TestClient, fake_db):
    client.post("/api/auth/login", headers=auth_headers("owner-7"))

    row = fake_db.rows("audit_logs")[0]
    assert row["action"] == "login"
    assert row["entity_type"] == "user"
    assert row["company_id"] == 7
