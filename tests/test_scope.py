# tests/test_scope.py

"""
Tests for company scoping and admin-mode.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSupabase, auth_headers
from core.errors import MissingCompanyScope
from core.scope import resolve_scope, resolve_target_company_id, ensure_company_access
from models.auth import AuthContext, CurrentUser, Scope
from models.enums import Role


@pytest.fixture
def cars(fake_db):
    fake_db.seed(
        "company_cars",
        {"id": 70, "company_id": 7, "license_plate": "SEV-070", "status": "available", "price_per_day": 40},
        {"id": 80, "company_id": 8, "license_plate": "EIG-080", "status": "available", "price_per_day": 50},
    )
    return fake_db


def make_ctx(role: Role, company_id=None, admin_company_id=None) -> AuthContext:
    return AuthContext(
        user=CurrentUser(id=f"{role}-x", email="x@example.com", role=role),
        scope=Scope(role=role, company_id=company_id),
        admin_company_id=admin_company_id,
    )


# ============================================================
# Scope model + resolver
# ============================================================
def test_client_scope_cannot_carry_company():
    with pytest.raises(ValueError):
        Scope(role=Role.client, company_id=3)


def test_resolve_scope_per_role(fake_db: FakeSupabase):
    assert resolve_scope(fake_db, "owner-7", Role.owner).company_id == 7
    assert resolve_scope(fake_db, "manager-7", Role.manager).company_id == 7
    assert resolve_scope(fake_db, "admin-1", Role.admin).company_id is None
    assert resolve_scope(fake_db, "owner-none", Role.owner).company_id is None


def test_target_company_order():
    admin_mode = make_ctx(Role.admin, admin_company_id=5)
    assert resolve_target_company_id(admin_mode, body_company_id=9) == 5

    owner = make_ctx(Role.owner, company_id=7)
    assert resolve_target_company_id(owner, body_company_id=8) == 7

    admin = make_ctx(Role.admin)
    assert resolve_target_company_id(admin, body_company_id="9") == 9
    assert resolve_target_company_id(admin) is None


def test_unbound_owner_raises_missing_scope():
    with pytest.raises(MissingCompanyScope):
        ensure_company_access(make_ctx(Role.owner), 7)


def test_admin_in_system_scope_may_act_anywhere():
    ensure_company_access(make_ctx(Role.admin), 8)


# ============================================================
# Cross-company mutation
# ============================================================
def test_owner_cannot_update_other_company_car(client: TestClient, cars):
    response = client.put(
        "/api/company-cars/80",
        json={"mileage": 1, "company_id": 8},
        headers=auth_headers("owner-7"),
    )
    assert response.status_code == 403
    car = next(c for c in cars.rows("company_cars") if c["id"] == 80)
    assert "mileage" not in car
    assert cars.rows("audit_logs") == []


def test_owner_updates_own_car(client: TestClient, cars):
    response = client.put(
        "/api/company-cars/70",
        json={"mileage": 1200},
        headers=auth_headers("owner-7"),
    )
    assert response.status_code == 200
    assert response.json()["mileage"] == 1200

    audit = cars.rows("audit_logs")[0]
    assert audit["action"] == "update"
    assert audit["entity_type"] == "company_car"
    assert audit["company_id"] == 7
    assert audit["before_state"]["id"] == 70


def test_owner_body_company_is_ignored_on_create(client: TestClient, cars):
    response = client.post(
        "/api/company-cars",
        json={"license_plate": "NEW-001", "price_per_day": 30, "company_id": 8},
        headers=auth_headers("owner-7"),
    )
    assert response.status_code == 201
    assert response.json()["company_id"] == 7


def test_manager_cannot_delete_car(client: TestClient, cars):
    response = client.delete("/api/company-cars/70", headers=auth_headers("manager-7"))
    assert response.status_code == 403


def test_duplicate_license_plate_is_409(client: TestClient, cars):
    response = client.post(
        "/api/company-cars",
        json={"license_plate": "SEV-070", "price_per_day": 30},
        headers=auth_headers("owner-7"),
    )
    assert response.status_code == 409
    assert "license plate" in response.json()["detail"]


# ============================================================
# Admin-mode
# ============================================================
def test_non_admin_admin_mode_is_ignored(client: TestClient, cars):
    response = client.get(
        "/api/company-cars?admin_mode=true&company_id=8",
        headers=auth_headers("owner-7"),
    )
    assert response.status_code == 200
    assert {car["company_id"] for car in response.json()["data"]} == {7}


@pytest.mark.parametrize("path", [
    "/api/company-cars",
    "/api/companies",
    "/api/bookings",
    "/api/contracts",
    "/api/payments",
    "/api/managers",
])
def test_non_admin_malformed_admin_mode_is_ignored(client: TestClient, cars, path):
    response = client.get(f"{path}?admin_mode=true&company_id=abc", headers=auth_headers("owner-7"))
    assert response.status_code == 200


def test_admin_list_filter_must_be_integer(client: TestClient, cars):
    response = client.get("/api/company-cars?company_id=abc", headers=auth_headers("admin-1"))
    assert response.status_code == 400

    response = client.get("/api/company-cars?company_id=8", headers=auth_headers("admin-1"))
    assert [car["id"] for car in response.json()["data"]] == [80]


def test_admin_mode_narrows_to_company(client: TestClient, cars):
    response = client.get(
        "/api/company-cars?admin_mode=true&company_id=8",
        headers=auth_headers("admin-1"),
    )
    assert response.status_code == 200
    assert [car["id"] for car in response.json()["data"]] == [80]


def test_admin_mode_blocks_other_company(client: TestClient, cars):
    response = client.put(
        "/api/company-cars/70?admin_mode=true&company_id=8",
        json={"mileage": 5},
        headers=auth_headers("admin-1"),
    )
    assert response.status_code == 403


def test_admin_mode_requires_integer_company(client: TestClient, cars):
    response = client.get(
        "/api/auth/me?admin_mode=true&company_id=abc",
        headers=auth_headers("admin-1"),
    )
    assert response.status_code == 400


def test_admin_sees_whole_fleet(client: TestClient, cars):
    response = client.get("/api/company-cars", headers=auth_headers("admin-1"))
    assert response.json()["totalCount"] == 2


def test_admin_create_needs_company(client: TestClient, cars):
    payload = {"license_plate": "ADM-001", "price_per_day": 30}
    response = client.post("/api/company-cars", json=payload, headers=auth_headers("admin-1"))
    assert response.status_code == 400

    payload["company_id"] = 8
    response = client.post("/api/company-cars", json=payload, headers=auth_headers("admin-1"))
    assert response.status_code == 201
    assert response.json()["company_id"] == 8


# ============================================================
# Missing company scope
# ============================================================
def test_unbound_owner_gets_redirect_hint(client: TestClient, cars):
    response = client.get("/api/company-cars", headers=auth_headers("owner-none"))
    assert response.status_code == 403
    assert response.json()["redirectUrl"] == "/dashboard"


def test_unbound_owner_browser_is_redirected(client: TestClient, cars):
    headers = {**auth_headers("owner-none"), "Accept": "text/html"}
    response = client.get("/api/company-cars", headers=headers, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


# ============================================================
# Search
# ============================================================
@pytest.mark.parametrize("q", ["SEV,070", "(SEV)", 'SEV"', "a:b"])
def test_search_with_filter_syntax_is_not_an_error(client: TestClient, cars, q):
    response = client.get("/api/company-cars", params={"q": q}, headers=auth_headers("admin-1"))
    assert response.status_code == 200


def test_search_matches_plate(client: TestClient, cars):
    response = client.get("/api/company-cars", params={"q": "sev-0"}, headers=auth_headers("admin-1"))
    assert [car["id"] for car in response.json()["data"]] == [70]
