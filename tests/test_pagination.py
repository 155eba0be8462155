# tests/test_pagination.py

"""
Tests for list parameters and cached reference data endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import auth_headers
from core.cache import REFERENCE_DATA
from core.pagination import ListParams, parse_filters


@pytest.fixture
def locations(fake_db):
    fake_db.seed("locations", *[{"id": i, "name": f"Location {i:02d}"} for i in range(1, 26)])
    return fake_db


def test_list_params_offsets():
    params = ListParams(page=3, page_size=10)
    assert params.offset == 20
    assert params.range_end == 29


def test_parse_filters_ignores_bad_input():
    assert parse_filters(None) == {}
    assert parse_filters("{not json") == {}
    assert parse_filters("[1, 2]") == {}
    assert parse_filters('{"status": "available"}') == {"status": "available"}


def test_second_page(client: TestClient, locations):
    response = client.get(
        "/api/locations?page=2&pageSize=10&sortBy=id&sortOrder=asc",
        headers=auth_headers("client-1"),
    )

    assert response.status_code == 200
    body = response.json()
    assert [row["id"] for row in body["data"]] == list(range(11, 21))
    assert body["totalCount"] == 25
    assert body["page"] == 2
    assert body["pageSize"] == 10
    assert response.headers["Cache-Control"] == REFERENCE_DATA


def test_default_sort_is_descending(client: TestClient, locations):
    response = client.get("/api/locations?sortBy=id", headers=auth_headers("client-1"))
    assert response.json()["data"][0]["id"] == 25


def test_page_size_is_capped(client: TestClient, locations):
    response = client.get("/api/locations?pageSize=500", headers=auth_headers("client-1"))
    assert response.json()["pageSize"] == 100
    assert len(response.json()["data"]) == 25


def test_unknown_sort_column_falls_back(client: TestClient, locations):
    response = client.get("/api/locations?sortBy=password", headers=auth_headers("client-1"))
    assert response.status_code == 200


def test_invalid_filters_are_ignored(client: TestClient, fake_db):
    fake_db.seed(
        "company_cars",
        {"id": 70, "company_id": 7, "license_plate": "SEV-070", "status": "available"},
        {"id": 71, "company_id": 7, "license_plate": "SEV-071", "status": "maintenance"},
    )
    headers = auth_headers("owner-7")

    response = client.get("/api/company-cars?filters={oops", headers=headers)
    assert response.json()["totalCount"] == 2

    response = client.get('/api/company-cars?filters={"status":"maintenance"}', headers=headers)
    assert [car["id"] for car in response.json()["data"]] == [71]


def test_reference_list_is_cached_until_write(client: TestClient, locations):
    admin = auth_headers("admin-1")

    assert client.get("/api/locations", headers=admin).json()["totalCount"] == 25

    # A row written behind the API's back is not visible until the cache drops
    locations.seed("locations", {"id": 26, "name": "Location 26"})
    assert client.get("/api/locations", headers=admin).json()["totalCount"] == 25

    response = client.post("/api/locations", json={"name": "Harbour"}, headers=admin)
    assert response.status_code == 201
    assert client.get("/api/locations", headers=admin).json()["totalCount"] == 27


def test_location_name_must_be_latin(client: TestClient, locations):
    response = client.post("/api/locations", json={"name": "Київ"}, headers=auth_headers("admin-1"))
    assert response.status_code == 422


def test_only_admin_creates_locations(client: TestClient, locations):
    response = client.post("/api/locations", json={"name": "Harbour"}, headers=auth_headers("owner-7"))
    assert response.status_code == 403


def test_hotels_filter_by_location(client: TestClient, fake_db):
    fake_db.seed(
        "hotels",
        {"id": 1, "name": "Alpha", "location_id": 1},
        {"id": 2, "name": "Beta", "location_id": 2},
    )
    response = client.get("/api/hotels?location_id=2", headers=auth_headers("client-1"))
    assert [h["id"] for h in response.json()["data"]] == [2]


def test_brands_and_currencies(client: TestClient, fake_db):
    fake_db.seed("car_brands", {"id": 1, "name": "Toyota"})
    fake_db.seed("currencies", {"id": 1, "code": "EUR", "name": "Euro"})

    assert client.get("/api/brands", headers=auth_headers("owner-7")).json()["data"][0]["name"] == "Toyota"
    assert client.get("/api/currencies", headers=auth_headers("owner-7")).json()["data"][0]["code"] == "EUR"
