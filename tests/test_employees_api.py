from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from employee_service.api.employees import get_employee_service
from employee_service.services.employee_service import EmployeeService


def _create(client: TestClient, name: str, email: str, age) -> dict:
    response = client.post(
        "/employees",
        json={"employee_name": name, "employee_email": email, "employee_age": age},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "employee-service"}


def test_create_returns_envelope(client: TestClient) -> None:
    response = client.post(
        "/employees",
        json={"employee_name": "Ann", "employee_email": "ann@x.com", "employee_age": "30"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Employee created successfully"
    assert "error" not in body
    data = body["data"]
    assert data["name"] == "Ann"
    assert data["email"] == "ann@x.com"
    assert data["age"] == 30
    assert data["created_at"] == data["updated_at"]
    assert data["updated_at"].endswith("+00:00")


def test_create_with_invalid_age_is_bad_request(client: TestClient) -> None:
    response = client.post(
        "/employees",
        json={"employee_name": "Ann", "employee_email": "ann@x.com", "employee_age": "abc"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid employee age"}


def test_create_with_missing_field_is_bad_request(client: TestClient) -> None:
    response = client.post("/employees", json={"employee_name": "Ann"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "employee_email" in body["error"]


def test_create_duplicate_email_is_conflict(client: TestClient) -> None:
    _create(client, "Ann", "ann@x.com", 30)

    response = client.post(
        "/employees",
        json={"employee_name": "Ann 2", "employee_email": "ann@x.com", "employee_age": 31},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "Employee with this email already exists"


def test_get_by_id(client: TestClient) -> None:
    created = _create(client, "Ann", "ann@x.com", 30)

    response = client.get(f"/employees/{created['id']}")
    assert response.status_code == 200
    assert response.json()["data"] == created

    assert client.get("/employees/not-a-uuid").status_code == 400
    missing = client.get("/employees/6f1c2b0e-3d4a-4f5b-9c8d-7e6f5a4b3c2d")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "Employee not found"}


def test_update_then_stale_update_scenario(client: TestClient) -> None:
    created = _create(client, "Ann", "ann@x.com", 30)
    original_version = created["updated_at"]

    first = client.put(
        f"/employees/{created['id']}",
        json={
            "employee_name": "Ann",
            "employee_email": "ann@x.com",
            "employee_age": 31,
            "updated_at": original_version,
        },
    )
    assert first.status_code == 200, first.text
    updated = first.json()["data"]
    assert updated["age"] == 31
    assert updated["created_at"] == created["created_at"]
    assert datetime.fromisoformat(updated["updated_at"]) > datetime.fromisoformat(original_version)

    second = client.put(
        f"/employees/{created['id']}",
        json={
            "employee_name": "Ann",
            "employee_email": "ann@x.com",
            "employee_age": 32,
            "updated_at": original_version,
        },
    )
    assert second.status_code == 409
    assert second.json()["error"] == "Data has changed, please reload and try again."


def test_update_accepts_version_in_other_timezone(client: TestClient) -> None:
    created = _create(client, "Ann", "ann@x.com", 30)
    version = datetime.fromisoformat(created["updated_at"])
    kst = version.astimezone(timezone(timedelta(hours=9))).isoformat()

    response = client.put(
        f"/employees/{created['id']}",
        json={
            "employee_name": "Ann Lee",
            "employee_email": "ann@x.com",
            "employee_age": 30,
            "updated_at": kst,
        },
    )

    assert response.status_code == 200, response.text
    assert response.json()["data"]["name"] == "Ann Lee"


def test_delete_then_delete_again(client: TestClient) -> None:
    created = _create(client, "Ann", "ann@x.com", 30)
    url = f"/employees/{created['id']}"

    stale = client.request("DELETE", url, json={"updated_at": "2000-01-01T00:00:00Z"})
    assert stale.status_code == 409

    response = client.request("DELETE", url, json={"updated_at": created["updated_at"]})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Employee deleted successfully"}

    again = client.request("DELETE", url, json={"updated_at": created["updated_at"]})
    assert again.status_code == 404
    assert client.get(url).status_code == 404


def test_list_filters_and_paginates(client: TestClient) -> None:
    _create(client, "Ann", "ann@x.com", 30)
    _create(client, "Anton", "anton@x.com", 35)
    _create(client, "Bob", "bob@x.com", 40)

    response = client.get("/employees", params={"name": "An", "page": 1, "page_size": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Successfully retrieved employee list"
    assert len(body["data"]) == 1
    assert body["pagination"] == {"page": 1, "page_size": 1, "total": 2, "total_pages": 2}


def test_list_sorting_accepts_repeated_and_comma_separated_params(client: TestClient) -> None:
    _create(client, "Ann", "ann@x.com", 30)
    _create(client, "Bob", "bob@x.com", 45)
    _create(client, "Carl", "carl@x.com", 25)

    repeated = client.get(
        "/employees",
        params=[("sort_by", "employee_age"), ("sort_by", "bogus_field"), ("order", "desc"), ("order", "asc")],
    )
    assert [e["age"] for e in repeated.json()["data"]] == [45, 30, 25]

    combined = client.get("/employees", params={"sort_by": "employee_name", "order": "desc"})
    assert [e["name"] for e in combined.json()["data"]] == ["Carl", "Bob", "Ann"]

    comma = client.get("/employees", params={"sort_by": "bogus,employee_age", "order": "asc,asc"})
    assert [e["age"] for e in comma.json()["data"]] == [25, 30, 45]


def test_list_bad_paging_values_fall_back_to_defaults(client: TestClient) -> None:
    _create(client, "Ann", "ann@x.com", 30)

    response = client.get("/employees", params={"page": "abc", "page_size": "zero"})
    assert response.json()["pagination"] == {"page": 1, "page_size": 10, "total": 1, "total_pages": 1}

    response = client.get("/employees", params={"page": "-3", "page_size": "1000"})
    assert response.json()["pagination"] == {"page": 1, "page_size": 50, "total": 1, "total_pages": 1}


def test_list_empty(client: TestClient) -> None:
    response = client.get("/employees")

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["pagination"]["total_pages"] == 0


def test_list_huge_page_returns_empty_page(client: TestClient) -> None:
    _create(client, "Ann", "ann@x.com", 30)

    response = client.get("/employees", params={"page": str(10**20), "page_size": "10"})

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["data"] == []
    assert body["pagination"]["total"] == 1
    assert (body["pagination"]["page"] - 1) * body["pagination"]["page_size"] <= 2**63 - 1


def test_create_rejects_boolean_and_float_age(client: TestClient) -> None:
    for age in (True, 30.0):
        response = client.post(
            "/employees",
            json={"employee_name": "Ann", "employee_email": "ann@x.com", "employee_age": age},
        )
        assert response.status_code == 400, age
        assert response.json()["success"] is False

    assert client.get("/employees").json()["pagination"]["total"] == 0


def test_out_of_range_version_is_bad_request(client: TestClient) -> None:
    created = _create(client, "Ann", "ann@x.com", 30)
    url = f"/employees/{created['id']}"
    version = "0001-01-01T00:00:00+01:00"

    deleted = client.request("DELETE", url, json={"updated_at": version})
    assert deleted.status_code == 400
    assert deleted.json() == {"success": False, "error": "Invalid updated_at timestamp"}

    updated = client.put(
        url,
        json={
            "employee_name": "Ann",
            "employee_email": "ann@x.com",
            "employee_age": 31,
            "updated_at": version,
        },
    )
    assert updated.status_code == 400
    assert client.get(url).json()["data"]["age"] == 30


def test_list_order_keeps_empty_positions(client: TestClient) -> None:
    _create(client, "Ann", "ann@x.com", 30)
    _create(client, "Bob", "bob@x.com", 45)
    _create(client, "Carl", "carl@x.com", 25)

    response = client.get("/employees", params={"sort_by": "bogus,employee_age", "order": ",desc"})

    assert [e["age"] for e in response.json()["data"]] == [45, 30, 25]


def test_database_error_returns_500_envelope(client: TestClient) -> None:
    class UnavailableRepository:
        async def find_many(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        count = find_many

    client.app.dependency_overrides[get_employee_service] = lambda: EmployeeService(UnavailableRepository())
    try:
        response = client.get("/employees")
    finally:
        client.app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal database error"}
