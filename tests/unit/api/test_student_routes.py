"""Unit tests for student routes."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from student_records.api.app import register_exception_handlers
from student_records.api.dependencies import get_database
from student_records.api.routes import students
from student_records.store.database import Database


@pytest.fixture
def app(database: Database):
    """Create a test FastAPI app over the in-memory database."""
    app = FastAPI()

    # Override database dependency
    def override_get_database():
        return database

    app.dependency_overrides[get_database] = override_get_database
    register_exception_handlers(app)
    app.include_router(students.router, prefix="/api/v1")
    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


def new_student(n: int, **overrides):
    data = {
        "studentCode": f"S{n}",
        "firstName": f"First{n}",
        "lastName": f"Last{n}",
        "email": f"student{n}@example.com",
    }
    data.update(overrides)
    return data


@pytest.fixture
def seeded(client: TestClient):
    """Three students created through the API."""
    response = client.post(
        "/api/v1/student/bulk",
        json=[
            new_student(1, firstName="Alice", lastName="Smith"),
            new_student(2, firstName="Bob", lastName="Jones"),
            new_student(3, firstName="Carla", lastName="Smithers"),
        ],
    )
    assert response.status_code == 201
    return client


@pytest.mark.unit
class TestCreateStudent:
    """Tests for POST /student/create."""

    def test_create(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/student/create",
            json=new_student(1, email="J@X.com", firstName="  Jane "),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Student created successfully"
        student = data["data"]
        assert student["email"] == "j@x.com"
        assert student["firstName"] == "Jane"
        assert student["phone"] is None
        assert {"id", "createdAt", "updatedAt"} <= set(student)

    def test_missing_field(self, client: TestClient) -> None:
        payload = new_student(1)
        del payload["email"]
        response = client.post("/api/v1/student/create", json=payload)
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Validation failed"
        assert data["errors"][0]["field"] == "email"

    def test_invalid_email(self, client: TestClient) -> None:
        response = client.post("/api/v1/student/create", json=new_student(1, email="nope"))
        assert response.status_code == 400
        error = response.json()["errors"][0]
        assert error["field"] == "email"
        assert error["value"] == "nope"

    def test_blank_after_trim(self, client: TestClient) -> None:
        response = client.post("/api/v1/student/create", json=new_student(1, lastName="   "))
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "lastName is required"

    def test_duplicate_code(self, client: TestClient) -> None:
        client.post("/api/v1/student/create", json=new_student(1))
        response = client.post(
            "/api/v1/student/create", json=new_student(2, studentCode="S1")
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Student code already exists"

    def test_duplicate_email_case_insensitive(self, client: TestClient) -> None:
        client.post("/api/v1/student/create", json=new_student(1))
        response = client.post(
            "/api/v1/student/create", json=new_student(2, email="STUDENT1@example.com")
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Email already exists"


@pytest.mark.unit
class TestReadStudents:
    """Tests for the read endpoints."""

    def test_list(self, seeded: TestClient) -> None:
        data = seeded.get("/api/v1/student/list").json()
        assert data["message"] == "Students retrieved successfully"
        assert len(data["data"]) == 3

    def test_list_filter_and_search(self, seeded: TestClient) -> None:
        data = seeded.get("/api/v1/student/list", params={"search": "smith"}).json()
        assert sorted(s["firstName"] for s in data["data"]) == ["Alice", "Carla"]
        data = seeded.get("/api/v1/student/list", params={"lastName": "Jones"}).json()
        assert [s["firstName"] for s in data["data"]] == ["Bob"]

    def test_list_paged(self, seeded: TestClient) -> None:
        data = seeded.get("/api/v1/student/list", params={"page": 2, "limit": 2}).json()
        assert len(data["data"]) == 1

    def test_list_bad_paging(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/list", params={"page": "x", "limit": 2})
        assert response.status_code == 400

    def test_get_by_id(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/2")
        assert response.status_code == 200
        assert response.json()["data"]["firstName"] == "Bob"

    def test_get_missing(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/99")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "data": None,
            "message": "Student not found",
            "timestamp": response.json()["timestamp"],
        }

    def test_get_non_numeric_id(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/abc")
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "id"

    @pytest.mark.parametrize("student_id", [0, -1])
    def test_get_non_positive_id_not_found(self, seeded: TestClient, student_id: int) -> None:
        response = seeded.get(f"/api/v1/student/{student_id}")
        assert response.status_code == 404
        assert response.json()["message"] == "Student not found"
        assert response.json()["data"] is None

    def test_get_by_code(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/code/S3")
        assert response.json()["data"]["firstName"] == "Carla"
        assert seeded.get("/api/v1/student/code/S404").status_code == 404

    def test_count(self, seeded: TestClient) -> None:
        assert seeded.get("/api/v1/student/count").json()["data"] == {"count": 3}
        filtered = seeded.get("/api/v1/student/count", params={"search": "smith"})
        assert filtered.json()["data"] == {"count": 2}

    def test_search(self, seeded: TestClient) -> None:
        data = seeded.get("/api/v1/student/search", params={"q": "SMITH"}).json()
        assert [s["firstName"] for s in data["data"]] == ["Alice", "Carla"]

    def test_search_requires_term(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/search")
        assert response.status_code == 400
        assert response.json()["message"] == "Search term is required"


@pytest.mark.unit
class TestPaginated:
    """Tests for GET /student/paginated."""

    def test_defaults(self, seeded: TestClient) -> None:
        data = seeded.get("/api/v1/student/paginated").json()
        assert data["message"] == "Paginated students retrieved successfully"
        assert [s["firstName"] for s in data["data"]["data"]] == ["Alice", "Bob", "Carla"]
        assert data["data"]["pagination"] == {
            "page": 1,
            "limit": 10,
            "total": 3,
            "totalPages": 1,
            "hasNext": False,
            "hasPrev": False,
        }

    def test_sort_and_page(self, seeded: TestClient) -> None:
        data = seeded.get(
            "/api/v1/student/paginated",
            params={"page": 2, "limit": 1, "sortBy": "lastName", "sortOrder": "desc"},
        ).json()
        assert [s["lastName"] for s in data["data"]["data"]] == ["Smith"]
        pagination = data["data"]["pagination"]
        assert pagination["hasNext"] is True
        assert pagination["hasPrev"] is True

    def test_unknown_sort_field(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/paginated", params={"sortBy": "secret"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "sortBy"

    def test_bad_sort_order(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/paginated", params={"sortOrder": "sideways"})
        assert response.status_code == 400

    def test_page_zero(self, seeded: TestClient) -> None:
        response = seeded.get("/api/v1/student/paginated", params={"page": 0})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "page"


@pytest.mark.unit
class TestUpdateStudent:
    """Tests for PUT /student/{id}."""

    def test_partial_update(self, seeded: TestClient) -> None:
        response = seeded.put("/api/v1/student/1", json={"phone": "555-0100"})
        assert response.status_code == 200
        student = response.json()["data"]
        assert student["phone"] == "555-0100"
        assert student["firstName"] == "Alice"

    def test_update_own_values_allowed(self, seeded: TestClient) -> None:
        response = seeded.put(
            "/api/v1/student/1", json={"studentCode": "S1", "email": "student1@example.com"}
        )
        assert response.status_code == 200

    def test_update_to_taken_email(self, seeded: TestClient) -> None:
        response = seeded.put("/api/v1/student/1", json={"email": "student2@example.com"})
        assert response.status_code == 400
        assert response.json()["message"] == "Email already exists"

    def test_update_missing(self, seeded: TestClient) -> None:
        response = seeded.put("/api/v1/student/42", json={"firstName": "X"})
        assert response.status_code == 404

    @pytest.mark.parametrize("student_id", [0, -1])
    def test_update_non_positive_id_not_found(self, seeded: TestClient, student_id: int) -> None:
        response = seeded.put(f"/api/v1/student/{student_id}", json={"firstName": "X"})
        assert response.status_code == 404
        assert response.json()["message"] == "Student not found"

    def test_update_blank_required(self, seeded: TestClient) -> None:
        response = seeded.put("/api/v1/student/1", json={"firstName": " "})
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "firstName cannot be empty"


@pytest.mark.unit
class TestDeleteStudent:
    """Tests for DELETE /student/{id}."""

    def test_delete(self, seeded: TestClient) -> None:
        response = seeded.delete("/api/v1/student/3")
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Student deleted successfully"
        assert data["data"]["studentCode"] == "S3"
        assert seeded.get("/api/v1/student/3").status_code == 404

    def test_delete_missing(self, seeded: TestClient) -> None:
        assert seeded.delete("/api/v1/student/77").status_code == 404

    @pytest.mark.parametrize("student_id", [0, -1])
    def test_delete_non_positive_id_not_found(self, seeded: TestClient, student_id: int) -> None:
        response = seeded.delete(f"/api/v1/student/{student_id}")
        assert response.status_code == 404
        assert response.json()["message"] == "Student not found"
        assert seeded.get("/api/v1/student/count").json()["data"] == {"count": 3}


@pytest.mark.unit
class TestBulkCreate:
    """Tests for POST /student/bulk."""

    def test_wrapped(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/student/bulk", json={"data": [new_student(1), new_student(2)]}
        )
        assert response.status_code == 201
        assert response.json()["data"] == {"count": 2}

    def test_not_array(self, client: TestClient) -> None:
        response = client.post("/api/v1/student/bulk", json={"data": {"a": 1}})
        assert response.status_code == 400
        assert response.json()["message"] == "Data must be an array"

    def test_invalid_row(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/student/bulk", json=[new_student(1), new_student(2, email="")]
        )
        assert response.status_code == 400
        assert client.get("/api/v1/student/count").json()["data"] == {"count": 0}

    def test_invalid_email_names_row(self, client: TestClient) -> None:
        response = client.post("/api/v1/student/bulk", json=[new_student(1, email="not-an-email")])
        assert response.status_code == 400
        [error] = response.json()["errors"]
        assert error["field"] == "data[0].email"
        assert error["value"] == "not-an-email"
        assert client.get("/api/v1/student/count").json()["data"] == {"count": 0}

    def test_long_code_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/student/bulk", json=[new_student(1, studentCode="S" * 500)])
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "data[0].studentCode"
        assert client.get("/api/v1/student/count").json()["data"] == {"count": 0}

    def test_missing_field_names_row(self, client: TestClient) -> None:
        row = new_student(2)
        del row["email"]
        response = client.post("/api/v1/student/bulk", json=[new_student(1), row])
        assert response.status_code == 400
        [error] = response.json()["errors"]
        assert error["field"] == "data[1].email"
        assert error["value"] is None

    def test_errors_from_every_row(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/student/bulk",
            json=[new_student(1, email="bad"), new_student(2), new_student(3, lastName="  ")],
        )
        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["errors"]]
        assert fields == ["data[0].email", "data[2].lastName"]

    def test_same_rules_as_create(self, client: TestClient) -> None:
        """A row /create rejects is rejected by /bulk with the same message."""
        row = new_student(1, email="nope")
        single = client.post("/api/v1/student/create", json=row).json()["errors"][0]
        bulk = client.post("/api/v1/student/bulk", json=[row]).json()["errors"][0]
        assert bulk["field"] == f"data[0].{single['field']}"
        assert bulk["message"] == single["message"]
        assert bulk["value"] == single["value"]
