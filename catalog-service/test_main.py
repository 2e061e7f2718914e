"""
Unit tests for the Catalog Service HTTP layer.
Tests routing, status codes and error mapping against the in-memory storage.
"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from main import app, get_storage
from errors import StorageError
from memory_storage import MemoryProductStorage


@pytest.fixture
def storage():
    """Fresh seeded in-memory catalog for each test."""
    storage = MemoryProductStorage()
    storage.initialize()
    return storage


@pytest.fixture
def client(storage):
    """Create a test client wired to the test storage."""
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoint:

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "catalog-service"


class TestMetricsEndpoint:

    def test_metrics_endpoint(self, client):
        """Test that metrics endpoint returns Prometheus format."""
        client.get("/")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert b"http_requests_total" in response.content


class TestListProducts:
    """Tests for GET / endpoint."""

    def test_list_sorted_by_price_descending(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 4
        assert [p["name"] for p in data[:2]] == ["Frozen Pizza", "Bananas"]
        assert {p["name"] for p in data[2:]} == {"Apple", "Orange"}

    def test_list_fields(self, client):
        data = client.get("/").json()
        for product in data:
            assert set(product) == {"id", "name", "price"}

    def test_list_storage_error_returns_500(self, client):
        broken = MagicMock()
        broken.list_products.side_effect = StorageError("Scan of all products failed", RuntimeError("down"))
        app.dependency_overrides[get_storage] = lambda: broken
        response = client.get("/")
        assert response.status_code == 500
        assert "Scan of all products failed" in response.json()["detail"]


class TestCreateProduct:
    """Tests for POST /product endpoint."""

    def test_create_with_id(self, client, storage):
        response = client.post("/product", json={"id": 10, "name": "Milk", "price": 1.49})
        assert response.status_code == 201
        assert response.json() == {"id": 10, "name": "Milk", "price": 1.49}
        assert storage.get_product(10).name == "Milk"

    def test_create_without_id_takes_next_id(self, client):
        response = client.post("/product", json={"name": "Bread", "price": 2.0})
        assert response.status_code == 201
        assert response.json()["id"] == 5

    def test_create_on_empty_catalog_starts_at_one(self, client, storage):
        for product in storage.list_products():
            storage.delete_product(product)
        response = client.post("/product", json={"name": "Bread", "price": 2.0})
        assert response.json()["id"] == 1

    def test_create_empty_name_is_bad_request(self, client):
        response = client.post("/product", json={"name": "", "price": 1.0})
        assert response.status_code == 400

    def test_create_negative_price_is_bad_request(self, client):
        response = client.post("/product", json={"name": "Debt", "price": -1})
        assert response.status_code == 400

    def test_create_infinite_price_is_bad_request(self, client):
        response = client.post(
            "/product",
            content='{"id": 9, "name": "X", "price": 1e999}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert client.get("/product/9").status_code == 404

    def test_create_malformed_json_is_bad_request(self, client):
        response = client.post(
            "/product", content="{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400


class TestGetProduct:
    """Tests for GET /product/{id} endpoint."""

    def test_get_existing(self, client):
        response = client.get("/product/3")
        assert response.status_code == 200
        assert response.json() == {"id": 3, "name": "Bananas", "price": 2.25}

    def test_get_missing_returns_404(self, client):
        response = client.get("/product/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Product <999> does not exist"

    def test_get_non_numeric_id_is_bad_request(self, client):
        response = client.get("/product/abc")
        assert response.status_code == 400


class TestUpdateProduct:
    """Tests for PUT /product/{id} endpoint."""

    def test_update_existing(self, client, storage):
        response = client.put("/product/3", json={"name": "Bananas!", "price": 2.5})
        assert response.status_code == 200
        assert response.json() == {"id": 3, "name": "Bananas!", "price": 2.5}
        assert storage.get_product(3).name == "Bananas!"

    def test_path_id_overrides_body_id(self, client, storage):
        response = client.put("/product/2", json={"id": 4, "name": "Blood Orange", "price": 1.2})
        assert response.json()["id"] == 2
        assert storage.get_product(2).name == "Blood Orange"
        assert storage.get_product(4).name == "Frozen Pizza"

    def test_update_missing_returns_404_in_memory(self, client, storage):
        response = client.put("/product/42", json={"name": "Ghost", "price": 1})
        assert response.status_code == 404
        assert len(storage) == 4


class TestDeleteProduct:
    """Tests for DELETE /product/{id} endpoint."""

    def test_delete_existing(self, client, storage):
        response = client.delete("/product/1")
        assert response.status_code == 200
        assert response.json() == {"result": "success"}
        assert len(storage) == 3

    def test_delete_twice_returns_404(self, client):
        client.delete("/product/1")
        response = client.delete("/product/1")
        assert response.status_code == 404


class TestCorrelationId:
    """Tests for correlation ID (trace-id) propagation."""

    def test_trace_id_propagation(self, client):
        trace_id = "test-trace-id-67890"
        response = client.get("/", headers={"X-Trace-ID": trace_id})
        assert response.headers.get("X-Trace-ID") == trace_id

    def test_trace_id_generated_when_not_provided(self, client):
        response = client.get("/")
        assert len(response.headers.get("X-Trace-ID")) == 36  # UUID format


class TestLifespan:

    def test_startup_builds_configured_storage(self, monkeypatch):
        from config import get_settings

        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        get_settings.cache_clear()
        try:
            with TestClient(app) as client:
                assert isinstance(app.state.storage, MemoryProductStorage)
                assert len(client.get("/").json()) == 4
        finally:
            get_settings.cache_clear()
