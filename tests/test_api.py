"""HTTP tests for the FastAPI routes with the unit of work bound to the test database."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from order_api.api.main import app
from order_api.core.deps import get_unit_of_work
from order_api.services.unit_of_work import UnitOfWork


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client whose requests use the per-test database."""

    async def _unit_of_work():
        unit = UnitOfWork(session_factory())
        try:
            yield unit
        finally:
            await unit.close()

    app.dependency_overrides[get_unit_of_work] = _unit_of_work
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


class TestSystem:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/v1/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.status_code == 200
        assert response.json()["message"] == "Healthy"
        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestCustomers:
    @pytest.mark.asyncio
    async def test_create(self, client):
        response = await client.post(
            "/api/v1/customers", json={"customer_nr": "1111111111", "first_name": "Anna", "last_name": "Huber"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["id"] > 0
        assert body["last_name"] == "Huber"

    @pytest.mark.asyncio
    async def test_create_invalid_number(self, client):
        response = await client.post(
            "/api/v1/customers", json={"customer_nr": "1234567890", "first_name": "Anna", "last_name": "Huber"}
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "entity_validation_error"
        assert error["message"] == "CustomerNr checksum does not match"
        assert error["details"]["member_names"] == ["customer_nr"]

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self, client, sample_data):
        response = await client.post(
            "/api/v1/customers", json={"customer_nr": "1111111111", "first_name": "Anna", "last_name": "Huber"}
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["member_names"] == ["first_name", "last_name"]

    @pytest.mark.asyncio
    async def test_list_and_unique_check(self, client, sample_data):
        response = await client.get("/api/v1/customers")
        assert [c["last_name"] for c in response.json()] == ["Huber", "Maier"]

        response = await client.get(
            "/api/v1/customers/is-full-name-unique", params={"first_name": "Anna", "last_name": "Huber"}
        )
        assert response.json() is False

    @pytest.mark.asyncio
    async def test_paged_is_one_based(self, client, sample_data):
        response = await client.get("/api/v1/customers/paged", params={"page": 2, "page_size": 1})
        body = response.json()
        assert [c["last_name"] for c in body["items"]] == ["Maier"]
        assert (body["total_count"], body["total_pages"], body["page"]) == (2, 2, 2)

        response = await client.get("/api/v1/customers/paged", params={"page": 0})
        assert response.status_code == 422


class TestOrders:
    @pytest.mark.asyncio
    async def test_list_includes_customer_and_items(self, client, sample_data):
        orders = (await client.get("/api/v1/orders")).json()
        assert [o["order_nr"] for o in orders] == ["A1", "A2", "B1"]
        assert orders[0]["customer"]["first_name"] == "Anna"
        assert len(orders[0]["order_items"]) == 2

    @pytest.mark.asyncio
    async def test_page_is_zero_based_newest_first(self, client, sample_data):
        rows = (await client.get("/api/v1/orders/page", params={"page": 0, "page_size": 2})).json()
        assert rows == [
            {"id": sample_data["orders"]["B1"], "order_nr": "B1", "customer_name": "Maier Berta", "total": 16.0},
            {"id": sample_data["orders"]["A2"], "order_nr": "A2", "customer_name": "Huber Anna", "total": 6.0},
        ]
        rows = (await client.get("/api/v1/orders/page", params={"page": 1, "page_size": 2})).json()
        assert [r["order_nr"] for r in rows] == ["A1"]

    @pytest.mark.asyncio
    async def test_page_and_count_with_name_filter(self, client, sample_data):
        rows = (await client.get("/api/v1/orders/page", params={"name_filter": "Hub"})).json()
        assert [(r["order_nr"], r["total"]) for r in rows] == [("A2", 6.0), ("A1", 7.0)]
        assert (await client.get("/api/v1/orders/count", params={"name_filter": "Mai"})).json() == 1
        assert (await client.get("/api/v1/orders/count")).json() == 3

    @pytest.mark.asyncio
    async def test_get_missing_order(self, client, sample_data):
        response = await client.get("/api/v1/orders/9999")
        assert response.status_code == 404
        body = response.json()
        assert body["status"] == 404
        assert body["error"]["message"] == "Order not found"
        assert body["path"] == "/api/v1/orders/9999"

    @pytest.mark.asyncio
    async def test_create(self, client, sample_data):
        response = await client.post(
            "/api/v1/orders",
            json={"order_nr": "C1", "customer_id": sample_data["customers"]["berta"], "order_type": "ONLINE"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["row_version"] == 1
        assert (await client.get(f"/api/v1/orders/{body['id']}")).json()["order_type"] == "ONLINE"

        response = await client.post("/api/v1/orders", json={"order_nr": "C2", "customer_id": 9999})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_and_conflict(self, client, sample_data):
        order_id = sample_data["orders"]["A1"]
        original = (await client.get(f"/api/v1/orders/{order_id}")).json()
        payload = {
            "id": order_id,
            "row_version": original["row_version"],
            "order_nr": "A1-neu",
            "customer_id": sample_data["customers"]["berta"],
            "order_type": "EXPRESS",
        }
        response = await client.put(f"/api/v1/orders/{order_id}", json=payload)
        assert response.status_code == 200
        updated = response.json()
        assert updated["order_nr"] == "A1-neu"
        assert updated["row_version"] == original["row_version"] + 1
        assert updated["date"] == original["date"]

        # Same (now stale) row_version again
        response = await client.put(f"/api/v1/orders/{order_id}", json=payload)
        assert response.status_code == 409
        assert response.json()["error"]["type"] == "concurrency_conflict"

    @pytest.mark.asyncio
    async def test_update_bad_requests(self, client, sample_data):
        order_id = sample_data["orders"]["A1"]
        payload = {
            "id": order_id,
            "row_version": 1,
            "order_nr": "X",
            "customer_id": sample_data["customers"]["anna"],
            "order_type": "STANDARD",
        }
        assert (await client.put(f"/api/v1/orders/{order_id + 1}", json=payload)).status_code == 400
        payload["id"] = 9999
        assert (await client.put("/api/v1/orders/9999", json=payload)).status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client, sample_data):
        order_id = sample_data["orders"]["A2"]
        assert (await client.delete(f"/api/v1/orders/{order_id}")).status_code == 200
        assert (await client.delete(f"/api/v1/orders/{order_id}")).status_code == 404
        assert (await client.get("/api/v1/orders/count")).json() == 2

    @pytest.mark.asyncio
    async def test_sales_statistic(self, client, sample_data):
        body = (await client.get("/api/v1/orders/sales-statistic")).json()
        assert body["total_sales"] == pytest.approx(29.0)
        assert body["best_product"] == "Kiwi"
        assert body["customer_total_orders"][0]["customer_name"] == "Berta Maier"


class TestOrderItems:
    @pytest.mark.asyncio
    async def test_by_order(self, client, sample_data):
        items = (await client.get(f"/api/v1/order-items/by-order/{sample_data['orders']['A1']}")).json()
        assert [(i["product_name"], i["amount"], i["price"]) for i in items] == [("Apfel", 2, 1.5), ("Kiwi", 1, 4.0)]

    @pytest.mark.asyncio
    async def test_create_get_delete(self, client, sample_data):
        response = await client.post(
            "/api/v1/order-items",
            json={
                "order_id": sample_data["orders"]["B1"],
                "product_id": sample_data["products"]["birne"],
                "amount": 2,
            },
        )
        assert response.status_code == 201
        item_id = response.json()["id"]

        response = await client.get(f"/api/v1/order-items/{item_id}")
        assert response.status_code == 200
        assert response.json()["amount"] == 2

        response = await client.delete(f"/api/v1/order-items/{item_id}")
        assert response.status_code == 200
        assert response.json()["id"] == item_id
        assert (await client.get(f"/api/v1/order-items/{item_id}")).status_code == 404
        assert (await client.delete(f"/api/v1/order-items/{item_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_create_for_unknown_product(self, client, sample_data):
        response = await client.post(
            "/api/v1/order-items",
            json={"order_id": sample_data["orders"]["B1"], "product_id": 9999, "amount": 1},
        )
        assert response.status_code == 400


class TestProductsAndReports:
    @pytest.mark.asyncio
    async def test_products(self, client, sample_data):
        products = (await client.get("/api/v1/products")).json()
        assert [p["product_nr"] for p in products] == ["P01", "P02", "P03"]

        products = (await client.get("/api/v1/products/with-categories")).json()
        assert [c["category_name"] for c in products[1]["categories"]] == ["Obst"]

    @pytest.mark.asyncio
    async def test_customer_totals_csv(self, client, sample_data):
        response = await client.get("/api/v1/reports/customer-totals")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0] == "customer_name,number_of_orders,total_sales"
        assert lines[1] == "Berta Maier,1,16.0"
        assert lines[2] == "Anna Huber,2,13.0"

    @pytest.mark.asyncio
    async def test_customer_totals_xlsx(self, client, sample_data):
        response = await client.get("/api/v1/reports/customer-totals", params={"format": "xlsx"})
        assert response.status_code == 200
        assert "spreadsheetml" in response.headers["content-type"]
        assert response.content[:2] == b"PK"
