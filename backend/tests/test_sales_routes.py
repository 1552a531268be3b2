"""
HTTP tests for /api/sales.

Status mapping:
- 201 on success
- 400 for validation and business-rule failures
- 500 with retryable=true when the store could not commit
"""

from sqlalchemy.orm.exc import StaleDataError

from stockdesk.services import sales_service
from conftest import variant_stock


def _sale_body(product_id, variant="Front", quantity=1, **extra):
    return {"items": [{"product": product_id, "variant": variant, "quantity": quantity}], **extra}


class TestPostSaleRoute:

    def test_created(self, client, db_session, brake_pads):
        resp = client.post("/api/sales", json={
            "customer": "Walk-in",
            "paymentMethod": "Card",
            "items": [
                {"product": brake_pads.id, "variant": "Front", "quantity": 2, "actualSellingPrice": 14},
                {"product": brake_pads.id, "variant": "Rear", "quantity": 1},
            ],
        })

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["invoiceNumber"].startswith("INV-")
        assert data["invoiceNumber"].endswith("-0001")
        assert data["totalAmount"] == 40.5
        assert data["totalProfit"] == 12.5
        assert data["paymentStatus"] == "Completed"
        assert data["items"][0]["actualSellingPrice"] == 14.0
        assert data["items"][1]["actualSellingPrice"] == 12.5

    def test_insufficient_stock_is_400(self, client, db_session, brake_pads):
        resp = client.post("/api/sales", json=_sale_body(brake_pads.id, "Rear", 50))

        assert resp.status_code == 400
        data = resp.get_json()
        assert data["kind"] == "InsufficientStock"
        assert "Available: 8" in data["error"]
        assert variant_stock(brake_pads.id, "Rear") == 8

    def test_unknown_product_is_400(self, client, db_session):
        resp = client.post("/api/sales", json=_sale_body(123456))
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "ProductNotFound"

    def test_unknown_variant_is_400(self, client, db_session, brake_pads):
        resp = client.post("/api/sales", json=_sale_body(brake_pads.id, "Middle"))
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "VariantNotFound"

    def test_empty_items_is_400(self, client, db_session):
        resp = client.post("/api/sales", json={"items": []})
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "ValidationError"

    def test_non_json_body_is_400(self, client, db_session):
        resp = client.post("/api/sales", data="not json", content_type="text/plain")
        assert resp.status_code == 400

    def test_conflict_is_retryable_500(self, client, db_session, brake_pads, monkeypatch):
        def _stale(now):
            raise StaleDataError("concurrent update")

        monkeypatch.setattr(sales_service, "next_invoice_number", _stale)

        resp = client.post("/api/sales", json=_sale_body(brake_pads.id, quantity=2))

        assert resp.status_code == 500
        data = resp.get_json()
        assert data["retryable"] is True
        assert data["kind"] == "TransactionConflict"
        assert variant_stock(brake_pads.id, "Front") == 10

    def test_unexpected_failure_is_500(self, client, db_session, brake_pads, monkeypatch):
        def _boom(draft, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(sales_service, "post_sale", _boom)

        resp = client.post("/api/sales", json=_sale_body(brake_pads.id))

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to create sale"}


class TestSaleRecordRoutes:

    def _post(self, client, product_id, **extra):
        resp = client.post("/api/sales", json=_sale_body(product_id, **extra))
        assert resp.status_code == 201
        return resp.get_json()

    def test_list(self, client, db_session, brake_pads):
        self._post(client, brake_pads.id, customer="Alice")
        self._post(client, brake_pads.id, customer="Bob")

        resp = client.get("/api/sales?limit=1")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["pages"] == 2
        assert len(data["sales"]) == 1

    def test_list_payment_status_all_is_unfiltered(self, client, db_session, brake_pads):
        self._post(client, brake_pads.id)
        self._post(client, brake_pads.id, paymentStatus="Pending")

        resp = client.get("/api/sales?paymentStatus=all")
        assert resp.status_code == 200
        assert resp.get_json()["pagination"]["total"] == 2

        resp = client.get("/api/sales?paymentStatus=Pending")
        assert resp.get_json()["pagination"]["total"] == 1

    def test_list_bad_page(self, client, db_session):
        resp = client.get("/api/sales?page=abc")
        assert resp.status_code == 400

    def test_get_with_product_info(self, client, db_session, brake_pads):
        sale = self._post(client, brake_pads.id)

        resp = client.get(f"/api/sales/{sale['id']}")

        assert resp.status_code == 200
        item = resp.get_json()["items"][0]
        assert item["productInfo"] == {"name": "Brake Pad Set", "brand": "Bosch", "category": "Brakes"}

    def test_get_missing(self, client, db_session):
        resp = client.get("/api/sales/999")
        assert resp.status_code == 404

    def test_update_ignores_items(self, client, db_session, brake_pads):
        sale = self._post(client, brake_pads.id, quantity=3)

        resp = client.put(f"/api/sales/{sale['id']}", json={
            "paymentStatus": "Pending",
            "items": [{"product": brake_pads.id, "variant": "Front", "quantity": 1}],
        })

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["paymentStatus"] == "Pending"
        assert data["items"] == sale["items"]
        assert data["totalAmount"] == sale["totalAmount"]

    def test_update_bad_flag(self, client, db_session, brake_pads):
        sale = self._post(client, brake_pads.id)
        resp = client.put(f"/api/sales/{sale['id']}", json={"flagStatus": "purple"})
        assert resp.status_code == 400

    def test_delete(self, client, db_session, brake_pads):
        sale = self._post(client, brake_pads.id, quantity=2)

        resp = client.delete(f"/api/sales/{sale['id']}")

        assert resp.status_code == 200
        assert client.get(f"/api/sales/{sale['id']}").status_code == 404
        assert variant_stock(brake_pads.id, "Front") == 8
