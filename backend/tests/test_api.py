"""
API tests.

Verifies:
- Unauthenticated requests return 401
- Listing and lot selection follow lot locations, not nominal locations
- Location-level denials return 403, stock shortfalls 409
- /api/auth/check reports decisions as allowed true/false
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.extensions import db
from app.models import Product, ProductLot, Sale
from app.services import concurrency, lot_service


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/auth/check"),
            ("GET", "/api/locations"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/transfers"),
            ("POST", "/api/transfers"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_invalid_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"


class TestSessionUser:

    def test_me_lists_capabilities(self, client, sales_manager, auth_headers):
        resp = client.get("/api/auth/me", headers=auth_headers(sales_manager))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["role"] == "sales_manager"
        assert "transfer" not in body["capabilities"]["inventory"]

    def test_check_decisions(self, client, locations, showroom_admin, auth_headers):
        headers = auth_headers(showroom_admin)

        resp = client.get("/api/auth/check?module=products&action=add", headers=headers)
        assert resp.get_json()["allowed"] is False

        resp = client.get(
            f"/api/auth/check?module=sales&action=add&location_id={locations['mall']}", headers=headers
        )
        assert resp.get_json()["allowed"] is True

    def test_check_unknown_module(self, client, locations, showroom_admin, auth_headers):
        resp = client.get("/api/auth/check?module=payroll&action=view", headers=auth_headers(showroom_admin))
        assert resp.status_code == 400

    def test_logout_revokes_token(self, client, super_admin, auth_headers):
        headers = auth_headers(super_admin)
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401


class TestProductListing:

    def test_product_listed_through_showroom_lot(self, client, product_with_lots, showroom_admin, auth_headers):
        # Nominal location is Main Warehouse; admin only has showrooms
        resp = client.get("/api/products", headers=auth_headers(showroom_admin))
        assert resp.status_code == 200
        ids = [product["id"] for product in resp.get_json()["products"]]
        assert ids == [product_with_lots["product_id"]]

    def test_selectable_lots(self, client, locations, product_with_lots, warehouse_admin, auth_headers):
        resp = client.get(
            f"/api/products/{product_with_lots['product_id']}/lots", headers=auth_headers(warehouse_admin)
        )
        assert resp.status_code == 200
        lots = resp.get_json()["lots"]
        assert [lot["location_id"] for lot in lots] == [locations["main"], locations["downtown"]]

    def test_lots_of_unknown_product(self, client, locations, super_admin, auth_headers):
        resp = client.get("/api/products/999999/lots", headers=auth_headers(super_admin))
        assert resp.status_code == 404

    def test_lot_location_lookup(self, client, locations, product_with_lots, sales_manager, auth_headers):
        headers = auth_headers(sales_manager)
        lot_ids = product_with_lots["lot_ids"]

        resp = client.get(f"/api/inventory/lots/{lot_ids['downtown']}/location", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["location_id"] == locations["downtown"]

        resp = client.get(f"/api/inventory/lots/{lot_ids['mall']}/location", headers=headers)
        assert resp.status_code == 404

    def test_accessible_locations(self, client, locations, warehouse_admin, auth_headers):
        resp = client.get("/api/locations/accessible", headers=auth_headers(warehouse_admin))
        body = resp.get_json()
        assert body["all_locations"] is False
        assert body["location_ids"] == sorted([locations["main"], locations["downtown"]])


class TestStockEntryRoutes:

    def test_showroom_admin_cannot_add_products(self, client, locations, showroom_admin, auth_headers):
        resp = client.post(
            "/api/products",
            headers=auth_headers(showroom_admin),
            json={"product_code": "X1", "name": "X", "location_id": locations["mall"], "quantity": 1},
        )
        assert resp.status_code == 403

    def test_warehouse_admin_adds_product(self, client, locations, warehouse_admin, auth_headers):
        resp = client.post(
            "/api/products",
            headers=auth_headers(warehouse_admin),
            json={
                "product_code": "X2",
                "name": "Chair",
                "location_id": locations["main"],
                "quantity": 8,
                "unit_price_cents": 4500,
            },
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["lot"]["lot_number"] == 1
        assert body["product"]["total_stock"] == 8

    def test_add_stock_bad_quantity(self, client, locations, product_with_lots, super_admin, auth_headers):
        resp = client.post(
            f"/api/products/{product_with_lots['product_id']}/stock",
            headers=auth_headers(super_admin),
            json={"location_id": locations["main"], "quantity": 0},
        )
        assert resp.status_code == 400


class TestSaleRoutes:

    def test_sale_created(self, client, locations, product_with_lots, sales_manager, auth_headers):
        resp = client.post(
            "/api/sales",
            headers=auth_headers(sales_manager),
            json={"lot_id": product_with_lots["lot_ids"]["downtown"], "quantity": 3},
        )
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["location_id"] == locations["downtown"]
        assert sale["total_cents"] == 8100

    def test_sale_at_wrong_location(self, client, product_with_lots, sales_manager, auth_headers):
        resp = client.post(
            "/api/sales",
            headers=auth_headers(sales_manager),
            json={"lot_id": product_with_lots["lot_ids"]["mall"], "quantity": 1},
        )
        assert resp.status_code == 403
        assert resp.get_json()["action"] == "add"

    def test_sale_overdraw(self, client, product_with_lots, sales_manager, auth_headers):
        resp = client.post(
            "/api/sales",
            headers=auth_headers(sales_manager),
            json={"lot_id": product_with_lots["lot_ids"]["downtown"], "quantity": 31},
        )
        assert resp.status_code == 409
        assert resp.get_json()["available"] == 30

    def test_sale_missing_lot(self, client, product_with_lots, sales_manager, auth_headers):
        resp = client.post("/api/sales", headers=auth_headers(sales_manager), json={"quantity": 1})
        assert resp.status_code == 400


class TestTransferRoutes:

    def test_sales_manager_denied(self, client, locations, product_with_lots, sales_manager, auth_headers):
        resp = client.post(
            "/api/transfers",
            headers=auth_headers(sales_manager),
            json={
                "lot_id": product_with_lots["lot_ids"]["downtown"],
                "to_location_id": locations["mall"],
                "quantity": 1,
            },
        )
        assert resp.status_code == 403

    def test_transfer_created(self, client, locations, product_with_lots, warehouse_admin, auth_headers):
        headers = auth_headers(warehouse_admin)
        resp = client.post(
            "/api/transfers",
            headers=headers,
            json={
                "lot_id": product_with_lots["lot_ids"]["main"],
                "to_location_id": locations["downtown"],
                "quantity": 5,
            },
        )
        assert resp.status_code == 201

        resp = client.get(
            f"/api/products/{product_with_lots['product_id']}/lots", headers=headers
        )
        quantities = {lot["lot_number"]: lot["quantity"] for lot in resp.get_json()["lots"]}
        assert quantities == {1: 45, 2: 30, 5: 5}


class TestTransactionRetries:
    """A failed commit retries the whole unit of work, never just the commit."""

    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr(concurrency, "BACKOFF_BASE", 0)

    @staticmethod
    def fail_commits(monkeypatch, times):
        session_cls = type(db.session())
        real_commit = session_cls.commit
        failures = []

        def flaky_commit(self):
            if len(failures) < times:
                failures.append(1)
                raise OperationalError("COMMIT", {}, Exception("database is locked"))
            return real_commit(self)

        monkeypatch.setattr(session_cls, "commit", flaky_commit)
        return failures

    def test_sale_saved_after_locked_commit(
        self, client, monkeypatch, db_session, product_with_lots, sales_manager, auth_headers
    ):
        headers = auth_headers(sales_manager)
        lot_id = product_with_lots["lot_ids"]["downtown"]
        failures = self.fail_commits(monkeypatch, times=1)

        resp = client.post("/api/sales", headers=headers, json={"lot_id": lot_id, "quantity": 5})

        assert resp.status_code == 201
        assert len(failures) == 1
        db_session.expire_all()
        assert db_session.query(Sale).filter_by(lot_id=lot_id).count() == 1
        assert db_session.get(ProductLot, lot_id).quantity == 25
        assert db_session.get(Product, product_with_lots["product_id"]).total_stock == 165

    def test_sale_never_reported_when_commit_keeps_failing(
        self, client, monkeypatch, db_session, product_with_lots, sales_manager, auth_headers
    ):
        headers = auth_headers(sales_manager)
        lot_id = product_with_lots["lot_ids"]["downtown"]
        failures = self.fail_commits(monkeypatch, times=concurrency.TRANSACTION_ATTEMPTS)

        resp = client.post("/api/sales", headers=headers, json={"lot_id": lot_id, "quantity": 5})

        assert resp.status_code == 500
        assert len(failures) == concurrency.TRANSACTION_ATTEMPTS
        db_session.expire_all()
        assert db_session.query(Sale).count() == 0
        assert db_session.get(ProductLot, lot_id).quantity == 30

    def test_lot_number_conflict_is_retried(
        self, client, monkeypatch, db_session, locations, product_with_lots, super_admin, auth_headers
    ):
        headers = auth_headers(super_admin)
        real_insert = lot_service._insert_lot
        calls = []

        def conflicting_once(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
            return real_insert(*args, **kwargs)

        monkeypatch.setattr(lot_service, "_insert_lot", conflicting_once)

        resp = client.post(
            f"/api/products/{product_with_lots['product_id']}/stock",
            headers=headers,
            json={"location_id": locations["mall"], "quantity": 4},
        )

        assert resp.status_code == 201
        assert resp.get_json()["lot"]["lot_number"] == 5
        assert len(calls) == 2

    def test_persistent_lot_number_conflict_is_409(
        self, client, monkeypatch, db_session, locations, product_with_lots, super_admin, auth_headers
    ):
        headers = auth_headers(super_admin)
        calls = []

        def always_conflicting(*args, **kwargs):
            calls.append(1)
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(lot_service, "_insert_lot", always_conflicting)

        resp = client.post(
            f"/api/products/{product_with_lots['product_id']}/stock",
            headers=headers,
            json={"location_id": locations["mall"], "quantity": 4},
        )

        assert resp.status_code == 409
        assert len(calls) == concurrency.TRANSACTION_ATTEMPTS
        db_session.expire_all()
        assert db_session.get(Product, product_with_lots["product_id"]).total_stock == 170
