from fastapi.testclient import TestClient

import config
import database
import orders
from conftest import auth_headers
from main import app


def test_root(client):
    assert client.get("/").json() == {"message": "Storefront backend running"}


def test_database_probe(client, make_product):
    make_product()

    body = client.get("/api/test").json()

    assert body["db"] == "ok"
    assert "product" in body["collections"]


def test_startup_bootstraps_admin():
    with TestClient(app) as client:
        assert client.get("/").status_code == 200

    admin = database.get_db()["user"].find_one({"username": config.ADMIN_USERNAME})
    assert admin["role"] == "admin"


def test_startup_is_repeatable():
    with TestClient(app):
        pass
    with TestClient(app):
        pass

    assert database.get_db()["user"].count_documents({"username": config.ADMIN_USERNAME}) == 1


def test_validation_errors_are_400(client, buyer):
    response = client.post("/api/cart/add", json={"quantity": 1}, headers=auth_headers(buyer))

    assert response.status_code == 400
    assert "product_id" in response.json()["detail"]


def test_unexpected_errors_are_masked(monkeypatch, admin):
    def boom():
        raise RuntimeError("connection string with secrets")

    monkeypatch.setattr(orders, "order_stats", boom)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/orders/stats/overview", headers=auth_headers(admin))

    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}
