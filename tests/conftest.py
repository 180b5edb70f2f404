import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("DATABASE_NAME", "storefront_test")

import mongomock  # noqa: E402
import pytest  # noqa: E402
from bson import ObjectId  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import database  # noqa: E402


@pytest.fixture(autouse=True)
def mongo():
    """Fresh in-memory database for every test."""
    client = mongomock.MongoClient()
    db = database.init_db(client)
    database.ensure_indexes()
    yield db
    client.drop_database(db.name)


@pytest.fixture()
def client():
    from main import app

    return TestClient(app)


@pytest.fixture()
def make_user():
    def _make(username="alice", role="buyer"):
        email = f"{username}@store.com"
        user_id = database.create_document(
            "user",
            {"username": username, "email": email, "password_hash": "!", "role": role},
        )
        return {"id": user_id, "username": username, "email": email, "role": role}

    return _make


@pytest.fixture()
def buyer(make_user):
    return make_user("alice")


@pytest.fixture()
def admin(make_user):
    return make_user("root", role="admin")


@pytest.fixture()
def make_product():
    def _make(name="Widget", price=10.0, stock=5, category="gadgets", featured=False, description=None):
        return database.create_document(
            "product",
            {
                "name": name,
                "description": description or f"{name} description",
                "price": price,
                "image": f"https://cdn.store.com/{name.lower()}.jpg",
                "category": category,
                "stock": stock,
                "featured": featured,
            },
        )

    return _make


@pytest.fixture()
def fill_cart():
    def _fill(user, *lines):
        database.get_db()["cart"].update_one(
            {"user_id": user["id"]},
            {"$set": {"items": [{"product_id": pid, "quantity": qty} for pid, qty in lines]}},
            upsert=True,
        )

    return _fill


def auth_headers(user):
    return {"X-User-Id": user["id"]}


def stock_of(product_id):
    return database.get_db()["product"].find_one({"_id": ObjectId(product_id)})["stock"]


def cart_items(user):
    cart = database.get_db()["cart"].find_one({"user_id": user["id"]})
    return cart["items"] if cart else []
