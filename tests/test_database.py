from datetime import datetime

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

import database
from database import (
    create_document,
    ensure_indexes,
    get_documents,
    insert_product,
    next_product_id,
    serialize_doc,
)
from schemas import ProductIn
from conftest import SHIRT


@pytest.fixture
def indexed_db(db):
    ensure_indexes(db)
    return db


def test_next_product_id(indexed_db):
    assert next_product_id(indexed_db) == 1
    indexed_db["product"].insert_many([{"id": 3}, {"id": 7}, {"id": 5}])
    assert next_product_id(indexed_db) == 8


def test_create_document_stamps_timestamps(db):
    doc_id = create_document(db, "user", {"name": "Ann"})
    stored = db["user"].find_one({"_id": ObjectId(doc_id)})
    assert isinstance(stored["createdAt"], datetime)
    assert stored["createdAt"] == stored["updatedAt"]


def test_get_documents_filters_and_sorts(db):
    db["product"].insert_many([
        {"id": 2, "category": "men"},
        {"id": 1, "category": "men"},
        {"id": 3, "category": "kids"},
    ])
    men = get_documents(db, "product", {"category": "men"}, sort=[("id", 1)])
    assert [p["id"] for p in men] == [1, 2]
    assert len(get_documents(db, "product")) == 3


def test_insert_product_retries_on_id_collision(indexed_db, monkeypatch):
    indexed_db["product"].insert_one({**SHIRT, "id": 1})
    proposed = iter([1, 2])
    monkeypatch.setattr(database, "next_product_id", lambda db: next(proposed))

    product = insert_product(indexed_db, ProductIn(**SHIRT))
    assert product["id"] == 2
    assert indexed_db["product"].count_documents({}) == 2


def test_insert_product_gives_up_eventually(indexed_db, monkeypatch):
    indexed_db["product"].insert_one({**SHIRT, "id": 1})
    monkeypatch.setattr(database, "next_product_id", lambda db: 1)
    with pytest.raises(DuplicateKeyError):
        insert_product(indexed_db, ProductIn(**SHIRT))
    assert indexed_db["product"].count_documents({}) == 1


def test_duplicate_product_id_is_a_store_error(client, db, monkeypatch):
    db["product"].insert_one({**SHIRT, "id": 1})
    monkeypatch.setattr(database, "next_product_id", lambda db: 1)
    res = client.post("/addproduct", json=SHIRT)
    assert res.status_code == 500
    assert res.json()["success"] == 0
    assert "error" in res.json()


def test_serialize_doc():
    oid, user_oid = ObjectId(), ObjectId()
    doc = {"_id": oid, "userId": user_oid, "createdAt": datetime(2024, 1, 2, 3, 4, 5), "items": [{"productId": 1}]}
    out = serialize_doc(doc)
    assert out["id"] == str(oid)
    assert out["userId"] == str(user_oid)
    assert out["createdAt"] == "2024-01-02T03:04:05+00:00"
    assert "_id" not in out

    product = serialize_doc({"_id": ObjectId(), "id": 4, "title": "Shirt"})
    assert product == {"id": 4, "title": "Shirt"}
    assert serialize_doc(None) is None


def test_status_endpoint(client, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    res = client.get("/test")
    assert res.status_code == 200
    body = res.json()
    assert body["database_name"] == "clothing_store_test"
    assert body["database_url"] == "✅ Set"
    assert body["connection_status"] == "Connected"
    assert body["database"] == "✅ Connected & Working"


def test_status_endpoint_reports_failed_ping(client, db, monkeypatch):
    def failing_command(*args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(db, "command", failing_command)
    body = client.get("/test").json()
    assert body["connection_status"] == "Not Connected"
    assert body["database"].startswith("❌ Error")
