import pytest
from bson import ObjectId


@pytest.fixture
def supplier_headers(register, bearer):
    return bearer(register(email="sam@example.com", name="Sam", role="supplier")["token"])


def test_user_administration_requires_supplier(client, register, bearer):
    customer = register()
    headers = bearer(customer["token"])
    assert client.get("/users").status_code == 401
    assert client.get("/users", headers=headers).status_code == 403
    assert client.get(f"/users/{customer['user']['id']}", headers=headers).status_code == 403


def test_list_users_hides_passwords(client, register, supplier_headers):
    register(email="ann@example.com")
    res = client.get("/users", headers=supplier_headers)
    assert res.status_code == 200
    users = res.json()["users"]
    assert {u["email"] for u in users} == {"sam@example.com", "ann@example.com"}
    assert all("password" not in u for u in users)


def test_create_get_update_delete_user(client, db, supplier_headers):
    res = client.post(
        "/users", headers=supplier_headers,
        json={"name": "Cara", "email": "cara@example.com", "password": "pw"},
    )
    assert res.status_code == 200
    user = res.json()["user"]
    assert user["role"] == "customer"
    assert "token" not in res.json()
    assert db["user"].find_one({"email": "cara@example.com"})["password"].startswith("$2b$")

    fetched = client.get(f"/users/{user['id']}", headers=supplier_headers).json()["user"]
    assert fetched["email"] == "cara@example.com"

    res = client.put(f"/users/{user['id']}", headers=supplier_headers, json={"role": "supplier", "name": "Cara B"})
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "supplier"
    assert res.json()["user"]["name"] == "Cara B"

    res = client.delete(f"/users/{user['id']}", headers=supplier_headers)
    assert res.status_code == 200
    assert res.json()["success"] == 1
    assert "password" not in res.json()["user"]
    assert client.get(f"/users/{user['id']}", headers=supplier_headers).status_code == 404


def test_create_user_with_taken_email(client, register, supplier_headers):
    register(email="ann@example.com")
    res = client.post("/users", headers=supplier_headers, json={"name": "A", "email": "ann@example.com", "password": "x"})
    assert res.status_code == 409


def test_unknown_and_malformed_user_ids(client, supplier_headers):
    assert client.get(f"/users/{ObjectId()}", headers=supplier_headers).status_code == 404
    assert client.get("/users/xyz", headers=supplier_headers).status_code == 400
    assert client.put(f"/users/{ObjectId()}", headers=supplier_headers, json={"name": "N"}).status_code == 404
    assert client.delete(f"/users/{ObjectId()}", headers=supplier_headers).status_code == 404
