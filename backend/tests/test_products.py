import pytest

PASSWORD = "Passw0rd!"


def _auth(client, kind, email):
    client.post(
        f"/accounts/{kind}",
        json={"name": email.split("@")[0], "email": email, "password": PASSWORD, "password_confirm": PASSWORD},
    )
    response = client.post(f"/auth/{kind}/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def seller(client):
    return _auth(client, "seller", "seller@example.com")


def _create(client, headers, name="Kopi Luwak", price=12.5, stock=3):
    return client.post("/products", json={"name": name, "price": price, "stock": stock}, headers=headers)


def test_catalogue_starts_empty(client):
    r = client.get("/products")
    assert r.status_code == 200
    assert r.json() == []


def test_create_requires_seller(client):
    assert _create(client, {}).status_code == 401
    customer = _auth(client, "customer", "buyer@example.com")
    assert _create(client, customer).status_code == 403


def test_seller_creates_and_lists_product(client, seller):
    created = _create(client, seller)
    assert created.status_code == 201
    product = created.json()
    assert product["seller_email"] == "seller@example.com"
    assert product["name"] == "Kopi Luwak"

    assert client.get("/products").json() == [product]
    assert client.get(f"/products/{product['id']}").json() == product


def test_invalid_product_payload(client, seller):
    assert _create(client, seller, name="").status_code == 422
    assert _create(client, seller, price=-1).status_code == 422
    assert _create(client, seller, stock=-2).status_code == 422


def test_only_owner_updates_or_deletes(client, seller):
    product_id = _create(client, seller).json()["id"]
    rival = _auth(client, "seller", "rival@example.com")

    update = {"name": "Kopi Tubruk", "price": 4, "stock": 10}
    assert client.put(f"/products/{product_id}", json=update, headers=rival).status_code == 403
    assert client.delete(f"/products/{product_id}", headers=rival).status_code == 403

    updated = client.put(f"/products/{product_id}", json=update, headers=seller)
    assert updated.status_code == 200
    assert updated.json()["name"] == "Kopi Tubruk"
    assert updated.json()["stock"] == 10

    assert client.delete(f"/products/{product_id}", headers=seller).status_code == 204
    assert client.get(f"/products/{product_id}").status_code == 404


def test_missing_product(client, seller):
    assert client.get("/products/999").status_code == 404
    assert client.put("/products/999", json={"name": "x", "price": 1, "stock": 1}, headers=seller).status_code == 404
