from conftest import login


def _register(client, email="new@example.com"):
    return client.post("/api/users", json={
        "email": email,
        "password": "Secret123!",
        "firstname": "New",
        "lastname": "Customer",
    })


# AUTH-001: register a customer
def test_register(client):
    r = _register(client, "New@Example.com ")

    assert r.status_code == 201
    assert r.json["email"] == "new@example.com"
    assert r.json["firstname"] == "New"


# AUTH-002: emails are unique
def test_register_twice(client):
    _register(client)
    r = _register(client)

    assert r.status_code == 409
    assert r.json["error"]["code"] == "conflict"


def test_register_missing_fields(client):
    r = client.post("/api/users", json={"email": "x@example.com"})

    assert r.status_code == 400
    assert set(r.json["error"]["details"]["missing"]) == {"password", "firstname", "lastname"}

    r = client.post("/api/users", data="nope")
    assert r.status_code == 400
    assert r.json["error"]["code"] == "invalid_json"


# AUTH-003: login, me and logout
def test_login_me_logout(client):
    assert client.get("/api/users/me").status_code == 401

    r = login(client)
    assert r.status_code == 200
    assert r.json["message"] == "logged_in"

    me = client.get("/api/users/me").json
    assert me["email"] == "demo@example.com"
    assert me["address"]["customer.city"] == "Berlin"
    assert me["delivery_addresses"][0]["customer.address.city"] == "Hamburg"

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/users/me").status_code == 401


def test_login_wrong_password(client):
    r = login(client, password="wrong")

    assert r.status_code == 401
    assert r.json["error"]["code"] == "unauthorized"
