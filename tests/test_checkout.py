from storefront.app.controller.order import sign_push
from storefront.app.extensions import db
from storefront.app.models import Order, Product


def _fields(**values):
    data = {
        "firstname": "Ada",
        "lastname": "Lovelace",
        "address1": "Main Street 1",
        "postal": "10115",
        "city": "Berlin",
        "languageid": "en",
        "email": "ada@example.com",
    }
    data.update(values)
    return data


def _billing(name="ca_billing", **values):
    return {f"{name}[order.address.{k}]": v for k, v in _fields(**values).items()}


def _fill_basket(client, product_ids, quantity=2):
    r = client.post("/api/basket/products", json={"product_id": product_ids["BOX-001"], "quantity": quantity})
    assert r.status_code == 201


def _order(client):
    return client.post("/checkout", data={
        "c_step": "process",
        "cs_option_terms": "1",
        "cs_option_terms_value": "1",
        "cs_order": "1",
    })


# CHECKOUT-001: address step for guests
def test_address_step(client, product_ids):
    _fill_basket(client, product_ids)
    r = client.get("/checkout?c_step=address")

    assert r.status_code == 200
    assert b"checkout-standard-address-billing" in r.data
    assert b'name="ca_billingoption" value="null"' in r.data
    assert b"ca_deliveryoption-like" in r.data
    assert b"checkout-standard-summary" not in r.data


# CHECKOUT-002: summary is the default step
def test_default_step(client):
    r = client.get("/checkout")

    assert b"checkout-standard-summary" in r.data
    assert b"/basket" in r.data


# CHECKOUT-003: guest places an order
def test_guest_order(app, client, product_ids):
    _fill_basket(client, product_ids)

    r = client.post("/checkout", data={"c_step": "summary", "ca_billingoption": "null",
                                       "ca_deliveryoption": "like", **_billing()})
    assert r.status_code == 200
    assert b"error-list" not in r.data
    assert b"checkout-standard-summary" in r.data
    assert b"Main Street 1" in r.data

    basket = client.get("/api/basket").json
    assert basket["addresses"]["payment"][0]["order.address.city"] == "Berlin"

    r = _order(client)
    assert r.status_code == 200
    assert b"Thank you for your order" in r.data
    assert b"59.98" in r.data

    assert client.get("/api/basket").json["items"] == []
    with app.app_context():
        order = Order.query.one()
        assert order.customer_id is None
        assert order.total_cents == 5998
        assert order.status_payment == "PENDING"
        assert [p.sku for p in order.products] == ["BOX-001"]
        assert [(a.type, a.city) for a in order.addresses] == [("payment", "Berlin")]
        assert db.session.get(Product, product_ids["BOX-001"]).stock_qty == 98


# CHECKOUT-004: invalid billing address keeps the address step
def test_invalid_billing(client, product_ids):
    _fill_basket(client, product_ids)
    r = client.post("/checkout", data={"c_step": "summary", "ca_billingoption": "null",
                                       **_billing(postal="!!", city="")})

    assert b"At least one payment address part is missing or invalid" in r.data
    assert b"checkout-standard-address-billing" in r.data
    assert b"field-error" in r.data
    assert client.get("/api/basket").json["addresses"] == {}


# CHECKOUT-005: new delivery address
def test_new_delivery_address(client, product_ids):
    delivery = {
        "ca_delivery[order.address.firstname]": "Bob",
        "ca_delivery[order.address.lastname]": "Builder",
        "ca_delivery[order.address.address1]": "Yard 3",
        "ca_delivery[order.address.postal]": "80331",
        "ca_delivery[order.address.city]": "Munich",
        "ca_delivery[order.address.languageid]": "en",
        "ca_delivery[order.address.id]": "7",
    }
    r = client.post("/checkout", data={"c_step": "summary", "ca_billingoption": "null",
                                       "ca_deliveryoption": "null", **_billing(), **delivery})

    assert b"Munich" in r.data
    addresses = client.get("/api/basket").json["addresses"]
    assert addresses["delivery"][0]["order.address.city"] == "Munich"
    assert "order.address.id" not in addresses["delivery"][0]

    # "like" removes it again
    client.post("/checkout", data={"c_step": "summary", "ca_deliveryoption": "like"})
    assert "delivery" not in client.get("/api/basket").json["addresses"]


def test_new_delivery_disabled(app, client):
    app.config["STOREFRONT"]["client/html/checkout/standard/address/delivery/disable-new"] = True
    r = client.post("/checkout", data={"c_step": "summary", "ca_deliveryoption": "null"})

    assert b"Adding a new delivery address is not allowed" in r.data


# CHECKOUT-006: terms must be accepted
def test_terms_not_accepted(app, client, product_ids):
    _fill_basket(client, product_ids)
    client.post("/checkout", data={"c_step": "summary", "ca_billingoption": "null", **_billing()})

    r = client.post("/checkout", data={"c_step": "process", "cs_option_terms": "1", "cs_order": "1"})

    assert b"Please accept the terms and conditions" in r.data
    assert b"checkout-standard-summary-option-terms error" in r.data
    with app.app_context():
        assert Order.query.count() == 0


# CHECKOUT-007: no order without payment address or products
def test_order_needs_payment_address(client, product_ids):
    _fill_basket(client, product_ids)
    r = _order(client)

    assert b"Please enter a payment address" in r.data
    assert b"checkout-standard-address-billing" in r.data


def test_order_needs_products(client):
    client.post("/checkout", data={"c_step": "summary", "ca_billingoption": "null", **_billing()})
    r = _order(client)

    assert b"The basket is empty" in r.data


def test_order_out_of_stock(app, client, product_ids):
    _fill_basket(client, product_ids, quantity=5)
    client.post("/checkout", data={"c_step": "summary", "ca_billingoption": "null", **_billing()})
    with app.app_context():
        db.session.get(Product, product_ids["BOX-001"]).stock_qty = 1
        db.session.commit()

    r = _order(client)
    assert b"Not enough stock" in r.data
    with app.app_context():
        assert Order.query.count() == 0


# CHECKOUT-008: customers use their stored addresses
def test_customer_order(app, client_logged_in, product_ids):
    client = client_logged_in
    me = client.get("/api/users/me").json
    address_id = me["delivery_addresses"][0]["customer.address.id"]
    _fill_basket(client, product_ids, quantity=1)

    r = client.get("/checkout?c_step=address")
    assert f'name="ca_billingoption" value="{me["id"]}"'.encode() in r.data
    assert f'name="ca_deliveryoption" value="{address_id}"'.encode() in r.data
    assert b"Harbour Road 7" in r.data

    r = client.post("/checkout", data={
        "c_step": "summary",
        "ca_billingoption": str(me["id"]),
        **_billing(f"ca_billing_{me['id']}", firstname="Demo", lastname="Customer", telephone="+49 30 123"),
        "ca_deliveryoption": str(address_id),
    })
    assert b"error-list" not in r.data

    addresses = client.get("/api/basket").json["addresses"]
    assert addresses["payment"][0]["order.address.addressid"] == str(me["id"])
    assert addresses["payment"][0]["order.address.telephone"] == "+49 30 123"
    assert addresses["delivery"][0]["order.address.city"] == "Hamburg"
    assert addresses["delivery"][0]["order.address.addressid"] == str(address_id)

    # the customer record gets the new telephone number
    assert client.get("/api/users/me").json["address"]["customer.telephone"] == "+49 30 123"

    r = _order(client)
    assert b"Thank you for your order" in r.data

    r = client.get("/account/history")
    assert b"history-item" in r.data
    assert b"Hamburg" in r.data
    assert b"Classic Gift Box" in r.data


def test_foreign_billing_option(client_logged_in):
    r = client_logged_in.post("/checkout", data={"c_step": "summary", "ca_billingoption": "9999"})
    assert b"Payment address" in r.data
    assert b"not available" in r.data


def test_delete_stored_delivery_address(app, client_logged_in):
    me = client_logged_in.get("/api/users/me").json
    address_id = me["delivery_addresses"][0]["customer.address.id"]

    r = client_logged_in.post("/checkout", data={"c_step": "address", "ca_delivery_delete": str(address_id)})

    assert b"Delivery address deleted successfully" in r.data
    assert client_logged_in.get("/api/users/me").json["delivery_addresses"] == []


# CHECKOUT-009: payment status updates pushed by the provider
SECRET = "push-secret"


def _create_order(app):
    app.config["STOREFRONT"]["client/html/checkout/update/manual/secret"] = SECRET
    with app.app_context():
        order = Order(currency_id="EUR", total_cents=100)
        db.session.add(order)
        db.session.commit()
        return order.id


def _status(app, order_id):
    with app.app_context():
        return db.session.get(Order, order_id).status_payment


def test_update_push(app, client):
    order_id = _create_order(app)
    signature = sign_push(SECRET, order_id, "RECEIVED")
    r = client.post("/checkout/update?code=manual",
                    data={"orderid": str(order_id), "status": "received", "signature": signature})

    assert r.status_code == 200
    assert r.get_data(as_text=True) == "OK"
    assert _status(app, order_id) == "RECEIVED"

    # the shared secret itself is accepted as well
    r = client.post("/checkout/update?code=manual",
                    data={"orderid": str(order_id), "status": "AUTHORIZED", "signature": SECRET})
    assert r.status_code == 200
    assert _status(app, order_id) == "AUTHORIZED"


def test_update_push_errors(app, client):
    order_id = _create_order(app)

    r = client.post("/checkout/update?code=nothere", data={"orderid": str(order_id), "status": "RECEIVED"})
    assert r.status_code == 500
    assert "not available" in r.get_data(as_text=True)

    r = client.post("/checkout/update?code=manual", data={"orderid": str(order_id), "status": "PAID"})
    assert r.status_code == 500
    assert "Invalid payment status" in r.get_data(as_text=True)

    signature = sign_push(SECRET, 9999, "RECEIVED")
    r = client.get(f"/checkout/update?code=manual&status=RECEIVED&orderid=9999&signature={signature}")
    assert r.status_code == 500
    assert "not found" in r.get_data(as_text=True)

    assert _status(app, order_id) == "PENDING"


def test_update_push_without_signature(app, client):
    order_id = _create_order(app)

    r = client.get(f"/checkout/update?code=manual&status=RECEIVED&orderid={order_id}")

    assert r.status_code == 500
    assert "Invalid signature" in r.get_data(as_text=True)
    assert _status(app, order_id) == "PENDING"


def test_update_push_wrong_signature(app, client):
    order_id = _create_order(app)

    # signed for another status, another order and with another secret
    for signature in (sign_push(SECRET, order_id, "REFUND"), sign_push(SECRET, order_id + 1, "RECEIVED"),
                      sign_push("other", order_id, "RECEIVED"), "push-secre", "ünknown"):
        r = client.post("/checkout/update?code=manual",
                        data={"orderid": str(order_id), "status": "RECEIVED", "signature": signature})
        assert r.status_code == 500
        assert "Invalid signature" in r.get_data(as_text=True)

    assert _status(app, order_id) == "PENDING"


def test_update_push_needs_configured_secret(app, client):
    order_id = _create_order(app)
    app.config["STOREFRONT"]["client/html/checkout/update/manual/secret"] = ""

    r = client.post("/checkout/update?code=manual",
                    data={"orderid": str(order_id), "status": "RECEIVED", "signature": ""})

    assert r.status_code == 500
    assert _status(app, order_id) == "PENDING"


# CHECKOUT-010: form posts need the CSRF token when enabled
def test_csrf(app, client, product_ids):
    app.config["CSRF_ENABLED"] = True

    r = client.post("/basket", data={"b_action": "add", "b_prodid": str(product_ids["BOX-001"])})
    assert r.status_code == 400

    with client.session_transaction() as sess:
        sess["_csrf_token"] = "token"
    r = client.post("/basket", data={"b_action": "add", "b_prodid": str(product_ids["BOX-001"]), "_csrf": "token"})
    assert r.status_code == 302

    # JSON API and provider pushes are exempt
    assert client.post("/api/basket/products", json={"product_id": product_ids["BOX-001"]}).status_code == 201
    assert client.post("/checkout/update?code=nothere").status_code == 500


# CHECKOUT-011: one page checkout shows the listed steps together
def test_onepage_steps(app, client, product_ids):
    app.config["STOREFRONT"]["client/html/checkout/standard/onepage"] = ["address", "summary"]
    _fill_basket(client, product_ids)

    r = client.get("/checkout")

    assert b"checkout-standard-address-billing" in r.data
    assert b"checkout-standard-summary" in r.data
    assert b'<li class="step current address">' in r.data
    assert b'<li class="step process">' in r.data
    assert b'<li class="step summary">' not in r.data
    assert b'<li class="step active' not in r.data
    assert b'name="c_step" value="process"' in r.data

    # any step of the page selects the first one
    r = client.get("/checkout?c_step=summary")
    assert b'<li class="step current address">' in r.data


# CHECKOUT-012: the back link of the first step leads to the basket
def test_back_url(client):
    r = client.get("/checkout?c_step=address")
    assert b'class="btn back" href="/basket"' in r.data

    r = client.get("/checkout?c_step=summary")
    assert b'class="btn back" href="/checkout?c_step=address"' in r.data
    assert b'<li class="step active address">' in r.data
