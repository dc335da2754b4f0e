from storefront.app.models import Product


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["status"] == "ok"


def test_api_index(client):
    r = client.get("/api")
    assert r.status_code == 200
    assert "endpoints" in r.json
    assert "basket" in r.json["endpoints"]


def test_request_id_header_is_kept(client):
    r = client.get("/api/basket", headers={"X-Request-ID": "abc-123"})
    assert r.status_code == 200


def test_unknown_api_path_returns_json(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json["error"]["code"] == "http_error"


def test_unknown_page_renders_error_template(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert b"error-page" in r.data


def test_seed_command_is_repeatable(app):
    result = app.test_cli_runner().invoke(args=["seed"])

    assert result.exit_code == 0
    assert "Seed complete" in result.output

    with app.app_context():
        assert Product.query.count() == 3
