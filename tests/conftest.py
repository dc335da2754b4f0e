import pytest

from storefront.app.cli import seed_demo_data
from storefront.app.config import Config, STOREFRONT_DEFAULTS
from storefront.app.extensions import db
from storefront.app.factory import create_app
from storefront.app.models import Product

class TestConfig(Config):
    TESTING = True
    # in-memory SQLite, one database per app
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CSRF_ENABLED = False


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    # settings per app so tests can change them freely
    app.config["STOREFRONT"] = dict(STOREFRONT_DEFAULTS)

    with app.app_context():
        db.create_all()
        seed_demo_data()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client

def login(client, email="demo@example.com", password="Password123!"):
    return client.post("/api/auth/login", json={"email": email, "password": password})

@pytest.fixture()
def client_logged_in(client):
    response = login(client)
    assert response.status_code == 200
    return client

@pytest.fixture()
def product_ids(app):
    with app.app_context():
        return {p.sku: p.id for p in Product.query.all()}
