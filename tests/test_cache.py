from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import login
from storefront.app.extensions import cache, db
from storefront.app.html.cache import cache_key
from storefront.app.models import CacheEntry, Product


def test_cache_key_depends_on_all_parts():
    assert cache_key(client="a", uid="") == cache_key(uid="", client="a")
    assert cache_key(client="a", uid="") != cache_key(client="a", uid="1")


def test_set_get_and_expire(app):
    with app.app_context():
        cache.set("k1", "<p>1</p>", ["product-1"])
        cache.set("k2", "<p>2</p>", [], expire=datetime.utcnow() - timedelta(seconds=1))

        assert cache.get("k1") == "<p>1</p>"
        assert cache.get("k2") is None
        assert cache.get("nothere") is None

        cache.set("k1", "<p>new</p>", ["product-2"])
        assert cache.get("k1") == "<p>new</p>"


def test_delete_by_tags(app):
    with app.app_context():
        cache.set("k1", "1", ["product-1", "catalog"])
        cache.set("k2", "2", ["product-2"])
        cache.set("k3", "3", [])

        assert cache.delete_by_tags(["product-1"]) == 1
        assert cache.get("k1") is None
        assert cache.get("k2") == "2"
        assert cache.delete_by_tags([]) == 0

        cache.delete("k2")
        assert cache.get("k2") is None
        assert cache.clear() == 1


def test_pages_are_cached_for_guests(app, client):
    client.get("/")
    client.get("/catalog")

    with app.app_context():
        count = CacheEntry.query.count()
        assert count > 0
        tags = {t.name for entry in CacheEntry.query.all() for t in entry.tags}
        assert "catalog" in tags

    # served from the cache
    r = client.get("/")
    assert r.status_code == 200
    assert b"Classic Gift Box" in r.data


def test_no_cache_for_customers(app, client):
    login(client)
    client.get("/")

    with app.app_context():
        assert CacheEntry.query.count() == 0


def test_cache_disabled_by_setting(app, client):
    app.config["STOREFRONT"]["client/html/common/cache/enable"] = False
    client.get("/")

    with app.app_context():
        assert CacheEntry.query.count() == 0


def test_cache_clear_command(app, client):
    client.get("/")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["cache-clear", "catalog"])
    assert result.exit_code == 0
    assert "Removed" in result.output

    result = runner.invoke(args=["cache-clear"])
    assert result.exit_code == 0

    with app.app_context():
        assert CacheEntry.query.count() == 0


# CACHE-001: entries expire with the earliest end date of the products shown
def test_expire_from_product_end_date(app, client, product_ids):
    end = (datetime.utcnow() + timedelta(days=10)).replace(microsecond=0)
    with app.app_context():
        db.session.get(Product, product_ids["BOX-001"]).end_date = end
        db.session.get(Product, product_ids["BASK-001"]).end_date = end + timedelta(days=5)
        db.session.commit()

    client.get("/catalog")

    with app.app_context():
        entries = CacheEntry.query.all()
        assert entries
        assert end in {entry.expire for entry in entries}
        assert end + timedelta(days=5) not in {entry.expire for entry in entries}


# CACHE-002: tags per record by default, domain names only with "tag-all"
def test_tags_per_record(app, client, product_ids):
    client.get("/catalog")

    with app.app_context():
        tags = {t.name for entry in CacheEntry.query.all() for t in entry.tags}
    assert f"product-{product_ids['BOX-001']}" in tags


def test_tag_all_uses_domain_names(app, client):
    app.config["STOREFRONT"]["client/html/common/cache/tag-all"] = True
    client.get("/")
    client.get("/catalog")

    with app.app_context():
        tags = {t.name for entry in CacheEntry.query.all() for t in entry.tags}
    assert "product" in tags
    assert "catalog" in tags
    assert tags <= {"product", "catalog", "supplier", "attribute"}


# CACHE-003: a failed write leaves the session usable
def test_failed_set_rolls_back(app):
    with app.app_context():
        with pytest.raises(IntegrityError):
            cache.set("k1", None, ["product-1"])

        assert cache.get("k1") is None
        cache.set("k2", "2")
        assert cache.get("k2") == "2"
