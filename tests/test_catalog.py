import pytest

from storefront.app.models import Attribute, Catalog, Supplier


@pytest.fixture()
def catalog_ids(app):
    with app.app_context():
        ids = {c.code: c.id for c in Catalog.query.all()}
        ids.update({f"attr-{a.code}": a.id for a in Attribute.query.all()})
        ids["supplier"] = Supplier.query.first().id
        return ids


# CATALOG-001: home page shows the promotions of the categories
def test_home(client):
    r = client.get("/")

    assert r.status_code == 200
    assert b"Gift boxes" in r.data
    assert b"Classic Gift Box" in r.data
    assert b"Wicker Basket" in r.data
    assert b"Chocolate Fillers" not in r.data
    assert b'name="stock-url"' in r.data


# CATALOG-002: list without a category shows all products
def test_list_all(client):
    r = client.get("/catalog")

    assert r.status_code == 200
    for label in (b"Classic Gift Box", b"Wicker Basket", b"Chocolate Fillers"):
        assert label in r.data
    assert b"catalog-filter" in r.data


# CATALOG-003: list of one category with promotions
def test_list_category(client, catalog_ids):
    r = client.get(f"/catalog?f_catid={catalog_ids['boxes']}")

    assert r.status_code == 200
    assert b"<h1>Gift boxes</h1>" in r.data
    assert b"Chocolate Fillers" in r.data
    assert b"Wicker Basket" not in r.data
    assert b"catalog-list-promo" in r.data


# CATALOG-004: the parent category includes the subcategories with levels "tree"
def test_list_category_levels(app, client, catalog_ids):
    r = client.get(f"/catalog?f_catid={catalog_ids['home']}")
    assert b"list-empty" in r.data

    app.config["STOREFRONT"]["client/html/catalog/lists/levels"] = 3
    r = client.get(f"/catalog?f_catid={catalog_ids['home']}&l_size=10")
    assert b"Wicker Basket" in r.data
    assert b"Classic Gift Box" in r.data


# CATALOG-005: text, attribute, supplier and price filters
def test_list_filters(client, catalog_ids):
    r = client.get("/catalog?f_search=wicker")
    assert b"Wicker Basket" in r.data
    assert b"Classic Gift Box" not in r.data

    r = client.get(f"/catalog?f_attrid[]={catalog_ids['attr-blue']}")
    assert b"Wicker Basket" in r.data
    assert b"Chocolate Fillers" in r.data
    assert b"Classic Gift Box" not in r.data

    r = client.get(f"/catalog?f_supid={catalog_ids['supplier']}")
    assert b"Chocolate Fillers" not in r.data

    r = client.get("/catalog?f_price=20")
    assert b"Chocolate Fillers" in r.data
    assert b"Classic Gift Box" not in r.data


# CATALOG-006: pages of the product list
def test_list_pagination(client):
    r = client.get("/catalog?f_sort=price&l_size=1&l_page=2")

    assert b"2 / 3" in r.data
    assert b"Classic Gift Box" in r.data
    assert b"Wicker Basket" not in r.data
    assert b'class="prev"' in r.data
    assert b'class="next"' in r.data


# CATALOG-007: errors end up in the list error list
def test_list_errors(client):
    r = client.get("/catalog?f_sort=bogus")
    assert r.status_code == 200
    assert b"Invalid sort key" in r.data

    r = client.get("/catalog?f_catid=9999")
    assert r.status_code == 200
    assert b"Catalog node" in r.data


# CATALOG-008: filter sections and the count script link
def test_filter(client, catalog_ids):
    r = client.get(f"/catalog?f_catid={catalog_ids['boxes']}")

    assert b"catalog-filter-tree" in r.data
    assert b"catalog-filter-search" in r.data
    assert b"catalog-filter-supplier" in r.data
    assert b"catalog-filter-attribute" in r.data
    assert b"/catalog/count?" in r.data
    # the filter header is only added once per page
    assert r.data.count(b"catalog-filter.css") == 1


def test_filter_count_disabled(app, client):
    app.config["STOREFRONT"]["client/html/catalog/count/enable"] = False
    r = client.get("/catalog")
    assert b"/catalog/count" not in r.data


# CATALOG-009: product counts as JavaScript
def test_count(client, catalog_ids):
    r = client.get("/catalog/count")

    assert r.status_code == 200
    assert r.mimetype == "application/javascript"
    text = r.get_data(as_text=True)
    assert text.startswith("var catalogCounts = {")
    assert f'"{catalog_ids["boxes"]}": 2' in text
    assert f'"{catalog_ids["supplier"]}": 2' in text
    assert f'"{catalog_ids["attr-red"]}": 2' in text


def test_count_part_disabled(app, client):
    app.config["STOREFRONT"]["client/html/catalog/count/supplier/aggregate"] = False
    text = client.get("/catalog/count").get_data(as_text=True)

    assert '"tree":' in text
    assert '"supplier":' not in text


# CATALOG-010: stock levels
def test_stock(client, product_ids):
    r = client.get(f"/catalog/stock?st_pid[]={product_ids['BOX-001']}&st_pid[]=abc")

    assert r.status_code == 200
    stock = r.json["stock"]
    assert list(stock) == [str(product_ids["BOX-001"])]
    assert stock[str(product_ids["BOX-001"])]["stock_qty"] == 100
    assert stock[str(product_ids["BOX-001"])]["available"] is True

    assert client.get("/catalog/stock").json == {"stock": {}}
