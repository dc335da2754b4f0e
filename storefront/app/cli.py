from __future__ import annotations

import click
from flask import Blueprint
from werkzeug.security import generate_password_hash

from storefront.app.extensions import cache, db
from storefront.app.models import (
    Attribute,
    Catalog,
    CatalogProduct,
    Customer,
    CustomerAddress,
    Locale,
    Product,
    Supplier,
)

cli_bp = Blueprint("cli", __name__, cli_group=None)


def seed_demo_data() -> None:
    """Creates locales, a small catalog and a demo customer.

    Safe to run multiple times; every part is skipped when it exists.
    """
    if Locale.query.count() == 0:
        db.session.add_all([
            Locale(language_id="en", currency_id="EUR", position=0),
            Locale(language_id="de", currency_id="EUR", position=1),
        ])

    if not Customer.query.filter_by(code="demo@example.com").first():
        customer = Customer(
            code="demo@example.com",
            password_hash=generate_password_hash("Password123!"),
            salutation="ms",
            firstname="Demo",
            lastname="Customer",
            address1="Main Street 1",
            postal="10115",
            city="Berlin",
            countryid="DE",
            languageid="en",
            email="demo@example.com",
        )
        customer.addresses.append(CustomerAddress(
            firstname="Demo",
            lastname="Customer",
            address1="Harbour Road 7",
            postal="20095",
            city="Hamburg",
            countryid="DE",
            languageid="en",
            position=0,
        ))
        db.session.add(customer)

    if Catalog.query.count() == 0:
        root = Catalog(code="home", label="Home", position=0)
        boxes = Catalog(code="boxes", label="Gift boxes", position=0, parent=root)
        baskets = Catalog(code="baskets", label="Baskets", position=1, parent=root)

        supplier = Supplier(code="demo", label="Demo supplier")
        red = Attribute(type="color", code="red", label="Red", position=0)
        blue = Attribute(type="color", code="blue", label="Blue", position=1)

        box = Product(sku="BOX-001", label="Classic Gift Box", description="A sturdy box.",
                      price_cents=2999, stock_qty=100, supplier=supplier, attributes=[red])
        basket = Product(sku="BASK-001", label="Wicker Basket", description="A wicker basket.",
                         price_cents=4999, stock_qty=80, supplier=supplier, attributes=[blue])
        filler = Product(sku="FILL-001", label="Chocolate Fillers", description="Assorted chocolates.",
                         price_cents=1299, stock_qty=300, attributes=[red, blue])

        db.session.add_all([root, boxes, baskets, box, basket, filler])
        db.session.add_all([
            CatalogProduct(catalog=boxes, product=box, position=0),
            CatalogProduct(catalog=boxes, product=filler, position=1),
            CatalogProduct(catalog=baskets, product=basket, position=0),
            CatalogProduct(catalog=boxes, product=box, listtype="promotion", position=0),
            CatalogProduct(catalog=baskets, product=basket, listtype="promotion", position=0),
        ])

    db.session.commit()


@cli_bp.cli.command("seed")
def seed_data() -> None:
    """Seed minimal dev data."""
    seed_demo_data()
    print("Seed complete. Login: demo@example.com / Password123!")


@cli_bp.cli.command("cache-clear")
@click.argument("tags", nargs=-1)
def cache_clear(tags) -> None:
    """Remove cached HTML, only the entries with the given TAGS if any."""
    count = cache.delete_by_tags(tags) if tags else cache.clear()
    print(f"Removed {count} cache entries.")
