from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping
from sqlalchemy import UniqueConstraint, Index

from storefront.app.extensions import db

ADDRESS_FIELDS = (
    "company", "vatid", "salutation", "title", "firstname", "lastname",
    "address1", "address2", "address3", "postal", "city", "state",
    "countryid", "languageid", "telephone", "telefax", "mobile", "email", "website",
)

SALUTATION_COMPANY = "company"


class AddressMixin:
    """Address columns shared by customers, customer addresses and order addresses.

    Values are exchanged as flat dicts whose keys carry ``address_prefix``
    (``customer.``, ``customer.address.`` or ``order.address.``).
    """

    address_prefix = ""

    company = db.Column(db.String(100), nullable=False, default="")
    vatid = db.Column(db.String(32), nullable=False, default="")
    salutation = db.Column(db.String(8), nullable=False, default="")
    title = db.Column(db.String(64), nullable=False, default="")
    firstname = db.Column(db.String(64), nullable=False, default="")
    lastname = db.Column(db.String(64), nullable=False, default="")
    address1 = db.Column(db.String(200), nullable=False, default="")
    address2 = db.Column(db.String(200), nullable=False, default="")
    address3 = db.Column(db.String(200), nullable=False, default="")
    postal = db.Column(db.String(16), nullable=False, default="")
    city = db.Column(db.String(200), nullable=False, default="")
    state = db.Column(db.String(200), nullable=False, default="")
    countryid = db.Column(db.String(2), nullable=False, default="")
    languageid = db.Column(db.String(5), nullable=False, default="")
    telephone = db.Column(db.String(32), nullable=False, default="")
    telefax = db.Column(db.String(32), nullable=False, default="")
    mobile = db.Column(db.String(32), nullable=False, default="")
    email = db.Column(db.String(255), nullable=False, default="")
    website = db.Column(db.String(255), nullable=False, default="")

    def address_values(self) -> Dict[str, str]:
        return {name: getattr(self, name) or "" for name in ADDRESS_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return {self.address_prefix + name: value for name, value in self.address_values().items()}

    def from_dict(self, values: Mapping[str, Any]):
        """Sets all known address fields found in ``values``; keys may use any prefix."""
        for key, value in values.items():
            name = key.rsplit(".", 1)[-1]
            if name in ADDRESS_FIELDS and value is not None:
                setattr(self, name, str(value).strip())
        return self

    def copy_from(self, other: "AddressMixin"):
        for name, value in other.address_values().items():
            setattr(self, name, value)
        return self


class Customer(AddressMixin, db.Model):
    __tablename__ = "customers"
    address_prefix = "customer."

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    addresses = db.relationship(
        "CustomerAddress",
        backref="customer",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CustomerAddress.position",
    )
    orders = db.relationship("Order", backref="customer", lazy=True)

    def to_dict(self) -> Dict[str, Any]:
        values = super().to_dict()
        values["customer.id"] = self.id
        values["customer.code"] = self.code or ""
        return values

    def get_address_item(self, address_id) -> "CustomerAddress | None":
        for item in self.addresses:
            if str(item.id) == str(address_id):
                return item
        return None


class CustomerAddress(AddressMixin, db.Model):
    __tablename__ = "customer_addresses"
    address_prefix = "customer.address."

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> Dict[str, Any]:
        values = super().to_dict()
        values["customer.address.id"] = self.id
        values["customer.address.position"] = self.position
        return values


class Locale(db.Model):
    __tablename__ = "locales"

    id = db.Column(db.Integer, primary_key=True)
    language_id = db.Column(db.String(5), nullable=False)
    currency_id = db.Column(db.String(3), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("language_id", "currency_id", name="uq_locale_lang_currency"),
    )


class Catalog(db.Model):
    __tablename__ = "catalogs"

    id = db.Column(db.Integer, primary_key=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("catalogs.id"), nullable=True, index=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    label = db.Column(db.String(255), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    children = db.relationship(
        "Catalog",
        backref=db.backref("parent", remote_side=[id]),
        lazy=True,
        order_by="Catalog.position",
    )
    product_lists = db.relationship("CatalogProduct", backref="catalog", lazy=True, cascade="all, delete-orphan")

    def get_products(self, listtype: str = "default") -> list:
        lists = sorted((li for li in self.product_lists if li.listtype == listtype), key=lambda li: li.position)
        return [li.product for li in lists if li.product.is_available()]


class CatalogProduct(db.Model):
    __tablename__ = "catalog_products"

    id = db.Column(db.Integer, primary_key=True)
    catalog_id = db.Column(db.Integer, db.ForeignKey("catalogs.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    listtype = db.Column(db.String(32), nullable=False, default="default")  # default | promotion
    position = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", lazy="joined")

    __table_args__ = (
        UniqueConstraint("catalog_id", "product_id", "listtype", name="uq_catalog_product_list"),
    )


class Supplier(db.Model):
    __tablename__ = "suppliers"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    label = db.Column(db.String(255), nullable=False)


product_attributes = db.Table(
    "product_attributes",
    db.Column("product_id", db.Integer, db.ForeignKey("products.id"), primary_key=True),
    db.Column("attribute_id", db.Integer, db.ForeignKey("attributes.id"), primary_key=True),
)


class Attribute(db.Model):
    __tablename__ = "attributes"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False, index=True)  # color | size | ...
    code = db.Column(db.String(64), nullable=False)
    label = db.Column(db.String(255), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("type", "code", name="uq_attribute_type_code"),
    )


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    type = db.Column(db.String(32), nullable=False, default="default")  # default | select
    label = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=False)
    stock_qty = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(1024), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    supplier = db.relationship("Supplier", backref="products", lazy="joined")
    attributes = db.relationship("Attribute", secondary=product_attributes, lazy="selectin")

    def is_available(self, now: datetime | None = None) -> bool:
        now = now or datetime.utcnow()
        if not self.is_active:
            return False
        if self.start_date and self.start_date > now:
            return False
        if self.end_date and self.end_date < now:
            return False
        return True


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    status_payment = db.Column(db.String(30), nullable=False, default="PENDING")
    status_delivery = db.Column(db.String(30), nullable=False, default="PENDING")
    currency_id = db.Column(db.String(3), nullable=False, default="EUR")
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    addresses = db.relationship(
        "OrderAddress", backref="order", lazy=True, cascade="all, delete-orphan", order_by="OrderAddress.position"
    )
    products = db.relationship(
        "OrderProduct", backref="order", lazy=True, cascade="all, delete-orphan", order_by="OrderProduct.position"
    )

    def get_addresses(self, type: str) -> list:
        return [a for a in self.addresses if a.type == type]


class OrderAddress(AddressMixin, db.Model):
    __tablename__ = "order_addresses"
    address_prefix = "order.address."

    TYPE_PAYMENT = "payment"
    TYPE_DELIVERY = "delivery"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    type = db.Column(db.String(16), nullable=False, default="payment")
    position = db.Column(db.Integer, nullable=False, default=0)
    # id of the customer address it was copied from, if any
    addressid = db.Column(db.String(32), nullable=False, default="")

    __table_args__ = (
        Index("ix_order_addresses_order_type", "order_id", "type"),
    )

    def to_dict(self) -> Dict[str, Any]:
        values = super().to_dict()
        values["order.address.type"] = self.type or ""
        values["order.address.addressid"] = self.addressid or ""
        return values

    def from_dict(self, values: Mapping[str, Any]):
        super().from_dict(values)
        if values.get("order.address.addressid") is not None:
            self.addressid = str(values["order.address.addressid"])
        return self


class OrderProduct(db.Model):
    __tablename__ = "order_products"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    sku = db.Column(db.String(64), nullable=False)
    label = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)


class CacheEntry(db.Model):
    __tablename__ = "html_cache"

    id = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    expire = db.Column(db.DateTime, nullable=True, index=True)

    tags = db.relationship("CacheTag", backref="entry", lazy=True, cascade="all, delete-orphan")


class CacheTag(db.Model):
    __tablename__ = "html_cache_tags"

    entry_id = db.Column(db.String(64), db.ForeignKey("html_cache.id", ondelete="CASCADE"), primary_key=True)
    name = db.Column(db.String(255), primary_key=True, index=True)
