"""Product search and catalog tree access for the catalog clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import func, or_, select

from storefront.app.common.errors import ControllerError, DomainError
from storefront.app.extensions import db
from storefront.app.models import Attribute, Catalog, CatalogProduct, Product, Supplier, product_attributes

LEVEL_ONE = 1
LEVEL_LIST = 2
LEVEL_TREE = 3

SORT_KEYS = ("relevance", "name", "-name", "price", "-price", "ctime", "-ctime")


def _ids(values) -> List[int]:
    if values is None or values == "":
        return []
    if not isinstance(values, (list, tuple, set)):
        values = [values]
    result = []
    for value in values:
        try:
            result.append(int(value))
        except (TypeError, ValueError):
            continue
    return result


class ProductController:
    def __init__(self, context):
        self.context = context
        self._conditions: list = []
        self._catalog_ids: List[int] = []
        self._listtype = "default"
        self._sort: Optional[str] = None
        self._start = 0
        self._size = 100
        self._domains: List[str] = []

    def uses(self, domains: Iterable[str]) -> "ProductController":
        self._domains = list(domains)
        return self

    def category(self, ids, listtype: str = "default", level: int = LEVEL_ONE) -> "ProductController":
        """Limits to products listed in the catalogs; deeper levels add the subcategories."""
        ids = _ids(ids)
        if not ids:
            return self
        if level != LEVEL_ONE:
            ids = _descendants(ids, depth=1 if level == LEVEL_LIST else None)

        self._catalog_ids = ids
        self._listtype = listtype
        stmt = select(CatalogProduct.product_id).where(
            CatalogProduct.catalog_id.in_(ids), CatalogProduct.listtype == listtype
        )
        self._conditions.append(Product.id.in_(stmt))
        return self

    def supplier(self, ids) -> "ProductController":
        ids = _ids(ids)
        if ids:
            self._conditions.append(Product.supplier_id.in_(ids))
        return self

    def allof(self, attr_ids) -> "ProductController":
        for attr_id in _ids(attr_ids):
            stmt = select(product_attributes.c.product_id).where(product_attributes.c.attribute_id == attr_id)
            self._conditions.append(Product.id.in_(stmt))
        return self

    def oneof(self, attr_ids) -> "ProductController":
        ids = _ids(attr_ids)
        if ids:
            stmt = select(product_attributes.c.product_id).where(product_attributes.c.attribute_id.in_(ids))
            self._conditions.append(Product.id.in_(stmt))
        return self

    def text(self, term: Optional[str]) -> "ProductController":
        term = (term or "").strip()
        if term:
            like = f"%{term}%"
            self._conditions.append(
                or_(Product.label.ilike(like), Product.description.ilike(like), Product.sku.ilike(like))
            )
        return self

    def price(self, max_value) -> "ProductController":
        if max_value in (None, ""):
            return self
        try:
            cents = int(round(float(max_value) * 100))
        except (TypeError, ValueError):
            raise ControllerError(f'Invalid price "{max_value}"') from None
        self._conditions.append(Product.price_cents <= cents)
        return self

    def slice(self, start: int, size: int) -> "ProductController":
        self._start = max(int(start), 0)
        self._size = max(int(size), 0)
        return self

    def sort(self, key: Optional[str] = None) -> "ProductController":
        if key and key not in SORT_KEYS:
            raise ControllerError(f'Invalid sort key "{key}"')
        self._sort = key or None
        return self

    def _filtered(self):
        now = datetime.utcnow()
        query = Product.query.filter(
            Product.is_active.is_(True),
            or_(Product.start_date.is_(None), Product.start_date <= now),
            or_(Product.end_date.is_(None), Product.end_date >= now),
        )
        for cond in self._conditions:
            query = query.filter(cond)
        return query

    def search(self) -> List[Product]:
        query = self._filtered()

        if self._sort == "relevance" and self._catalog_ids:
            pos = (
                db.session.query(CatalogProduct.product_id, func.min(CatalogProduct.position).label("pos"))
                .filter(CatalogProduct.catalog_id.in_(self._catalog_ids), CatalogProduct.listtype == self._listtype)
                .group_by(CatalogProduct.product_id)
                .subquery()
            )
            query = query.join(pos, pos.c.product_id == Product.id).order_by(pos.c.pos, Product.id)
        elif self._sort in ("name", "-name"):
            query = query.order_by(Product.label.desc() if self._sort[0] == "-" else Product.label, Product.id)
        elif self._sort in ("price", "-price"):
            query = query.order_by(
                Product.price_cents.desc() if self._sort[0] == "-" else Product.price_cents, Product.id
            )
        elif self._sort in ("ctime", "-ctime"):
            query = query.order_by(
                Product.created_at.desc() if self._sort[0] == "-" else Product.created_at, Product.id
            )
        else:
            query = query.order_by(Product.id)

        return query.offset(self._start).limit(self._size).all()

    def aggregate(self, key: str) -> Dict[int, int]:
        """Number of matching products per catalog, supplier or attribute id."""
        ids = self._filtered().with_entities(Product.id).statement

        if key == "index.catalog.id":
            col = CatalogProduct.catalog_id
            query = (
                db.session.query(col, func.count(func.distinct(CatalogProduct.product_id)))
                .filter(CatalogProduct.product_id.in_(ids), CatalogProduct.listtype == "default")
            )
        elif key == "index.supplier.id":
            col = Product.supplier_id
            query = db.session.query(col, func.count(Product.id)).filter(
                Product.id.in_(ids), Product.supplier_id.isnot(None)
            )
        elif key == "index.attribute.id":
            col = product_attributes.c.attribute_id
            query = db.session.query(col, func.count(product_attributes.c.product_id)).filter(
                product_attributes.c.product_id.in_(ids)
            )
        else:
            raise ControllerError(f'Unknown aggregation key "{key}"')

        return {int(id): int(count) for id, count in query.group_by(col).all()}

    def total(self) -> int:
        return self._filtered().count()

    def max_price(self) -> int:
        """Highest price in cents among the matching products."""
        value = self._filtered().with_entities(func.max(Product.price_cents)).scalar()
        return int(value or 0)


@dataclass
class TreeNode:
    """Catalog node with its children loaded up to the requested level."""

    item: Catalog
    children: List["TreeNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.item.id

    @property
    def code(self) -> str:
        return self.item.code

    @property
    def label(self) -> str:
        return self.item.label

    def get_products(self, listtype: str = "default") -> List[Product]:
        return self.item.get_products(listtype)

    def walk(self) -> Iterator["TreeNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


class CatalogController:
    def __init__(self, context):
        self.context = context
        self._root: Optional[int] = None
        self._domains: List[str] = []

    def root(self, id: Any) -> "CatalogController":
        ids = _ids(id)
        self._root = ids[0] if ids else None
        return self

    def uses(self, domains: Iterable[str]) -> "CatalogController":
        self._domains = list(domains)
        return self

    def get_tree(self, level: int = LEVEL_TREE) -> Optional[TreeNode]:
        if self._root is not None:
            item = db.session.get(Catalog, self._root)
            if item is None:
                raise DomainError(f'Catalog node "{self._root}" not found')
        else:
            item = Catalog.query.filter(Catalog.parent_id.is_(None)).order_by(Catalog.position, Catalog.id).first()
            if item is None:
                return None

        depth = {LEVEL_ONE: 0, LEVEL_LIST: 1}.get(level)
        return _build(item, depth)


def _build(item: Catalog, depth: Optional[int]) -> TreeNode:
    node = TreeNode(item)
    if depth is None or depth > 0:
        node.children = [_build(child, None if depth is None else depth - 1) for child in item.children]
    return node


def _descendants(ids: List[int], depth: Optional[int]) -> List[int]:
    result = list(ids)
    current = list(ids)
    while current and (depth is None or depth > 0):
        current = [
            row[0] for row in db.session.query(Catalog.id).filter(Catalog.parent_id.in_(current)).all()
            if row[0] not in result
        ]
        result.extend(current)
        depth = None if depth is None else depth - 1
    return result


class SupplierController:
    def __init__(self, context):
        self.context = context

    def search(self) -> List[Supplier]:
        return Supplier.query.order_by(Supplier.label, Supplier.id).all()


class AttributeController:
    def __init__(self, context):
        self.context = context
        self._types: List[str] = []

    def type(self, types: Iterable[str]) -> "AttributeController":
        self._types = list(types)
        return self

    def search(self) -> List[Attribute]:
        query = Attribute.query
        if self._types:
            query = query.filter(Attribute.type.in_(self._types))
        return query.order_by(Attribute.type, Attribute.position, Attribute.id).all()
