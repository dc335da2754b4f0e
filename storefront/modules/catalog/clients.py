"""HTML clients of the catalog pages: filter, counts, home and product lists."""

from __future__ import annotations

import math
from collections import OrderedDict
from typing import Any, Iterable, List, Optional

from flask import g

from storefront.app.controller.product import (
    LEVEL_LIST,
    LEVEL_ONE,
    LEVEL_TREE,
    AttributeController,
    CatalogController,
    ProductController,
    SupplierController,
)
from storefront.app.html.base import HtmlClient
from storefront.app.html.factory import register

# Filter params that are part of the cache key; any other f_* param disables caching.
FILTER_PREFIXES = ("f_name", "f_catid", "f_supid")
COUNTED_PARTS = {"tree", "supplier", "attribute"}


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def product_controller(context, view, catid: Any = None, level: Optional[int] = None) -> ProductController:
    """Product search restricted by the filter params of the request."""
    config = context.config
    if catid is None:
        catid = view.param("f_catid", config.get("client/html/catalog/filter/tree/startid"))
    if level is None:
        level = config.get("client/html/catalog/lists/levels", LEVEL_ONE)

    cntl = (
        ProductController(context)
        .category(catid, "default", level)
        .supplier(view.param("f_supid", []))
        .allof(view.param("f_attrid", []))
        .oneof(view.param("f_optid", []))
        .text(view.param("f_search"))
        .price(view.param("f_price"))
    )
    oneid = view.param("f_oneid", {})
    if isinstance(oneid, dict):
        for ids in oneid.values():
            cntl.oneof(ids)
    return cntl


def stock_url(view, products: Iterable) -> str:
    ids = sorted({p.id for p in products})
    controller = view.config("client/html/catalog/stock/url/controller", "catalog")
    action = view.config("client/html/catalog/stock/url/action", "stock")
    return view.url(controller, action, {"st_pid": ids})


@register("catalog/filter")
class CatalogFilter(HtmlClient):
    sub_part_names = ["tree", "search", "price", "supplier", "attribute"]
    template_body = "catalog/filter/body"
    template_header = "catalog/filter/header"
    view_prefix = "filter"
    root = True

    def _cacheable(self) -> bool:
        return not any(
            key.startswith("f_") and key not in FILTER_PREFIXES for key in self.view.param()
        )

    def body(self, uid: str = "") -> str:
        return self.render_cached("body", uid, FILTER_PREFIXES, use_cache=self._cacheable())

    def header(self, uid: str = "") -> str:
        # several filters on one page share the same header
        if g.get("catalog_filter_header"):
            return ""
        html = self.render_cached("header", uid, FILTER_PREFIXES, use_cache=self._cacheable())
        g.catalog_filter_header = True
        return html

    def modify(self, content: str, uid: str) -> str:
        content = super().modify(content, uid)
        return self.replace_section(content, self.view.csrf_field(), "catalog.filter.csrf")

    def data(self, view, tags: List[str], expire=None):
        config = self.context.config
        if config.get("client/html/catalog/count/enable", True) and COUNTED_PARTS & set(self.sub_client_names()):
            params = self.get_client_params(view.param(), ["f_"])
            startid = config.get("client/html/catalog/filter/tree/startid")
            if startid:
                params["f_catid"] = startid
            for name in config.get("client/html/catalog/filter/remove-params", ["f_sort"]) or []:
                params.pop(name, None)

            view.filter_params = params
            view.filter_count_url = view.url(
                config.get("client/html/catalog/count/url/controller", "catalog"),
                config.get("client/html/catalog/count/url/action", "count"),
                params,
                **(config.get("client/html/catalog/count/url/config", {}) or {}),
            )
        return super().data(view, tags, expire)


@register("catalog/filter/tree")
class CatalogFilterTree(HtmlClient):
    template_body = "catalog/filter/tree-body"
    view_prefix = "tree"

    def data(self, view, tags: List[str], expire=None):
        startid = view.config("client/html/catalog/filter/tree/startid")
        tree = CatalogController(self.context).root(startid).get_tree(LEVEL_TREE)

        current = _int(view.param("f_catid"), 0)
        path = []
        if tree is not None:
            path = _tree_path(tree, current)
            expire = self.add_meta_items(tree, tags, expire)

        view.tree_catalog_tree = tree
        view.tree_catalog_path = path
        view.tree_current_id = current
        return super().data(view, tags, expire)


def _tree_path(node, target: int) -> list:
    if node.id == target:
        return [node]
    for child in node.children:
        path = _tree_path(child, target)
        if path:
            return [node] + path
    return []


@register("catalog/filter/search")
class CatalogFilterSearch(HtmlClient):
    template_body = "catalog/filter/search-body"
    view_prefix = "search"

    def data(self, view, tags: List[str], expire=None):
        view.search_text = view.param("f_search", "") or ""
        return super().data(view, tags, expire)


@register("catalog/filter/price")
class CatalogFilterPrice(HtmlClient):
    template_body = "catalog/filter/price-body"
    view_prefix = "price"

    def data(self, view, tags: List[str], expire=None):
        cents = ProductController(self.context).max_price()
        view.price_max = math.ceil(cents / 100) if cents else 0
        view.price_value = view.param("f_price", "") or ""
        return super().data(view, tags, expire)


@register("catalog/filter/supplier")
class CatalogFilterSupplier(HtmlClient):
    template_body = "catalog/filter/supplier-body"
    view_prefix = "supplier"

    def data(self, view, tags: List[str], expire=None):
        selected = view.param("f_supid", [])
        if not isinstance(selected, list):
            selected = [selected]

        view.supplier_list = SupplierController(self.context).search()
        view.supplier_selected = {_int(id, 0) for id in selected}
        expire = self.add_meta_items([], tags, expire, ["supplier"])
        return super().data(view, tags, expire)


@register("catalog/filter/attribute")
class CatalogFilterAttribute(HtmlClient):
    template_body = "catalog/filter/attribute-body"
    view_prefix = "attribute"

    def data(self, view, tags: List[str], expire=None):
        types = view.config("client/html/catalog/filter/attribute/types", []) or []
        attr_map: "OrderedDict[str, list]" = OrderedDict()
        for item in AttributeController(self.context).type(types).search():
            attr_map.setdefault(item.type, []).append(item)

        selected = view.param("f_attrid", [])
        if not isinstance(selected, list):
            selected = [selected]

        view.attribute_map = attr_map
        view.attribute_selected = {_int(id, 0) for id in selected}
        expire = self.add_meta_items([], tags, expire, ["attribute"])
        return super().data(view, tags, expire)


@register("catalog/count")
class CatalogCount(HtmlClient):
    """JavaScript with the number of products per category, supplier and attribute."""

    sub_part_names = ["tree", "supplier", "attribute"]
    template_body = "catalog/count/body"
    view_prefix = "count"
    root = True

    def body(self, uid: str = "") -> str:
        return self.render_cached("body", uid, ("f_",))


class _CountPart(HtmlClient):
    aggregate_key = ""
    level: Optional[int] = None

    def data(self, view, tags: List[str], expire=None):
        if view.config(self.config_key("aggregate"), True):
            cntl = product_controller(self.context, view, level=self.level)
            setattr(view, f"{self.view_prefix}_count_list", cntl.aggregate(self.aggregate_key))
        return super().data(view, tags, expire)


@register("catalog/count/tree")
class CatalogCountTree(_CountPart):
    template_body = "catalog/count/tree-body"
    view_prefix = "tree"
    aggregate_key = "index.catalog.id"
    level = LEVEL_TREE


@register("catalog/count/supplier")
class CatalogCountSupplier(_CountPart):
    template_body = "catalog/count/supplier-body"
    view_prefix = "supplier"
    aggregate_key = "index.supplier.id"


@register("catalog/count/attribute")
class CatalogCountAttribute(_CountPart):
    template_body = "catalog/count/attribute-body"
    view_prefix = "attribute"
    aggregate_key = "index.attribute.id"


@register("catalog/home")
class CatalogHome(HtmlClient):
    template_body = "catalog/home/body"
    template_header = "catalog/home/header"
    view_prefix = "home"
    root = True

    def body(self, uid: str = "") -> str:
        return self.render_cached("body", uid)

    def header(self, uid: str = "") -> str:
        return self.render_cached("header", uid)

    def modify(self, content: str, uid: str) -> str:
        content = super().modify(content, uid)
        return self.replace_section(content, self.view.csrf_field(), "catalog.lists.items.csrf")

    def data(self, view, tags: List[str], expire=None):
        tree = CatalogController(self.context).get_tree(LEVEL_LIST)
        products = []
        if tree is not None:
            products = list(tree.get_products("promotion"))
            for child in tree.children:
                products.extend(child.get_products("promotion"))

            if products and view.config("client/html/catalog/home/stock/enable", True):
                view.home_stock_url = stock_url(view, products)

            # domain tags clear the entry when products are added or removed, even in tag-all mode
            expire = self.add_meta_items(tree, tags, expire, ["catalog", "product"])

        view.home_tree = tree
        return super().data(view, tags, expire)


@register("catalog/lists")
class CatalogLists(HtmlClient):
    sub_part_names = ["promo", "items"]
    template_body = "catalog/lists/body"
    template_header = "catalog/lists/header"
    view_prefix = "list"
    root = True

    def body(self, uid: str = "") -> str:
        return self.render_cached("body", uid, ("f_", "l_"))

    def header(self, uid: str = "") -> str:
        return self.render_cached("header", uid, ("f_", "l_"))

    def modify(self, content: str, uid: str) -> str:
        content = super().modify(content, uid)
        return self.replace_section(content, self.view.csrf_field(), "catalog.lists.items.csrf")

    def data(self, view, tags: List[str], expire=None):
        config = self.context.config
        catid = view.param("f_catid") or config.get("client/html/catalog/lists/catid-default", "")
        if catid:
            view.list_current_cat_item = CatalogController(self.context).root(catid).get_tree(LEVEL_ONE)

        size = min(max(_int(view.param("l_size"), config.get("client/html/catalog/lists/size", 48)), 1), 100)
        page = max(_int(view.param("l_page"), 1), 1)
        sort = view.param("f_sort") or ("relevance" if catid else None)

        cntl = product_controller(self.context, view, catid=catid).sort(sort).slice((page - 1) * size, size)
        products = cntl.search()
        total = cntl.total()

        if products and config.get("client/html/catalog/lists/stock/enable", True):
            view.list_stock_url = stock_url(view, products)

        view.list_products = products
        view.list_product_total = total
        view.list_page_curr = page
        view.list_page_last = max(math.ceil(total / size), 1)
        view.list_params = self.get_client_params(view.param(), ["f_"])
        expire = self.add_meta_items(products, tags, expire)
        return super().data(view, tags, expire)


@register("catalog/lists/items")
class CatalogListsItems(HtmlClient):
    template_body = "catalog/lists/items-body"
    view_prefix = "items"


@register("catalog/lists/promo")
class CatalogListsPromo(HtmlClient):
    template_body = "catalog/lists/promo-body"
    template_header = "catalog/lists/promo-header"
    view_prefix = "promo"

    def data(self, view, tags: List[str], expire=None):
        config = self.context.config
        if "list_current_cat_item" in view and view.list_current_cat_item is not None:
            catid = view.list_current_cat_item.id
        else:
            catid = config.get("client/html/catalog/lists/catid-default", "")

        if catid:
            size = config.get("client/html/catalog/lists/promo/size", 6)
            level = config.get("client/html/catalog/lists/levels", LEVEL_ONE)
            products = (
                ProductController(self.context)
                .category(catid, "promotion", level)
                .sort("relevance")
                .slice(0, size)
                .search()
            )
            expire = self.add_meta_items(products, tags, expire)

            if products and config.get("client/html/catalog/lists/stock/enable", True):
                view.promo_stock_url = stock_url(view, products)
            view.promo_items = products

        return super().data(view, tags, expire)
