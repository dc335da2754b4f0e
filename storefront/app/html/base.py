"""Base class of all HTML clients.

A client renders one section of a storefront page. It may consist of
sub-clients (configured by name at ``client/html/<path>/subparts``) whose
output is rendered first and handed to the client's own template, so a tree
of clients builds up the page.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from storefront.app.common.errors import ClientError, ControllerError, DomainError
from storefront.app.controller.product import TreeNode
from storefront.app.html.cache import cache_key
from storefront.app.models import Catalog, Product


class HtmlClient:
    client_path = ""
    sub_part_path: Optional[str] = None
    sub_part_names: List[str] = []
    template_body: Optional[str] = None
    template_header: Optional[str] = None
    view_prefix = ""
    # page level clients fetch their view data themselves and catch errors
    root = False

    def __init__(self, context, view=None):
        self.context = context
        self._view = view
        self._object = self
        self._sub_clients: Optional[list] = None
        self._prepared = False
        self._tags: List[str] = []
        self._expire: Optional[datetime] = None

    # -- wiring -------------------------------------------------------------

    @property
    def view(self):
        if self._view is None:
            raise ClientError("No view available")
        return self._view

    def set_view(self, view):
        self._view = view
        self._prepared = False
        return self

    def set_object(self, obj):
        self._object = obj
        return self

    def object(self):
        """Outermost decorator around this client, or the client itself."""
        return self._object

    def config_key(self, suffix: str) -> str:
        return f"client/html/{self.client_path}/{suffix}"

    @property
    def error_list_name(self) -> str:
        return f"{self.view_prefix}_error_list"

    def sub_client_names(self) -> List[str]:
        path = self.sub_part_path or self.config_key("subparts")
        return list(self.context.config.get(path, self.sub_part_names) or [])

    def get_sub_client(self, type: str, name: Optional[str] = None):
        return self.create_sub_client(f"{self.client_path}/{type}", name)

    def create_sub_client(self, path: str, name: Optional[str] = None):
        from storefront.app.html.factory import create_client

        return create_client(self.context, path, name)

    def get_sub_clients(self) -> list:
        if self._sub_clients is None:
            self._sub_clients = [self.get_sub_client(name) for name in self.sub_client_names()]
        return self._sub_clients

    # -- rendering ----------------------------------------------------------

    def prepare_view(self):
        """Adds the view data once per client instance."""
        view = self.view
        if not self._prepared:
            self._expire = self.object().data(view, self._tags, self._expire)
            self._prepared = True
        return view

    def data(self, view, tags: List[str], expire: Optional[datetime] = None) -> Optional[datetime]:
        for client in self.get_sub_clients():
            expire = client.data(view, tags, expire)
        return expire

    def init(self) -> None:
        view = self.view
        try:
            for client in self.get_sub_clients():
                client.set_view(view).init()
        except Exception as exc:
            if not self.root:
                raise
            self.handle_error(view, self.error_list_name, exc)

    def body(self, uid: str = "") -> str:
        if self.root:
            return self.render_cached("body", uid, use_cache=False)
        return self.render_body(uid)

    def header(self, uid: str = "") -> str:
        if self.root:
            return self.render_cached("header", uid, use_cache=False)
        return self.render_header(uid)

    def render_body(self, uid: str = "") -> str:
        view = self.prepare_view() if self.root else self.view
        html = "".join(client.set_view(view).body(uid) for client in self.get_sub_clients())
        if self.template_body is None:
            return html
        setattr(view, f"{self.view_prefix}_body", html)
        return view.render(view.config(self.config_key("template-body"), self.template_body))

    def render_header(self, uid: str = "") -> str:
        view = self.prepare_view() if self.root else self.view
        html = "".join(client.set_view(view).header(uid) or "" for client in self.get_sub_clients())
        if self.template_header is None:
            return html
        setattr(view, f"{self.view_prefix}_header", html)
        return view.render(view.config(self.config_key("template-header"), self.template_header))

    def render_cached(
        self, kind: str, uid: str = "", prefixes: Iterable[str] = (), use_cache: bool = True
    ) -> str:
        """Renders the body or header of a page level client.

        Cached output only gets passed through ``modify()``. Errors while
        rendering the body end up in the error list of the view and the
        template is rendered again to show them; header errors are logged.
        """
        confkey = f"client/html/{self.client_path}"
        if use_cache:
            html = self.get_cached(kind, uid, prefixes, confkey)
            if html is not None:
                return self.modify(html, uid)

        view = self.view
        try:
            html = self.render_body(uid) if kind == "body" else self.render_header(uid)
        except Exception as exc:
            if kind == "header":
                self.log_exception(exc)
                return ""
            self.handle_error(view, self.error_list_name, exc)
            if self.template_body is None:
                return ""
            return view.render(view.config(self.config_key("template-body"), self.template_body))

        if use_cache:
            self.set_cached(kind, uid, prefixes, confkey, html, self._tags, self._expire)
        return html

    def modify(self, content: str, uid: str) -> str:
        for client in self.get_sub_clients():
            content = client.set_view(self.view).modify(content, uid)
        return content

    @staticmethod
    def replace_section(content: str, section: str, marker: str) -> str:
        """Replaces everything between two ``<!-- marker -->`` comments."""
        tag = re.escape(f"<!-- {marker} -->")
        pattern = re.compile(f"({tag}).*?({tag})", re.S)
        return pattern.sub(lambda m: m.group(1) + str(section) + m.group(2), content)

    # -- errors -------------------------------------------------------------

    def handle_error(self, view, list_name: str, exc: Exception) -> None:
        if isinstance(exc, (ClientError, ControllerError, DomainError)):
            message = self.context.translate(exc.domain, str(exc))
        else:
            message = self.context.translate("client", "A non-recoverable error occured")
            self.log_exception(exc)
        setattr(view, list_name, list(view.get(list_name, [])) + [message])

    def log_exception(self, exc: Exception) -> None:
        self.context.logger.error("%s: %s", self.client_path, exc, exc_info=exc)

    # -- caching ------------------------------------------------------------

    @staticmethod
    def get_client_params(params: Dict[str, Any], prefixes: Iterable[str]) -> Dict[str, Any]:
        prefixes = tuple(prefixes)
        return {key: value for key, value in params.items() if key.startswith(prefixes)}

    def _cache_key(self, kind: str, uid: str, prefixes: Iterable[str], confkey: str) -> Optional[str]:
        ctx = self.context
        config = ctx.config
        if ctx.cache is None or not config.get("client/html/common/cache/enable", True):
            return None
        if ctx.user_id and not config.get("client/html/common/cache/force", False):
            return None
        return cache_key(
            client=confkey,
            kind=kind,
            uid=uid,
            params=self.get_client_params(self.view.param(), prefixes),
            locale=ctx.locale,
            currency=ctx.currency,
            config=config.get(confkey, {}),
        )

    def get_cached(self, kind: str, uid: str, prefixes: Iterable[str], confkey: str) -> Optional[str]:
        key = self._cache_key(kind, uid, prefixes, confkey)
        return self.context.cache.get(key) if key else None

    def set_cached(
        self,
        kind: str,
        uid: str,
        prefixes: Iterable[str],
        confkey: str,
        html: str,
        tags: Iterable[str],
        expire: Optional[datetime],
    ) -> None:
        key = self._cache_key(kind, uid, prefixes, confkey)
        if key:
            self.context.cache.set(key, html, tags, expire)

    def add_meta_items(
        self, items, tags: List[str], expire: Optional[datetime], custom: Iterable[str] = ()
    ) -> Optional[datetime]:
        """Collects cache tags and the earliest end date of the given items.

        With ``client/html/common/cache/tag-all`` only the domain names are
        used as tags so any change in the domain clears the entry.
        """
        tag_all = self.context.config.get("client/html/common/cache/tag-all", False)
        if isinstance(items, (Product, Catalog, TreeNode)):
            items = [items]

        for item in _walk_items(items):
            domain = "catalog" if isinstance(item, Catalog) else "product"
            tags.append(domain if tag_all else f"{domain}-{item.id}")
            end = getattr(item, "end_date", None)
            if end is not None and (expire is None or end < expire):
                expire = end

        tags.extend(custom)
        return expire


def _walk_items(items):
    for item in items:
        if isinstance(item, TreeNode):
            yield item.item
            yield from (li.product for li in item.item.product_lists)
            yield from _walk_items(item.children)
            continue
        yield item
        if isinstance(item, Catalog):
            yield from (li.product for li in item.product_lists)
            yield from _walk_items(item.children)
