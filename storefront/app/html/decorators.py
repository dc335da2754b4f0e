"""Decorators wrapped around HTML clients by configuration.

Global decorators (``domain=None``) can be added to any client, local ones
only to clients of their top-level domain (``account/...``).
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_DECORATORS: Dict[Tuple[Optional[str], str], type] = {}


def register_decorator(name: str, domain: Optional[str] = None):
    def wrapper(cls):
        _DECORATORS[(domain, name.lower())] = cls
        return cls

    return wrapper


def get_decorator(name: str, domain: Optional[str] = None) -> Optional[type]:
    return _DECORATORS.get((domain, name.lower()))


class ClientDecorator:
    """Forwards everything to the wrapped client unless overridden."""

    def __init__(self, client, context):
        self.client = client
        self.context = context

    def __getattr__(self, name):
        return getattr(self.client, name)

    @property
    def view(self):
        return self.client.view

    def set_view(self, view):
        self.client.set_view(view)
        return self

    def set_object(self, obj):
        self.client.set_object(obj)
        return self

    def body(self, uid: str = "") -> str:
        return self.client.body(uid)

    def header(self, uid: str = "") -> str:
        return self.client.header(uid)

    def init(self) -> None:
        self.client.init()

    def data(self, view, tags, expire=None):
        return self.client.data(view, tags, expire)

    def modify(self, content: str, uid: str) -> str:
        return self.client.modify(content, uid)


@register_decorator("log")
class LogDecorator(ClientDecorator):
    def _timed(self, part: str, fn, uid: str):
        start = time.perf_counter()
        try:
            return fn(uid)
        finally:
            logger.info(
                "rendered %s %s in %.1f ms", self.client.client_path, part, (time.perf_counter() - start) * 1000
            )

    def body(self, uid: str = "") -> str:
        return self._timed("body", self.client.body, uid)

    def header(self, uid: str = "") -> str:
        return self._timed("header", self.client.header, uid)


@register_decorator("login", domain="account")
class LoginDecorator(ClientDecorator):
    """Shows a login notice instead of the client for anonymous visitors."""

    def _anonymous(self) -> bool:
        return not self.context.user_id

    def body(self, uid: str = "") -> str:
        if self._anonymous():
            view = self.client.view
            tpl = view.config("client/html/account/login/template-body", "account/login-required")
            return view.render(tpl)
        return self.client.body(uid)

    def header(self, uid: str = "") -> str:
        if self._anonymous():
            return ""
        return self.client.header(uid)

    def init(self) -> None:
        if not self._anonymous():
            self.client.init()

    def data(self, view, tags, expire=None):
        if self._anonymous():
            return expire
        return self.client.data(view, tags, expire)
