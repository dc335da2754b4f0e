"""View object handed to HTML clients and their templates.

Values assigned as attributes (``view.filter_body = html``) end up in the
template namespace as ``view.filter_body``. Everything else (request params,
settings, translations, URLs, CSRF) is reached through helper methods.
"""

from __future__ import annotations

import re
import secrets
from typing import Any, Dict, Iterable, Mapping, Tuple

from flask import render_template, url_for
from markupsafe import Markup, escape

CSRF_SESSION_KEY = "_csrf_token"
CSRF_FIELD = "_csrf"

_BRACKETS = re.compile(r"\[([^\]]*)\]")


def parse_params(items: Iterable[Tuple[str, list]]) -> Dict[str, Any]:
    """Builds nested params from bracket notation.

    ``ca_delivery[order.address.city]=X`` becomes
    ``{"ca_delivery": {"order.address.city": "X"}}`` and ``f_attrid[]=1``
    collects all values into a list. ``items`` yields ``(key, [values])``
    pairs like ``MultiDict.lists()``.
    """
    result: Dict[str, Any] = {}
    for key, values in items:
        head, sep, rest = key.partition("[")
        parts = [head] + (_BRACKETS.findall(sep + rest) if sep else [])
        as_list = len(parts) > 1 and parts[-1] == ""
        if as_list:
            parts = parts[:-1]

        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = list(values) if as_list else values[-1]
    return result


class View:
    __slots__ = ("context", "params", "request", "response", "_data")

    def __init__(self, context, params: Mapping[str, Any] | None = None, request=None, response=None):
        object.__setattr__(self, "context", context)
        object.__setattr__(self, "params", dict(params or {}))
        object.__setattr__(self, "request", request)
        object.__setattr__(self, "response", response)
        object.__setattr__(self, "_data", {})

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in View.__slots__:
            object.__setattr__(self, name, value)
        else:
            self._data[name] = value

    def __delattr__(self, name: str) -> None:
        self._data.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def values(self) -> Dict[str, Any]:
        return dict(self._data)

    def param(self, name: str | None = None, default: Any = None) -> Any:
        if name is None:
            return self.params
        node: Any = self.params
        for part in name.split("/"):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def config(self, path: str, default: Any = None) -> Any:
        return self.context.config.get(path, default)

    def translate(self, domain: str, msgid: str) -> str:
        return self.context.translate(domain, msgid)

    def render(self, template: str) -> str:
        if not template.endswith(".html"):
            template += ".html"
        return render_template(template, view=self, _=self.translate)

    def url(self, controller: str, action: str, params: Mapping[str, Any] | None = None, **config) -> str:
        """URL of the Flask endpoint ``<controller>.<action>``.

        Nested params are flattened back into bracket notation.
        """
        flat: Dict[str, Any] = {}
        for key, value in (params or {}).items():
            _flatten(flat, key, value)
        return url_for(f"{controller}.{action}", **flat, **config)

    def csrf_token(self) -> str:
        session = self.context.session
        token = session.get(CSRF_SESSION_KEY)
        if not token:
            token = session[CSRF_SESSION_KEY] = secrets.token_hex(16)
        return token

    def csrf_field(self) -> Markup:
        return Markup('<input type="hidden" name="%s" value="%s">') % (CSRF_FIELD, escape(self.csrf_token()))


def _flatten(flat: Dict[str, Any], key: str, value: Any) -> None:
    if isinstance(value, Mapping):
        for sub, subvalue in value.items():
            _flatten(flat, f"{key}[{sub}]", subvalue)
    elif isinstance(value, (list, tuple)):
        flat[f"{key}[]"] = list(value)
    else:
        flat[key] = value
