from __future__ import annotations

import importlib
import re
from typing import Dict, Iterable, Optional, Tuple

from storefront.app.common.errors import ClientError
from storefront.app.html.decorators import get_decorator

# Modules whose import registers their clients.
CLIENT_MODULES = (
    "storefront.modules.catalog.clients",
    "storefront.modules.account.clients",
    "storefront.modules.checkout.clients",
)

_NAME = re.compile(r"^[A-Za-z0-9]+$")
_CLIENTS: Dict[Tuple[str, str], type] = {}
_loaded = False


def register(path: str, name: str = "Standard"):
    """Class decorator registering an HTML client for ``path``."""

    def wrapper(cls):
        cls.client_path = path
        _CLIENTS[(path, name.lower())] = cls
        return cls

    return wrapper


def _load_clients() -> None:
    global _loaded
    if not _loaded:
        for module in CLIENT_MODULES:
            importlib.import_module(module)
        _loaded = True


def create_client(context, path: str, name: Optional[str] = None):
    """Creates the client registered for ``path`` wrapped by its decorators.

    ``name`` defaults to the ``client/html/<path>/name`` setting, then to
    "Standard".
    """
    _load_clients()
    path = path.strip("/")
    if not path:
        raise ClientError("Client path is empty")

    if name is None:
        name = context.config.get(f"client/html/{path}/name", "Standard")
    if not name or not _NAME.match(name):
        raise ClientError(f'Invalid characters in client name "{name}"')

    cls = _CLIENTS.get((path, name.lower()))
    if cls is None:
        raise ClientError(f'Client "{path}/{name}" not available')

    return add_decorators(cls(context), context, path)


def add_decorators(client, context, path: str):
    config = context.config
    excludes = set(config.get(f"client/html/{path}/decorators/excludes", []) or [])
    common = [n for n in config.get("client/html/common/decorators/default", []) or [] if n not in excludes]

    outer = _wrap(client, context, common, None)
    outer = _wrap(outer, context, config.get(f"client/html/{path}/decorators/global", []) or [], None)
    outer = _wrap(outer, context, config.get(f"client/html/{path}/decorators/local", []) or [], path.split("/")[0])

    client.set_object(outer)
    return outer


def _wrap(client, context, names: Iterable[str], domain: Optional[str]):
    for name in names:
        if not _NAME.match(str(name)):
            raise ClientError(f'Invalid characters in decorator name "{name}"')
        cls = get_decorator(name, domain)
        if cls is None:
            scope = f'"{domain}" ' if domain else ""
            raise ClientError(f'Decorator {scope}"{name}" not available')
        client = cls(client, context)
    return client
