from __future__ import annotations

import copy
from typing import Any, Dict, Mapping

_MISSING = object()


def expand_paths(flat: Mapping[str, Any]) -> Dict[str, Any]:
    """Turns ``{"a/b/c": 1}`` into ``{"a": {"b": {"c": 1}}}``.

    Keys without a slash and nested mappings are merged as they are.
    """
    tree: Dict[str, Any] = {}
    for path, value in flat.items():
        parts = [p for p in str(path).split("/") if p]
        if not parts:
            continue
        node = tree
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        if isinstance(value, Mapping) and isinstance(node.get(parts[-1]), dict):
            _merge(node[parts[-1]], expand_paths(value))
        elif isinstance(value, Mapping):
            node[parts[-1]] = expand_paths(value)
        else:
            node[parts[-1]] = copy.deepcopy(value)
    return tree


def _merge(target: Dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class Settings:
    """Path based access to the storefront settings tree.

    ``get("client/html/catalog/filter/subparts", [...])`` walks the tree and
    returns the default when any segment is missing. Values set on an
    instance never leak into the application config it was built from.
    """

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._tree = expand_paths(values or {})

    def get(self, path: str, default: Any = None) -> Any:
        node: Any = self._tree
        for part in (p for p in path.split("/") if p):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

    def set(self, path: str, value: Any) -> "Settings":
        _merge(self._tree, expand_paths({path: value}))
        node = self._tree
        parts = [p for p in path.split("/") if p]
        for part in parts[:-1]:
            node = node[part]
        # plain assignment so lists/dicts replace instead of merging
        node[parts[-1]] = copy.deepcopy(value)
        return self

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._tree)
