from __future__ import annotations

import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple
from flask import request

from storefront.app.common.errors import abort_json

ADDRESS_TYPES = ("payment", "delivery")


def get_json() -> Dict[str, Any]:
    if not request.is_json:
        abort_json(400, "invalid_json", "Request must be application/json")
    data = request.get_json(silent=True)
    if data is None or not isinstance(data, dict):
        abort_json(400, "invalid_json", "Malformed JSON body")
    return data


def require_fields(data: Dict[str, Any], fields: Iterable[str]) -> None:
    missing = [f for f in fields if f not in data]
    if missing:
        abort_json(400, "validation_error", "Missing required fields", {"missing": missing})


def field_name(key: str) -> str:
    """``order.address.firstname`` -> ``firstname``"""
    return key.rsplit(".", 1)[-1]


def address_fields(settings, type: str) -> Tuple[List[str], List[str], List[str]]:
    base = f"client/html/common/address/{type}"
    return (
        list(settings.get(f"{base}/mandatory", []) or []),
        list(settings.get(f"{base}/optional", []) or []),
        list(settings.get(f"{base}/hidden", []) or []),
    )


def validate_fields(settings, params: Mapping[str, Any], fields: Iterable[str]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Checks address values against ``client/html/common/address/validate/<name>``.

    Returns ``(cleaned, invalid)``: ``cleaned`` keeps the values of known
    fields that passed, ``invalid`` maps the names of rejected fields to
    themselves. Empty values are matched too, so patterns of fields that may
    stay empty have to accept the empty string (``^$|...``).
    """
    known = set(fields)
    cleaned: Dict[str, Any] = {}
    invalid: Dict[str, str] = {}

    for key, value in params.items():
        name = field_name(key)
        if name not in known:
            continue
        value = "" if value is None else str(value).strip()
        regex = settings.get(f"client/html/common/address/validate/{name}")
        if regex and re.search(regex, value) is None:
            invalid[name] = name
            continue
        cleaned[key] = value

    return cleaned, invalid


def check_fields(
    settings,
    params: Mapping[str, Any],
    type: str,
    prefix: str,
    translate: Callable[[str, str], str],
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Validates one address.

    ``type`` selects the field lists (payment or delivery), ``prefix`` is
    prepended to field names when looking up values (``order.address.``,
    ``customer.``, ``customer.address.``). Returns ``(cleaned, errors)``
    where ``errors`` maps field names to translated messages.
    """
    mandatory, optional, hidden = address_fields(settings, type)
    cleaned, invalid = validate_fields(settings, params, mandatory + optional + hidden)

    if cleaned.get(prefix + "salutation") == "company" and "company" not in mandatory:
        mandatory.append("company")

    subject = f"{type.capitalize()} address part" if type in ADDRESS_TYPES else "Address part"
    invalid_msg = translate("client", subject + ' "%s" is invalid')
    missing_msg = translate("client", subject + ' "%s" is missing')

    errors = {name: invalid_msg % name for name in invalid}
    for name in mandatory:
        if name in errors:
            continue
        if not cleaned.get(prefix + name):
            errors[name] = missing_msg % name

    return cleaned, errors


def css_classes(settings, type: str) -> Dict[str, List[str]]:
    """Maps field names to the CSS classes used by the address forms."""
    mandatory, optional, hidden = address_fields(settings, type)
    css: Dict[str, List[str]] = {}
    for names, cls in ((mandatory, "mandatory"), (optional, "optional"), (hidden, "hidden")):
        for name in names:
            css.setdefault(name, []).append(cls)
    return css
