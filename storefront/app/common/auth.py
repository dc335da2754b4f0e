"""Session based auth for the JSON API.

The customer id is stored as ``user_id`` in the Flask session; HTML pages
use the ``login`` client decorator instead.
"""

from functools import wraps
from typing import Callable, TypeVar, Any

from flask import session
from storefront.app.common.errors import abort_json

F = TypeVar("F", bound=Callable[..., Any])


def login_required(fn: F) -> F:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get("user_id"):
            abort_json(401, "unauthorized", "Authentication required")
        return fn(*args, **kwargs)

    return wrapper  # type: ignore
