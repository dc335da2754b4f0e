"""Glue between Flask views and HTML clients."""

from __future__ import annotations

import hmac
from typing import Iterable

from flask import abort, current_app, render_template, request, session
from markupsafe import Markup

from storefront.app.html.context import Context
from storefront.app.html.factory import create_client
from storefront.app.html.view import CSRF_FIELD, CSRF_SESSION_KEY, View, parse_params

# Paths whose POST requests come from outside the storefront forms.
CSRF_EXEMPT = ("/api/", "/checkout/update")


def build_view(context: Context, response=None) -> View:
    return View(context, parse_params(request.values.lists()), request=request, response=response)


def render_page(paths: Iterable[str], title: str = "", status: int = 200):
    """Renders the clients for ``paths`` into the page layout.

    All clients share one view; ``init()`` runs for every client before any
    header or body is rendered.
    """
    context = Context.from_request()
    view = build_view(context)
    clients = [create_client(context, path).set_view(view) for path in paths]

    for client in clients:
        client.init()

    header = "".join(client.header() or "" for client in clients)
    body = "".join(client.body() for client in clients)

    html = render_template(
        "page.html",
        view=view,
        _=view.translate,
        title=title,
        page_header=Markup(header),
        page_body=Markup(body),
    )
    return html, status


def verify_csrf() -> None:
    if not current_app.config.get("CSRF_ENABLED", True):
        return
    if request.method in ("GET", "HEAD", "OPTIONS") or request.path.startswith(CSRF_EXEMPT):
        return

    expected = session.get(CSRF_SESSION_KEY)
    sent = request.form.get(CSRF_FIELD, "")
    if not expected or not hmac.compare_digest(str(expected), str(sent)):
        abort(400, description="Invalid CSRF token")
