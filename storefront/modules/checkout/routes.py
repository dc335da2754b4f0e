from __future__ import annotations

from flask import Blueprint, Response

from storefront.app.html.context import Context
from storefront.app.html.factory import create_client
from storefront.app.html.page import build_view, render_page

bp = Blueprint("checkout", __name__)


@bp.route("/checkout", methods=["GET", "POST"])
def index():
    """GET|POST /checkout - Checkout steps (c_step selects the step)."""
    return render_page(["checkout/standard"], title="Checkout")


@bp.route("/checkout/update", methods=["GET", "POST"])
def update():
    """GET|POST /checkout/update - Payment status pushed by a provider (code=<service>)."""
    context = Context.from_request()
    response = Response("", status=200, mimetype="text/plain")
    client = create_client(context, "checkout/update").set_view(build_view(context, response=response))
    client.init()
    return response
