from __future__ import annotations

from flask import Blueprint

from storefront.app.html.page import render_page

bp = Blueprint("account", __name__)


@bp.route("/account/profile", methods=["GET", "POST"])
def profile():
    """GET|POST /account/profile - Payment and delivery addresses of the customer."""
    return render_page(["account/profile"], title="Profile")


@bp.get("/account/history")
def history():
    """GET /account/history - Orders placed by the customer."""
    return render_page(["account/history"], title="Order history")
