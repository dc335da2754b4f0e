from __future__ import annotations

from flask import Blueprint, Response, request

from storefront.app.html.context import Context
from storefront.app.html.factory import create_client
from storefront.app.html.page import build_view, render_page
from storefront.app.models import Product

bp = Blueprint("catalog", __name__)


@bp.get("/")
def home():
    """GET / - Catalog home with the category tree and promotions."""
    return render_page(["catalog/home"], title="Home")


@bp.get("/catalog")
def index():
    """GET /catalog - Filter and product list."""
    return render_page(["catalog/filter", "catalog/lists"], title="Catalog")


@bp.get("/catalog/count")
def count():
    """GET /catalog/count - Product counts for the filter as JavaScript."""
    context = Context.from_request()
    client = create_client(context, "catalog/count").set_view(build_view(context))
    client.init()
    return Response(client.body(), mimetype="application/javascript")


@bp.get("/catalog/stock")
def stock():
    """GET /catalog/stock - Stock levels of the given products."""
    ids = []
    for value in request.args.getlist("st_pid[]") + request.args.getlist("st_pid"):
        if str(value).isdigit():
            ids.append(int(value))

    products = Product.query.filter(Product.id.in_(ids)).all() if ids else []
    return {
        "stock": {
            str(p.id): {"sku": p.sku, "stock_qty": p.stock_qty, "available": p.is_available() and p.stock_qty > 0}
            for p in products
        }
    }, 200
