from __future__ import annotations

from flask import Blueprint, redirect, request, url_for

from storefront.app.common.errors import ControllerError, abort_json
from storefront.app.common.json import ok
from storefront.app.common.validation import get_json, require_fields
from storefront.app.controller.basket import Basket, BasketController
from storefront.app.html.context import Context
from storefront.app.html.page import build_view

bp = Blueprint("basket", __name__)
api_bp = Blueprint("basket_api", __name__)


def _basket_response(basket: Basket):
    return {
        "items": [
            {
                "position": pos,
                "product_id": p["product_id"],
                "sku": p["sku"],
                "label": p["label"],
                "quantity": p["quantity"],
                "unit_price_cents": p["price_cents"],
                "line_total_cents": p["quantity"] * p["price_cents"],
            }
            for pos, p in enumerate(basket.products)
        ],
        "addresses": {type: [a.to_dict() for a in basket.get_addresses(type)] for type in basket.address_types()},
        "total_cents": basket.total_cents,
    }


@bp.route("/basket", methods=["GET", "POST"])
def index():
    """GET|POST /basket - Basket page; forms post b_action=add|delete."""
    context = Context.from_request()
    cntl = BasketController(context)
    view = build_view(context)

    if request.method == "POST":
        action = request.form.get("b_action", "")
        try:
            if action == "add":
                cntl.add_product(_int(request.form.get("b_prodid")), _int(request.form.get("b_quantity"), 1))
            elif action == "delete":
                cntl.delete_product(_int(request.form.get("b_position")))
            else:
                raise ControllerError(f'Unknown basket action "{action}"')
        except ControllerError as exc:
            view.basket_error_list = [context.translate(exc.domain, str(exc))]
        else:
            return redirect(url_for("basket.index"))

    view.basket = cntl.get()
    status = 400 if "basket_error_list" in view else 200
    return view.render("basket/index"), status


def _int(value, default: int = -1) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@api_bp.get("/basket")
def get_basket():
    """GET /api/basket - Products and addresses in the session basket."""
    basket = BasketController(Context.from_request()).get()
    return _basket_response(basket), 200


@api_bp.post("/basket/products")
def add_product():
    """POST /api/basket/products - Add a product ({product_id, quantity})."""
    data = get_json()
    require_fields(data, ["product_id"])

    try:
        product_id = int(data["product_id"])
        qty = int(data.get("quantity", 1))
    except (TypeError, ValueError):
        abort_json(400, "validation_error", "product_id and quantity must be integers")

    cntl = BasketController(Context.from_request())
    try:
        cntl.add_product(product_id, qty)
    except ControllerError as exc:
        abort_json(409, "conflict", str(exc))
    return _basket_response(cntl.get()), 201


@api_bp.delete("/basket/products/<int:position>")
def delete_product(position: int):
    """DELETE /api/basket/products/<position> - Remove a basket line."""
    cntl = BasketController(Context.from_request())
    try:
        cntl.delete_product(position)
    except ControllerError as exc:
        abort_json(404, "not_found", str(exc))
    return _basket_response(cntl.get()), 200


@api_bp.delete("/basket")
def clear_basket():
    """DELETE /api/basket - Remove everything from the basket."""
    BasketController(Context.from_request()).clear()
    return ok(None, 204)
