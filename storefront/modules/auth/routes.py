from __future__ import annotations

from flask import Blueprint, session
from werkzeug.security import generate_password_hash, check_password_hash

from storefront.app.extensions import db
from storefront.app.models import Customer
from storefront.app.common.validation import get_json, require_fields
from storefront.app.common.errors import abort_json
from storefront.app.common.auth import login_required

bp = Blueprint("auth", __name__)


def _customer_response(customer: Customer):
    return {
        "id": customer.id,
        "email": customer.code,
        "firstname": customer.firstname,
        "lastname": customer.lastname,
    }


@bp.post("/users")
def create_user():
    """POST /api/users - Create a new customer account."""
    data = get_json()
    require_fields(data, ["email", "password", "firstname", "lastname"])

    email = data["email"].strip().lower()
    if Customer.query.filter_by(code=email).first():
        abort_json(409, "conflict", "Email already registered")

    customer = Customer(
        code=email,
        password_hash=generate_password_hash(data["password"]),
        email=email,
        firstname=data["firstname"],
        lastname=data["lastname"],
        telephone=data.get("telephone") or "",
    )
    db.session.add(customer)
    db.session.commit()

    return _customer_response(customer), 201


@bp.post("/auth/login")
def login():
    """POST /api/auth/login - Authenticate and start a session."""
    data = get_json()
    require_fields(data, ["email", "password"])

    email = data["email"].strip().lower()
    customer = Customer.query.filter_by(code=email).first()
    if not customer or not check_password_hash(customer.password_hash, data["password"]):
        abort_json(401, "unauthorized", "Invalid email or password")

    session["user_id"] = customer.id
    return {"message": "logged_in", "user_id": customer.id}, 200


@bp.post("/auth/logout")
def logout():
    """POST /api/auth/logout - Terminate session."""
    session.pop("user_id", None)
    return {"message": "logged_out"}, 200


@bp.get("/users/me")
@login_required
def me():
    """GET /api/users/me - Current authenticated customer."""
    customer = db.session.get(Customer, session["user_id"])
    if not customer:
        abort_json(401, "unauthorized", "Invalid session")

    payload = _customer_response(customer)
    payload["address"] = customer.to_dict()
    payload["delivery_addresses"] = [a.to_dict() for a in customer.addresses]
    return payload, 200
