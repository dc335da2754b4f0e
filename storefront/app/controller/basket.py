from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from storefront.app.common.errors import ControllerError
from storefront.app.extensions import db
from storefront.app.models import OrderAddress, Product

logger = logging.getLogger(__name__)

SESSION_KEY = "basket"


class Basket:
    """Read-only view of the basket stored in the session."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        data = data or {}
        self.products: List[Dict[str, Any]] = [dict(p) for p in data.get("products", [])]
        self._addresses: Dict[str, List[Dict[str, Any]]] = {
            type: [dict(a) for a in items] for type, items in (data.get("addresses") or {}).items()
        }

    def get_addresses(self, type: str) -> List[OrderAddress]:
        return [
            OrderAddress(type=type, position=pos).from_dict(values)
            for pos, values in enumerate(self._addresses.get(type, []))
        ]

    def get_address(self, type: str, position: int = 0) -> Optional[OrderAddress]:
        items = self.get_addresses(type)
        return items[position] if 0 <= position < len(items) else None

    def address_types(self) -> List[str]:
        return [type for type, items in self._addresses.items() if items]

    @property
    def total_cents(self) -> int:
        return sum(p["quantity"] * p["price_cents"] for p in self.products)

    def is_empty(self) -> bool:
        return not self.products

    def to_dict(self) -> Dict[str, Any]:
        return {"products": self.products, "addresses": self._addresses}


class BasketController:
    def __init__(self, context):
        self.context = context

    def _load(self) -> Dict[str, Any]:
        data = self.context.session.get(SESSION_KEY) or {}
        return {
            "products": list(data.get("products", [])),
            "addresses": dict(data.get("addresses") or {}),
        }

    def _save(self, data: Dict[str, Any]) -> None:
        # reassign so the session notices the change
        self.context.session[SESSION_KEY] = data

    def get(self) -> Basket:
        return Basket(self._load())

    def add_product(self, product_id: int, quantity: int = 1) -> "BasketController":
        if quantity <= 0:
            raise ControllerError("Quantity must be greater than zero")

        product = db.session.get(Product, product_id)
        if product is None or not product.is_available():
            raise ControllerError(f'Product "{product_id}" is not available')

        data = self._load()
        for entry in data["products"]:
            if entry["product_id"] == product.id:
                quantity += entry["quantity"]
                break
        else:
            entry = None

        if product.stock_qty < quantity:
            raise ControllerError(f'Not enough stock for "{product.sku}"')

        if entry is None:
            data["products"].append({
                "product_id": product.id,
                "sku": product.sku,
                "label": product.label,
                "quantity": quantity,
                "price_cents": product.price_cents,
            })
        else:
            entry["quantity"] = quantity
            entry["price_cents"] = product.price_cents

        self._save(data)
        return self

    def delete_product(self, position: int) -> "BasketController":
        data = self._load()
        if not 0 <= position < len(data["products"]):
            raise ControllerError(f'No product at position "{position}"')
        del data["products"][position]
        self._save(data)
        return self

    def add_address(self, type: str, values: Mapping[str, Any], position: Optional[int] = None) -> "BasketController":
        """Stores a sanitized copy of the address; unknown keys are dropped."""
        address = OrderAddress(type=type).from_dict(values)
        sanitized = address.to_dict()

        data = self._load()
        items = list(data["addresses"].get(type, []))
        if position is None or position >= len(items):
            items.append(sanitized)
        else:
            items[position] = sanitized
        data["addresses"][type] = items
        self._save(data)
        return self

    def delete_address(self, type: str, position: Optional[int] = None) -> "BasketController":
        data = self._load()
        items = list(data["addresses"].get(type, []))
        if position is None:
            items = []
        elif 0 <= position < len(items):
            del items[position]
        data["addresses"][type] = items
        self._save(data)
        return self

    def clear(self) -> "BasketController":
        self._save({"products": [], "addresses": {}})
        logger.debug("basket cleared")
        return self
