from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Dict, Iterable, List, Optional

from storefront.app.common.errors import ControllerError
from storefront.app.extensions import db
from storefront.app.models import Order, OrderAddress, OrderProduct, Product

logger = logging.getLogger(__name__)


class OrderController:
    """Orders of the current customer and placing new ones from the basket."""

    def __init__(self, context):
        self.context = context
        self._domains: List[str] = []
        self._sort = "-order.id"
        self._start = 0
        self._size = 100
        self._item: Optional[Order] = None

    def uses(self, domains: Iterable[str]) -> "OrderController":
        self._domains = list(domains)
        return self

    def sort(self, key: str) -> "OrderController":
        if key not in ("order.id", "-order.id"):
            raise ControllerError(f'Invalid sort key "{key}"')
        self._sort = key
        return self

    def slice(self, start: int, size: int) -> "OrderController":
        self._start = max(int(start), 0)
        self._size = max(int(size), 0)
        return self

    def search(self) -> List[Order]:
        if not self.context.user_id:
            return []
        order_by = Order.id.desc() if self._sort.startswith("-") else Order.id
        return (
            Order.query.filter_by(customer_id=self.context.user_id)
            .order_by(order_by)
            .offset(self._start)
            .limit(self._size)
            .all()
        )

    def add(self, basket) -> "OrderController":
        """Builds an unsaved order from a snapshot of the basket."""
        if basket.is_empty():
            raise ControllerError("The basket is empty")
        if not basket.get_addresses(OrderAddress.TYPE_PAYMENT):
            raise ControllerError("Payment address is missing")

        order = Order(
            customer_id=self.context.user_id,
            currency_id=self.context.currency,
            status_payment="PENDING",
            status_delivery="PENDING",
        )

        total = 0
        for pos, entry in enumerate(basket.products):
            product = db.session.get(Product, entry["product_id"])
            if product is None or not product.is_available():
                raise ControllerError(f'Product "{entry["sku"]}" is not available')
            if product.stock_qty < entry["quantity"]:
                raise ControllerError(f'Not enough stock for "{product.sku}"')

            order.products.append(OrderProduct(
                product_id=product.id,
                position=pos,
                sku=product.sku,
                label=product.label,
                quantity=entry["quantity"],
                unit_price_cents=product.price_cents,
            ))
            total += entry["quantity"] * product.price_cents

        for type in (OrderAddress.TYPE_PAYMENT, OrderAddress.TYPE_DELIVERY):
            for pos, address in enumerate(basket.get_addresses(type)):
                item = OrderAddress(type=type, position=pos, addressid=address.addressid or "")
                order.addresses.append(item.copy_from(address))

        order.total_cents = total
        self._item = order
        return self

    def store(self) -> "OrderController":
        order = self.get()
        for item in order.products:
            product = db.session.get(Product, item.product_id)
            if product.stock_qty < item.quantity:
                raise ControllerError(f'Not enough stock for "{product.sku}"')
            product.stock_qty -= item.quantity

        db.session.add(order)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info("order %s placed, total %s %s", order.id, order.total_cents, order.currency_id)
        return self

    def get(self) -> Order:
        if self._item is None:
            raise ControllerError("No order available")
        return self._item


class ServiceProvider:
    """Handles payment status messages pushed by a payment provider."""

    STATUSES = ("PENDING", "AUTHORIZED", "RECEIVED", "REFUSED", "CANCELED", "REFUND")

    def __init__(self, context):
        self.context = context

    def update_push(self, request, response):
        values = request.values
        order_id = values.get("orderid")
        status = (values.get("status") or "").upper()

        if not order_id:
            raise ControllerError('Parameter "orderid" is missing')
        if status not in self.STATUSES:
            raise ControllerError(f'Invalid payment status "{status}"')
        self._verify(order_id, status, values.get("signature") or "")

        order = db.session.get(Order, _int(order_id))
        if order is None:
            raise ControllerError(f'Order "{order_id}" not found')

        order.status_payment = status
        db.session.commit()
        logger.info("payment status of order %s set to %s", order.id, status)

        response.status_code = 200
        response.set_data("OK")
        return response

    def _verify(self, order_id: str, status: str, signature: str) -> None:
        """Accepts the HMAC-SHA256 of "<orderid>|<status>" or the shared secret itself."""
        secret = self.context.config.get("client/html/checkout/update/manual/secret") or ""
        if not secret or not signature:
            logger.warning("unsigned payment push for order %s rejected", order_id)
            raise ControllerError("Invalid signature")

        expected = sign_push(secret, order_id, status)
        if not (hmac.compare_digest(signature.lower().encode(), expected.encode())
                or hmac.compare_digest(signature.encode(), secret.encode())):
            logger.warning("payment push for order %s with wrong signature rejected", order_id)
            raise ControllerError("Invalid signature")


def sign_push(secret: str, order_id, status: str) -> str:
    message = f"{order_id}|{status.upper()}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


_PROVIDERS: Dict[str, type] = {"manual": ServiceProvider}


class ServiceController:
    def __init__(self, context):
        self.context = context

    def update_push(self, request, response, code: Optional[str]):
        cls = _PROVIDERS.get((code or "").lower())
        if cls is None:
            raise ControllerError(f'Service provider "{code}" not available')
        return cls(self.context).update_push(request, response)


def _int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ControllerError(f'Order "{value}" not found') from None
