from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from storefront.app.common.errors import ControllerError
from storefront.app.extensions import db
from storefront.app.models import Customer, CustomerAddress


class CustomerController:
    """Access to the logged in customer and the addresses stored for them."""

    def __init__(self, context):
        self.context = context
        self._domains: list = []
        self._item: Optional[Customer] = None

    def uses(self, domains: Iterable[str]) -> "CustomerController":
        self._domains = list(domains)
        return self

    def get(self) -> Customer:
        """Current customer, or an empty unsaved one for anonymous visitors."""
        if self._item is None:
            item = db.session.get(Customer, self.context.user_id) if self.context.user_id else None
            self._item = item if item is not None else Customer(code="", password_hash="")
        return self._item

    def add(self, values: Mapping[str, Any]) -> "CustomerController":
        self.get().from_dict(values)
        return self

    def create_address_item(self) -> CustomerAddress:
        return CustomerAddress()

    def add_address_item(self, item: CustomerAddress, position: Optional[int] = None) -> "CustomerController":
        customer = self.get()
        if item not in customer.addresses:
            customer.addresses.append(item)
        item.position = position if position is not None else len(customer.addresses) - 1
        return self

    def delete_address_item(self, item: CustomerAddress) -> "CustomerController":
        customer = self.get()
        if item in customer.addresses:
            customer.addresses.remove(item)
        return self

    def store(self) -> "CustomerController":
        if not self.context.user_id:
            raise ControllerError("No customer logged in")

        customer = self.get()
        for pos, item in enumerate(sorted(customer.addresses, key=lambda a: a.position or 0)):
            item.position = pos
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return self
