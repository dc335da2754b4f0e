"""HTML clients of the customer account pages."""

from __future__ import annotations

from typing import Any, Dict, List

from storefront.app.common.errors import ClientError
from storefront.app.common.validation import check_fields, css_classes
from storefront.app.controller.customer import CustomerController
from storefront.app.controller.locale import LocaleController
from storefront.app.controller.order import OrderController
from storefront.app.html.address import address_string
from storefront.app.html.base import HtmlClient
from storefront.app.html.factory import register
from storefront.app.models import OrderAddress


def _positions(values: Any) -> Dict[int, Dict[str, Any]]:
    """``{"0": {...}, "1": {...}}`` from the form -> ``{0: {...}, 1: {...}}``, skipping empty forms."""
    result: Dict[int, Dict[str, Any]] = {}
    if isinstance(values, dict):
        for pos, data in values.items():
            if str(pos).isdigit() and isinstance(data, dict) and any(str(v).strip() for v in data.values()):
                result[int(pos)] = data
    return result


@register("account/profile")
class AccountProfile(HtmlClient):
    sub_part_names = ["address"]
    template_body = "account/profile/body"
    template_header = "account/profile/header"
    view_prefix = "profile"
    root = True

    def data(self, view, tags: List[str], expire=None):
        domains = view.config("client/html/account/profile/domains", ["customer/address"])
        view.profile_item = CustomerController(self.context).uses(domains).get()
        return super().data(view, tags, expire)


@register("account/profile/address")
class AccountProfileAddress(HtmlClient):
    template_body = "account/profile/address-body"
    view_prefix = "address"

    def init(self) -> None:
        view = self.view
        delete = view.param("address/delete")
        if not view.param("address/save") and delete in (None, ""):
            return

        settings = self.context.config
        payment = view.param("address/payment", {}) or {}
        deliveries = _positions(view.param("address/delivery", {}))

        if payment:
            payment, errors = check_fields(settings, payment, "payment", "customer.", view.translate)
            if errors:
                view.address_payment_error = errors
                raise ClientError("At least one payment address part is missing or invalid")

        if delete not in (None, ""):
            if not str(delete).isdigit():
                raise ClientError(f'Invalid address position "{delete}"')
            delete = int(delete)
            deliveries.pop(delete, None)

        cleaned = {}
        for pos, values in sorted(deliveries.items()):
            cleaned[pos], errors = check_fields(settings, values, "delivery", "customer.address.", view.translate)
            if errors:
                view.address_delivery_error = {pos: errors}
                raise ClientError("At least one delivery address part is missing or invalid")

        cntl = CustomerController(self.context).uses(["customer/address"])
        items = list(cntl.get().addresses)
        cntl.add(payment)

        if delete not in (None, "") and 0 <= delete < len(items):
            cntl.delete_address_item(items[delete])

        for pos, values in cleaned.items():
            item = items[pos] if pos < len(items) else cntl.create_address_item()
            cntl.add_address_item(item.from_dict(values), pos)

        cntl.store()
        self.context.logger.info("customer %s updated the profile addresses", self.context.user_id)
        super().init()

    def data(self, view, tags: List[str], expire=None):
        context = self.context
        config = context.config
        domains = config.get("client/html/account/profile/domains", ["customer/address"])
        item = CustomerController(context).uses(domains).get()

        payment = item.to_dict()
        if not payment.get("customer.languageid"):
            payment["customer.languageid"] = context.locale
        payment["string"] = address_string(view, item)

        deliveries = {}
        for pos, address in enumerate(item.addresses):
            values = address.to_dict()
            values["string"] = address_string(view, address)
            deliveries[pos] = values

        view.address_payment = payment
        view.address_delivery = deliveries
        view.address_payment_css = css_classes(config, "payment")
        view.address_delivery_css = css_classes(config, "delivery")
        view.address_countries = view.config("common/countries", [])
        view.address_states = view.config("common/states", {})
        view.address_languages = LocaleController(context).languages()
        view.address_salutations = config.get("client/html/common/address/salutations", ["", "company", "mr", "ms"])
        return super().data(view, tags, expire)


@register("account/history")
class AccountHistory(HtmlClient):
    template_body = "account/history/body"
    template_header = "account/history/header"
    view_prefix = "history"
    root = True

    def data(self, view, tags: List[str], expire=None):
        domains = view.config("client/html/account/history/domains", ["order/address", "order/product"])
        orders = OrderController(self.context).uses(domains).sort("-order.id").search()

        view.history_items = orders
        view.history_addresses = {
            order.id: {
                type: [address_string(view, addr) for addr in order.get_addresses(type)]
                for type in (OrderAddress.TYPE_PAYMENT, OrderAddress.TYPE_DELIVERY)
            }
            for order in orders
        }
        return super().data(view, tags, expire)
