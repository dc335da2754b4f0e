"""HTML clients of the checkout process and the payment status update."""

from __future__ import annotations

from typing import Any, Dict, List

from storefront.app.common.errors import ClientError, ControllerError
from storefront.app.common.validation import check_fields, css_classes
from storefront.app.controller.basket import BasketController
from storefront.app.controller.customer import CustomerController
from storefront.app.controller.locale import LocaleController
from storefront.app.controller.order import OrderController, ServiceController
from storefront.app.html.address import address_string
from storefront.app.html.base import HtmlClient
from storefront.app.html.factory import register
from storefront.app.models import OrderAddress

TYPE_PAYMENT = OrderAddress.TYPE_PAYMENT
TYPE_DELIVERY = OrderAddress.TYPE_DELIVERY


@register("checkout/standard")
class CheckoutStandard(HtmlClient):
    sub_part_path = "client/html/checkout/standard/subparts"
    sub_part_names = ["address", "summary", "process"]
    template_body = "checkout/standard/body"
    template_header = "checkout/standard/header"
    view_prefix = "standard"
    root = True

    def data(self, view, tags: List[str], expire=None):
        view.standard_basket = BasketController(self.context).get()

        default = view.config("client/html/checkout/standard/url/step-active", "summary")
        onepage = list(view.config("client/html/checkout/standard/onepage", []) or [])
        # the first one page step shows all of them
        onestep = onepage.pop(0) if onepage else default

        steps = [step for step in self.sub_client_names() if step not in onepage]
        if default not in steps and steps:
            default = steps[0]

        current = view.param("c_step", default)
        if current not in steps:
            current = onestep

        active = view.get("standard_step_active")
        if active in onepage:
            active = onestep
        if active is None or (active in steps and current in steps and steps.index(current) < steps.index(active)):
            active = current

        pos = steps.index(active) if active in steps else 0
        view.standard_step_active = active
        view.standard_steps_before = steps[:pos]
        view.standard_steps_after = steps[pos + 1:]
        view.standard_steps = steps
        self._navigation_urls(view, steps, active)
        return super().data(view, tags, expire)

    def _navigation_urls(self, view, steps: List[str], active: str) -> None:
        controller = view.config("client/html/checkout/standard/url/controller", "checkout")
        action = view.config("client/html/checkout/standard/url/action", "index")

        before = steps[: steps.index(active)] if active in steps else []
        if before:
            view.standard_url_back = view.url(controller, action, {"c_step": before[-1]})
        else:
            view.standard_url_back = view.url(
                view.config("client/html/basket/standard/url/controller", "basket"),
                view.config("client/html/basket/standard/url/action", "index"),
            )

        after = steps[steps.index(active) + 1:] if active in steps else []
        # keep a next URL set by a step, the process step adds its own
        if "standard_url_next" not in view and after:
            view.standard_url_next = view.url(controller, action, {"c_step": after[0]})


class CheckoutStep(HtmlClient):
    """Checkout step only rendered while it is the active one."""

    step = ""

    def _visible(self) -> bool:
        view = self.view
        onepage = view.config("client/html/checkout/standard/onepage", []) or []
        return view.get("standard_step_active") == self.step or self.step in onepage

    def body(self, uid: str = "") -> str:
        return super().body(uid) if self._visible() else ""

    def header(self, uid: str = "") -> str:
        return super().header(uid) if self._visible() else ""


@register("checkout/standard/address")
class CheckoutAddress(CheckoutStep):
    step = "address"
    sub_part_names = ["payment", "delivery"]
    template_body = "checkout/standard/address-body"
    view_prefix = "address"

    def init(self) -> None:
        try:
            super().init()
        except Exception:
            self.view.standard_step_active = "address"
            raise

    def data(self, view, tags: List[str], expire=None):
        context = self.context
        config = context.config

        view.address_countries = view.config("common/countries", [])
        view.address_states = view.config("common/states", {})
        view.address_languages = LocaleController(context).languages()
        view.address_salutations = config.get("client/html/common/address/salutations", ["", "company", "mr", "ms"])

        if context.user_id:
            customer = CustomerController(context).uses(["customer/address"]).get()
            view.address_customer = customer
            view.address_payment_items = {str(customer.id): customer}
            view.address_delivery_items = {str(item.id): item for item in customer.addresses}
        return super().data(view, tags, expire)


@register("checkout/standard/address/payment")
class CheckoutAddressPayment(HtmlClient):
    template_body = "checkout/standard/address-payment-body"
    view_prefix = "payment"

    def init(self) -> None:
        view = self.view
        option = view.param("ca_billingoption")
        if option is None:
            return

        settings = self.context.config
        basket = BasketController(self.context)

        if option == "null":
            params, errors = check_fields(
                settings, view.param("ca_billing", {}) or {}, TYPE_PAYMENT, "order.address.", view.translate
            )
            if errors:
                view.address_payment_error = errors
                raise ClientError("At least one payment address part is missing or invalid")
            basket.add_address(TYPE_PAYMENT, params, 0)
        else:
            cntl = CustomerController(self.context).uses(["customer/address"])
            customer = cntl.get()
            if not self.context.user_id or str(customer.id) != str(option):
                raise ClientError(f'Payment address "{option}" not available')

            params = view.param(f"ca_billing_{option}", {}) or {}
            if params:
                params, errors = check_fields(settings, params, TYPE_PAYMENT, "order.address.", view.translate)
                if errors:
                    view.address_payment_error = errors
                    raise ClientError("At least one payment address part is missing or invalid")

            values = {**customer.to_dict(), **params, "order.address.addressid": str(option)}
            address = basket.add_address(TYPE_PAYMENT, values, 0).get().get_address(TYPE_PAYMENT, 0)
            # keep the customer record in sync with the sanitized address
            cntl.add(address.to_dict()).store()

        super().init()

    def data(self, view, tags: List[str], expire=None):
        context = self.context
        current = BasketController(context).get().get_address(TYPE_PAYMENT)

        values = current.to_dict() if current is not None else {}
        values.update(view.param("ca_billing", {}) or {})
        address = OrderAddress(type=TYPE_PAYMENT).from_dict(values)

        option = address.addressid or (str(context.user_id) if context.user_id and current is None else "null")
        view.address_payment_option = view.param("ca_billingoption", option)
        view.address_payment_values_new = address.to_dict()
        view.address_payment_string_new = address_string(view, address)
        view.address_payment_css = css_classes(context.config, TYPE_PAYMENT)

        if "address_customer" in view:
            view.address_payment_string_customer = address_string(view, view.address_customer)
        return super().data(view, tags, expire)


@register("checkout/standard/address/delivery")
class CheckoutAddressDelivery(HtmlClient):
    template_body = "checkout/standard/address-delivery-body"
    view_prefix = "delivery"

    def init(self) -> None:
        view = self.view
        try:
            delete_id = view.param("ca_delivery_delete")
            if delete_id is not None:
                cntl = CustomerController(self.context).uses(["customer/address"])
                item = cntl.get().get_address_item(delete_id)
                if item is not None:
                    cntl.delete_address_item(item).store()
                    raise ClientError("Delivery address deleted successfully")

            if view.param("ca_deliveryoption") is None:
                return

            self._set_address(view)
            super().init()
        except ControllerError as exc:
            view.address_delivery_error = exc.error_list
            raise

    def _check(self, view, params: Dict[str, Any]) -> Dict[str, Any]:
        cleaned, errors = check_fields(self.context.config, params, TYPE_DELIVERY, "order.address.", view.translate)
        if errors:
            view.address_delivery_error = errors
            raise ClientError("At least one delivery address part is missing or invalid")
        return cleaned

    def _set_address(self, view) -> None:
        basket = BasketController(self.context)
        option = view.param("ca_deliveryoption", "null")

        if option == "null":
            if view.config("client/html/checkout/standard/address/delivery/disable-new", False):
                raise ClientError("Adding a new delivery address is not allowed")
            basket.add_address(TYPE_DELIVERY, self._check(view, view.param("ca_delivery", {}) or {}), 0)
        elif option != "like":
            params = view.param(f"ca_delivery_{option}", {}) or {}
            if params:
                params = self._check(view, params)

            cntl = CustomerController(self.context).uses(["customer/address"])
            address = cntl.get().get_address_item(option)
            if address is not None:
                values = {**address.to_dict(), **params, "order.address.addressid": str(option)}
                sanitized = basket.add_address(TYPE_DELIVERY, values, 0).get().get_address(TYPE_DELIVERY, 0)
                # update the stored address with the sanitized values
                cntl.add_address_item(address.copy_from(sanitized), address.position).store()
            else:
                basket.add_address(TYPE_DELIVERY, params, 0)
        else:
            basket.delete_address(TYPE_DELIVERY)

    def data(self, view, tags: List[str], expire=None):
        current = BasketController(self.context).get().get_addresses(TYPE_DELIVERY)
        by_id = {addr.addressid: addr for addr in current if addr.addressid}

        strings: Dict[str, str] = {}
        values: Dict[str, Dict[str, Any]] = {}
        for id, item in (view.get("address_delivery_items", {}) or {}).items():
            addr = OrderAddress(type=TYPE_DELIVERY).copy_from(item)
            if id in by_id:
                addr.copy_from(by_id[id])
            addr.from_dict(view.param(f"ca_delivery_{id}", {}) or {})
            strings[id] = address_string(view, addr)
            values[id] = addr.to_dict()

        new_values = current[0].to_dict() if current else {}
        new_values.update(view.param("ca_delivery", {}) or {})
        address = OrderAddress(type=TYPE_DELIVERY).from_dict(new_values)
        option = address.addressid or ("like" if not current else "null")

        view.address_delivery_option = view.param("ca_deliveryoption", option)
        view.address_delivery_values_new = address.to_dict()
        view.address_delivery_string_new = address_string(view, address)
        view.address_delivery_strings = strings
        view.address_delivery_values = values
        view.address_delivery_css = css_classes(self.context.config, TYPE_DELIVERY)
        return super().data(view, tags, expire)


@register("checkout/standard/summary")
class CheckoutSummary(CheckoutStep):
    step = "summary"
    template_body = "checkout/standard/summary-body"
    view_prefix = "summary"

    def init(self) -> None:
        view = self.view
        if view.param("cs_option_terms") is not None and view.param("cs_option_terms_value") is None:
            view.terms_error = True
            view.standard_step_active = "summary"
            raise ClientError("Please accept the terms and conditions")
        super().init()

    def data(self, view, tags: List[str], expire=None):
        basket = BasketController(self.context).get()
        view.summary_basket = basket
        view.summary_addresses = {
            type: [address_string(view, addr) for addr in basket.get_addresses(type)]
            for type in (TYPE_PAYMENT, TYPE_DELIVERY)
        }
        view.summary_terms_url = view.config("client/html/checkout/standard/summary/option/terms/url", "")
        return super().data(view, tags, expire)


@register("checkout/standard/process")
class CheckoutProcess(CheckoutStep):
    step = "process"
    template_body = "checkout/standard/process-body"
    view_prefix = "process"

    def init(self) -> None:
        view = self.view
        if view.param("cs_order") is None:
            return

        basket_cntl = BasketController(self.context)
        basket = basket_cntl.get()
        if basket.get_address(TYPE_PAYMENT) is None:
            view.standard_step_active = "address"
            raise ClientError("Please enter a payment address")

        order = OrderController(self.context).add(basket).store().get()
        basket_cntl.clear()

        view.process_order = order
        view.standard_step_active = "process"
        super().init()


@register("checkout/update")
class CheckoutUpdate(HtmlClient):
    """Receives status updates pushed by payment providers."""

    view_prefix = "update"
    root = True

    def init(self) -> None:
        view = self.view
        try:
            ServiceController(self.context).update_push(view.request, view.response, view.param("code", ""))
        except Exception as exc:
            view.response.status_code = 500
            view.response.set_data(str(exc))
            self.context.logger.error(
                "Updating order status failed: %s\n%s\n%s",
                exc,
                view.param(),
                view.request.get_data(as_text=True) if view.request is not None else "",
            )