from storefront.app.common.validation import check_fields, css_classes, validate_fields
from storefront.app.config import STOREFRONT_DEFAULTS
from storefront.app.html.settings import Settings


def translate(domain, msgid):
    return msgid


def _settings(**extra):
    values = dict(STOREFRONT_DEFAULTS)
    values.update(extra)
    return Settings(values)


def _payment(**values):
    params = {
        "order.address.firstname": "Ada",
        "order.address.lastname": "Lovelace",
        "order.address.address1": "Main Street 1",
        "order.address.postal": "10115",
        "order.address.city": "Berlin",
        "order.address.languageid": "en",
        "order.address.email": "ada@example.com",
    }
    params.update({"order.address." + k: v for k, v in values.items()})
    return params


def test_complete_address_passes():
    cleaned, errors = check_fields(_settings(), _payment(), "payment", "order.address.", translate)

    assert errors == {}
    assert cleaned["order.address.city"] == "Berlin"


def test_missing_mandatory_field():
    params = _payment()
    del params["order.address.city"]
    params["order.address.lastname"] = "   "

    _, errors = check_fields(_settings(), params, "payment", "order.address.", translate)

    assert errors == {
        "city": 'Payment address part "city" is missing',
        "lastname": 'Payment address part "lastname" is missing',
    }


def test_invalid_value_is_reported_once():
    _, errors = check_fields(_settings(), _payment(postal="!!"), "payment", "order.address.", translate)

    assert errors == {"postal": 'Payment address part "postal" is invalid'}


def test_company_salutation_requires_company():
    _, errors = check_fields(_settings(), _payment(salutation="company"), "payment", "order.address.", translate)
    assert errors == {"company": 'Payment address part "company" is missing'}

    _, errors = check_fields(
        _settings(), _payment(salutation="company", company="ACME"), "payment", "order.address.", translate
    )
    assert errors == {}


def test_unknown_and_invalid_keys_are_dropped():
    cleaned, invalid = validate_fields(
        _settings(), {"order.address.city": "Berlin", "order.address.postal": "!!", "order.address.id": "5"},
        ["city", "postal"],
    )

    assert cleaned == {"order.address.city": "Berlin"}
    assert invalid == {"postal": "postal"}


def test_empty_values_are_matched_by_the_regex():
    # the default patterns accept ""
    cleaned, invalid = validate_fields(_settings(), {"customer.telephone": ""}, ["telephone"])
    assert cleaned == {"customer.telephone": ""}
    assert invalid == {}

    settings = _settings(**{"client/html/common/address/validate/countryid": r"^[A-Z]{2}$"})
    cleaned, invalid = validate_fields(settings, {"order.address.countryid": ""}, ["countryid"])
    assert cleaned == {}
    assert invalid == {"countryid": "countryid"}


def test_empty_value_with_strict_pattern_is_invalid():
    settings = _settings(**{"client/html/common/address/validate/countryid": r"^[A-Z]{2}$"})
    _, errors = check_fields(settings, _payment(countryid=""), "payment", "order.address.", translate)

    assert errors == {"countryid": 'Payment address part "countryid" is invalid'}


def test_empty_mandatory_value_is_missing():
    _, errors = check_fields(_settings(), _payment(postal="", email=""), "payment", "order.address.", translate)

    assert errors == {
        "postal": 'Payment address part "postal" is missing',
        "email": 'Payment address part "email" is missing',
    }


def test_delivery_messages_and_field_lists():
    _, errors = check_fields(_settings(), {}, "delivery", "order.address.", translate)

    assert "email" not in errors
    assert errors["firstname"] == 'Delivery address part "firstname" is missing'


def test_messages_are_translated():
    messages = {'Delivery address part "%s" is missing': 'Lieferadresse: "%s" fehlt'}
    _, errors = check_fields(
        _settings(), {}, "delivery", "order.address.", lambda domain, msgid: messages.get(msgid, msgid)
    )

    assert errors["city"] == 'Lieferadresse: "city" fehlt'


def test_css_classes():
    settings = _settings(**{"client/html/common/address/delivery/hidden": ["vatid"]})
    css = css_classes(settings, "delivery")

    assert css["firstname"] == ["mandatory"]
    assert css["company"] == ["optional"]
    assert "hidden" in css["vatid"]
