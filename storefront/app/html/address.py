from __future__ import annotations

# Translatable so shops can reorder the parts per language.
ADDRESS_FORMAT = """{company}
{salutation} {title} {firstname} {lastname}
{address1} {address2}
{address3}
{postal} {city}
{state}
{country}
{language}
{email}
{telephone}
{telefax}
{mobile}
{website}
{vatid}"""


def address_string(view, address) -> str:
    """Multi-line text of an address item, without empty lines."""
    values = address.address_values()
    values["salutation"] = view.translate("mshop/code", values["salutation"]) if values["salutation"] else ""
    values["country"] = view.translate("country", values["countryid"]) if values["countryid"] else ""
    values["language"] = view.translate("language", values["languageid"]) if values["languageid"] else ""

    text = view.translate("client", ADDRESS_FORMAT).format(**values)
    lines = (" ".join(line.split()) for line in text.splitlines())
    return "\n".join(line for line in lines if line)
