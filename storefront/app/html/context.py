from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, MutableMapping

from flask import current_app, request, session

from storefront.app.html.settings import Settings


class Context:
    """Per request state shared by all HTML clients and frontend controllers."""

    def __init__(
        self,
        config: Settings,
        locale: str = "en",
        currency: str = "EUR",
        user_id: int | None = None,
        session: MutableMapping[str, Any] | None = None,
        cache=None,
        translations: Mapping[str, Mapping[str, Mapping[str, str]]] | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config
        self.locale = locale
        self.currency = currency
        self.user_id = user_id
        self.session = session if session is not None else {}
        self.cache = cache
        self.translations = translations or {}
        self.logger = logger or logging.getLogger("storefront.client")

    @classmethod
    def from_request(cls) -> "Context":
        from storefront.app.extensions import cache

        app_config = current_app.config
        locale = request.args.get("locale") or session.get("locale") or app_config.get("DEFAULT_LOCALE", "en")
        return cls(
            config=Settings(app_config.get("STOREFRONT", {})),
            locale=locale,
            currency=session.get("currency") or app_config.get("DEFAULT_CURRENCY", "EUR"),
            user_id=session.get("user_id"),
            session=session,
            cache=cache,
            translations=app_config.get("STOREFRONT_I18N", {}),
        )

    def translate(self, domain: str, msgid: str) -> str:
        catalog: Dict[str, str] = self.translations.get(self.locale, {}).get(domain, {})
        return catalog.get(msgid, msgid)
