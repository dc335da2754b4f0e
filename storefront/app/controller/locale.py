from __future__ import annotations

from typing import List

from storefront.app.models import Locale


class LocaleController:
    def __init__(self, context):
        self.context = context

    def languages(self) -> List[str]:
        """Active language ids, falling back to the language of the request."""
        rows = Locale.query.filter_by(is_active=True).order_by(Locale.position, Locale.id).all()
        result: List[str] = []
        for row in rows:
            if row.language_id not in result:
                result.append(row.language_id)
        return result or [self.context.locale]
