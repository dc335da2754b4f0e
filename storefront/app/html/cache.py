"""Database backed cache for rendered HTML fragments.

Entries carry tags (``product-12``, ``catalog``) so that everything built
from a changed record can be dropped at once, and an optional expiry date
taken from the records shown in the fragment.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime
from typing import Any, Iterable

logger = logging.getLogger(__name__)


def cache_key(**parts: Any) -> str:
    payload = json.dumps(parts, sort_keys=True, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class HtmlCache:
    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["storefront_cache"] = self

    def get(self, key: str) -> str | None:
        from storefront.app.extensions import db
        from storefront.app.models import CacheEntry

        entry = db.session.get(CacheEntry, key)
        if entry is None:
            return None
        if entry.expire is not None and entry.expire <= datetime.utcnow():
            return None
        return entry.value

    def set(self, key: str, value: str, tags: Iterable[str] = (), expire: datetime | None = None) -> None:
        from storefront.app.extensions import db
        from storefront.app.models import CacheEntry, CacheTag

        entry = db.session.get(CacheEntry, key)
        if entry is None:
            entry = CacheEntry(id=key)
            db.session.add(entry)
        entry.value = value
        entry.expire = expire
        entry.tags = [CacheTag(name=name) for name in sorted(set(tags))]
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.debug("cached %s (%d tags, expire=%s)", key, len(entry.tags), expire)

    def delete(self, key: str) -> None:
        from storefront.app.extensions import db
        from storefront.app.models import CacheEntry

        entry = db.session.get(CacheEntry, key)
        if entry is not None:
            db.session.delete(entry)
            db.session.commit()

    def delete_by_tags(self, tags: Iterable[str]) -> int:
        from storefront.app.extensions import db
        from storefront.app.models import CacheEntry, CacheTag

        names = list(set(tags))
        if not names:
            return 0
        ids = [row.entry_id for row in CacheTag.query.filter(CacheTag.name.in_(names)).all()]
        count = 0
        for entry in CacheEntry.query.filter(CacheEntry.id.in_(ids)).all():
            db.session.delete(entry)
            count += 1
        db.session.commit()
        logger.info("removed %d cache entries for tags %s", count, names)
        return count

    def clear(self) -> int:
        from storefront.app.extensions import db
        from storefront.app.models import CacheEntry

        count = 0
        for entry in CacheEntry.query.all():
            db.session.delete(entry)
            count += 1
        db.session.commit()
        return count
