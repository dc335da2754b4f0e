import logging
import uuid

from flask import g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"


def init_request_id() -> str:
    rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    g.request_id = rid
    return rid


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to log records ("-" outside of requests)."""

    def filter(self, record: logging.LogRecord) -> bool:
        rid = None
        if has_request_context():
            rid = getattr(g, "request_id", None)
        record.request_id = rid or "-"
        return True
