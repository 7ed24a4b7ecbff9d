"""
Logging setup with request-scoped correlation ids.

``request_id_var`` holds the id of the request currently being served; it
is set by ``RequestLogMiddleware`` and read by ``RequestIDFilter`` so that
every record carries ``%(request_id)s``.  Records emitted outside a request
(startup, scripts) get a dash.
"""
import logging
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"


class RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        return True


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.  Safe to call twice."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in root.handlers:
        if getattr(handler, "_social_api", False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIDFilter())
    handler._social_api = True
    root.addHandler(handler)
