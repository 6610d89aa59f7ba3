import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from app.core.config import settings

# Correlation id for the request currently being handled
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestJsonFormatter(JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname


class RequestIdFilter(logging.Filter):
    """Plain-text counterpart of the JSON formatter's request id injection."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


def setup_logging() -> None:
    root = logging.getLogger()
    # idempotent: re-importing the app (tests, reloaders) must not stack handlers
    for h in list(root.handlers):
        if getattr(h, "_review_engine", False):
            root.removeHandler(h)

    handler = logging.StreamHandler()
    handler._review_engine = True
    if settings.LOG_JSON:
        handler.setFormatter(RequestJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
    else:
        handler.addFilter(RequestIdFilter())
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s")
        )
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL.upper())

    # Suppress verbose logs from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
