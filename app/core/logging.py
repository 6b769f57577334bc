import json
import logging
import sys
from contextvars import ContextVar

request_id_var = ContextVar("request_id", default="system")

# Attributes passed with `extra={...}` that are copied into the JSON line
CONTEXT_FIELDS = (
    "user_id",
    "order_id",
    "product_id",
    "review_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
)


class RequestIdFilter(logging.Filter):
    def filter(self, record):
        record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line. UUIDs, Decimals and other non-JSON values in the
    context fields are rendered with str().
    """

    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "file": f"{record.module}.py:{record.lineno}",
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "system"),
        }
        payload.update(
            {
                field: getattr(record, field)
                for field in CONTEXT_FIELDS
                if getattr(record, field, None) is not None
            }
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO"):
    stdout = logging.StreamHandler(sys.stdout)
    stdout.addFilter(RequestIdFilter())
    stdout.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.setLevel(level.upper())
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(stdout)

    # Request lines come from our own middleware
    for noisy, noisy_level in (
        ("uvicorn.access", logging.WARNING),
        ("sqlalchemy.engine", logging.WARNING),
        ("slowapi", logging.WARNING),
    ):
        logging.getLogger(noisy).setLevel(noisy_level)
