import json
import logging
import sys

# Attributes passed through ``extra=`` that end up in the JSON line.
CONTEXT_FIELDS = ("saga", "store", "caller", "path")

QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "stripe")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record. Context attributes attached with
    ``logger.info(..., extra={"saga": name})`` are copied in when present.
    """
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(
            {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    """
    Route everything through a single stdout handler on the root logger.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
