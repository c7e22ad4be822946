import logging
import sys
import json
from typing import Any

SERVICE_NAME = "whichmovie"

# Attributes every LogRecord carries; anything else came in through "extra"
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# httpx request lines include the OMDB api key in the query string
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per log line. Fields passed through `extra=` (request_id,
    user_id, movie_id, attempt, ...) are copied to the top level.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        log_obj.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # datetimes, enums and exceptions in extras are rendered with str()
        return json.dumps(log_obj, default=str)


def setup_logging(level: str = "INFO"):
    """
    Send every log record, uvicorn's included, to stdout as JSON.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers = [handler]

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.handlers = []
    access_logger.propagate = True

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
