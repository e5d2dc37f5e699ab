import json
import logging
import uuid
from datetime import datetime, timezone

from rich.logging import RichHandler

# winston-style level names used in LoggingOptions
LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "http": logging.DEBUG + 5,
    "verbose": logging.DEBUG + 5,
    "debug": logging.DEBUG,
    "silly": logging.DEBUG - 5,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with a timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def resolve_level(name: str) -> int:
    try:
        return LEVELS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {name!r}") from None


def build_logger(options) -> logging.Logger:
    """
    Create a logger owned by one client.

    The logger is not registered with the logging manager, so two clients
    never share handlers or levels.
    """
    level = resolve_level(options.log_level)
    logger = logging.Logger(f"oaiclient.{uuid.uuid4().hex[:8]}", level=level)

    console = RichHandler(level=level, show_path=False)
    if options.log_format is not None:
        console.setFormatter(options.log_format)
    logger.addHandler(console)

    if options.log_to_file and options.log_file_path:
        file_handler = logging.FileHandler(options.log_file_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(options.log_format or JsonFormatter())
        logger.addHandler(file_handler)

    return logger
