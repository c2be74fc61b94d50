"""Console logging for the CLI: rich output with structured ``extra`` fields appended."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class EventFormatter(logging.Formatter):
    """Render ``event_name key=value ...`` from a record's message and ``extra`` payload."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        message = super().formatMessage(record)
        fields = {key: value for key, value in record.__dict__.items() if key not in _RESERVED}
        if not fields:
            return message
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))
        return f"{message} {rendered}"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Install a single rich handler on the ``talkbridge`` logger."""
    logger = logging.getLogger("talkbridge")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(rich_tracebacks=True, show_path=False, markup=False)
    handler.setFormatter(EventFormatter("%(message)s"))
    logger.addHandler(handler)
    return logger
