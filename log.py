"""
log.py
------
Process-wide logging setup. Every record leaves on stdout as a single JSON
line so the hosting platform can index it without a parser of its own.

Callers attach request context with ``extra=``; only the names listed in
``CONTEXT_FIELDS`` are copied onto the line.
"""
import json
import logging
import sys
import time

HANDLER_NAME = "portal-stdout"

CONTEXT_FIELDS = ("uid", "component")

# Loggers of libraries that report every HTTP round trip at INFO.
NOISY_LOGGERS = ("urllib3", "pymongo", "google.auth")


class LineFormatter(logging.Formatter):
    """Render a record as compact JSON: time, severity, source and msg first."""

    converter = time.gmtime

    def format(self, record):
        stamp = self.formatTime(record, "%Y-%m-%dT%H:%M:%S")
        line = {
            "time": f"{stamp}.{int(record.msecs):03d}Z",
            "severity": record.levelname,
            "source": record.name,
            "msg": record.getMessage(),
        }
        line.update(
            (name, record.__dict__[name]) for name in CONTEXT_FIELDS if name in record.__dict__
        )
        if record.exc_info:
            line["trace"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, separators=(",", ":"), default=str)


def configure_logging(level="INFO"):
    """Install the stdout handler on the root logger once per process."""
    root = logging.getLogger()
    # getLevelName maps a known name to its number; anything else to a str.
    level_no = logging.getLevelName(level.upper())
    root.setLevel(level_no if isinstance(level_no, int) else logging.INFO)
    if any(h.get_name() == HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(LineFormatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
