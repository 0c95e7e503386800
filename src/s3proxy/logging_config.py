"""Logging setup for s3proxy.

Two kinds of records go to stderr: diagnostics from the gateway modules,
filtered by the configured level, and access records on the
``s3proxy.access`` logger. Access records are written whenever access
logging is turned on, so that logger is pinned to INFO regardless of
``LOG_LEVEL``.
"""

import json
import logging
import sys
from datetime import datetime, timezone

ACCESS_LOGGER = "s3proxy.access"

# Extras attached to each access record by s3proxy.access
ACCESS_FIELDS = ("client", "elapsed", "status", "method", "path")


class JSONFormatter(logging.Formatter):
    """Renders a record as one JSON object per line.

    Access records also carry client, elapsed, status, method and path as
    top-level keys so log pipelines can index them without parsing the
    message.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in ACCESS_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Install a single stderr handler on the root logger.

    The root logger takes ``level``; the handler itself stays unfiltered so
    INFO access records propagated from ``s3proxy.access`` still reach it
    when ``level`` is WARNING or above.

    Args:
        level: Log level name for diagnostics. Unknown names mean INFO.
        fmt: 'text' for human-readable lines or 'json' for one object per line.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(handler)

    logging.getLogger(ACCESS_LOGGER).setLevel(logging.INFO)
