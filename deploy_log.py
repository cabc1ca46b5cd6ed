# deploy_log.py
#
# Append-only audit trail: one "<timestamp>: <repository>" line per delivery.

import logging
from datetime import datetime
from typing import Optional

import config
from exceptions import LoggingError

logger = logging.getLogger(__name__)


def format_entry(repository_name: str, timestamp_format: Optional[str] = None,
                 now: Optional[datetime] = None) -> str:
    timestamp_format = timestamp_format or config.DEPLOY_LOG_TIMESTAMP_FORMAT
    now = now or datetime.now()
    safe_name = repository_name.replace("\r", "\\r").replace("\n", "\\n")
    return f"{now.strftime(timestamp_format)}: {safe_name}\n"


def append_entry(repository_name: str, path: Optional[str] = None,
                 timestamp_format: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """
    Append one line to the deploy log and return it.

    Raises LoggingError when the file cannot be written.
    """
    path = path or config.DEPLOY_LOG_PATH
    entry = format_entry(repository_name, timestamp_format, now)
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(entry)
    except OSError as e:
        raise LoggingError(f"Could not append to deploy log '{path}': {e}") from e

    logger.debug(f"Deploy log entry written to {path}: {entry.rstrip()}")
    return entry
