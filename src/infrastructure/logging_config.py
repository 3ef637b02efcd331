"""Logging configuration.

Human-readable log lines by default, JSON lines when EH_LOG_JSON=true.

Security Impact:
    - Pass keys and their hashes are never passed to the logger
    - Default level is WARNING, so disease names stay out of routine output
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

HUMAN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredFormatter(logging.Formatter):
    """One JSON object per log line, UTC timestamps with a trailing Z."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


def setup_logging(use_json: bool = False, log_level: str = "INFO") -> None:
    """Install a single stderr handler on the root logger.

    stdout is left to command output (tables, search links).

    Parameters:
        use_json: Use JSON formatting
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if use_json:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(HUMAN_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # duckdb and pandas stay quiet unless something is wrong
    logging.getLogger("duckdb").setLevel(logging.WARNING)
    logging.getLogger("pandas").setLevel(logging.WARNING)
