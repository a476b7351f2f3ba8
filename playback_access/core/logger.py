# playback_access/core/logger.py
from __future__ import annotations

"""
Playback Access • Logging (Loguru)
----------------------------------
Importing this module configures the process once:

- one console sink, pretty by default or one JSON object per line (`LOG_JSON=1`)
- `request_id` (bound by RequestIDMiddleware) on every record, so an access
  decision can be traced back to its request
- stdlib loggers of the app and its frameworks routed into Loguru
- optional rotating file sink (`LOG_TO_FILE=1`, `LOG_PATH`, `LOG_ROTATION`)
"""

import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

load_dotenv()


def _flag(name: str) -> bool:
    return os.getenv(name, "0").lower() in {"1", "true", "yes"}


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = _flag("LOG_JSON")
LOG_TO_FILE = _flag("LOG_TO_FILE")
LOG_PATH = Path(os.getenv("LOG_PATH", "logs/playback-access.log"))
LOG_ROTATION = os.getenv("LOG_ROTATION", "10 MB")

# The components log through `logging.getLogger(__name__)`
_INTERCEPTED = ("playback_access", "uvicorn", "uvicorn.error", "fastapi", "redis", "botocore")


def _fmt_pretty(record) -> str:
    record["extra"].setdefault("request_id", "-")
    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        "<cyan>{extra[logger_name]}</cyan> - <level>{message}</level> "
        "| request_id={extra[request_id]}\n{exception}"
    )


def _fmt_json(record) -> str:
    extra = record["extra"]
    doc = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": extra.get("logger_name", record["name"]),
        "message": record["message"],
        "request_id": extra.get("request_id"),
    }
    if record["exception"] is not None:
        exc = record["exception"].value
        doc["exception"] = f"{type(exc).__name__}: {exc}"
    extra["serialized"] = json.dumps(doc, ensure_ascii=False, default=str)
    return "{extra[serialized]}\n"


def _with_logger_name(record) -> bool:
    # stdlib records carry their logger name; direct loguru calls use the module
    record["extra"].setdefault("logger_name", record["name"])
    return True


_FORMAT = _fmt_json if LOG_JSON else _fmt_pretty

logger.remove()
logger.add(sys.stdout, level=LOG_LEVEL, format=_FORMAT, filter=_with_logger_name, enqueue=True)
if LOG_TO_FILE:
    LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(LOG_PATH),
        rotation=LOG_ROTATION,
        level=LOG_LEVEL,
        format=_FORMAT,
        filter=_with_logger_name,
        enqueue=True,
    )


class InterceptHandler(logging.Handler):
    """Forward a stdlib record to Loguru, keeping level, logger name and traceback."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(logger_name=record.name).opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


def install_logging() -> None:
    for name in _INTERCEPTED:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.setLevel(LOG_LEVEL)
        std_logger.propagate = False


install_logging()
