"""
Logging helpers for the fire-direction engine.

The package never configures handlers on import: the ``fdc`` root logger
carries a NullHandler and applications opt in through configure_logging().
Structured extras (``field_*`` attributes) are rendered as a JSON suffix so
calculation audit entries can be grepped out of a plain log file.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

ROOT_LOGGER_NAME = "fdc"

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


class StructuredFormatter(logging.Formatter):
    """Formatter producing ``[time] LEVEL name: message | {json}`` lines."""

    def __init__(self, include_json: bool = True):
        super().__init__()
        self.include_json = include_json

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        basic_line = f"[{timestamp}] {record.levelname:8} {record.name}: {record.getMessage()}"

        if not self.include_json:
            return basic_line

        structured_data: Dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key.startswith("field_") or key == "category":
                structured_data[key] = value

        if record.exc_info:
            structured_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        structured_data["location"] = {
            "filename": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }
        json_data = json.dumps(structured_data, default=str, ensure_ascii=False)
        return f"{basic_line} | {json_data}"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the ``fdc`` namespace.

    Args:
        name: Module name; ``__name__`` of an ``fdc`` module is used as is.

    Returns:
        The stdlib logger for that name.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    include_json: bool = True,
) -> logging.Logger:
    """
    Attach console (and optionally rotating file) handlers to the package logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        level: Minimum level, as a logging constant or a name like "DEBUG".
        log_file: Optional path of a rotating log file.
        include_json: Append structured extras to file records.

    Returns:
        The configured ``fdc`` root logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    for handler in list(root.handlers):
        if not isinstance(handler, logging.NullHandler):
            root.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(StructuredFormatter(include_json=False))
    root.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=5 * 1024 * 1024, backupCount=3
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(StructuredFormatter(include_json=include_json))
        root.addHandler(file_handler)

    return root


def log_calculation(
    logger: logging.Logger,
    calculation_type: str,
    inputs: Dict[str, Any],
    results: Dict[str, Any],
    level: int = logging.DEBUG,
) -> None:
    """Record a calculation audit entry with its inputs and results."""
    logger.log(
        level,
        f"CALCULATION: {calculation_type}",
        extra={
            "category": "CALCULATION",
            "field_inputs": inputs,
            "field_results": results,
        },
    )
