"""
Logging configuration for the portfolio manager.

Provides consistent logging setup for both Lambda (JSON format for CloudWatch)
and local/uvicorn (human-readable format) contexts.

Usage:
    from portfolio_manager.core.logging_config import setup_logging, get_logger

    setup_logging()  # Auto-detects Lambda vs local
    logger = get_logger(__name__)

    logger.info("Holding created", extra={'ticker': 'AAPL'})
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional


# Attributes every LogRecord carries; anything else came in through ``extra``
RESERVED_FIELDS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'taskName', 'message'
}

PACKAGE_PREFIX = 'portfolio_manager.'


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in record.__dict__.items()
        if key not in RESERVED_FIELDS
    }


def _json_value(value: Any) -> Any:
    # Decimals are logged as strings so amounts stay exact
    if isinstance(value, Decimal):
        return str(value)
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class JsonFormatter(logging.Formatter):
    """
    Format log records as JSON for CloudWatch Insights queries.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.000Z",
        "level": "INFO",
        "logger": "portfolio_manager.services.holding_service",
        "message": "Holding created",
        "ticker": "AAPL",
        ...
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(timespec='milliseconds'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for key, value in _extra_fields(record).items():
            if key not in log_obj:
                log_obj[key] = _json_value(value)

        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class HumanFormatter(logging.Formatter):
    """
    Human-readable formatter for local runs.

    Output format:
    2024-01-15 10:30:00 INFO  [services.holding_service] Holding created (ticker=AAPL)
    """

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')

        level = record.levelname.ljust(5)
        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelname, '')
            level = f"{color}{level}{self.RESET}"

        logger_name = record.name
        if logger_name.startswith(PACKAGE_PREFIX):
            logger_name = logger_name[len(PACKAGE_PREFIX):]

        extras = [f"{key}={value}" for key, value in _extra_fields(record).items()]
        extra_str = f" ({', '.join(extras)})" if extras else ""

        output = f"{timestamp} {level} [{logger_name}] {record.getMessage()}{extra_str}"

        if record.exc_info:
            output += f"\n{self.formatException(record.exc_info)}"

        return output


def setup_logging(
    json_format: Optional[bool] = None,
    level: Optional[str] = None,
    logger_name: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        json_format: Use JSON format (True) or human-readable (False).
                    If None, auto-detects based on AWS_LAMBDA_FUNCTION_NAME.
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to the LOG_LEVEL env var or INFO.
        logger_name: Specific logger to configure. If None, configures root logger.
    """
    if json_format is None:
        json_format = 'AWS_LAMBDA_FUNCTION_NAME' in os.environ

    if level is None:
        level = os.getenv('LOG_LEVEL', 'INFO')
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JsonFormatter() if json_format else HumanFormatter())
    logger.addHandler(handler)

    if logger_name:
        logger.propagate = False

    # Botocore is chatty at DEBUG; keep it quiet unless asked for
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Hello", extra={'key': 'value'})
    """
    return logging.getLogger(name)
