"""Logging abstraction layer for the AC controller.

Provides dual-format logging (JSON + human-readable) with correlation IDs and
structured context. Handlers are installed once on the package logger; module
loggers obtained through :func:`get_logger` propagate to it.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast, override

from ch_ac_controller.correlation import get_correlation_id

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "AcLogger",
    "CorrelationFilter",
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_logging",
    "get_logger",
]

PACKAGE_LOGGER_NAME = "ch_ac_controller"
_NO_CORRELATION = "--------"


class CorrelationFilter(logging.Filter):
    """Stamp every record with the correlation ID of the current context."""

    def __init__(self, enabled: bool = True) -> None:
        super().__init__()
        self.enabled: bool = enabled

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() if self.enabled else None
        return True


def _extra_data(record: logging.LogRecord) -> Mapping[str, object] | None:
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping) and extra_data:
        return cast("Mapping[str, object]", extra_data)
    return None


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }

        context = _extra_data(record)
        if context:
            log_data["context"] = dict(context)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with correlation IDs."""

    def __init__(self) -> None:
        # Format: timestamp level [module:line] [correlation] > message | key=value ...
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] [%(short_correlation)s] > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        # UUIDv7 leads with the timestamp; the tail is what tells records apart
        record.short_correlation = correlation_id[-8:] if correlation_id else _NO_CORRELATION

        formatted = super().format(record)

        context = _extra_data(record)
        if context:
            context_str = " | ".join(f"{k}={v}" for k, v in context.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


def _human_handler(human_output: str | None) -> logging.Handler:
    normalized_output = human_output or "stdout"
    if normalized_output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if normalized_output == "stderr":
        return logging.StreamHandler(sys.stderr)
    try:
        human_path = Path(normalized_output)
        human_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(human_path, mode="a")
    except OSError as e:
        print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stdout)


def configure_logging(
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
    level: int | None = None,
    *,
    force: bool = False,
) -> logging.Logger:
    """Install handlers on the package logger (once, unless ``force``).

    Args:
        log_format: Output format - "json", "human", or "both"
        json_file: Path for JSON output (None/empty disables JSON file output)
        human_output: "stdout", "stderr", or file path for human-readable output
        level: Log level (defaults to DEBUG when CHAC_DEBUG is set, else INFO)
        force: Replace any handlers that are already installed

    Returns:
        The configured package logger

    """
    from ch_ac_controller.const import (  # noqa: PLC0415
        CHAC_DEBUG,
        CHAC_LOG_CORRELATION_ENABLED,
        CHAC_LOG_FORMAT,
        CHAC_LOG_HUMAN_OUTPUT,
        CHAC_LOG_JSON_FILE,
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if package_logger.handlers and not force:
        return package_logger

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    log_format = log_format or CHAC_LOG_FORMAT
    json_file = json_file or CHAC_LOG_JSON_FILE
    human_output = human_output or CHAC_LOG_HUMAN_OUTPUT
    if level is None:
        level = logging.DEBUG if CHAC_DEBUG else logging.INFO

    package_logger.setLevel(level)
    correlation_filter = CorrelationFilter(enabled=CHAC_LOG_CORRELATION_ENABLED)

    if log_format in ("json", "both") and json_file:
        try:
            json_path = Path(json_file)
            json_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler = logging.FileHandler(json_path, mode="a")
        except OSError as e:
            print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)
        else:
            json_handler.setFormatter(JSONFormatter())
            json_handler.addFilter(correlation_filter)
            json_handler.setLevel(level)
            package_logger.addHandler(json_handler)

    if log_format in ("human", "both"):
        human_handler = _human_handler(human_output)
        human_handler.setFormatter(HumanReadableFormatter())
        human_handler.addFilter(correlation_filter)
        human_handler.setLevel(level)
        package_logger.addHandler(human_handler)

    return package_logger


class AcLogger:
    """Thin wrapper adding structured ``extra=`` context to a stdlib logger."""

    def __init__(self, name: str) -> None:
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload = {"extra_data": dict(extra)} if extra else None
        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def critical(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.CRITICAL, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR level with the active exception's traceback."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)


def get_logger(name: str) -> AcLogger:
    """Get an AcLogger for ``name``, configuring package handlers on first use."""
    configure_logging()
    return AcLogger(name)
