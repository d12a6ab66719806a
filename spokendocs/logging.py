"""Logging utilities for spokendocs builds."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, MutableMapping

_LOGGER_NAME = "spokendocs"
_CONSOLE_FORMAT = "[spokendocs] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class UnitLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with the module/command/language being built."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        label = unit_label(
            self.extra.get("module"),
            self.extra.get("command"),
            self.extra.get("lang"),
        )
        if label:
            return f"[{label}] {msg}", kwargs
        return msg, kwargs


def unit_label(module: str | None, command: str | None = None, lang: str | None = None) -> str:
    """Return a `module/command@lang` label, skipping missing parts."""
    parts = [part for part in (module, command) if part]
    label = "/".join(parts)
    if lang:
        label = f"{label}@{lang}" if label else lang
    return label


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the spokendocs hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def get_unit_logger(
    name: str,
    *,
    module: str | None = None,
    command: str | None = None,
    lang: str | None = None,
) -> UnitLoggerAdapter:
    """Return a logger that tags every record with the unit of work."""
    return UnitLoggerAdapter(
        get_logger(name),
        {"module": module, "command": command, "lang": lang},
    )


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the spokendocs logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated builds in one process do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = [
    "UnitLoggerAdapter",
    "configure_logging",
    "get_logger",
    "get_unit_logger",
    "unit_label",
]
