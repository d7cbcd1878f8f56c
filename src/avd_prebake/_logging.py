"""Centralized logging for avd-prebake.

Library logging conventions (Python docs, PEP 282):
- Attach NullHandler to library root logger
- Never add other handlers from library code -- that's the entry point's job
- Support PREBAKE_LOG_LEVEL env var for level control
- Provide configure_logging() for the CLI

CLI output format (httpx convention):
    WARNING [2026-02-25 10:02:54] avd_prebake.readiness - message

The pipeline is a single coroutine supervising one emulator, so records are
written synchronously to stderr through click.echo() (ANSI styling is stripped
automatically when stderr is not a TTY).

References:
- https://docs.python.org/3/howto/logging.html#configuring-logging-for-a-library
- https://www.python-httpx.org/logging/
"""

import logging
import os

import click

LIBRARY_LOGGER_NAME: str = "avd_prebake"

logging.getLogger(LIBRARY_LOGGER_NAME).addHandler(logging.NullHandler())

# Honor PREBAKE_LOG_LEVEL env var (e.g. "DEBUG", "WARNING", "ERROR")
_env_level = os.environ.get("PREBAKE_LOG_LEVEL", "").strip().upper()
_env_level_value = logging.getLevelNamesMapping().get(_env_level)
if _env_level_value:  # excludes NOTSET (0) and missing keys (None)
    logging.getLogger(LIBRARY_LOGGER_NAME).setLevel(_env_level_value)

_FMT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Fields attached through ``extra=`` that are rendered after the message.
_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class _ExtraFormatter(logging.Formatter):
    """Formatter that appends structured ``extra`` fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        if not extras:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in extras.items())
        return f"{base} ({rendered})"


class _ClickHandler(logging.Handler):
    """Writes records to stderr via click.echo, dimmed below WARNING."""

    def __init__(self) -> None:
        super().__init__()
        self.formatter = _ExtraFormatter(fmt=_FMT, datefmt=_DATEFMT)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            if record.levelno >= logging.ERROR:
                styled = click.style(msg, fg="red")
            elif record.levelno >= logging.WARNING:
                styled = click.style(msg, fg="yellow")
            else:
                styled = click.style(msg, dim=True)
            click.echo(styled, err=True)
        except Exception:  # noqa: BLE001
            self.handleError(record)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name.

    All avd_prebake modules should use this instead of logging.getLogger()
    directly for a consistent logger hierarchy.
    """
    return logging.getLogger(name)


def configure_logging(
    *,
    level: int | str | None = None,
    quiet: bool = False,
) -> None:
    """Configure library logging for the CLI entry point.

    Adds a _ClickHandler if none exists (idempotent), then sets the log level.
    Callers who configure their own handlers are unaffected.

    Args:
        level: Log level (e.g. logging.DEBUG, "WARNING"). Overrides env var.
        quiet: If True, set level to ERROR. Takes precedence over level.
    """
    lib_logger = logging.getLogger(LIBRARY_LOGGER_NAME)

    if not any(isinstance(h, _ClickHandler) for h in lib_logger.handlers):
        lib_logger.addHandler(_ClickHandler())

    if quiet:
        lib_logger.setLevel(logging.ERROR)
    elif level is not None:
        lib_logger.setLevel(level)
    elif lib_logger.level == logging.NOTSET:
        lib_logger.setLevel(logging.INFO)
