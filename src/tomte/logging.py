"""Structured logging setup shared by the host and loaded addons."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

_DEBUG = False

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _resolve_level(debug: bool) -> int:
    override = os.environ.get("TOMTE_LOG_LEVEL", "").strip().lower()
    if override in _LEVELS:
        return _LEVELS[override]
    return logging.DEBUG if debug else logging.INFO


def _drop_token(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    if "token" in event_dict:
        event_dict["token"] = "[redacted]"
    return event_dict


class _Stderr:
    # resolve sys.stderr per write so cached loggers follow redirection
    def write(self, text: str) -> int:
        return sys.stderr.write(text)

    def flush(self) -> None:
        sys.stderr.flush()


def setup_logging(*, debug: bool = False, cache_logger_on_first_use: bool = True) -> None:
    global _DEBUG
    _DEBUG = debug
    level = _resolve_level(debug)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
        _drop_token,
        structlog.processors.StackInfoRenderer(),
    ]
    if sys.stderr.isatty():
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=_Stderr()),
        cache_logger_on_first_use=cache_logger_on_first_use,
    )

    # py-cord logs through stdlib logging; keep it quiet unless debugging
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        stream=_Stderr(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def is_debug() -> bool:
    return _DEBUG


def get_logger(name: str | None = None) -> Any:
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


@contextmanager
def addon_context(**fields: Any) -> Iterator[None]:
    with structlog.contextvars.bound_contextvars(**fields):
        yield


def current_addon() -> str | None:
    """Label of the module whose load is in progress, if any."""
    value = structlog.contextvars.get_contextvars().get("addon")
    return value if isinstance(value, str) else None
