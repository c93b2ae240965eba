"""Component-tagged loggers under the ``burstcam`` namespace."""

from __future__ import annotations

import logging
from typing import Optional, Union

PACKAGE_LOGGER_NAMESPACE = "burstcam"


class StructuredLogger:
    """Prefixes every message with ``[component]``; other attributes pass through."""

    __slots__ = ("_logger", "_component")

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        self._logger = logger
        self._component = component or _component_from_name(logger.name)

    def __getattr__(self, item):
        return getattr(self._logger, item)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    def _emit(self, level: int, message: object, args: tuple, **kwargs) -> None:
        if not self._logger.isEnabledFor(level):
            return
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} | args={' '.join(str(arg) for arg in args)}"
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, "[%s] %s", self._component, text, **kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.DEBUG, message, args, **kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.INFO, message, args, **kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.WARNING, message, args, **kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.ERROR, message, args, **kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, message, args, **kwargs)


LoggerLike = Union[StructuredLogger, logging.Logger, None]


def _component_from_name(name: str) -> str:
    suffix = name[len(PACKAGE_LOGGER_NAMESPACE):].lstrip(".") if name.startswith(PACKAGE_LOGGER_NAMESPACE) else name
    return suffix.rsplit(".", 1)[-1] or "Core"


def get_module_logger(name: Optional[str] = None, *, component: Optional[str] = None) -> StructuredLogger:
    if not name:
        qualified = PACKAGE_LOGGER_NAMESPACE
    elif name.startswith(PACKAGE_LOGGER_NAMESPACE):
        qualified = name
    else:
        qualified = f"{PACKAGE_LOGGER_NAMESPACE}.{name}"
    return StructuredLogger(logging.getLogger(qualified), component=component)


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Wrap a caller-supplied logger, or fall back to ``fallback_name`` in the package tree."""

    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component=component)
    return get_module_logger(fallback_name, component=component)


__all__ = [
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
