"""Logging and configuration-file plumbing shared by every burstcam module."""

from .logging_utils import LoggerLike, StructuredLogger, ensure_structured_logger, get_module_logger
from .logging_config import configure_logging
from .config_manager import ConfigManager

__all__ = [
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
    "configure_logging",
    "ConfigManager",
]
