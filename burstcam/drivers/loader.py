"""Resolve a camera driver from a short name or ``package.module:Class`` spec."""

from __future__ import annotations

import importlib
from typing import Any, Callable, Dict

from burstcam.core.logging_utils import get_module_logger
from burstcam.drivers.base import CameraDriver
from burstcam.errors import ConfigError

logger = get_module_logger("DriverLoader")

BUILTIN_DRIVERS: Dict[str, str] = {
    "simulated": "burstcam.drivers.simulated:SimulatedDriver",
}


def resolve_driver_class(spec: str) -> Callable[..., CameraDriver]:
    target = BUILTIN_DRIVERS.get(spec.strip().lower(), spec.strip())
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Driver spec must be a builtin name or 'package.module:Class', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import driver module {module_name!r}: {exc}") from exc
    factory = getattr(module, attr, None)
    if factory is None:
        raise ConfigError(f"Module {module_name!r} has no attribute {attr!r}")
    return factory


def load_driver(spec: str = "simulated", **kwargs: Any) -> CameraDriver:
    """Instantiate the driver named by ``spec`` with ``kwargs``."""

    factory = resolve_driver_class(spec)
    driver = factory(**kwargs)
    if not isinstance(driver, CameraDriver):
        raise ConfigError(f"{spec!r} did not produce a CameraDriver (got {type(driver).__name__})")
    logger.info("Loaded camera driver %s", getattr(driver, "name", type(driver).__name__))
    return driver


__all__ = ["BUILTIN_DRIVERS", "load_driver", "resolve_driver_class"]
