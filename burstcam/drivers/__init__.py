"""Camera drivers."""

from .base import CameraDriver, DeviceLimits, DrainResult, FrameStream, StreamFrame
from .simulated import SimulatedDriver, SimulatedStream
from .loader import BUILTIN_DRIVERS, load_driver, resolve_driver_class

__all__ = [
    "CameraDriver",
    "DeviceLimits",
    "DrainResult",
    "FrameStream",
    "StreamFrame",
    "SimulatedDriver",
    "SimulatedStream",
    "BUILTIN_DRIVERS",
    "load_driver",
    "resolve_driver_class",
]
