"""burstcam - bounded burst capture from machine-vision cameras."""

from __future__ import annotations

from importlib import metadata

from .errors import (
    AcquisitionAborted,
    AcquisitionTimeout,
    AlreadyConsumed,
    BurstCamError,
    CapacityExceeded,
    ConfigError,
    DeviceDisconnected,
    DeviceError,
    ExportError,
    InvalidStateTransition,
    MalformedMetadata,
    UnsupportedBitDepth,
)
from .config import AcquisitionConfig, BurstCamConfig, DeviceLimits, Roi, load_config, load_config_file
from .capture.frame import Frame, MetadataChunk, PixelFormat
from .capture.buffer import FrameBatch, FrameBuffer
from .capture.state import PreviewStatus, SessionFacts, SessionState
from .capture.observer import LoggingObserver, SessionObserver
from .capture.session import AcquisitionSession
from .drivers import CameraDriver, SimulatedDriver, load_driver
from .recording import ExportResult, TiffStackExporter, VideoExporter, select_exporter
from .diagnostics import TimingDiagnostics, compute_timing, write_timing_csv

try:
    __version__ = metadata.version("burstcam")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"

__all__ = [
    "AcquisitionAborted",
    "AcquisitionConfig",
    "AcquisitionSession",
    "AcquisitionTimeout",
    "AlreadyConsumed",
    "BurstCamConfig",
    "BurstCamError",
    "CameraDriver",
    "CapacityExceeded",
    "ConfigError",
    "DeviceDisconnected",
    "DeviceError",
    "DeviceLimits",
    "ExportError",
    "ExportResult",
    "Frame",
    "FrameBatch",
    "FrameBuffer",
    "InvalidStateTransition",
    "LoggingObserver",
    "MalformedMetadata",
    "MetadataChunk",
    "PixelFormat",
    "PreviewStatus",
    "Roi",
    "SessionFacts",
    "SessionObserver",
    "SessionState",
    "SimulatedDriver",
    "TiffStackExporter",
    "TimingDiagnostics",
    "UnsupportedBitDepth",
    "VideoExporter",
    "__version__",
    "compute_timing",
    "load_config",
    "load_config_file",
    "load_driver",
    "select_exporter",
    "write_timing_csv",
]
