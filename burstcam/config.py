"""Typed configuration for burst acquisition."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from burstcam.capture.frame import PixelFormat
from burstcam.core.config_manager import ConfigManager
from burstcam.core.logging_utils import LoggerLike, ensure_structured_logger
from burstcam.defaults import (
    DEFAULT_ACQUIRE_TIMEOUT_S,
    DEFAULT_BINNING,
    DEFAULT_BINNING_RANGE,
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_EXPOSURE_RANGE_US,
    DEFAULT_EXPOSURE_US,
    DEFAULT_GAIN_DB,
    DEFAULT_GAIN_RANGE_DB,
    DEFAULT_ISP_ENABLE,
    DEFAULT_LABEL,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_OUTPUT_FPS,
    DEFAULT_PIXEL_FORMAT,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_PREVIEW_FPS,
    DEFAULT_ROI_SIZE,
    DEFAULT_SENSOR_SIZE,
    DEFAULT_STRICT_METADATA,
    DEFAULT_TARGET_FRAMES,
    DEFAULT_TIFF_COMPRESSION_LEVEL,
    DEFAULT_VIDEO_BACKEND,
    DEFAULT_VIDEO_CODEC,
    DEFAULT_VIDEO_CRF,
    DEFAULT_VIDEO_QUALITY,
)
from burstcam.errors import ConfigError

Resolution = Tuple[int, int]

EXPORT_FORMATS = ("mp4", "tif")
VIDEO_BACKENDS = ("pyav", "opencv")


@dataclass(frozen=True, slots=True)
class Roi:
    """Sensor read-out rectangle, in sensor pixels."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def centered(cls, sensor_size: Resolution, size: Resolution) -> "Roi":
        sensor_w, sensor_h = sensor_size
        width, height = size
        return cls((sensor_w - width) // 2, (sensor_h - height) // 2, width, height)

    @property
    def size(self) -> Resolution:
        return self.width, self.height

    def as_position(self) -> List[int]:
        """``[x_offset, y_offset, width, height]``"""
        return [self.x, self.y, self.width, self.height]


@dataclass(frozen=True, slots=True)
class DeviceLimits:
    """Ranges a device reports for its configurable features."""

    sensor_size: Resolution = DEFAULT_SENSOR_SIZE
    exposure_range_us: Tuple[float, float] = DEFAULT_EXPOSURE_RANGE_US
    gain_range_db: Tuple[float, float] = DEFAULT_GAIN_RANGE_DB
    binning_range: Tuple[int, int] = DEFAULT_BINNING_RANGE
    pixel_formats: Tuple[PixelFormat, ...] = tuple(PixelFormat)


@dataclass(frozen=True, slots=True)
class AcquisitionConfig:
    """Everything the device needs for one burst. Immutable once a session starts."""

    sensor_size: Resolution = DEFAULT_SENSOR_SIZE
    roi: Roi = field(default_factory=lambda: Roi.centered(DEFAULT_SENSOR_SIZE, DEFAULT_ROI_SIZE))
    binning: int = DEFAULT_BINNING
    exposure_us: float = DEFAULT_EXPOSURE_US
    gain_db: float = DEFAULT_GAIN_DB
    pixel_format: PixelFormat = PixelFormat.BAYER_RG8
    target_frames: int = DEFAULT_TARGET_FRAMES
    output_fps: float = DEFAULT_OUTPUT_FPS
    isp_enable: bool = DEFAULT_ISP_ENABLE

    def problems(self, limits: Optional[DeviceLimits] = None) -> List[str]:
        """Return every way this config violates its own or the device's bounds."""

        issues: List[str] = []
        sensor_w, sensor_h = limits.sensor_size if limits else self.sensor_size
        roi = self.roi

        if limits and tuple(self.sensor_size) != tuple(limits.sensor_size):
            issues.append(
                f"sensor size {self.sensor_size[0]}x{self.sensor_size[1]} does not match "
                f"device {sensor_w}x{sensor_h}"
            )
        if roi.width <= 0 or roi.height <= 0:
            issues.append(f"ROI size must be positive, got {roi.width}x{roi.height}")
        if roi.x < 0 or roi.y < 0:
            issues.append(f"ROI offset must be non-negative, got ({roi.x}, {roi.y})")
        if roi.x + roi.width > sensor_w:
            issues.append(f"ROI x offset + width ({roi.x} + {roi.width}) exceeds sensor width {sensor_w}")
        if roi.y + roi.height > sensor_h:
            issues.append(f"ROI y offset + height ({roi.y} + {roi.height}) exceeds sensor height {sensor_h}")

        if isinstance(self.binning, bool) or not isinstance(self.binning, int) or self.binning < 1:
            issues.append(f"binning must be an integer >= 1, got {self.binning!r}")
        elif limits and not limits.binning_range[0] <= self.binning <= limits.binning_range[1]:
            issues.append(f"binning {self.binning} outside device range {list(limits.binning_range)}")

        if not _finite(self.exposure_us) or self.exposure_us <= 0:
            issues.append(f"exposure time must be positive, got {self.exposure_us}")
        elif limits and not limits.exposure_range_us[0] <= self.exposure_us <= limits.exposure_range_us[1]:
            issues.append(f"exposure {self.exposure_us} us outside device range {list(limits.exposure_range_us)}")

        if not _finite(self.gain_db):
            issues.append(f"gain must be finite, got {self.gain_db}")
        elif limits and not limits.gain_range_db[0] <= self.gain_db <= limits.gain_range_db[1]:
            issues.append(f"gain {self.gain_db} dB outside device range {list(limits.gain_range_db)}")

        if not isinstance(self.pixel_format, PixelFormat):
            issues.append(f"unknown pixel format {self.pixel_format!r}")
        elif limits and self.pixel_format not in limits.pixel_formats:
            issues.append(f"pixel format {self.pixel_format.value} not supported by device")

        if isinstance(self.target_frames, bool) or not isinstance(self.target_frames, int) or self.target_frames <= 0:
            issues.append(f"target frame count must be a positive integer, got {self.target_frames!r}")
        if not _finite(self.output_fps) or self.output_fps <= 0:
            issues.append(f"output frame rate must be positive, got {self.output_fps}")
        return issues

    def validate(self, limits: Optional[DeviceLimits] = None) -> "AcquisitionConfig":
        issues = self.problems(limits)
        if issues:
            raise ConfigError(issues)
        return self


@dataclass(slots=True)
class SessionSettings:
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    timeout_s: Optional[float] = DEFAULT_ACQUIRE_TIMEOUT_S
    strict_metadata: bool = DEFAULT_STRICT_METADATA
    preview_fps: float = DEFAULT_PREVIEW_FPS


@dataclass(slots=True)
class ExportSettings:
    format: str = DEFAULT_EXPORT_FORMAT
    video_backend: str = DEFAULT_VIDEO_BACKEND
    video_codec: str = DEFAULT_VIDEO_CODEC
    video_crf: int = DEFAULT_VIDEO_CRF
    video_quality: int = DEFAULT_VIDEO_QUALITY
    tiff_compression_level: int = DEFAULT_TIFF_COMPRESSION_LEVEL


@dataclass(slots=True)
class StorageSettings:
    output_dir: Path = DEFAULT_OUTPUT_DIR
    label: str = DEFAULT_LABEL


@dataclass(slots=True)
class LoggingSettings:
    level: str = DEFAULT_LOG_LEVEL
    file: Optional[Path] = DEFAULT_LOG_FILE


@dataclass(slots=True)
class BurstCamConfig:
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)
    session: SessionSettings = field(default_factory=SessionSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public API


def load_config(
    values: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> BurstCamConfig:
    """Build a typed config from flat ``section.key`` values + optional overrides."""

    log = ensure_structured_logger(logger, fallback_name=__name__)
    merged: Dict[str, Any] = dict(values or {})
    if overrides:
        for key, value in overrides.items():
            if value is not None:
                merged[key] = value

    sensor_size = _coerce_resolution(merged, ("acquisition.sensor_size",), default=DEFAULT_SENSOR_SIZE, logger=log)
    roi_size = _coerce_resolution(merged, ("acquisition.roi",), default=DEFAULT_ROI_SIZE, logger=log)
    roi_offset = _coerce_optional_pair(merged, ("acquisition.roi_offset",), logger=log)
    if roi_offset is None:
        roi = Roi.centered(sensor_size, roi_size)
    else:
        roi = Roi(roi_offset[0], roi_offset[1], roi_size[0], roi_size[1])

    acquisition = AcquisitionConfig(
        sensor_size=sensor_size,
        roi=roi,
        binning=_coerce_int(merged, ("acquisition.binning",), DEFAULT_BINNING),
        exposure_us=_coerce_float(merged, ("acquisition.exposure_us",), DEFAULT_EXPOSURE_US),
        gain_db=_coerce_float(merged, ("acquisition.gain_db",), DEFAULT_GAIN_DB),
        pixel_format=_coerce_pixel_format(merged, ("acquisition.pixel_format",), DEFAULT_PIXEL_FORMAT, logger=log),
        target_frames=_coerce_int(merged, ("acquisition.target_frames", "frames"), DEFAULT_TARGET_FRAMES),
        output_fps=_coerce_float(merged, ("acquisition.output_fps",), DEFAULT_OUTPUT_FPS),
        isp_enable=_coerce_bool(merged, ("acquisition.isp_enable",), DEFAULT_ISP_ENABLE),
    )

    session = SessionSettings(
        poll_interval_ms=_coerce_int(merged, ("session.poll_interval_ms",), DEFAULT_POLL_INTERVAL_MS),
        timeout_s=_coerce_optional_float(
            merged, ("session.timeout_s", "timeout"), default=DEFAULT_ACQUIRE_TIMEOUT_S, logger=log
        ),
        strict_metadata=_coerce_bool(merged, ("session.strict_metadata",), DEFAULT_STRICT_METADATA),
        preview_fps=_coerce_float(merged, ("session.preview_fps",), DEFAULT_PREVIEW_FPS),
    )

    export_format = _coerce_str(merged, ("export.format", "format"), DEFAULT_EXPORT_FORMAT).lower()
    if export_format not in EXPORT_FORMATS:
        log.debug("Unknown export format %r, using %s", export_format, DEFAULT_EXPORT_FORMAT)
        export_format = DEFAULT_EXPORT_FORMAT
    video_backend = _coerce_str(merged, ("export.video_backend",), DEFAULT_VIDEO_BACKEND).lower()
    if video_backend not in VIDEO_BACKENDS:
        log.debug("Unknown video backend %r, using %s", video_backend, DEFAULT_VIDEO_BACKEND)
        video_backend = DEFAULT_VIDEO_BACKEND

    export = ExportSettings(
        format=export_format,
        video_backend=video_backend,
        video_codec=_coerce_str(merged, ("export.video_codec",), DEFAULT_VIDEO_CODEC),
        video_crf=_coerce_int(merged, ("export.video_crf",), DEFAULT_VIDEO_CRF),
        video_quality=_coerce_int(merged, ("export.video_quality",), DEFAULT_VIDEO_QUALITY),
        tiff_compression_level=_coerce_int(
            merged, ("export.tiff_compression_level",), DEFAULT_TIFF_COMPRESSION_LEVEL
        ),
    )

    storage = StorageSettings(
        output_dir=_coerce_path(merged, ("storage.output_dir", "output_dir"), DEFAULT_OUTPUT_DIR),
        label=_coerce_str(merged, ("storage.label", "label"), DEFAULT_LABEL),
    )

    log_file = _first_present(merged, ("logging.file", "log_file"))
    logging_settings = LoggingSettings(
        level=_coerce_str(merged, ("logging.level", "log_level"), DEFAULT_LOG_LEVEL).upper(),
        file=Path(str(log_file)) if log_file not in (None, "") else DEFAULT_LOG_FILE,
    )

    return BurstCamConfig(
        acquisition=acquisition,
        session=session,
        export=export,
        storage=storage,
        logging=logging_settings,
    )


def load_config_file(
    path: Path,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> BurstCamConfig:
    values = ConfigManager().read_config(Path(path))
    return load_config(values, overrides, logger=logger)


async def load_config_file_async(
    path: Path,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> BurstCamConfig:
    values = await ConfigManager().read_config_async(Path(path))
    return load_config(values, overrides, logger=logger)


def flatten_config(config: BurstCamConfig) -> Dict[str, Any]:
    """Inverse of :func:`load_config`; keys match the config file."""

    acq = config.acquisition
    updates: Dict[str, Any] = {}
    updates["acquisition.sensor_size"] = f"{acq.sensor_size[0]}x{acq.sensor_size[1]}"
    updates["acquisition.roi"] = f"{acq.roi.width}x{acq.roi.height}"
    updates["acquisition.roi_offset"] = f"{acq.roi.x},{acq.roi.y}"
    updates["acquisition.binning"] = acq.binning
    updates["acquisition.exposure_us"] = acq.exposure_us
    updates["acquisition.gain_db"] = acq.gain_db
    updates["acquisition.pixel_format"] = acq.pixel_format.value
    updates["acquisition.target_frames"] = acq.target_frames
    updates["acquisition.output_fps"] = acq.output_fps
    updates["acquisition.isp_enable"] = acq.isp_enable

    updates["session.poll_interval_ms"] = config.session.poll_interval_ms
    updates["session.timeout_s"] = config.session.timeout_s if config.session.timeout_s is not None else ""
    updates["session.strict_metadata"] = config.session.strict_metadata
    updates["session.preview_fps"] = config.session.preview_fps

    updates["export.format"] = config.export.format
    updates["export.video_backend"] = config.export.video_backend
    updates["export.video_codec"] = config.export.video_codec
    updates["export.video_crf"] = config.export.video_crf
    updates["export.video_quality"] = config.export.video_quality
    updates["export.tiff_compression_level"] = config.export.tiff_compression_level

    updates["storage.output_dir"] = str(config.storage.output_dir)
    updates["storage.label"] = config.storage.label

    updates["logging.level"] = config.logging.level
    updates["logging.file"] = str(config.logging.file) if config.logging.file else ""
    return updates


def as_dict(config: BurstCamConfig) -> Dict[str, Any]:
    """Nested dict representation (useful for logs and debug output)."""

    acquisition = asdict(config.acquisition)
    acquisition["pixel_format"] = config.acquisition.pixel_format.value
    return {
        "acquisition": acquisition,
        "session": asdict(config.session),
        "export": asdict(config.export),
        "storage": {**asdict(config.storage), "output_dir": str(config.storage.output_dir)},
        "logging": {
            "level": config.logging.level,
            "file": str(config.logging.file) if config.logging.file else None,
        },
    }


# ---------------------------------------------------------------------------
# Internal helpers


def _finite(value: Any) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _coerce_bool(data: Dict[str, Any], keys: Tuple[str, ...], default: bool) -> bool:
    raw = _first_present(data, keys)
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _coerce_str(data: Dict[str, Any], keys: Tuple[str, ...], default: str) -> str:
    raw = _first_present(data, keys)
    if raw is None:
        return default
    text = str(raw).strip()
    return text or default


def _coerce_int(data: Dict[str, Any], keys: Tuple[str, ...], default: int) -> int:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _coerce_float(data: Dict[str, Any], keys: Tuple[str, ...], default: float) -> float:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _coerce_optional_float(
    data: Dict[str, Any],
    keys: Tuple[str, ...],
    default: Optional[float],
    *,
    logger,
) -> Optional[float]:
    raw = _first_present(data, keys)
    if raw is None:
        return default
    if raw == "" or raw is False:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.debug("Failed to parse float from %r, using default %s", raw, default)
        return default


def _coerce_pixel_format(
    data: Dict[str, Any],
    keys: Tuple[str, ...],
    default: str,
    *,
    logger,
) -> PixelFormat:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return PixelFormat.parse(default)
    try:
        return PixelFormat.parse(raw)
    except ValueError:
        logger.warning("Unknown pixel format %r, using %s", raw, default)
        return PixelFormat.parse(default)


def _coerce_resolution(
    data: Dict[str, Any],
    keys: Tuple[str, ...],
    *,
    default: Resolution,
    logger,
) -> Resolution:
    raw = _first_present(data, keys)
    if raw is None:
        return default
    try:
        return _parse_pair(raw, "x")
    except ValueError:
        logger.debug("Failed to parse resolution from %r, using default %s", raw, default)
        return default


def _coerce_optional_pair(
    data: Dict[str, Any],
    keys: Tuple[str, ...],
    *,
    logger,
) -> Optional[Tuple[int, int]]:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return None
    try:
        return _parse_pair(raw, ",")
    except ValueError:
        logger.debug("Failed to parse offset from %r, centring ROI", raw)
        return None


def _parse_pair(raw: Any, separator: str) -> Tuple[int, int]:
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        return int(raw[0]), int(raw[1])
    if isinstance(raw, str):
        text = raw.lower()
        for sep in (separator, "x", ","):
            if sep in text:
                first, second = text.split(sep, 1)
                return int(first.strip()), int(second.strip())
    raise ValueError(f"Unsupported pair value: {raw!r}")


def _coerce_path(data: Dict[str, Any], keys: Tuple[str, ...], default: Path) -> Path:
    raw = _first_present(data, keys)
    if raw is None or raw == "":
        return Path(default)
    return Path(str(raw))


def _first_present(data: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in data:
            return data.get(key)
    return None


__all__ = [
    "AcquisitionConfig",
    "BurstCamConfig",
    "DeviceLimits",
    "ExportSettings",
    "LoggingSettings",
    "Roi",
    "SessionSettings",
    "StorageSettings",
    "as_dict",
    "flatten_config",
    "load_config",
    "load_config_file",
    "load_config_file_async",
]
